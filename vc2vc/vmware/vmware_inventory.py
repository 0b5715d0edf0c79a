# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# vc2vc/vmware/vmware_inventory.py

"""
Inventory lookups and task handling for VMware (pyVmomi)
"""

from __future__ import annotations

import hashlib
import logging
import ssl
import time
from typing import Any, Iterable, List, Optional, Type

from pyVmomi import vim  # type: ignore

from ..core.exceptions import VMwareError

# ---------------------------
# Views
# ---------------------------


def _content(client: Any) -> Any:
    if not client.si:
        raise VMwareError(msg="Not connected")
    try:
        return client.si.RetrieveContent()
    except Exception as e:
        raise VMwareError(msg=f"Failed to retrieve content: {e}", cause=e)


def list_objects(client: Any, types: List[Type[Any]], container: Any = None) -> List[Any]:
    content = _content(client)
    view = content.viewManager.CreateContainerView(  # type: ignore[attr-defined]
        container or content.rootFolder, types, True
    )
    try:
        return list(view.view)
    finally:
        try:
            view.Destroy()
        except Exception:
            pass


def _by_name(objs: Iterable[Any], name: str) -> Any:
    target = (name or "").strip()
    for o in objs:
        if str(getattr(o, "name", "")).strip() == target:
            return o
    return None


# ---------------------------
# Datacenters / Clusters
# ---------------------------


def _refresh_datacenter_cache(client: Any) -> None:
    dcs = list_objects(client, [vim.Datacenter])
    client._dc_cache = dcs
    client._dc_name_cache = sorted(str(getattr(dc, "name", "")) for dc in dcs if getattr(dc, "name", None))


def list_datacenters(client: Any, *, refresh: bool = False) -> List[str]:
    if refresh or client._dc_name_cache is None:
        _refresh_datacenter_cache(client)
    return list(client._dc_name_cache or [])


def get_datacenter_by_name(client: Any, name: str, *, refresh: bool = False) -> Any:
    if refresh or client._dc_cache is None:
        _refresh_datacenter_cache(client)
    return _by_name(client._dc_cache or [], name)


def resolve_datacenter(client: Any, preferred: Optional[str]) -> Any:
    """
    Configured datacenter, or the only one there is.
    """
    pref = (preferred or "").strip()
    if pref:
        dc = get_datacenter_by_name(client, pref)
        if dc is None:
            raise VMwareError(msg=f"Datacenter {pref!r} not found", context={"available": list_datacenters(client)})
        return dc
    names = list_datacenters(client)
    if len(names) == 1:
        return get_datacenter_by_name(client, names[0])
    raise VMwareError(
        msg=f"Cannot pick a datacenter automatically; found {len(names)}. Set a datacenter explicitly.",
        context={"available": names},
    )


def get_cluster_by_name(client: Any, name: str, datacenter: Any = None) -> Any:
    return _by_name(list_objects(client, [vim.ClusterComputeResource], datacenter), name)


def default_compute(client: Any, datacenter: Any) -> Any:
    """First compute resource (cluster or standalone host) of the datacenter, by name."""
    computes = sorted(
        list_objects(client, [vim.ComputeResource], datacenter), key=lambda c: str(getattr(c, "name", ""))
    )
    if not computes:
        raise VMwareError(msg=f"Datacenter {getattr(datacenter, 'name', '?')!r} has no compute resources")
    return computes[0]


# ---------------------------
# Hosts / Datastores
# ---------------------------


def get_host_by_name(client: Any, name: str, container: Any = None) -> Any:
    return _by_name(list_objects(client, [vim.HostSystem], container), name)


def get_datastore_by_name(client: Any, name: str, container: Any = None) -> Any:
    return _by_name(list_objects(client, [vim.Datastore], container), name)


def host_usage(host: Any) -> dict:
    """
    Usage ratios and free capacity from summary.quickStats. Missing values
    come back as zeros so placement treats them as unknown.
    """
    out = {"cpu_ratio": 0.0, "mem_ratio": 0.0, "logical_cpus": 0, "memory_free_mb": 0}
    try:
        hw = host.summary.hardware
        qs = host.summary.quickStats
        cpu_total_mhz = float(hw.cpuMhz or 0) * float(hw.numCpuCores or 0)
        mem_total_mb = float(hw.memorySize or 0) / (1024 * 1024)
        if cpu_total_mhz > 0:
            out["cpu_ratio"] = float(qs.overallCpuUsage or 0) / cpu_total_mhz
        if mem_total_mb > 0:
            used = float(qs.overallMemoryUsage or 0)
            out["mem_ratio"] = used / mem_total_mb
            out["memory_free_mb"] = int(max(0.0, mem_total_mb - used))
        out["logical_cpus"] = int(hw.numCpuThreads or 0)
    except AttributeError:
        pass
    return out


# ---------------------------
# VM lookup
# ---------------------------


def get_vm_by_name(client: Any, name: str) -> Any:
    n = (name or "").strip()
    if not n:
        return None
    return _by_name(list_objects(client, [vim.VirtualMachine]), n)


def get_vm_by_instance_uuid(client: Any, uuid: str) -> Any:
    if not uuid:
        return None
    content = _content(client)
    # datacenter=None, vmSearch=True, instanceUuid=True
    return content.searchIndex.FindByUuid(None, uuid, True, True)


def vm_instance_uuid(vm_obj: Any) -> str:
    cfg = getattr(vm_obj, "config", None)
    return str(getattr(cfg, "instanceUuid", "") or getattr(vm_obj, "_moId", ""))


def vm_devices(vm_obj: Any, kind: Type[Any]) -> List[Any]:
    cfg = getattr(vm_obj, "config", None)
    hw = getattr(cfg, "hardware", None)
    return [d for d in (getattr(hw, "device", None) or []) if isinstance(d, kind)]


def nic_by_label(vm_obj: Any, label: str) -> Any:
    for d in vm_devices(vm_obj, vim.vm.device.VirtualEthernetCard):
        if getattr(getattr(d, "deviceInfo", None), "label", None) == label:
            return d
    raise VMwareError(msg=f"Network adapter {label!r} not found on {getattr(vm_obj, 'name', '?')}")


# ---------------------------
# Networks
# ---------------------------


def list_networks(client: Any, container: Any = None) -> List[Any]:
    return list_objects(client, [vim.Network], container)


def find_network(client: Any, name: str, *, distributed: bool, container: Any = None) -> Any:
    for net in list_networks(client, container):
        is_dvpg = isinstance(net, vim.dvs.DistributedVirtualPortgroup)
        if is_dvpg == distributed and str(getattr(net, "name", "")) == name:
            return net
    return None


# ---------------------------
# Tasks / TLS
# ---------------------------


def wait_for_task(
    client: Any,
    task: Any,
    *,
    timeout_s: Optional[float] = None,
    poll_s: float = 1.0,
    what: str = "task",
) -> Any:
    """
    Block until `task` finishes. On timeout the task is cancelled and
    VMwareError is raised. Returns task.info.result.
    """
    deadline = (time.monotonic() + timeout_s) if timeout_s else None
    done = (vim.TaskInfo.State.success, vim.TaskInfo.State.error)  # type: ignore[attr-defined]
    while task.info.state not in done:
        if deadline is not None and time.monotonic() >= deadline:
            try:
                task.CancelTask()
            except Exception as e:
                client.logger.warning("Cancel of %s failed: %s", what, e)
            raise VMwareError(
                msg=f"{what} did not finish within {timeout_s:.0f}s; cancelled",
                context={"task": getattr(task, "_moId", None)},
            )
        time.sleep(poll_s)
    if task.info.state == vim.TaskInfo.State.error:  # type: ignore[attr-defined]
        err = task.info.error
        raise VMwareError(msg=f"{what} failed: {getattr(err, 'msg', None) or err}")
    return task.info.result


def server_thumbprint(host: str, port: int, logger: Optional[logging.Logger] = None) -> Optional[str]:
    """SHA-1 thumbprint of the server certificate, colon separated (vSphere ServiceLocator format)."""
    try:
        pem = ssl.get_server_certificate((host, int(port)))
    except (OSError, ssl.SSLError) as e:
        if logger is not None:
            logger.debug("Could not fetch certificate of %s:%s: %s", host, port, e)
        return None
    digest = hashlib.sha1(ssl.PEM_cert_to_DER_cert(pem)).hexdigest().upper()
    return ":".join(digest[i : i + 2] for i in range(0, len(digest), 2))
