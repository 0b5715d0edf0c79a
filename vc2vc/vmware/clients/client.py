# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# vc2vc/vmware/clients/client.py
"""
vSphere / vCenter client for vc2vc.
"""

from __future__ import annotations

import logging
import socket
import ssl
from typing import Any, List, Mapping, Optional, Tuple

from pyVim.connect import Disconnect, SmartConnect  # type: ignore
from pyVmomi import vim  # type: ignore

from ...core.exceptions import VMwareError
from ...core.logger import Log
from ...orchestrator.domain import ConnectionProvider, DomainEndpoint, DomainSession, InventoryEntity
from ...orchestrator.models import (
    DatastoreCandidate,
    DestinationPlacement,
    DiskFormat,
    EntityKind,
    HostCandidate,
    NetworkAdapterSnapshot,
    NetworkRef,
    WorkloadRef,
    WorkloadRequirements,
)
from ...orchestrator.network_remapper import NetworkRemapper
from .. import vmware_inventory as inv
from ..inventory_entities import VSphereFolder, VSphereResourcePool, _VSphereEntity, wrap_entity


class VMwareClient(DomainSession):
    """
    One pyVmomi session to one vCenter.

    Sessions are not shared between threads: the orchestrator opens one pair
    for setup and every migration job opens its own.
    """

    def __init__(
        self,
        logger: logging.Logger,
        endpoint: DomainEndpoint,
        *,
        timeout: Optional[float] = None,
    ) -> None:
        self.logger = logger
        self.endpoint = endpoint
        self.host = (endpoint.host or "").strip()
        self.user = (endpoint.user or "").strip()
        self.password = endpoint.password or ""
        self.port = int(endpoint.port)
        self.insecure = bool(endpoint.insecure)
        self.timeout = timeout

        self.si: Any = None

        # caches
        self._dc_cache: Optional[List[Any]] = None
        self._dc_name_cache: Optional[List[str]] = None
        self._datacenter: Any = None

    def has_creds(self) -> bool:
        return bool(self.host and self.user and self.password)

    # Connection

    def _ssl_context(self) -> ssl.SSLContext:
        """
        Create SSL context for vSphere connections.

        SECURITY WARNING: When insecure=True, TLS certificate verification is completely
        disabled. Only use insecure mode in trusted networks with self-signed certificates.
        """
        if self.insecure:
            Log.warn_once(
                self.logger,
                f"insecure:{self.host}",
                f"TLS certificate verification is DISABLED for {self.host} (insecure=True)",
            )
            ctx = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
            ctx.check_hostname = False
            ctx.verify_mode = ssl.CERT_NONE
            return ctx
        return ssl.create_default_context()

    def _smart_connect(self, ctx: ssl.SSLContext) -> Any:
        return SmartConnect(  # type: ignore[misc]
            host=self.host,
            user=self.user,
            pwd=self.password,
            port=self.port,
            sslContext=ctx,
        )

    def connect(self) -> None:
        if not self.has_creds():
            raise VMwareError(msg=f"Missing host/user/password for {self.endpoint.describe()}")
        ctx = self._ssl_context()
        try:
            if self.timeout is not None:
                old_timeout = socket.getdefaulttimeout()
                socket.setdefaulttimeout(self.timeout)
                try:
                    self.si = self._smart_connect(ctx)
                finally:
                    socket.setdefaulttimeout(old_timeout)
            else:
                self.si = self._smart_connect(ctx)
            self.logger.debug("Connected to vSphere: %s:%s", self.host, self.port)
        except Exception as e:
            self.si = None
            raise VMwareError(msg=f"Failed to connect to vSphere {self.host}:{self.port}: {e}", cause=e)

    def disconnect(self) -> None:
        try:
            if self.si is not None:
                Disconnect(self.si)  # type: ignore[misc]
        except Exception as e:
            self.logger.error("Error during disconnect: %s", e)
        finally:
            self.si = None
            self._dc_cache = None
            self._dc_name_cache = None
            self._datacenter = None

    def close(self) -> None:
        self.disconnect()

    def _content(self) -> Any:
        return inv._content(self)

    def instance_uuid(self) -> str:
        return str(self._content().about.instanceUuid)

    # Scope

    def _dc(self) -> Any:
        if self._datacenter is None:
            self._datacenter = inv.resolve_datacenter(self, self.endpoint.datacenter)
        return self._datacenter

    def _compute(self, cluster: Optional[str]) -> Any:
        if cluster:
            obj = inv.get_cluster_by_name(self, cluster, self._dc())
            if obj is None:
                raise VMwareError(msg=f"Cluster {cluster!r} not found in datacenter {self._dc().name!r}")
            return obj
        return inv.default_compute(self, self._dc())

    def _vm(self, workload: WorkloadRef) -> Any:
        vm = inv.get_vm_by_instance_uuid(self, workload.source_id)
        if vm is None:
            vm = inv.get_vm_by_name(self, workload.name)
        if vm is None:
            raise VMwareError(msg=f"VM {workload.name!r} not found on {self.host}")
        return vm

    def _task(self, task: Any, what: str, timeout_s: Optional[float] = None) -> Any:
        Log.trace(self.logger, "⏱️  waiting for %s", what)
        return inv.wait_for_task(self, task, timeout_s=timeout_s, what=what)

    # Workloads

    def find_workload(self, name: str) -> Optional[WorkloadRef]:
        vm = inv.get_vm_by_name(self, name)
        if vm is None:
            return None
        return WorkloadRef(name=str(vm.name), source_id=inv.vm_instance_uuid(vm))

    def workload_requirements(self, workload: WorkloadRef) -> WorkloadRequirements:
        vm = self._vm(workload)
        hw = vm.config.hardware
        storage = getattr(vm.summary, "storage", None)
        return WorkloadRequirements(
            cpu=int(hw.numCPU or 0),
            memory_mb=int(hw.memoryMB or 0),
            used_space_bytes=int(getattr(storage, "committed", 0) or 0),
        )

    def workload_container(self, workload: WorkloadRef, kind: EntityKind) -> Optional[InventoryEntity]:
        vm = self._vm(workload)
        obj = vm.parent if kind is EntityKind.FOLDER else vm.resourcePool
        return wrap_entity(obj)

    # Destination inventory

    def has_datacenter(self, name: str) -> bool:
        return inv.get_datacenter_by_name(self, name) is not None

    def has_cluster(self, name: str) -> bool:
        return inv.get_cluster_by_name(self, name, self._dc()) is not None

    def hierarchy_root(self, kind: EntityKind, cluster: Optional[str] = None) -> InventoryEntity:
        if kind is EntityKind.FOLDER:
            return VSphereFolder(self._dc().vmFolder)
        return VSphereResourcePool(self._compute(cluster).resourcePool)

    def host_candidates(self, cluster: Optional[str] = None) -> List[HostCandidate]:
        out: List[HostCandidate] = []
        for h in self._compute(cluster).host or []:
            rt = h.runtime
            usage = inv.host_usage(h)
            out.append(
                HostCandidate(
                    name=str(h.name),
                    host_id=str(h._moId),
                    connected=rt.connectionState == vim.HostSystem.ConnectionState.connected,
                    powered_on=rt.powerState == vim.HostSystem.PowerState.poweredOn,
                    in_maintenance=bool(rt.inMaintenanceMode),
                    cpu_usage_ratio=usage["cpu_ratio"],
                    memory_usage_ratio=usage["mem_ratio"],
                    logical_cpus=usage["logical_cpus"],
                    memory_free_mb=usage["memory_free_mb"],
                )
            )
        return out

    def datastore_candidates(self, cluster: Optional[str] = None) -> List[DatastoreCandidate]:
        out: List[DatastoreCandidate] = []
        for ds in self._compute(cluster).datastore or []:
            s = ds.summary
            out.append(
                DatastoreCandidate(
                    name=str(ds.name),
                    datastore_id=str(ds._moId),
                    free_space=int(s.freeSpace or 0),
                    capacity=int(s.capacity or 0),
                    accessible=bool(s.accessible),
                )
            )
        return out

    # Networking

    def _nic_network_name(self, vm: Any, nic: Any) -> Tuple[str, bool]:
        b = nic.backing
        if isinstance(b, vim.vm.device.VirtualEthernetCard.DistributedVirtualPortBackingInfo):
            key = b.port.portgroupKey
            for net in vm.network or []:
                if isinstance(net, vim.dvs.DistributedVirtualPortgroup) and net.key == key:
                    return str(net.name), True
            return str(key), True
        if isinstance(b, vim.vm.device.VirtualEthernetCard.NetworkBackingInfo):
            return str(b.deviceName or ""), False
        return "", False

    def list_network_adapters(self, workload: WorkloadRef) -> List[NetworkAdapterSnapshot]:
        vm = self._vm(workload)
        out: List[NetworkAdapterSnapshot] = []
        for nic in inv.vm_devices(vm, vim.vm.device.VirtualEthernetCard):
            net_name, distributed = self._nic_network_name(vm, nic)
            conn = nic.connectable
            out.append(
                NetworkAdapterSnapshot(
                    adapter_name=str(nic.deviceInfo.label),
                    network_name=net_name,
                    mac_address=str(nic.macAddress or ""),
                    connected=bool(getattr(conn, "connected", False)),
                    start_connected=bool(getattr(conn, "startConnected", False)),
                    distributed=distributed,
                )
            )
        return out

    def find_network(self, name: str, *, distributed: bool) -> Optional[NetworkRef]:
        net = inv.find_network(self, name, distributed=distributed, container=self._dc())
        if net is None:
            return None
        if distributed:
            return NetworkRef(
                name=str(net.name),
                network_id=str(net._moId),
                distributed=True,
                portgroup_key=str(net.key),
                switch_uuid=str(net.config.distributedVirtualSwitch.uuid),
            )
        return NetworkRef(name=str(net.name), network_id=str(net._moId))

    def list_network_names(self) -> List[str]:
        return sorted({str(n.name) for n in inv.list_networks(self, self._dc())})

    def _nic_backing(self, network: NetworkRef) -> Any:
        if network.distributed:
            return vim.vm.device.VirtualEthernetCard.DistributedVirtualPortBackingInfo(
                port=vim.dvs.PortConnection(portgroupKey=network.portgroup_key, switchUuid=network.switch_uuid)
            )
        return vim.vm.device.VirtualEthernetCard.NetworkBackingInfo(
            deviceName=network.name,
            network=vim.Network(network.network_id, stub=self.si._stub),
        )

    def _reconfigure_nic(self, vm: Any, nic: Any, what: str) -> None:
        change = vim.vm.device.VirtualDeviceSpec(
            operation=vim.vm.device.VirtualDeviceSpec.Operation.edit,
            device=nic,
        )
        spec = vim.vm.ConfigSpec(deviceChange=[change])
        self._task(vm.ReconfigVM_Task(spec=spec), what)

    def set_adapter_connection(
        self, workload: WorkloadRef, adapter_name: str, *, connected: bool, start_connected: bool
    ) -> None:
        vm = self._vm(workload)
        nic = inv.nic_by_label(vm, adapter_name)
        nic.connectable = nic.connectable or vim.vm.device.VirtualDevice.ConnectInfo()
        nic.connectable.connected = connected
        nic.connectable.startConnected = start_connected
        self._reconfigure_nic(vm, nic, f"{adapter_name} connected={connected}")

    def assign_adapter_network(
        self, workload: WorkloadRef, adapter_name: str, network: NetworkRef, *, mac_address: Optional[str] = None
    ) -> None:
        vm = self._vm(workload)
        nic = inv.nic_by_label(vm, adapter_name)
        nic.backing = self._nic_backing(network)
        if mac_address:
            nic.addressType = "manual"
            nic.macAddress = mac_address
        self._reconfigure_nic(vm, nic, f"{adapter_name} -> {network.name}")

    # Mutations

    def _disk_locators(self, vm: Any, datastore: Any, disk_format: DiskFormat) -> List[Any]:
        out = []
        for disk in inv.vm_devices(vm, vim.vm.device.VirtualDisk):
            backing = vim.vm.device.VirtualDisk.FlatVer2BackingInfo(
                diskMode="persistent",
                thinProvisioned=disk_format is DiskFormat.THIN,
                eagerlyScrub=disk_format is DiskFormat.EAGER_ZEROED_THICK,
            )
            out.append(
                vim.vm.RelocateSpec.DiskLocator(diskId=disk.key, datastore=datastore, diskBackingInfo=backing)
            )
        return out

    def _nic_changes(self, vm: Any, target: "VMwareClient", mapping: Mapping[str, str]) -> List[Any]:
        """
        Point every adapter at its network on `target` inside the relocate spec.

        Source dvPortgroup backings carry a switch UUID that does not exist on
        another vCenter. Adapters whose network cannot be found on `target`
        are left alone; the post-move remap handles fallback for those.
        """
        changes = []
        for nic in inv.vm_devices(vm, vim.vm.device.VirtualEthernetCard):
            src_name, _ = self._nic_network_name(vm, nic)
            if not src_name:
                continue
            wanted = NetworkRemapper.resolve_target_name(src_name, mapping)
            net = NetworkRemapper.lookup_network(target, wanted)
            if net is None:
                Log.trace(
                    self.logger, "🔌 %s: %r not on %s, remapped after the move", nic.deviceInfo.label, wanted, target.host
                )
                continue
            nic.backing = target._nic_backing(net)
            changes.append(
                vim.vm.device.VirtualDeviceSpec(
                    operation=vim.vm.device.VirtualDeviceSpec.Operation.edit,
                    device=nic,
                )
            )
        return changes

    def _service_locator(self) -> Any:
        return vim.ServiceLocator(
            url=f"https://{self.host}:{self.port}",
            instanceUuid=self.instance_uuid(),
            credential=vim.ServiceLocatorNamePassword(username=self.user, password=self.password),
            sslThumbprint=inv.server_thumbprint(self.host, self.port, self.logger),
        )

    def relocate(
        self,
        workload: WorkloadRef,
        target: DomainSession,
        placement: DestinationPlacement,
        *,
        disk_format: DiskFormat,
        timeout_s: float,
        network_mapping: Optional[Mapping[str, str]] = None,
    ) -> WorkloadRef:
        if not isinstance(target, VMwareClient):
            raise VMwareError(msg=f"Cannot relocate into a non-vSphere session ({type(target).__name__})")
        vm = self._vm(workload)

        dc = target._dc()
        host = inv.get_host_by_name(target, placement.host_name, dc)
        ds = inv.get_datastore_by_name(target, placement.datastore_name, dc)
        if host is None or ds is None:
            raise VMwareError(
                msg=f"Destination host/datastore vanished: host={placement.host_name} ds={placement.datastore_name}"
            )

        spec = vim.vm.RelocateSpec()
        spec.host = host
        spec.datastore = ds
        spec.pool = host.parent.resourcePool
        spec.folder = dc.vmFolder
        spec.disk = self._disk_locators(vm, ds, disk_format)
        spec.deviceChange = self._nic_changes(vm, target, network_mapping or {})
        if target.host != self.host:
            spec.service = target._service_locator()

        Log.trace(self.logger, "🚚 RelocateVM_Task %s -> %s/%s", workload.name, target.host, placement.host_name)
        task = vm.RelocateVM_Task(spec=spec, priority=vim.VirtualMachine.MovePriority.defaultPriority)
        self._task(task, f"relocate of {workload.name}", timeout_s=timeout_s)

        moved = inv.get_vm_by_instance_uuid(target, workload.source_id) or inv.get_vm_by_name(target, workload.name)
        if moved is None:
            raise VMwareError(msg=f"Relocate of {workload.name} reported success but the VM is not in {target.host}")
        return WorkloadRef(name=str(moved.name), source_id=inv.vm_instance_uuid(moved))

    def move_into(self, workload: WorkloadRef, container: InventoryEntity) -> None:
        if not isinstance(container, _VSphereEntity):
            raise VMwareError(msg=f"Not a vSphere inventory entity: {container!r}")
        vm = self._vm(workload)
        if container.kind is EntityKind.FOLDER:
            if vm.parent is not None and vm.parent._moId == container.entity_id:
                return
            self._task(container.obj.MoveIntoFolder_Task([vm]), f"move of {workload.name} into {container.name}")
        else:
            if vm.resourcePool is not None and vm.resourcePool._moId == container.entity_id:
                return
            container.obj.MoveIntoResourcePool([vm])

    def rename(self, workload: WorkloadRef, new_name: str) -> None:
        vm = self._vm(workload)
        self._task(vm.Rename_Task(newName=new_name), f"rename of {workload.name}")


class VMwareConnectionProvider(ConnectionProvider):
    """Opens a fresh VMwareClient per call."""

    def __init__(self, logger: logging.Logger, *, timeout: Optional[float] = None):
        self.logger = logger
        self.timeout = timeout

    def connect(self, endpoint: DomainEndpoint) -> DomainSession:
        client = VMwareClient(self.logger, endpoint, timeout=self.timeout)
        client.connect()
        return client
