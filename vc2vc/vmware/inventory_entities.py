# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# vc2vc/vmware/inventory_entities.py
"""
pyVmomi-backed InventoryEntity adapters for VM folders and resource pools.
"""

from __future__ import annotations

from typing import Any, Optional

from pyVmomi import vim  # type: ignore

from ..core.exceptions import DuplicateNameError, wrap_vmware
from ..orchestrator.domain import InventoryEntity
from ..orchestrator.models import EntityKind


class _VSphereEntity(InventoryEntity):
    def __init__(self, obj: Any):
        self.obj = obj

    @property
    def name(self) -> str:
        return str(self.obj.name)

    @property
    def entity_id(self) -> str:
        return str(self.obj._moId)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r}, {self.entity_id})"


class VSphereFolder(_VSphereEntity):
    """A VM folder; the datacenter's `vm` folder is the root."""

    kind = EntityKind.FOLDER

    def parent(self) -> Optional[InventoryEntity]:
        p = getattr(self.obj, "parent", None)
        return VSphereFolder(p) if isinstance(p, vim.Folder) else None

    def is_root(self) -> bool:
        return isinstance(getattr(self.obj, "parent", None), vim.Datacenter)

    def find_child(self, name: str) -> Optional[InventoryEntity]:
        for ch in getattr(self.obj, "childEntity", None) or []:
            if isinstance(ch, vim.Folder) and ch.name == name:
                return VSphereFolder(ch)
        return None

    def create_child(self, name: str) -> InventoryEntity:
        try:
            return VSphereFolder(self.obj.CreateFolder(name))
        except vim.fault.DuplicateName as e:
            raise DuplicateNameError(msg=f"Folder {name!r} already exists under {self.name!r}", cause=e)
        except vim.fault.VimFault as e:
            raise wrap_vmware(f"CreateFolder {name!r} under {self.name!r} failed: {e.msg}", e)


def _default_allocation() -> Any:
    return vim.ResourceAllocationInfo(
        reservation=0,
        expandableReservation=True,
        limit=-1,
        shares=vim.SharesInfo(level=vim.SharesInfo.Level.normal, shares=0),
    )


class VSphereResourcePool(_VSphereEntity):
    """A resource pool; the cluster's (or host's) `Resources` pool is the root."""

    kind = EntityKind.RESOURCE_POOL

    def parent(self) -> Optional[InventoryEntity]:
        p = getattr(self.obj, "parent", None)
        return VSphereResourcePool(p) if isinstance(p, vim.ResourcePool) else None

    def is_root(self) -> bool:
        return not isinstance(getattr(self.obj, "parent", None), vim.ResourcePool)

    def find_child(self, name: str) -> Optional[InventoryEntity]:
        for ch in getattr(self.obj, "resourcePool", None) or []:
            if ch.name == name:
                return VSphereResourcePool(ch)
        return None

    def create_child(self, name: str) -> InventoryEntity:
        spec = vim.ResourceConfigSpec(cpuAllocation=_default_allocation(), memoryAllocation=_default_allocation())
        try:
            return VSphereResourcePool(self.obj.CreateResourcePool(name, spec))
        except vim.fault.DuplicateName as e:
            raise DuplicateNameError(msg=f"Resource pool {name!r} already exists under {self.name!r}", cause=e)
        except vim.fault.VimFault as e:
            raise wrap_vmware(f"CreateResourcePool {name!r} under {self.name!r} failed: {e.msg}", e)


def wrap_entity(obj: Any) -> Optional[InventoryEntity]:
    if isinstance(obj, vim.ResourcePool):
        return VSphereResourcePool(obj)
    if isinstance(obj, vim.Folder):
        return VSphereFolder(obj)
    return None
