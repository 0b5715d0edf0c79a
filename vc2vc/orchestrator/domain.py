# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# vc2vc/orchestrator/domain.py
"""
Contracts the orchestrator needs from a management domain.

The pyVmomi implementation lives in vc2vc.vmware; tests use an in-memory fake.
"""

from __future__ import annotations

import abc
from dataclasses import dataclass, field
from typing import List, Mapping, Optional

from .models import (
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


@dataclass(frozen=True)
class DomainEndpoint:
    """Address + credentials of one management domain. Credentials are never persisted."""

    host: str
    user: str = ""
    password: str = field(default="", repr=False)
    port: int = 443
    insecure: bool = False
    datacenter: Optional[str] = None
    label: str = "domain"

    def describe(self) -> str:
        return f"{self.label}={self.host}:{self.port}"


class InventoryEntity(abc.ABC):
    """
    One node of a folder or resource-pool tree.

    Folders and pools share this interface so path resolution and replication
    are written once for both kinds.
    """

    kind: EntityKind

    @property
    @abc.abstractmethod
    def name(self) -> str: ...

    @property
    @abc.abstractmethod
    def entity_id(self) -> str: ...

    @abc.abstractmethod
    def parent(self) -> Optional["InventoryEntity"]:
        """Parent of the same kind, or None past the top of the tree."""

    @abc.abstractmethod
    def is_root(self) -> bool:
        """True for the designated root (datacenter `vm` folder, cluster `Resources` pool)."""

    @abc.abstractmethod
    def find_child(self, name: str) -> Optional["InventoryEntity"]: ...

    @abc.abstractmethod
    def create_child(self, name: str) -> "InventoryEntity":
        """Create a child; raises DuplicateNameError if it already exists."""


class DomainSession(abc.ABC):
    """An open session to one management domain."""

    endpoint: DomainEndpoint

    @abc.abstractmethod
    def close(self) -> None: ...

    # Workloads

    @abc.abstractmethod
    def find_workload(self, name: str) -> Optional[WorkloadRef]: ...

    @abc.abstractmethod
    def workload_requirements(self, workload: WorkloadRef) -> WorkloadRequirements: ...

    @abc.abstractmethod
    def workload_container(self, workload: WorkloadRef, kind: EntityKind) -> Optional[InventoryEntity]:
        """The folder / resource pool that directly contains the workload."""

    # Destination inventory

    @abc.abstractmethod
    def has_datacenter(self, name: str) -> bool: ...

    @abc.abstractmethod
    def has_cluster(self, name: str) -> bool: ...

    @abc.abstractmethod
    def hierarchy_root(self, kind: EntityKind, cluster: Optional[str] = None) -> InventoryEntity: ...

    @abc.abstractmethod
    def host_candidates(self, cluster: Optional[str] = None) -> List[HostCandidate]: ...

    @abc.abstractmethod
    def datastore_candidates(self, cluster: Optional[str] = None) -> List[DatastoreCandidate]: ...

    # Networking

    @abc.abstractmethod
    def list_network_adapters(self, workload: WorkloadRef) -> List[NetworkAdapterSnapshot]: ...

    @abc.abstractmethod
    def find_network(self, name: str, *, distributed: bool) -> Optional[NetworkRef]: ...

    @abc.abstractmethod
    def list_network_names(self) -> List[str]: ...

    @abc.abstractmethod
    def set_adapter_connection(
        self, workload: WorkloadRef, adapter_name: str, *, connected: bool, start_connected: bool
    ) -> None: ...

    @abc.abstractmethod
    def assign_adapter_network(
        self, workload: WorkloadRef, adapter_name: str, network: NetworkRef, *, mac_address: Optional[str] = None
    ) -> None: ...

    # Mutations

    @abc.abstractmethod
    def relocate(
        self,
        workload: WorkloadRef,
        target: "DomainSession",
        placement: DestinationPlacement,
        *,
        disk_format: DiskFormat,
        timeout_s: float,
        network_mapping: Optional[Mapping[str, str]] = None,
    ) -> WorkloadRef:
        """
        Cross-domain move; returns the workload as seen by `target`.

        `network_mapping` (source name -> target name) lets the move carry
        adapter backings that exist on `target`; unmapped names keep their
        own name.
        """

    @abc.abstractmethod
    def move_into(self, workload: WorkloadRef, container: InventoryEntity) -> None: ...

    @abc.abstractmethod
    def rename(self, workload: WorkloadRef, new_name: str) -> None: ...


class ConnectionProvider(abc.ABC):
    """Opens a fresh DomainSession per call; sessions are never shared between jobs."""

    @abc.abstractmethod
    def connect(self, endpoint: DomainEndpoint) -> DomainSession: ...
