# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# vc2vc/orchestrator/models.py
"""
Value objects passed between the migration components.

Everything a worker needs travels inside a frozen MigrationRequest, so no
mutable state is shared between concurrently running jobs.
"""

from __future__ import annotations

import datetime as _dt
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple


class DiskFormat(str, Enum):
    THIN = "thin"
    THICK = "thick"
    EAGER_ZEROED_THICK = "eagerZeroedThick"

    @classmethod
    def parse(cls, value: Any) -> "DiskFormat":
        if isinstance(value, DiskFormat):
            return value
        s = str(value or "").strip().lower().replace("-", "").replace("_", "")
        for member in cls:
            if member.value.lower() == s:
                return member
        raise ValueError(f"Unknown disk format: {value!r} (expected thin|thick|eagerZeroedThick)")


class MigrationPhase(str, Enum):
    NOT_STARTED = "not_started"
    BUILDING = "building"
    CONNECTING = "connecting"
    RELOCATING = "relocating"
    PLACING_IN_HIERARCHY = "placing_in_hierarchy"
    REMAPPING_NETWORK = "remapping_network"
    RENAMING = "renaming"
    COMPLETED = "completed"
    FAILED = "failed"


class EntityKind(str, Enum):
    FOLDER = "folder"
    RESOURCE_POOL = "resource_pool"


@dataclass(frozen=True)
class WorkloadRef:
    name: str
    source_id: str


@dataclass(frozen=True)
class WorkloadRequirements:
    cpu: int = 0
    memory_mb: int = 0
    used_space_bytes: int = 0


@dataclass(frozen=True)
class HostCandidate:
    name: str
    host_id: str
    connected: bool = True
    powered_on: bool = True
    in_maintenance: bool = False
    cpu_usage_ratio: float = 0.0
    memory_usage_ratio: float = 0.0
    logical_cpus: int = 0
    memory_free_mb: int = 0


@dataclass(frozen=True)
class DatastoreCandidate:
    name: str
    datastore_id: str
    free_space: int
    capacity: int
    accessible: bool = True

    @property
    def free_ratio(self) -> float:
        return (self.free_space / self.capacity) if self.capacity > 0 else 0.0


@dataclass(frozen=True)
class DestinationPlacement:
    host_id: str
    host_name: str
    datastore_id: str
    datastore_name: str
    folder_path: Tuple[str, ...] = ()
    resource_pool_path: Tuple[str, ...] = ()


@dataclass(frozen=True)
class NetworkAdapterSnapshot:
    adapter_name: str
    network_name: str
    mac_address: str = ""
    connected: bool = False
    start_connected: bool = False
    distributed: bool = False


@dataclass(frozen=True)
class NetworkRef:
    name: str
    network_id: str
    distributed: bool = False
    # dvPortgroup key + switch uuid are required for distributed backings.
    portgroup_key: str = ""
    switch_uuid: str = ""


@dataclass(frozen=True)
class AdapterRemapOutcome:
    adapter_name: str
    source_network: str
    target_network: str
    fell_back: bool = False


@dataclass(frozen=True)
class MigrationOptions:
    name_suffix: str = ""
    preserve_mac: bool = False
    disk_format: DiskFormat = DiskFormat.THIN
    ignore_network_errors: bool = False
    disconnect_before_remap: bool = False
    enhanced_network_handling: bool = True
    network_fallback: bool = True
    relocate_timeout_s: float = 600.0


@dataclass(frozen=True)
class MigrationRequest:
    workload: WorkloadRef
    placement: DestinationPlacement
    network_mapping: Mapping[str, str] = field(default_factory=dict)
    options: MigrationOptions = field(default_factory=MigrationOptions)
    sequence: int = 0

    @property
    def target_name(self) -> str:
        return f"{self.workload.name}{self.options.name_suffix or ''}"


@dataclass
class MigrationResult:
    workload_name: str
    success: bool
    phase: MigrationPhase = MigrationPhase.NOT_STARTED
    error: Optional[str] = None
    error_type: Optional[str] = None
    degraded: bool = False
    started_at: Optional[_dt.datetime] = None
    ended_at: Optional[_dt.datetime] = None
    target_name: Optional[str] = None
    warnings: List[str] = field(default_factory=list)

    @property
    def duration_s(self) -> Optional[float]:
        if self.started_at is None or self.ended_at is None:
            return None
        return (self.ended_at - self.started_at).total_seconds()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "workload": self.workload_name,
            "success": self.success,
            "phase": self.phase.value,
            "error": self.error,
            "error_type": self.error_type,
            "degraded": self.degraded,
            "target_name": self.target_name,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
            "duration_s": self.duration_s,
            "warnings": list(self.warnings),
        }


@dataclass(frozen=True)
class FailureRecord:
    workload_name: str
    error: str
    phase: MigrationPhase
    error_type: str = "Error"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "workload": self.workload_name,
            "error": self.error,
            "phase": self.phase.value,
            "error_type": self.error_type,
        }
