# SPDX-License-Identifier: LGPL-3.0-or-later
# vc2vc/orchestrator/__init__.py
"""Cross-domain migration pipeline: placement, hierarchy, network, scheduling."""

from .cleanup import PostMigrationCleanup
from .domain import ConnectionProvider, DomainEndpoint, DomainSession, InventoryEntity
from .executor import MigrationExecutor
from .hierarchy import HierarchyReplicator
from .models import (
    DiskFormat,
    EntityKind,
    MigrationOptions,
    MigrationPhase,
    MigrationRequest,
    MigrationResult,
)
from .network_remapper import NetworkRemapper
from .orchestrator import ACTION_CLEANUP, ACTION_MIGRATE, MigrationOrchestrator, RunSettings
from .placement import PlacementResolver
from .request_builder import BuildSettings, MigrationRequestBuilder
from .results import MigrationSummary, ResultAggregator, RunOutcome
from .scheduler import JobHandle, JobScheduler

__all__ = [
    "ACTION_CLEANUP",
    "ACTION_MIGRATE",
    "BuildSettings",
    "ConnectionProvider",
    "DiskFormat",
    "DomainEndpoint",
    "DomainSession",
    "EntityKind",
    "HierarchyReplicator",
    "InventoryEntity",
    "JobHandle",
    "JobScheduler",
    "MigrationExecutor",
    "MigrationOptions",
    "MigrationOrchestrator",
    "MigrationPhase",
    "MigrationRequest",
    "MigrationRequestBuilder",
    "MigrationResult",
    "MigrationSummary",
    "NetworkRemapper",
    "PlacementResolver",
    "PostMigrationCleanup",
    "ResultAggregator",
    "RunOutcome",
    "RunSettings",
]
