# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# vc2vc/orchestrator/request_builder.py
"""
Turns requested VM names into fully resolved MigrationRequests.

Placement and hierarchy paths are settled here, before anything is
scheduled; a VM that cannot be resolved never reaches the queue.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence

from ..core.exceptions import MigrationItemError, WorkloadNotFound
from ..core.logger import Log
from ..core.utils import U
from .domain import DomainSession, InventoryEntity
from .hierarchy import HierarchyReplicator
from .models import (
    DestinationPlacement,
    EntityKind,
    FailureRecord,
    MigrationOptions,
    MigrationPhase,
    MigrationRequest,
)
from .placement import DEFAULT_SPACE_BUFFER, PlacementResolver
from .results import ResultAggregator


@dataclass(frozen=True)
class BuildSettings:
    dest_cluster: Optional[str] = None
    dest_datastore: Optional[str] = None
    network_mapping: Mapping[str, str] = field(default_factory=dict)
    options: MigrationOptions = field(default_factory=MigrationOptions)
    space_buffer: float = DEFAULT_SPACE_BUFFER
    # False in validate-only runs: paths are resolved but nothing is created.
    create_missing: bool = True


class MigrationRequestBuilder:
    def __init__(
        self,
        logger: logging.Logger,
        source: DomainSession,
        target: DomainSession,
        settings: BuildSettings,
        *,
        roots: Dict[EntityKind, InventoryEntity],
        resolver: Optional[PlacementResolver] = None,
        replicator: Optional[HierarchyReplicator] = None,
    ):
        self.logger = logger
        self.source = source
        self.target = target
        self.settings = settings
        self.roots = roots
        self.resolver = resolver or PlacementResolver(logger)
        self.replicator = replicator or HierarchyReplicator(logger)

    def _destination_path(self, kind: EntityKind, segments: List[str]) -> None:
        root = self.roots[kind]
        if self.settings.create_missing:
            self.replicator.ensure_destination_path(segments, root)

    def build_one(self, name: str, sequence: int) -> MigrationRequest:
        ref = self.source.find_workload(name)
        if ref is None:
            raise WorkloadNotFound(msg=f"VM {name!r} not found in source domain", phase=MigrationPhase.BUILDING.value)

        req = self.source.workload_requirements(ref)
        Log.trace(
            self.logger,
            "📐 %s requirements: cpu=%d mem=%dMiB used=%s",
            name,
            req.cpu,
            req.memory_mb,
            U.human_bytes(req.used_space_bytes),
        )

        cluster = self.settings.dest_cluster
        host = self.resolver.select_host(self.target.host_candidates(cluster), req.cpu, req.memory_mb)

        datastores = self.target.datastore_candidates(cluster)
        if self.settings.dest_datastore:
            ds = self.resolver.pick_datastore_override(
                datastores, self.settings.dest_datastore, req.used_space_bytes, self.settings.space_buffer
            )
        else:
            ds = self.resolver.select_datastore(datastores, req.used_space_bytes, self.settings.space_buffer)

        folder_path = self.replicator.resolve_source_path(self.source.workload_container(ref, EntityKind.FOLDER))
        pool_path = self.replicator.resolve_source_path(
            self.source.workload_container(ref, EntityKind.RESOURCE_POOL)
        )
        self._destination_path(EntityKind.FOLDER, folder_path)
        self._destination_path(EntityKind.RESOURCE_POOL, pool_path)

        placement = DestinationPlacement(
            host_id=host.host_id,
            host_name=host.name,
            datastore_id=ds.datastore_id,
            datastore_name=ds.name,
            folder_path=tuple(folder_path),
            resource_pool_path=tuple(pool_path),
        )
        self.logger.info(
            "🧭 %s -> host=%s datastore=%s folder=/%s pool=/%s",
            name,
            host.name,
            ds.name,
            "/".join(folder_path),
            "/".join(pool_path),
        )
        return MigrationRequest(
            workload=ref,
            placement=placement,
            network_mapping=dict(self.settings.network_mapping),
            options=self.settings.options,
            sequence=sequence,
        )

    def build(self, names: Sequence[str], aggregator: ResultAggregator) -> List[MigrationRequest]:
        """
        Build requests in input order. Failures are recorded on `aggregator`
        and the VM is left out of the returned queue.
        """
        Log.step(self.logger, f"Resolving placement for {len(names)} VM(s)")
        requests: List[MigrationRequest] = []
        for idx, name in enumerate(names):
            try:
                requests.append(self.build_one(name, idx))
            except MigrationItemError as e:
                Log.fail(self.logger, f"{name}: {e}", phase=MigrationPhase.BUILDING.value)
                aggregator.add_failure(
                    FailureRecord(name, str(e), MigrationPhase.BUILDING, type(e).__name__)
                )
            except Exception as e:
                Log.fail(self.logger, f"{name}: unexpected {type(e).__name__}: {e}")
                self.logger.debug("💥 build_one exception", exc_info=True)
                aggregator.add_failure(
                    FailureRecord(name, str(e) or type(e).__name__, MigrationPhase.BUILDING, type(e).__name__)
                )
        Log.ok(self.logger, f"{len(requests)}/{len(names)} VM(s) ready to schedule")
        return requests
