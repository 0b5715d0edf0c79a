# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# vc2vc/orchestrator/executor.py
"""
Per-VM migration state machine.

NotStarted -> Connecting -> Relocating -> PlacingInHierarchy
           -> RemappingNetwork -> Renaming -> Completed | Failed

Every phase error is caught here and turned into a failed MigrationResult;
nothing escapes to sibling jobs.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from ..core.exceptions import (
    DomainConnectionError,
    ExecutionError,
    HierarchyError,
    MigrationItemError,
    NetworkError,
)
from ..core.logger import Log
from ..core.utils import U
from .domain import ConnectionProvider, DomainEndpoint, DomainSession
from .hierarchy import HierarchyReplicator
from .models import (
    EntityKind,
    MigrationPhase,
    MigrationRequest,
    MigrationResult,
    NetworkAdapterSnapshot,
    WorkloadRef,
)
from .network_remapper import NetworkRemapper


class MigrationExecutor:
    def __init__(
        self,
        logger: logging.Logger,
        request: MigrationRequest,
        provider: ConnectionProvider,
        source_endpoint: DomainEndpoint,
        target_endpoint: DomainEndpoint,
        *,
        replicator: HierarchyReplicator,
        dest_cluster: Optional[str] = None,
    ):
        self.request = request
        self.provider = provider
        self.source_endpoint = source_endpoint
        self.target_endpoint = target_endpoint
        self.replicator = replicator
        self.dest_cluster = dest_cluster
        self.log = Log.bind(logger, vm=request.workload.name)
        self.remapper = NetworkRemapper(self.log, allow_fallback=request.options.network_fallback)

        self.phase = MigrationPhase.NOT_STARTED
        self.history: List[MigrationPhase] = [self.phase]
        self.degraded = False
        self.warnings: List[str] = []

        self._source: Optional[DomainSession] = None
        self._target: Optional[DomainSession] = None
        self._snapshot: Optional[List[NetworkAdapterSnapshot]] = None
        self._moved: Optional[WorkloadRef] = None

    def _enter(self, phase: MigrationPhase) -> None:
        self.phase = phase
        self.history.append(phase)
        Log.trace(self.log, "🔁 phase -> %s", phase.value)

    def _warn(self, msg: str) -> None:
        self.warnings.append(msg)
        Log.warn(self.log, msg)

    def _live(self) -> Tuple[DomainSession, DomainSession]:
        if self._source is None or self._target is None:
            raise ExecutionError(msg="Domain sessions are not open", phase=self.phase.value)
        return self._source, self._target

    def _landed(self) -> Tuple[DomainSession, WorkloadRef]:
        _, target = self._live()
        if self._moved is None:
            raise ExecutionError(msg="VM has not been relocated yet", phase=self.phase.value)
        return target, self._moved

    # Phases

    def _connect(self) -> None:
        self._enter(MigrationPhase.CONNECTING)
        for attr, ep in (("_source", self.source_endpoint), ("_target", self.target_endpoint)):
            try:
                setattr(self, attr, self.provider.connect(ep))
            except Exception as e:
                raise DomainConnectionError(
                    msg=f"Cannot connect to {ep.describe()}: {e}",
                    cause=e,
                    phase=MigrationPhase.CONNECTING.value,
                )

    def _capture_network(self) -> None:
        opts = self.request.options
        if not opts.enhanced_network_handling:
            return
        source, _ = self._live()
        try:
            self._snapshot = self.remapper.capture_config(source, self.request.workload)
        except NetworkError as e:
            if not opts.ignore_network_errors:
                raise
            self.degraded = True
            self._warn(f"Adapter capture failed, network remap will be skipped: {e}")

    def _relocate(self) -> None:
        self._enter(MigrationPhase.RELOCATING)
        source, target = self._live()
        self._capture_network()
        opts = self.request.options
        p = self.request.placement
        Log.step(self.log, f"Relocating to host={p.host_name} datastore={p.datastore_name} ({opts.disk_format.value})")
        try:
            self._moved = source.relocate(
                self.request.workload,
                target,
                p,
                disk_format=opts.disk_format,
                timeout_s=opts.relocate_timeout_s,
                network_mapping=self.request.network_mapping,
            )
        except ExecutionError:
            raise
        except Exception as e:
            raise ExecutionError(
                msg=f"Relocate failed: {e}", cause=e, phase=MigrationPhase.RELOCATING.value
            )

    def _place(self) -> None:
        self._enter(MigrationPhase.PLACING_IN_HIERARCHY)
        target, moved = self._landed()
        p = self.request.placement
        try:
            for kind, segments in (
                (EntityKind.FOLDER, p.folder_path),
                (EntityKind.RESOURCE_POOL, p.resource_pool_path),
            ):
                root = target.hierarchy_root(kind, self.dest_cluster)
                leaf = self.replicator.ensure_destination_path(segments, root)
                target.move_into(moved, leaf)
                Log.trace(self.log, "📁 moved into %s /%s", kind.value, "/".join(segments))
        except HierarchyError:
            raise
        except Exception as e:
            raise HierarchyError(
                msg=f"Cannot place VM in destination hierarchy: {e}",
                cause=e,
                phase=MigrationPhase.PLACING_IN_HIERARCHY.value,
            )

    def _remap_network(self) -> None:
        opts = self.request.options
        if not opts.enhanced_network_handling or self._snapshot is None:
            Log.trace(self.log, "🔌 network remap skipped (enhanced=%s)", opts.enhanced_network_handling)
            return
        self._enter(MigrationPhase.REMAPPING_NETWORK)
        target, moved = self._landed()
        try:
            self.remapper.apply_config(
                target,
                moved,
                self._snapshot,
                self.request.network_mapping,
                preserve_mac=opts.preserve_mac,
                disconnect_first=opts.disconnect_before_remap,
            )
        except Exception as e:
            if not opts.ignore_network_errors:
                if isinstance(e, NetworkError):
                    raise
                raise NetworkError(msg=f"Network remap failed: {e}", cause=e, phase=MigrationPhase.REMAPPING_NETWORK.value)
            self.degraded = True
            self._warn(f"Network remap failed (ignored): {e}")

    def _rename(self) -> Optional[str]:
        target, moved = self._landed()
        suffix = self.request.options.name_suffix
        if not suffix:
            return moved.name
        self._enter(MigrationPhase.RENAMING)
        new_name = self.request.target_name
        try:
            target.rename(moved, new_name)
            Log.ok(self.log, f"Renamed to {new_name}")
            return new_name
        except Exception as e:
            self._warn(f"Rename to {new_name!r} failed (VM kept as {moved.name!r}): {e}")
            return moved.name

    def _close(self) -> None:
        for s in (self._source, self._target):
            if s is None:
                continue
            try:
                s.close()
            except Exception as e:
                self.log.debug("session close failed: %s", e)

    # Entry point

    def run(self) -> MigrationResult:
        name = self.request.workload.name
        result = MigrationResult(workload_name=name, success=False, started_at=U.utcnow())
        try:
            self._connect()
            self._relocate()
            self._place()
            self._remap_network()
            result.target_name = self._rename()
            self._enter(MigrationPhase.COMPLETED)
            result.success = True
            result.phase = MigrationPhase.COMPLETED
            Log.ok(self.log, "Migration completed" + (" (degraded)" if self.degraded else ""))
        except MigrationItemError as e:
            result.phase = self.phase
            result.error = str(e)
            result.error_type = type(e).__name__
            self._enter(MigrationPhase.FAILED)
            Log.fail(self.log, f"{result.phase.value}: {e}")
        except Exception as e:
            result.phase = self.phase
            result.error = f"{type(e).__name__}: {e}"
            result.error_type = ExecutionError.__name__
            self._enter(MigrationPhase.FAILED)
            Log.fail(self.log, f"{result.phase.value}: unexpected {result.error}")
            self.log.debug("💥 executor exception", exc_info=True)
        finally:
            self._close()
            result.ended_at = U.utcnow()
            result.degraded = self.degraded
            result.warnings = list(self.warnings)
        return result
