# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# vc2vc/orchestrator/orchestrator.py

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from ..core.exceptions import SetupError
from ..core.logger import Log
from ..core.utils import U
from .cleanup import PostMigrationCleanup
from .domain import ConnectionProvider, DomainEndpoint, DomainSession, InventoryEntity
from .executor import MigrationExecutor
from .hierarchy import HierarchyReplicator
from .models import EntityKind, MigrationOptions, MigrationPhase, MigrationRequest, MigrationResult
from .placement import DEFAULT_SPACE_BUFFER
from .request_builder import BuildSettings, MigrationRequestBuilder
from .results import MigrationSummary, ResultAggregator
from .scheduler import DEFAULT_CONCURRENCY, DEFAULT_POLL_INTERVAL_S, JobScheduler

ACTION_MIGRATE = "migrate"
ACTION_CLEANUP = "cleanup"


@dataclass(frozen=True)
class RunSettings:
    source: DomainEndpoint
    target: DomainEndpoint
    vm_names: Tuple[str, ...] = ()
    dest_cluster: Optional[str] = None
    dest_datastore: Optional[str] = None
    network_mapping: Mapping[str, str] = field(default_factory=dict)
    options: MigrationOptions = field(default_factory=MigrationOptions)
    max_concurrency: int = DEFAULT_CONCURRENCY
    poll_interval_s: float = DEFAULT_POLL_INTERVAL_S
    space_buffer: float = DEFAULT_SPACE_BUFFER
    validate_only: bool = False
    action: str = ACTION_MIGRATE
    report_path: Optional[Path] = None
    show_progress: bool = False
    render_summary: bool = True

    @property
    def dest_datacenter(self) -> Optional[str]:
        return self.target.datacenter


class MigrationOrchestrator:
    """
    Setup, build, schedule, report.

    Only setup problems abort the run (SetupError); everything after that is
    isolated per VM and ends up in the summary.
    """

    def __init__(self, logger: logging.Logger, provider: ConnectionProvider, settings: RunSettings):
        self.logger = logger
        self.provider = provider
        self.settings = settings
        self.replicator = HierarchyReplicator(logger)
        self.aggregator = ResultAggregator()
        self.scheduler: Optional[JobScheduler] = None

        Log.trace(
            self.logger,
            "🧠 MigrationOrchestrator init: action=%s vms=%d concurrency=%d validate_only=%s",
            settings.action,
            len(settings.vm_names),
            settings.max_concurrency,
            settings.validate_only,
        )

    # Setup

    def _connect(self, endpoint: DomainEndpoint) -> DomainSession:
        Log.step(self.logger, f"Connecting to {endpoint.describe()}")
        try:
            session = self.provider.connect(endpoint)
        except Exception as e:
            raise SetupError(msg=f"Cannot connect to {endpoint.describe()}: {e}", cause=e)
        Log.ok(self.logger, f"Connected to {endpoint.describe()}")
        return session

    def _check_destination(self, target: DomainSession) -> None:
        s = self.settings
        if s.dest_datacenter and not target.has_datacenter(s.dest_datacenter):
            raise SetupError(msg=f"Destination datacenter {s.dest_datacenter!r} not found")
        if s.dest_cluster and not target.has_cluster(s.dest_cluster):
            raise SetupError(msg=f"Destination cluster {s.dest_cluster!r} not found")
        if s.dest_datastore:
            # Placement only picks from datastores the destination cluster mounts.
            try:
                names = {d.name for d in target.datastore_candidates(s.dest_cluster)}
            except Exception as e:
                raise SetupError(msg=f"Cannot list destination datastores: {e}", cause=e)
            if s.dest_datastore not in names:
                where = f"cluster {s.dest_cluster!r}" if s.dest_cluster else "the destination compute resource"
                raise SetupError(msg=f"Destination datastore {s.dest_datastore!r} is not available to {where}")

    def _destination_roots(self, target: DomainSession) -> Dict[EntityKind, InventoryEntity]:
        try:
            return {kind: target.hierarchy_root(kind, self.settings.dest_cluster) for kind in EntityKind}
        except Exception as e:
            raise SetupError(msg=f"Cannot resolve destination folder/pool roots: {e}", cause=e)

    def _check_workloads(self, source: DomainSession, names: Sequence[str]) -> None:
        if not any(source.find_workload(n) is not None for n in names):
            raise SetupError(msg=f"None of the {len(names)} requested VM(s) exist in the source domain")

    @staticmethod
    def _close(*sessions: Optional[DomainSession]) -> None:
        for s in sessions:
            if s is not None:
                s.close()

    def _names(self) -> List[str]:
        names = U.dedupe(self.settings.vm_names)
        if not names:
            raise SetupError(msg="No VM names given (use --vm or --vm-list-file)")
        dropped = len(self.settings.vm_names) - len(names)
        if dropped:
            Log.warn(self.logger, f"Ignoring {dropped} duplicate/empty VM name(s)")
        return names

    # Actions

    def _run_job(self, request: MigrationRequest) -> MigrationResult:
        s = self.settings
        executor = MigrationExecutor(
            self.logger,
            request,
            self.provider,
            s.source,
            s.target,
            replicator=self.replicator,
            dest_cluster=s.dest_cluster,
        )
        return executor.run()

    def _plan_results(self, requests: Sequence[MigrationRequest]) -> None:
        for req in requests:
            now = U.utcnow()
            p = req.placement
            self.logger.info(
                "📝 plan %s -> %s on %s/%s",
                req.workload.name,
                req.target_name,
                p.host_name,
                p.datastore_name,
            )
            self.aggregator.add_result(
                MigrationResult(
                    workload_name=req.workload.name,
                    success=True,
                    phase=MigrationPhase.NOT_STARTED,
                    target_name=req.target_name,
                    started_at=now,
                    ended_at=now,
                )
            )

    def _migrate(self, names: List[str]) -> None:
        s = self.settings
        source = target = None
        try:
            source = self._connect(s.source)
            target = self._connect(s.target)
            self._check_destination(target)
            roots = self._destination_roots(target)
            self._check_workloads(source, names)

            builder = MigrationRequestBuilder(
                self.logger,
                source,
                target,
                BuildSettings(
                    dest_cluster=s.dest_cluster,
                    dest_datastore=s.dest_datastore,
                    network_mapping=dict(s.network_mapping),
                    options=s.options,
                    space_buffer=s.space_buffer,
                    create_missing=not s.validate_only,
                ),
                roots=roots,
                replicator=self.replicator,
            )
            requests = builder.build(names, self.aggregator)
        finally:
            self._close(source, target)

        if s.validate_only:
            Log.banner(self.logger, "Validate-only: nothing will be moved")
            self._plan_results(requests)
            return

        self.scheduler = JobScheduler(
            self.logger,
            self._run_job,
            self.aggregator,
            max_concurrency=s.max_concurrency,
            poll_interval_s=s.poll_interval_s,
            show_progress=s.show_progress,
        )
        self.scheduler.run(requests)

    def _cleanup(self, names: List[str]) -> None:
        s = self.settings
        if not s.options.name_suffix:
            raise SetupError(msg="Cleanup needs a non-empty name suffix")
        target = self._connect(s.target)
        try:
            PostMigrationCleanup(self.logger, target, s.options.name_suffix).run(names, self.aggregator)
        finally:
            self._close(target)

    def _write_report(self, summary: MigrationSummary) -> None:
        path = self.settings.report_path
        if path is None:
            return
        path = Path(path).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(U.json_dump(summary.to_dict()) + "\n", encoding="utf-8")
        self.logger.info("🧾 Report written: %s", path)

    def run(self) -> MigrationSummary:
        s = self.settings
        if s.action == ACTION_CLEANUP:
            Log.banner(self.logger, f"vc2vc cleanup on {s.target.host}")
        else:
            Log.banner(self.logger, f"vc2vc {s.action}: {s.source.host} -> {s.target.host}")
        names = self._names()

        if s.action == ACTION_CLEANUP:
            self._cleanup(names)
        elif s.action == ACTION_MIGRATE:
            self._migrate(names)
        else:
            raise SetupError(msg=f"Unknown action {s.action!r}")

        summary = self.aggregator.summary(len(names), validate_only=s.validate_only)
        if s.render_summary:
            summary.render()
        self._write_report(summary)

        (Log.ok if summary.failed == 0 else Log.warn)(
            self.logger,
            f"Done: {summary.succeeded}/{summary.total_requested} succeeded, "
            f"{summary.failed} failed, {summary.degraded} degraded ({summary.outcome.value})",
        )
        return summary
