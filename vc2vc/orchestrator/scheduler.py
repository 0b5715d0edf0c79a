# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# vc2vc/orchestrator/scheduler.py
"""
Bounded-concurrency job scheduler.

Requests are launched in FIFO order onto a thread pool, never more than
`max_concurrency` at a time. Completion is detected through future signals;
`poll_interval_s` only paces the "still running" heartbeat.
"""

from __future__ import annotations

import concurrent.futures
import logging
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Deque, List, Optional, Sequence

from rich.progress import BarColumn, Progress, TextColumn, TimeElapsedColumn

from ..core.exceptions import ExecutionError
from ..core.logger import Log
from ..core.utils import U
from .models import MigrationPhase, MigrationRequest, MigrationResult
from .results import ResultAggregator

MIN_CONCURRENCY = 1
MAX_CONCURRENCY = 8
DEFAULT_CONCURRENCY = 2
DEFAULT_POLL_INTERVAL_S = 15.0

# Builds and runs the job for one request; must never raise for item failures.
JobRunner = Callable[[MigrationRequest], MigrationResult]


@dataclass
class JobHandle:
    request: MigrationRequest
    future: "concurrent.futures.Future[MigrationResult]"
    launched_at: float = field(default_factory=time.monotonic)

    @property
    def name(self) -> str:
        return self.request.workload.name


class JobScheduler:
    def __init__(
        self,
        logger: logging.Logger,
        runner: JobRunner,
        aggregator: ResultAggregator,
        *,
        max_concurrency: int = DEFAULT_CONCURRENCY,
        poll_interval_s: float = DEFAULT_POLL_INTERVAL_S,
        show_progress: bool = False,
    ):
        if not MIN_CONCURRENCY <= int(max_concurrency) <= MAX_CONCURRENCY:
            raise ValueError(
                f"max_concurrency must be within {MIN_CONCURRENCY}..{MAX_CONCURRENCY}, got {max_concurrency}"
            )
        self.logger = logger
        self.runner = runner
        self.aggregator = aggregator
        self.max_concurrency = int(max_concurrency)
        self.poll_interval_s = max(0.01, float(poll_interval_s))
        self.show_progress = show_progress
        self.peak_in_flight = 0
        self.completion_order: List[str] = []

    @property
    def sequential(self) -> bool:
        return self.max_concurrency == 1

    def _failed_result(self, handle: JobHandle, exc: BaseException) -> MigrationResult:
        # The runner is expected to catch everything; this is the last line.
        now = U.utcnow()
        return MigrationResult(
            workload_name=handle.name,
            success=False,
            phase=MigrationPhase.FAILED,
            error=f"{type(exc).__name__}: {exc}",
            error_type=ExecutionError.__name__,
            started_at=now,
            ended_at=now,
        )

    def _collect(self, handle: JobHandle) -> None:
        try:
            result = handle.future.result()
        except Exception as e:
            Log.fail(self.logger, f"{handle.name}: job crashed: {e}")
            self.logger.debug("💥 job exception", exc_info=True)
            result = self._failed_result(handle, e)
        self.aggregator.add_result(result)
        self.completion_order.append(handle.name)
        Log.trace(
            self.logger,
            "🏁 %s finished success=%s after %s",
            handle.name,
            result.success,
            U.fmt_duration(time.monotonic() - handle.launched_at),
        )

    def _heartbeat(self, in_flight: Sequence[JobHandle], queued: int) -> None:
        now = time.monotonic()
        running = ", ".join(f"{h.name} ({U.fmt_duration(now - h.launched_at)})" for h in in_flight)
        self.logger.info("⏳ in flight: %s | queued: %d", running or "-", queued)

    def run(self, requests: Sequence[MigrationRequest]) -> List[str]:
        """
        Drain `requests` through the pool. Returns workload names in
        completion order.
        """
        queue: Deque[MigrationRequest] = deque(requests)
        total = len(queue)
        if total == 0:
            self.logger.info("Nothing to schedule")
            return []

        mode = "sequential" if self.sequential else f"parallel x{self.max_concurrency}"
        Log.step(self.logger, f"Scheduling {total} migration(s) ({mode})")

        in_flight: List[JobHandle] = []
        progress: Optional[Progress] = None
        task_id = None
        if self.show_progress:
            progress = Progress(
                TextColumn("{task.description}"),
                BarColumn(),
                TextColumn("{task.completed}/{task.total}"),
                TimeElapsedColumn(),
            )
            progress.start()
            task_id = progress.add_task("Migrating VMs", total=total)

        pool = concurrent.futures.ThreadPoolExecutor(
            max_workers=self.max_concurrency, thread_name_prefix="vc2vc-job"
        )
        try:
            while queue or in_flight:
                while queue and len(in_flight) < self.max_concurrency:
                    req = queue.popleft()
                    handle = JobHandle(request=req, future=pool.submit(self.runner, req))
                    in_flight.append(handle)
                    self.peak_in_flight = max(self.peak_in_flight, len(in_flight))
                    self.logger.info("🚀 launched %s (%d/%d in flight)", handle.name, len(in_flight), self.max_concurrency)

                done, _ = concurrent.futures.wait(
                    [h.future for h in in_flight],
                    timeout=self.poll_interval_s,
                    return_when=concurrent.futures.FIRST_COMPLETED,
                )
                if not done:
                    self._heartbeat(in_flight, len(queue))
                    continue

                # Keep launch order when several finish in the same wake-up.
                finished = [h for h in in_flight if h.future in done]
                in_flight = [h for h in in_flight if h.future not in done]
                for h in finished:
                    self._collect(h)
                    if progress is not None and task_id is not None:
                        progress.update(task_id, advance=1)
        finally:
            pool.shutdown(wait=True)
            if progress is not None:
                progress.stop()

        Log.ok(self.logger, f"All {total} job(s) finished (peak concurrency {self.peak_in_flight})")
        return list(self.completion_order)
