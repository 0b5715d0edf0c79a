# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# vc2vc/orchestrator/results.py
"""
Thread-safe accumulation of per-VM outcomes and the end-of-run summary.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Set

from rich.console import Console
from rich.table import Table

from ..core.utils import U
from .models import FailureRecord, MigrationResult


class RunOutcome(str, Enum):
    ALL_SUCCEEDED = "all_succeeded"
    PARTIAL = "partial"
    ALL_FAILED = "all_failed"
    ABORTED = "aborted"
    NOTHING_TO_DO = "nothing_to_do"

    @property
    def exit_code(self) -> int:
        return _EXIT_CODES[self]


_EXIT_CODES = {
    RunOutcome.ALL_SUCCEEDED: 0,
    RunOutcome.NOTHING_TO_DO: 0,
    RunOutcome.ABORTED: 2,
    RunOutcome.PARTIAL: 3,
    RunOutcome.ALL_FAILED: 4,
}


@dataclass
class MigrationSummary:
    total_requested: int
    succeeded: int
    failed: int
    degraded: int
    average_duration_s: Optional[float]
    failures: List[FailureRecord] = field(default_factory=list)
    results: List[MigrationResult] = field(default_factory=list)
    validate_only: bool = False

    @property
    def total_processed(self) -> int:
        return self.succeeded + self.failed

    @property
    def outcome(self) -> RunOutcome:
        if self.total_requested == 0:
            return RunOutcome.NOTHING_TO_DO
        if self.failed == 0:
            return RunOutcome.ALL_SUCCEEDED
        if self.succeeded == 0:
            return RunOutcome.ALL_FAILED
        return RunOutcome.PARTIAL

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_requested": self.total_requested,
            "total_processed": self.total_processed,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "degraded": self.degraded,
            "average_duration_s": self.average_duration_s,
            "validate_only": self.validate_only,
            "outcome": self.outcome.value,
            "failures": [f.to_dict() for f in self.failures],
            "results": [r.to_dict() for r in self.results],
        }

    def render(self, console: Optional[Console] = None) -> None:
        console = console or Console(stderr=True)
        title = "Validation plan" if self.validate_only else "Migration summary"
        table = Table(title=title)
        table.add_column("VM")
        table.add_column("Status")
        table.add_column("Phase")
        table.add_column("Duration", justify="right")
        table.add_column("Detail", overflow="fold")
        for r in self.results:
            status = "[green]ok[/green]" if not r.degraded else "[yellow]degraded[/yellow]"
            detail = r.target_name or ""
            if r.warnings:
                detail = f"{detail} ({len(r.warnings)} warning(s))".strip()
            table.add_row(r.workload_name, status, r.phase.value, U.fmt_duration(r.duration_s), detail)
        for f in self.failures:
            table.add_row(f.workload_name, "[red]failed[/red]", f.phase.value, "-", f"{f.error_type}: {f.error}")
        console.print(table)
        console.print(
            f"total={self.total_requested} succeeded={self.succeeded} failed={self.failed} "
            f"degraded={self.degraded} avg={U.fmt_duration(self.average_duration_s)} outcome={self.outcome.value}"
        )


class ResultAggregator:
    """
    Append-only, lock-guarded store of outcomes. Workers never touch the
    underlying lists; each VM may be reported exactly once.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._results: List[MigrationResult] = []
        self._failures: List[FailureRecord] = []
        self._seen: Set[str] = set()

    def _claim(self, name: str) -> None:
        if name in self._seen:
            raise ValueError(f"Outcome for {name!r} already recorded")
        self._seen.add(name)

    def add_failure(self, record: FailureRecord) -> None:
        with self._lock:
            self._claim(record.workload_name)
            self._failures.append(record)

    def add_result(self, result: MigrationResult) -> None:
        """Successful results are kept; failed ones become FailureRecords."""
        with self._lock:
            self._claim(result.workload_name)
            if result.success:
                self._results.append(result)
            else:
                self._failures.append(
                    FailureRecord(
                        workload_name=result.workload_name,
                        error=result.error or "unknown error",
                        phase=result.phase,
                        error_type=result.error_type or "Error",
                    )
                )

    def __len__(self) -> int:
        with self._lock:
            return len(self._seen)

    def summary(self, total_requested: int, *, validate_only: bool = False) -> MigrationSummary:
        with self._lock:
            results = sorted(self._results, key=lambda r: r.started_at or U.utcnow())
            failures = list(self._failures)
        durations = [r.duration_s for r in results if r.duration_s is not None]
        return MigrationSummary(
            total_requested=total_requested,
            succeeded=len(results),
            failed=len(failures),
            degraded=sum(1 for r in results if r.degraded),
            average_duration_s=(sum(durations) / len(durations)) if durations else None,
            failures=failures,
            results=results,
            validate_only=validate_only,
        )
