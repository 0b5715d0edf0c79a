# SPDX-License-Identifier: LGPL-3.0-or-later
from __future__ import annotations

import datetime as dt
import io
import threading

import pytest
from rich.console import Console

from vc2vc.orchestrator.models import FailureRecord, MigrationPhase, MigrationResult
from vc2vc.orchestrator.results import ResultAggregator, RunOutcome


def _ok(name: str, seconds: float, *, degraded: bool = False) -> MigrationResult:
    t0 = dt.datetime(2024, 1, 1, tzinfo=dt.timezone.utc)
    return MigrationResult(
        workload_name=name,
        success=True,
        phase=MigrationPhase.COMPLETED,
        degraded=degraded,
        started_at=t0,
        ended_at=t0 + dt.timedelta(seconds=seconds),
        target_name=f"{name}-Imported",
    )


def _bad(name: str) -> MigrationResult:
    return MigrationResult(
        workload_name=name,
        success=False,
        phase=MigrationPhase.RELOCATING,
        error="vMotion failed",
        error_type="ExecutionError",
    )


class TestAggregator:
    def test_duplicate_outcome_rejected(self):
        agg = ResultAggregator()
        agg.add_result(_ok("a", 1))
        with pytest.raises(ValueError):
            agg.add_failure(FailureRecord("a", "x", MigrationPhase.BUILDING))

    def test_failed_result_becomes_failure_record(self):
        agg = ResultAggregator()
        agg.add_result(_bad("b"))
        s = agg.summary(1)
        assert s.results == []
        assert s.failures == [FailureRecord("b", "vMotion failed", MigrationPhase.RELOCATING, "ExecutionError")]

    def test_counts_and_average(self):
        agg = ResultAggregator()
        agg.add_result(_ok("a", 10))
        agg.add_result(_ok("b", 20, degraded=True))
        agg.add_failure(FailureRecord("c", "no host", MigrationPhase.BUILDING, "PlacementError"))
        s = agg.summary(3)
        assert (s.succeeded, s.failed, s.degraded, s.total_processed) == (2, 1, 1, 3)
        assert s.average_duration_s == pytest.approx(15.0)

    def test_average_is_none_without_successes(self):
        agg = ResultAggregator()
        agg.add_result(_bad("a"))
        assert agg.summary(1).average_duration_s is None

    def test_concurrent_adds(self):
        agg = ResultAggregator()
        threads = [threading.Thread(target=agg.add_result, args=(_ok(f"vm{i}", 1),)) for i in range(32)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(agg) == 32
        assert agg.summary(32).succeeded == 32


class TestOutcome:
    @pytest.mark.parametrize(
        "ok,bad,total,outcome,code",
        [
            (0, 0, 0, RunOutcome.NOTHING_TO_DO, 0),
            (2, 0, 2, RunOutcome.ALL_SUCCEEDED, 0),
            (1, 1, 2, RunOutcome.PARTIAL, 3),
            (0, 2, 2, RunOutcome.ALL_FAILED, 4),
        ],
    )
    def test_outcome_and_exit_code(self, ok, bad, total, outcome, code):
        agg = ResultAggregator()
        for i in range(ok):
            agg.add_result(_ok(f"ok{i}", 1))
        for i in range(bad):
            agg.add_result(_bad(f"bad{i}"))
        s = agg.summary(total)
        assert s.outcome is outcome
        assert s.outcome.exit_code == code

    def test_aborted_exit_code(self):
        assert RunOutcome.ABORTED.exit_code == 2


class TestSummaryOutput:
    def test_to_dict(self):
        agg = ResultAggregator()
        agg.add_result(_ok("a", 4))
        agg.add_result(_bad("b"))
        d = agg.summary(2).to_dict()
        assert d["outcome"] == "partial"
        assert d["total_processed"] == 2
        assert d["results"][0]["target_name"] == "a-Imported"
        assert d["results"][0]["duration_s"] == 4.0
        assert d["failures"][0] == {
            "workload": "b",
            "error": "vMotion failed",
            "phase": "relocating",
            "error_type": "ExecutionError",
        }

    def test_render_lists_every_vm(self):
        agg = ResultAggregator()
        agg.add_result(_ok("alpha", 4))
        agg.add_result(_bad("beta"))
        buf = io.StringIO()
        agg.summary(2).render(Console(file=buf, width=200, color_system=None))
        out = buf.getvalue()
        assert "alpha" in out and "beta" in out
        assert "outcome=partial" in out
