# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# vc2vc/orchestrator/cleanup.py
"""
Post-migration cleanup: give migrated VMs their original names back.

A migration run with a name suffix leaves `web01-Imported` in the target.
Once the source copy has been retired, this strips the suffix again.
"""

from __future__ import annotations

import logging
from typing import Sequence

from ..core.exceptions import ExecutionError, MigrationItemError, WorkloadNotFound
from ..core.logger import Log
from ..core.utils import U
from .domain import DomainSession
from .models import MigrationPhase, MigrationResult
from .results import ResultAggregator


class PostMigrationCleanup:
    def __init__(self, logger: logging.Logger, target: DomainSession, name_suffix: str):
        self.logger = logger
        self.target = target
        self.name_suffix = name_suffix

    def _cleanup_one(self, name: str) -> MigrationResult:
        result = MigrationResult(workload_name=name, success=False, started_at=U.utcnow())
        suffixed = f"{name}{self.name_suffix}"
        try:
            migrated = self.target.find_workload(suffixed)
            if migrated is None:
                if self.target.find_workload(name) is not None:
                    result.warnings.append(f"{suffixed!r} not found; {name!r} already carries its original name")
                    Log.warn(self.logger, result.warnings[-1])
                    result.target_name = name
                    result.success = True
                    result.phase = MigrationPhase.COMPLETED
                    return result
                raise WorkloadNotFound(
                    msg=f"Neither {suffixed!r} nor {name!r} exists in the target domain",
                    phase=MigrationPhase.RENAMING.value,
                )
            if self.target.find_workload(name) is not None:
                raise ExecutionError(
                    msg=f"Cannot rename {suffixed!r}: {name!r} already exists in the target domain",
                    phase=MigrationPhase.RENAMING.value,
                )
            try:
                self.target.rename(migrated, name)
            except Exception as e:
                raise ExecutionError(
                    msg=f"Rename {suffixed!r} -> {name!r} failed: {e}", cause=e, phase=MigrationPhase.RENAMING.value
                )
            Log.ok(self.logger, f"Renamed {suffixed} -> {name}")
            result.target_name = name
            result.success = True
            result.phase = MigrationPhase.COMPLETED
        except MigrationItemError as e:
            result.phase = MigrationPhase.RENAMING
            result.error = str(e)
            result.error_type = type(e).__name__
            Log.fail(self.logger, f"{name}: {e}")
        finally:
            result.ended_at = U.utcnow()
        return result

    def run(self, names: Sequence[str], aggregator: ResultAggregator) -> None:
        Log.step(self.logger, f"Stripping suffix {self.name_suffix!r} from {len(names)} VM(s)")
        for name in names:
            aggregator.add_result(self._cleanup_one(name))
