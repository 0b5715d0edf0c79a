# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# vc2vc/orchestrator/placement.py
"""
Destination host / datastore selection.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from ..core.exceptions import PlacementError
from ..core.logger import Log
from ..core.utils import U
from .models import DatastoreCandidate, HostCandidate, MigrationPhase

DEFAULT_SPACE_BUFFER = 1.2


class PlacementResolver:
    """
    Least-loaded host, emptiest datastore.
    """

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    @staticmethod
    def _host_fits(h: HostCandidate, required_cpu: int, required_memory: int) -> bool:
        if not (h.connected and h.powered_on) or h.in_maintenance:
            return False
        # Zero means "unknown" on either side; don't filter on it.
        if required_cpu > 0 and h.logical_cpus > 0 and h.logical_cpus < required_cpu:
            return False
        if required_memory > 0 and h.memory_free_mb > 0 and h.memory_free_mb < required_memory:
            return False
        return True

    def select_host(
        self,
        candidates: Sequence[HostCandidate],
        required_cpu: int,
        required_memory: int,
    ) -> HostCandidate:
        eligible = [h for h in candidates if self._host_fits(h, required_cpu, required_memory)]
        Log.trace(
            self.logger,
            "🖥️  select_host: candidates=%d eligible=%d cpu=%d mem_mb=%d",
            len(candidates),
            len(eligible),
            required_cpu,
            required_memory,
        )
        if not eligible:
            raise PlacementError(
                msg=f"No eligible destination host (need {required_cpu} vCPU / {required_memory} MiB)",
                phase=MigrationPhase.BUILDING.value,
                context={"candidates": len(candidates)},
            )
        eligible.sort(key=lambda h: (h.cpu_usage_ratio, h.memory_usage_ratio, h.name))
        return eligible[0]

    def select_datastore(
        self,
        candidates: Sequence[DatastoreCandidate],
        required_space: int,
        buffer: float = DEFAULT_SPACE_BUFFER,
    ) -> DatastoreCandidate:
        needed = required_space * buffer
        eligible = [d for d in candidates if d.accessible and d.free_space > needed]
        Log.trace(
            self.logger,
            "💾 select_datastore: candidates=%d eligible=%d need=%s",
            len(candidates),
            len(eligible),
            U.human_bytes(int(needed)),
        )
        if not eligible:
            raise PlacementError(
                msg=f"No destination datastore with more than {U.human_bytes(int(needed))} free",
                phase=MigrationPhase.BUILDING.value,
                context={"candidates": len(candidates), "buffer": buffer},
            )
        eligible.sort(key=lambda d: (-d.free_ratio, d.name))
        return eligible[0]

    def pick_datastore_override(
        self,
        candidates: Sequence[DatastoreCandidate],
        name: str,
        required_space: int,
        buffer: float = DEFAULT_SPACE_BUFFER,
    ) -> DatastoreCandidate:
        """
        Honor an explicitly configured datastore; low free space only warns.
        """
        match: Optional[DatastoreCandidate] = next((d for d in candidates if d.name == name), None)
        if match is None:
            raise PlacementError(
                msg=f"Configured datastore {name!r} is not visible from the destination",
                phase=MigrationPhase.BUILDING.value,
            )
        if match.free_space <= required_space * buffer:
            Log.warn(
                self.logger,
                f"Datastore {name} is below the {buffer:.1f}x free-space buffer "
                f"({U.human_bytes(match.free_space)} free, need {U.human_bytes(int(required_space * buffer))})",
            )
        return match
