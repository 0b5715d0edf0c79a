# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# vc2vc/orchestrator/network_remapper.py
"""
Network adapter capture / reapply around a cross-domain move.

Capture happens on the source session right before the relocate; apply runs
on the target session once the VM has landed.
"""

from __future__ import annotations

import logging
import re
from typing import List, Mapping, Optional, Sequence, Tuple

from ..core.exceptions import NetworkError
from ..core.logger import Log
from .domain import DomainSession
from .models import AdapterRemapOutcome, MigrationPhase, NetworkAdapterSnapshot, NetworkRef, WorkloadRef

# Ordered fallback heuristics when the mapped network is missing on the target.
_FALLBACK_PATTERNS = (
    re.compile(r"^vm network$", re.IGNORECASE),
    re.compile(r"\bvm\b|vm[-_ ]", re.IGNORECASE),
    re.compile(r"management|mgmt", re.IGNORECASE),
)


def _net_error(msg: str, cause: Optional[BaseException] = None, **ctx) -> NetworkError:
    return NetworkError(msg=msg, cause=cause, phase=MigrationPhase.REMAPPING_NETWORK.value, context=ctx or None)


class NetworkRemapper:
    def __init__(self, logger: logging.Logger, *, allow_fallback: bool = True):
        self.logger = logger
        self.allow_fallback = allow_fallback

    def capture_config(self, session: DomainSession, workload: WorkloadRef) -> List[NetworkAdapterSnapshot]:
        try:
            snapshots = list(session.list_network_adapters(workload))
        except Exception as e:
            raise _net_error(f"Cannot read network adapters of {workload.name}: {e}", e, vm=workload.name)
        for s in snapshots:
            Log.trace(
                self.logger,
                "🔌 captured %s: net=%r mac=%s connected=%s start_connected=%s dvs=%s",
                s.adapter_name,
                s.network_name,
                s.mac_address,
                s.connected,
                s.start_connected,
                s.distributed,
            )
        return snapshots

    @staticmethod
    def resolve_target_name(source_network: str, mapping: Mapping[str, str]) -> str:
        target = mapping.get(source_network)
        return target if target else source_network

    @staticmethod
    def lookup_network(session: DomainSession, name: str) -> Optional[NetworkRef]:
        # Distributed port groups first: a standard network with the same
        # name is usually a leftover of a pre-vDS migration.
        net = session.find_network(name, distributed=True)
        if net is None:
            net = session.find_network(name, distributed=False)
        return net

    def _fallback(self, session: DomainSession) -> Optional[NetworkRef]:
        names = session.list_network_names()
        for pat in _FALLBACK_PATTERNS:
            for n in names:
                if pat.search(n):
                    net = self.lookup_network(session, n)
                    if net is not None:
                        return net
        return None

    def _resolve_network(self, session: DomainSession, wanted: str, vm: str) -> Tuple[NetworkRef, bool]:
        net = self.lookup_network(session, wanted)
        if net is not None:
            return net, False
        if not self.allow_fallback:
            raise _net_error(f"Target network {wanted!r} not found and fallback is disabled", vm=vm)
        net = self._fallback(session)
        if net is None:
            raise _net_error(f"Target network {wanted!r} not found and no fallback network available", vm=vm)
        Log.warn(self.logger, f"Network {wanted!r} not found on target; falling back to {net.name!r}", vm=vm)
        return net, True

    def apply_config(
        self,
        session: DomainSession,
        workload: WorkloadRef,
        snapshots: Sequence[NetworkAdapterSnapshot],
        mapping: Mapping[str, str],
        preserve_mac: bool,
        disconnect_first: bool,
    ) -> List[AdapterRemapOutcome]:
        try:
            current = list(session.list_network_adapters(workload))
        except Exception as e:
            raise _net_error(f"Cannot read network adapters of {workload.name}: {e}", e, vm=workload.name)

        if len(current) != len(snapshots):
            Log.warn(
                self.logger,
                f"Adapter count changed across the move ({len(snapshots)} -> {len(current)}); "
                "remapping by position only",
                vm=workload.name,
            )

        outcomes: List[AdapterRemapOutcome] = []
        for adapter, snap in zip(current, snapshots):
            wanted = self.resolve_target_name(snap.network_name, mapping)
            net, fell_back = self._resolve_network(session, wanted, workload.name)
            try:
                if disconnect_first:
                    session.set_adapter_connection(
                        workload, adapter.adapter_name, connected=False, start_connected=False
                    )
                session.assign_adapter_network(
                    workload,
                    adapter.adapter_name,
                    net,
                    mac_address=snap.mac_address if (preserve_mac and snap.mac_address) else None,
                )
                if disconnect_first:
                    session.set_adapter_connection(
                        workload,
                        adapter.adapter_name,
                        connected=snap.connected,
                        start_connected=snap.start_connected,
                    )
            except Exception as e:
                raise _net_error(
                    f"Remap of {adapter.adapter_name} to {net.name!r} failed: {e}",
                    e,
                    vm=workload.name,
                    adapter=adapter.adapter_name,
                )
            self.logger.info(
                "🔀 %s: %s %r -> %r%s",
                workload.name,
                adapter.adapter_name,
                snap.network_name,
                net.name,
                " (fallback)" if fell_back else "",
            )
            outcomes.append(
                AdapterRemapOutcome(
                    adapter_name=adapter.adapter_name,
                    source_network=snap.network_name,
                    target_network=net.name,
                    fell_back=fell_back,
                )
            )
        return outcomes
