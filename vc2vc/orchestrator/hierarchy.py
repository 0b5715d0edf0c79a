# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# vc2vc/orchestrator/hierarchy.py
"""
Folder / resource-pool path replication.

One implementation serves both trees; the entity kind only selects which
adapter the domain hands back.
"""

from __future__ import annotations

import logging
import threading
from typing import Dict, List, Optional, Sequence, Tuple

from ..core.exceptions import DuplicateNameError, HierarchyError
from ..core.logger import Log
from .domain import InventoryEntity
from .models import MigrationPhase

_MAX_DEPTH = 96

_LockKey = Tuple[str, str, str]


class HierarchyReplicator:
    """
    Resolves a source entity's path and ensures the same path at the destination.

    A single instance is shared by every worker of a run: segment creation is
    serialized per (kind, parent, name) so overlapping paths requested
    concurrently never produce duplicate segments.
    """

    def __init__(self, logger: logging.Logger):
        self.logger = logger
        self._guard = threading.Lock()
        self._locks: Dict[_LockKey, threading.Lock] = {}

    def _segment_lock(self, parent: InventoryEntity, name: str) -> threading.Lock:
        key = (parent.kind.value, parent.entity_id, name)
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock

    def resolve_source_path(self, entity: Optional[InventoryEntity]) -> List[str]:
        """
        Walk up from `entity` to the designated root, outermost segment first.
        The root itself is not part of the path.
        """
        segments: List[str] = []
        node = entity
        depth = 0
        while node is not None and not node.is_root():
            depth += 1
            if depth > _MAX_DEPTH:
                raise HierarchyError(
                    msg=f"Parent chain deeper than {_MAX_DEPTH} levels (cycle?)",
                    phase=MigrationPhase.BUILDING.value,
                    context={"entity": entity.name if entity else None},
                )
            segments.append(node.name)
            node = node.parent()
        segments.reverse()
        return segments

    def _find_or_create(self, parent: InventoryEntity, name: str) -> InventoryEntity:
        existing = parent.find_child(name)
        if existing is not None:
            return existing

        with self._segment_lock(parent, name):
            # Another worker may have created it while we waited.
            existing = parent.find_child(name)
            if existing is not None:
                return existing
            try:
                child = parent.create_child(name)
                Log.ok(self.logger, f"Created {parent.kind.value} {name!r} under {parent.name!r}")
                return child
            except DuplicateNameError:
                # Lost a race against something outside this process.
                existing = parent.find_child(name)
                if existing is not None:
                    return existing
                raise

    def ensure_destination_path(self, segments: Sequence[str], root: InventoryEntity) -> InventoryEntity:
        """
        Make sure `root/segments...` exists, creating missing segments.
        Returns the leaf node (`root` for an empty path).
        """
        node = root
        for seg in segments:
            try:
                node = self._find_or_create(node, seg)
            except HierarchyError:
                raise
            except Exception as e:
                raise HierarchyError(
                    msg=f"Cannot create {root.kind.value} segment {seg!r} under {node.name!r}: {e}",
                    cause=e,
                    phase=MigrationPhase.PLACING_IN_HIERARCHY.value,
                    context={"path": "/".join(segments)},
                )
        Log.trace(self.logger, "📁 ensured %s path %r -> %s", root.kind.value, "/".join(segments), node.entity_id)
        return node
