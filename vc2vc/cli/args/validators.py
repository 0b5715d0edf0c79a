# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# vc2vc/cli/args/validators.py
from __future__ import annotations

import argparse
import os
from typing import Any, Dict

from ...orchestrator.models import DiskFormat
from ...orchestrator.scheduler import MAX_CONCURRENCY, MIN_CONCURRENCY
from .helpers import _merged_get, _merged_secret, _require, parse_network_map


def _validate_endpoint(args: argparse.Namespace, conf: Dict[str, Any], side: str) -> None:
    """
    host + user + a resolvable password. The password itself is never echoed.
    """
    flag = f"--{side}"
    if not _require(_merged_get(args, conf, f"{side}_host")):
        raise SystemExit(f"{side} vCenter is required ({flag}-host or `{side}_host:` in config)")
    if not _require(_merged_get(args, conf, f"{side}_user")):
        raise SystemExit(f"{side} vCenter user is required ({flag}-user)")
    if not _require(_merged_secret(args, conf, f"{side}_password", f"{side}_password_env")):
        envname = _merged_get(args, conf, f"{side}_password_env")
        if _require(envname):
            raise SystemExit(f"{side} password env var {envname!r} is not set or empty")
        raise SystemExit(f"{side} password missing: use {flag}-password-env (or {flag}-password)")
    port = _merged_get(args, conf, f"{side}_port")
    if port is not None and not 0 < int(port) < 65536:
        raise SystemExit(f"{flag}-port out of range: {port}")


def _validate_vm_selection(args: argparse.Namespace) -> None:
    lst = getattr(args, "vm_list_file", None)
    if _require(lst) and not os.path.isfile(os.path.expanduser(str(lst))):
        raise SystemExit(f"--vm-list-file not found: {lst}")
    if not (getattr(args, "vms", None) or _require(lst)):
        raise SystemExit("No VMs selected: use --vm NAME (repeatable), --vm-list-file, or `vms:` in config")


def _validate_tuning(args: argparse.Namespace) -> None:
    if not args.sequential and not MIN_CONCURRENCY <= int(args.max_concurrency) <= MAX_CONCURRENCY:
        raise SystemExit(
            f"--max-concurrency must be between {MIN_CONCURRENCY} and {MAX_CONCURRENCY}, got {args.max_concurrency}"
        )
    if float(args.relocate_timeout) <= 0:
        raise SystemExit(f"--relocate-timeout must be > 0, got {args.relocate_timeout}")
    if float(args.poll_interval) <= 0:
        raise SystemExit(f"--poll-interval must be > 0, got {args.poll_interval}")
    if float(args.space_buffer) < 1.0:
        raise SystemExit(f"--space-buffer must be >= 1.0, got {args.space_buffer}")
    try:
        DiskFormat.parse(args.disk_format)
    except ValueError as e:
        raise SystemExit(str(e))


def _validate_network_map(args: argparse.Namespace) -> None:
    try:
        parse_network_map(args.network_map or [])
    except ValueError as e:
        raise SystemExit(f"--network-map: {e}")


def validate_args(args: argparse.Namespace, conf: Dict[str, Any]) -> None:
    """
    Validate the merged (config + CLI) arguments. Raises SystemExit with a
    readable message on the first problem.
    """
    action = str(getattr(args, "action", "migrate") or "migrate")
    if action not in ("migrate", "cleanup"):
        raise SystemExit(f"Unknown action: {action!r} (expected migrate|cleanup)")

    _validate_endpoint(args, conf, "target")
    if action == "migrate":
        _validate_endpoint(args, conf, "source")
    elif not _require(getattr(args, "name_suffix", None)):
        raise SystemExit("--action cleanup needs a non-empty --name-suffix")

    _validate_vm_selection(args)
    _validate_tuning(args)
    _validate_network_map(args)
