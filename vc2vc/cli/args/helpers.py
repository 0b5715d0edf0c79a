# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# vc2vc/cli/args/helpers.py
from __future__ import annotations

import argparse
import os
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from ...core.utils import U
from ...orchestrator.domain import DomainEndpoint
from ...orchestrator.models import DiskFormat, MigrationOptions
from ...orchestrator.orchestrator import RunSettings


def _require(v: Any) -> bool:
    """True if v is meaningfully present (treats empty/whitespace-only strings as missing)."""
    if v is None:
        return False
    if isinstance(v, str):
        return v.strip() != ""
    return True


def _merged_get(args: argparse.Namespace, conf: Dict[str, Any], key: str) -> Any:
    """
    Prefer CLI override if present (non-empty), else config.
    """
    v = getattr(args, key, None)
    if _require(v):
        return v
    return conf.get(key)


def _merged_secret(args: argparse.Namespace, conf: Dict[str, Any], value_key: str, env_key: str) -> Optional[str]:
    """
    Resolve a secret from (CLI value) or (CLI env var name) or (YAML value) or (YAML env var name).
    Example: (source_password, source_password_env)
    """
    direct = _merged_get(args, conf, value_key)
    if _require(direct):
        return str(direct)

    envname = _merged_get(args, conf, env_key)
    if _require(envname):
        return os.environ.get(str(envname), None)

    return None


def normalize_network_map(raw: Any) -> List[str]:
    """
    Config may carry `network_map` as a mapping; argparse wants the same
    `SRC=DST` strings the CLI produces.
    """
    if raw is None:
        return []
    if isinstance(raw, dict):
        return [f"{k}={v}" for k, v in raw.items()]
    if isinstance(raw, str):
        return [raw]
    return [str(x) for x in raw]


def parse_network_map(entries: Iterable[str]) -> Dict[str, str]:
    """`["VM Network=dvPG-100", ...]` -> `{"VM Network": "dvPG-100"}`. Later entries win."""
    out: Dict[str, str] = {}
    for e in entries:
        src, sep, dst = str(e).partition("=")
        src, dst = src.strip(), dst.strip()
        if not sep or not src or not dst:
            raise ValueError(f"Invalid network mapping {e!r}; expected SRC=DST")
        out[src] = dst
    return out


def collect_vm_names(args: argparse.Namespace) -> List[str]:
    names: List[str] = list(getattr(args, "vms", None) or [])
    lst = getattr(args, "vm_list_file", None)
    if _require(lst):
        names.extend(U.read_name_list(str(lst)))
    return U.dedupe(names)


def build_endpoint(args: argparse.Namespace, conf: Dict[str, Any], side: str, *, datacenter: Optional[str] = None) -> DomainEndpoint:
    return DomainEndpoint(
        host=str(_merged_get(args, conf, f"{side}_host") or "").strip(),
        user=str(_merged_get(args, conf, f"{side}_user") or "").strip(),
        password=_merged_secret(args, conf, f"{side}_password", f"{side}_password_env") or "",
        port=int(_merged_get(args, conf, f"{side}_port") or 443),
        insecure=bool(_merged_get(args, conf, f"{side}_insecure")),
        datacenter=datacenter,
        label=side,
    )


def build_run_settings(args: argparse.Namespace, conf: Dict[str, Any]) -> RunSettings:
    """Turn validated args into the immutable settings the orchestrator runs on."""
    options = MigrationOptions(
        name_suffix=str(args.name_suffix or ""),
        preserve_mac=bool(args.preserve_mac),
        disk_format=DiskFormat.parse(args.disk_format),
        ignore_network_errors=bool(args.ignore_network_errors),
        disconnect_before_remap=bool(args.disconnect_before_remap),
        enhanced_network_handling=bool(args.enhanced_network_handling),
        network_fallback=bool(args.network_fallback),
        relocate_timeout_s=float(args.relocate_timeout),
    )
    report = _merged_get(args, conf, "report")
    return RunSettings(
        source=build_endpoint(args, conf, "source"),
        target=build_endpoint(args, conf, "target", datacenter=_merged_get(args, conf, "dest_datacenter")),
        vm_names=tuple(collect_vm_names(args)),
        dest_cluster=_merged_get(args, conf, "dest_cluster"),
        dest_datastore=_merged_get(args, conf, "dest_datastore"),
        network_mapping=parse_network_map(args.network_map or []),
        options=options,
        max_concurrency=1 if args.sequential else int(args.max_concurrency),
        poll_interval_s=float(args.poll_interval),
        space_buffer=float(args.space_buffer),
        validate_only=bool(args.validate_only),
        action=str(args.action),
        report_path=Path(str(report)) if _require(report) else None,
        show_progress=bool(getattr(args, "progress", False)),
    )
