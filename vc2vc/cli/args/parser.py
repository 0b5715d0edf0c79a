# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# vc2vc/cli/args/parser.py
from __future__ import annotations

import argparse
import sys
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ...config.config_loader import Config
from ...core.logger import Log, c
from ...core.utils import U
from .builder import HelpFormatter, _build_epilog
from .groups import (
    _add_destination_knobs,
    _add_endpoint_knobs,
    _add_global_config_logging,
    _add_migration_knobs,
    _add_network_knobs,
    _add_project_control,
    _add_vm_selection,
)
from .helpers import normalize_network_map
from .validators import validate_args


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="vc2vc",
        description=c("vc2vc: cross-vCenter VM migration orchestrator", "green", ["bold"]),
        formatter_class=HelpFormatter,
        epilog=_build_epilog(),
    )

    _add_global_config_logging(p)
    _add_project_control(p)

    _add_endpoint_knobs(p, "source", "Source")
    _add_endpoint_knobs(p, "target", "Target")
    _add_destination_knobs(p)

    _add_vm_selection(p)
    _add_migration_knobs(p)
    _add_network_knobs(p)

    return p


def _build_preparser() -> argparse.ArgumentParser:
    pre = argparse.ArgumentParser(add_help=False)
    pre.add_argument("--config", action="append", default=[])
    pre.add_argument("-v", "--verbose", action="count", default=0)
    pre.add_argument("-q", "--quiet", action="count", default=0)
    pre.add_argument("--log-file", dest="log_file", default=None)
    pre.add_argument("--json-logs", dest="json_logs", action="store_true")
    pre.add_argument("--no-color", dest="no_color", action="store_true")
    pre.add_argument("--dump-config", action="store_true")
    pre.add_argument("--dump-args", action="store_true")
    return pre


def _load_merged_config(logger: Any, cfgs: Sequence[str]) -> Dict[str, Any]:
    if not cfgs:
        return {}
    expanded = Config.expand_configs(logger, list(cfgs))
    conf = Config.load_many(logger, expanded)
    # List-valued options arrive from YAML in friendlier shapes.
    if "network_map" in conf:
        conf["network_map"] = normalize_network_map(conf["network_map"])
    if isinstance(conf.get("vms"), str):
        conf["vms"] = [conf["vms"]]
    return conf


# Options whose values commonly start with a dash.
_DASH_VALUE_OPTS = ("--name-suffix",)


def _join_dash_values(argv: Sequence[str]) -> List[str]:
    """Rewrite `--opt -value` into `--opt=-value` so argparse keeps the value."""
    out: List[str] = []
    i = 0
    while i < len(argv):
        tok = argv[i]
        if tok in _DASH_VALUE_OPTS and i + 1 < len(argv):
            out.append(f"{tok}={argv[i + 1]}")
            i += 2
            continue
        out.append(tok)
        i += 1
    return out


def _redacted(d: Dict[str, Any]) -> Dict[str, Any]:
    return {k: ("***REDACTED***" if k.endswith("_password") and v else v) for k, v in d.items()}


def parse_args_with_config(
    argv: Optional[Sequence[str]] = None,
    logger: Any = None,
) -> Tuple[argparse.Namespace, Dict[str, Any], Any]:
    """
    Flow:
      Phase 0: parse ONLY global flags needed to locate config/logging
      Phase 1: load+merge config files
      Phase 2: apply config as defaults onto the parser
      Phase 3: full parse to get final args
      Phase 4: validate merged config + args
    """
    if argv is None:
        argv = sys.argv[1:]
    argv = _join_dash_values(argv)

    parser = build_parser()

    pre = _build_preparser()
    args0, _rest = pre.parse_known_args(argv)

    if logger is None:
        logger = Log.setup(
            args0.verbose,
            args0.log_file,
            quiet=args0.quiet,
            color=False if args0.no_color else None,
            json_logs=args0.json_logs,
        )

    conf = _load_merged_config(logger, args0.config or [])

    if args0.dump_config:
        print(U.json_dump(_redacted(conf)))
        raise SystemExit(0)

    # Apply config as defaults so CLI can override.
    Config.apply_as_defaults(logger, parser, conf)

    args = parser.parse_args(argv)

    if args0.dump_args:
        print(U.json_dump(_redacted(vars(args))))
        raise SystemExit(0)

    validate_args(args, conf)
    return args, conf, logger
