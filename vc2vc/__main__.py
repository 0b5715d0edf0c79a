# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# vc2vc/__main__.py
from __future__ import annotations

import sys
import traceback
from typing import Optional, Sequence

from .cli.args import build_run_settings, parse_args_with_config
from .core.exceptions import Fatal, SetupError, format_exception_for_cli
from .orchestrator import MigrationOrchestrator, RunOutcome
from .vmware import VMwareConnectionProvider


def _print_stderr(msg: str) -> None:
    print(msg, file=sys.stderr)


def _safe_log(logger, level: str, msg: str) -> None:
    """
    Best-effort logging without assuming logger exists or has a given method.
    """
    if logger is None:
        _print_stderr(msg)
        return

    fn = getattr(logger, level, None)
    if callable(fn):
        fn(msg)
    else:
        _print_stderr(msg)


def main(argv: Optional[Sequence[str]] = None) -> int:
    logger: Optional[object] = None

    # Phase 1: parse (Fatal can happen here, e.g. unreadable config)
    try:
        args, conf, logger = parse_args_with_config(argv)
        settings = build_run_settings(args, conf)
    except Fatal as e:
        _safe_log(logger, "error", f"💥 {e}")
        return getattr(e, "code", 1)
    except KeyboardInterrupt:
        _safe_log(logger, "warning", "Interrupted by user (Ctrl+C).")
        return 130

    # Phase 2: run
    verbose = int(getattr(args, "verbose", 0) or 0)
    try:
        summary = MigrationOrchestrator(logger, VMwareConnectionProvider(logger), settings).run()
        rc = summary.outcome.exit_code
    except SetupError as e:
        _safe_log(logger, "error", f"💥 Setup failed, nothing was migrated: {format_exception_for_cli(e, verbose=verbose)}")
        rc = RunOutcome.ABORTED.exit_code
    except Fatal as e:
        _safe_log(logger, "error", format_exception_for_cli(e, verbose=verbose))
        rc = getattr(e, "code", 1)
    except KeyboardInterrupt:
        _safe_log(logger, "warning", "Interrupted by user (Ctrl+C).")
        rc = 130
    except Exception as e:
        _safe_log(logger, "error", f"💥 UNHANDLED {type(e).__name__}: {e}")
        _safe_log(logger, "debug", traceback.format_exc())
        rc = 1
    return rc


if __name__ == "__main__":
    raise SystemExit(main())
