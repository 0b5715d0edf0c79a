# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# vc2vc/cli/args/__init__.py
"""
Argument parsing for the vc2vc CLI (two-phase: config files first, then flags).
"""
from __future__ import annotations

from .helpers import build_run_settings, collect_vm_names, parse_network_map
from .parser import build_parser, parse_args_with_config
from .validators import validate_args

__all__ = [
    "build_parser",
    "build_run_settings",
    "collect_vm_names",
    "parse_args_with_config",
    "parse_network_map",
    "validate_args",
]
