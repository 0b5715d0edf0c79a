# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# vc2vc/config/config_loader.py
"""
Config files are plain mappings whose keys are argparse dests
(`max_concurrency`, `source_host`, ...). Several files merge left to right,
later files win; nested mappings such as `network_map` are merged key by key.
"""

from __future__ import annotations

import argparse
import copy
import glob
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Sequence

import yaml

from ..core.exceptions import Fatal, wrap_fatal
from ..core.logger import Log


def _deep_merge(base: Dict[str, Any], over: Dict[str, Any]) -> Dict[str, Any]:
    out = copy.deepcopy(base)
    for k, v in over.items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _deep_merge(out[k], v)
        else:
            out[k] = copy.deepcopy(v)
    return out


def _normalize_keys(d: Dict[str, Any]) -> Dict[str, Any]:
    # `max-concurrency` and `max_concurrency` mean the same thing.
    return {str(k).strip().replace("-", "_"): v for k, v in d.items()}


class Config:
    @staticmethod
    def expand_configs(logger: logging.Logger, paths: Sequence[str]) -> List[Path]:
        """
        Expand `~` and globs; a literal path that does not exist is an error.
        """
        out: List[Path] = []
        for raw in paths:
            s = str(Path(raw).expanduser())
            if glob.has_magic(s):
                matches = sorted(glob.glob(s))
                if not matches:
                    Log.warn(logger, f"Config glob matched nothing: {raw}")
                out.extend(Path(m) for m in matches)
                continue
            p = Path(s)
            if not p.is_file():
                raise Fatal(2, f"Config file not found: {p}")
            out.append(p)
        Log.trace(logger, "🧾 config files: %s", [str(p) for p in out])
        return out

    @staticmethod
    def load_one(logger: logging.Logger, path: Path) -> Dict[str, Any]:
        try:
            text = Path(path).read_text(encoding="utf-8")
        except OSError as e:
            raise wrap_fatal(f"Cannot read config {path}: {e}", e, code=2, path=str(path))
        try:
            if Path(path).suffix.lower() == ".json":
                data = json.loads(text) if text.strip() else {}
            else:
                data = yaml.safe_load(text)
        except (yaml.YAMLError, json.JSONDecodeError) as e:
            raise wrap_fatal(f"Invalid config {path}: {e}", e, code=2, path=str(path))
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise Fatal(2, f"Config {path} must be a mapping at the top level, got {type(data).__name__}")
        logger.debug("Loaded config %s (%d keys)", path, len(data))
        return _normalize_keys(data)

    @staticmethod
    def load_many(logger: logging.Logger, paths: Sequence[Path]) -> Dict[str, Any]:
        merged: Dict[str, Any] = {}
        for p in paths:
            merged = _deep_merge(merged, Config.load_one(logger, p))
        return merged

    @staticmethod
    def apply_as_defaults(logger: logging.Logger, parser: argparse.ArgumentParser, conf: Dict[str, Any]) -> None:
        """
        Push config values into the parser as defaults so explicit CLI flags
        still win. Keys the parser does not know are reported and ignored.
        """
        dests = {a.dest for a in parser._actions}
        known = {k: v for k, v in conf.items() if k in dests}
        unknown = sorted(k for k in conf if k not in dests)
        if unknown:
            Log.warn(logger, f"Ignoring unknown config key(s): {', '.join(unknown)}")
        if known:
            parser.set_defaults(**known)
            Log.trace(logger, "🧾 config defaults applied: %s", sorted(known))
