# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# vc2vc/core/utils.py
from __future__ import annotations

import datetime as _dt
import json
from pathlib import Path
from typing import Any, Iterable, List, Optional, Union

from .exceptions import Fatal


class U:
    @staticmethod
    def utcnow() -> _dt.datetime:
        return _dt.datetime.now(tz=_dt.timezone.utc)

    @staticmethod
    def json_dump(obj: Any) -> str:
        try:
            return json.dumps(obj, indent=2, sort_keys=True, default=str)
        except Exception:
            return repr(obj)

    @staticmethod
    def human_bytes(n: Optional[int]) -> str:
        if n is None:
            return "unknown"
        x = float(n)
        for unit in ["B", "KiB", "MiB", "GiB", "TiB", "PiB"]:
            if x < 1024 or unit == "PiB":
                return f"{x:.2f} {unit}" if unit != "B" else f"{int(x)} {unit}"
            x /= 1024
        return f"{n} B"

    @staticmethod
    def fmt_duration(sec: Optional[float]) -> str:
        if sec is None:
            return "-"
        if sec < 1.0:
            return f"{sec * 1000:.0f}ms"
        if sec < 60.0:
            return f"{sec:.2f}s"
        m = int(sec // 60)
        return f"{m}m{sec - m * 60:.0f}s"

    @staticmethod
    def dedupe(names: Iterable[str]) -> List[str]:
        """Strip, drop empties and duplicates, keep first-seen order."""
        seen = set()
        out: List[str] = []
        for n in names:
            s = str(n or "").strip()
            if s and s not in seen:
                seen.add(s)
                out.append(s)
        return out

    @staticmethod
    def read_name_list(path: Union[str, Path]) -> List[str]:
        """
        Read one name per line; blank lines and `#` comments are ignored.
        """
        p = Path(path).expanduser()
        try:
            text = p.read_text(encoding="utf-8")
        except OSError as e:
            raise Fatal(2, f"Cannot read VM list file {p}: {e}")
        names = []
        for line in text.splitlines():
            line = line.split("#", 1)[0].strip()
            if line:
                names.append(line)
        return U.dedupe(names)
