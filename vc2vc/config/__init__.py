# SPDX-License-Identifier: LGPL-3.0-or-later
# vc2vc/config/__init__.py
"""YAML/JSON configuration loading."""

from .config_loader import Config

__all__ = ["Config"]
