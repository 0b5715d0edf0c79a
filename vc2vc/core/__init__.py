# SPDX-License-Identifier: LGPL-3.0-or-later
# vc2vc/core/__init__.py
from .exceptions import Fatal, SetupError, Vc2VcError, VMwareError
from .logger import Log

__all__ = ["Fatal", "SetupError", "Vc2VcError", "VMwareError", "Log"]
