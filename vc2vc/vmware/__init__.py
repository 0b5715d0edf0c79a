# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# vc2vc/vmware/__init__.py
"""VMware/vSphere implementation of the migration domain contracts."""

from .clients.client import VMwareClient, VMwareConnectionProvider

__all__ = ["VMwareClient", "VMwareConnectionProvider"]
