# SPDX-License-Identifier: LGPL-3.0-or-later
# vc2vc/vmware/clients/__init__.py
"""
VMware API client modules.

- client: VMwareClient (one pyVmomi session) and VMwareConnectionProvider
"""

__all__ = []
