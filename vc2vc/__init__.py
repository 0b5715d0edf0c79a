# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# vc2vc/__init__.py
"""
vc2vc - cross-vCenter VM migration orchestrator

Moves VMs from one vCenter to another: picks a destination host and
datastore, rebuilds the VM's folder and resource-pool path, remaps its
network adapters and runs several migrations at once without letting one
VM's failure affect the others.

Usage as a library:

    from vc2vc import MigrationOrchestrator, RunSettings, VMwareConnectionProvider
    from vc2vc.orchestrator import DomainEndpoint

    settings = RunSettings(
        source=DomainEndpoint("vc-old.example.com", "admin", "secret", label="source"),
        target=DomainEndpoint("vc-new.example.com", "admin", "secret", label="target"),
        vm_names=("web01", "web02"),
    )
    summary = MigrationOrchestrator(logger, VMwareConnectionProvider(logger), settings).run()
"""

__version__ = "0.1.0"

from .orchestrator import MigrationOrchestrator, RunSettings
from .vmware import VMwareClient, VMwareConnectionProvider

__all__ = [
    "__version__",
    "MigrationOrchestrator",
    "RunSettings",
    "VMwareClient",
    "VMwareConnectionProvider",
]
