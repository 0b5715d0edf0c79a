# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# vc2vc/cli/help_texts.py
from __future__ import annotations

# NOTE:
# Pure help text used by the argparse epilog. Keep it copy/paste runnable.

YAML_EXAMPLE = r"""# vc2vc configuration example (YAML)
#
# Run:
#   vc2vc --config migrate.yaml
#
# Merge multiple configs (later overrides earlier):
#   vc2vc --config base.yaml --config wave-3.yaml --max-concurrency 4
#
# Keys are the long option names with '_' instead of '-'. CLI flags win.
#
source_host: vc-old.example.com
source_user: administrator@vsphere.local
source_password_env: VC2VC_SOURCE_PASSWORD
source_insecure: true

target_host: vc-new.example.com
target_user: administrator@vsphere.local
target_password_env: VC2VC_TARGET_PASSWORD

dest_datacenter: DC-East
dest_cluster: Prod-01
# dest_datastore: vsanDatastore   # omit to pick the emptiest datastore

vms:
  - web01
  - web02
  - db01
# vm_list_file: ./wave-3.txt      # one name per line, '#' comments allowed

network_map:
  "VM Network": "dvPG-Prod-100"
  "Backup": "dvPG-Backup-200"

name_suffix: "-Imported"
disk_format: thin                 # thin | thick | eagerZeroedThick
max_concurrency: 2                # 1..8, or sequential: true
relocate_timeout: 600
poll_interval: 15
preserve_mac: true
ignore_network_errors: false
report: ./vc2vc-report.json
"""

FEATURE_SUMMARY = r"""
- Cross-vCenter relocate with host/datastore auto-placement
- Folder and resource-pool paths rebuilt on the destination
- Network adapters remapped by name (with fallback heuristics)
- Bounded concurrency (1..8) with per-VM failure isolation
- --validate-only to preview placement; --action cleanup to strip the name suffix
Exit codes: 0 all succeeded, 2 setup aborted, 3 partial, 4 all failed
"""
