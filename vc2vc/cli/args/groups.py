# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# vc2vc/cli/args/groups.py
from __future__ import annotations

import argparse

from ...orchestrator.models import DiskFormat
from ...orchestrator.placement import DEFAULT_SPACE_BUFFER
from ...orchestrator.scheduler import DEFAULT_CONCURRENCY, DEFAULT_POLL_INTERVAL_S, MAX_CONCURRENCY

DEFAULT_NAME_SUFFIX = "-Imported"
DEFAULT_RELOCATE_TIMEOUT_S = 600.0


def _add_global_config_logging(p: argparse.ArgumentParser) -> None:
    # ------------------------------------------------------------------
    # Global config/logging (two-phase parse relies on these)
    # ------------------------------------------------------------------
    from ... import __version__

    p.add_argument(
        "--config",
        action="append",
        default=[],
        help="YAML/JSON config file (repeatable; later overrides earlier).",
    )
    p.add_argument("--dump-config", action="store_true", help="Print merged normalized config and exit.")
    p.add_argument("--dump-args", action="store_true", help="Print final parsed args and exit.")
    p.add_argument("--version", action="version", version=__version__)
    p.add_argument("-v", "--verbose", action="count", default=0, help="Verbosity: -v, -vv (debug), -vvv (trace)")
    p.add_argument("-q", "--quiet", action="count", default=0, help="Less output: -q warnings, -qq errors only")
    p.add_argument("--log-file", dest="log_file", default=None, help="Write logs to file.")
    p.add_argument("--json-logs", dest="json_logs", action="store_true", help="Emit NDJSON log lines on stderr.")
    p.add_argument("--no-color", dest="no_color", action="store_true", help="Disable coloured log output.")


def _add_project_control(p: argparse.ArgumentParser) -> None:
    # ------------------------------------------------------------------
    # What to do
    # ------------------------------------------------------------------
    p.add_argument(
        "--action",
        dest="action",
        default="migrate",
        choices=["migrate", "cleanup"],
        help="migrate: move VMs to the target vCenter. cleanup: strip --name-suffix from already migrated VMs.",
    )
    p.add_argument(
        "--validate-only",
        dest="validate_only",
        action="store_true",
        help="Connect, resolve placement and report the plan; move nothing and create no folders/pools.",
    )
    p.add_argument("--report", dest="report", default=None, help="Write the run summary as JSON to this path.")
    p.add_argument("--progress", dest="progress", action="store_true", help="Show a progress bar while migrating.")


def _add_endpoint_knobs(p: argparse.ArgumentParser, side: str, label: str) -> None:
    # ------------------------------------------------------------------
    # One vCenter endpoint (source or target)
    # ------------------------------------------------------------------
    p.add_argument(f"--{side}-host", dest=f"{side}_host", default=None, help=f"{label} vCenter hostname or IP")
    p.add_argument(f"--{side}-user", dest=f"{side}_user", default=None, help=f"{label} vCenter username")
    p.add_argument(
        f"--{side}-password",
        dest=f"{side}_password",
        default=None,
        help=f"{label} vCenter password (prefer --{side}-password-env)",
    )
    p.add_argument(
        f"--{side}-password-env",
        dest=f"{side}_password_env",
        default=None,
        help=f"Env var containing the {label.lower()} vCenter password",
    )
    p.add_argument(f"--{side}-port", dest=f"{side}_port", type=int, default=443, help=f"{label} vCenter HTTPS port")
    p.add_argument(
        f"--{side}-insecure", dest=f"{side}_insecure", action="store_true", help="Disable TLS verification"
    )


def _add_destination_knobs(p: argparse.ArgumentParser) -> None:
    # ------------------------------------------------------------------
    # Destination placement
    # ------------------------------------------------------------------
    p.add_argument("--dest-datacenter", dest="dest_datacenter", default=None, help="Destination datacenter")
    p.add_argument("--dest-cluster", dest="dest_cluster", default=None, help="Destination cluster")
    p.add_argument(
        "--dest-datastore",
        dest="dest_datastore",
        default=None,
        help="Destination datastore (default: the accessible one with the most free space)",
    )
    p.add_argument(
        "--space-buffer",
        dest="space_buffer",
        type=float,
        default=DEFAULT_SPACE_BUFFER,
        help="Required datastore free space as a multiple of the VM's used space",
    )


def _add_vm_selection(p: argparse.ArgumentParser) -> None:
    p.add_argument("--vm", dest="vms", action="append", default=[], help="VM name to migrate (repeatable)")
    p.add_argument(
        "--vm-list-file",
        dest="vm_list_file",
        default=None,
        help="File with one VM name per line ('#' starts a comment)",
    )


def _add_migration_knobs(p: argparse.ArgumentParser) -> None:
    # ------------------------------------------------------------------
    # Migration behaviour
    # ------------------------------------------------------------------
    p.add_argument(
        "--name-suffix",
        dest="name_suffix",
        default=DEFAULT_NAME_SUFFIX,
        help="Suffix appended to migrated VM names ('' to keep names)",
    )
    p.add_argument(
        "--disk-format",
        dest="disk_format",
        default=DiskFormat.THIN.value,
        choices=[f.value for f in DiskFormat],
        help="Disk provisioning on the destination datastore",
    )
    p.add_argument(
        "--max-concurrency",
        dest="max_concurrency",
        type=int,
        default=DEFAULT_CONCURRENCY,
        help=f"Migrations in flight at once (1..{MAX_CONCURRENCY})",
    )
    p.add_argument("--sequential", dest="sequential", action="store_true", help="Same as --max-concurrency 1")
    p.add_argument(
        "--relocate-timeout",
        dest="relocate_timeout",
        type=float,
        default=DEFAULT_RELOCATE_TIMEOUT_S,
        help="Seconds before a relocate task is cancelled",
    )
    p.add_argument(
        "--poll-interval",
        dest="poll_interval",
        type=float,
        default=DEFAULT_POLL_INTERVAL_S,
        help="Seconds between 'still running' progress lines",
    )


def _add_network_knobs(p: argparse.ArgumentParser) -> None:
    # ------------------------------------------------------------------
    # Network remapping
    # ------------------------------------------------------------------
    p.add_argument(
        "--network-map",
        dest="network_map",
        action="append",
        default=[],
        metavar="SRC=DST",
        help="Map a source network name to a target network name (repeatable)",
    )
    p.add_argument("--preserve-mac", dest="preserve_mac", action="store_true", help="Keep adapter MAC addresses")
    p.add_argument(
        "--ignore-network-errors",
        dest="ignore_network_errors",
        action="store_true",
        help="Network remap failures mark the VM degraded instead of failed",
    )
    p.add_argument(
        "--disconnect-before-remap",
        dest="disconnect_before_remap",
        action="store_true",
        help="Disconnect each adapter before changing its backing, then restore its connection state",
    )
    p.add_argument(
        "--no-enhanced-network-handling",
        dest="enhanced_network_handling",
        action="store_false",
        help="Skip adapter capture/remap; adapters keep the backing they had after the relocate",
    )
    p.add_argument(
        "--no-network-fallback",
        dest="network_fallback",
        action="store_false",
        help="Fail instead of falling back to a 'VM Network'-like network when the target network is missing",
    )
