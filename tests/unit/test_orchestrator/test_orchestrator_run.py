# SPDX-License-Identifier: LGPL-3.0-or-later
"""End-to-end runs of MigrationOrchestrator against in-memory vCenters."""
from __future__ import annotations

import json
import logging
import unittest
from pathlib import Path
from tempfile import TemporaryDirectory

from fakes.fake_vsphere import endpoints, make_pair
from vc2vc.core.exceptions import SetupError
from vc2vc.orchestrator import (
    ACTION_CLEANUP,
    EntityKind,
    MigrationOptions,
    MigrationOrchestrator,
    RunOutcome,
    RunSettings,
)


class OrchestratorTestBase(unittest.TestCase):
    def setUp(self):
        self.logger = logging.getLogger("tests.orchestrator")
        self.source, self.target, self.provider = make_pair()
        self.src_ep, self.dst_ep = endpoints()

    def settings(self, names, **kw):
        kw.setdefault("poll_interval_s", 0.05)
        kw.setdefault("render_summary", False)
        return RunSettings(source=self.src_ep, target=self.dst_ep, vm_names=tuple(names), **kw)

    def run_with(self, names, **kw):
        orch = MigrationOrchestrator(self.logger, self.provider, self.settings(names, **kw))
        return orch, orch.run()


class TestMigrateRun(OrchestratorTestBase):
    def test_five_vms_one_unplaceable(self):
        for i in range(1, 6):
            self.source.add_vm(f"app{i}", folder=["Apps"])
        # bigger than any target datastore can hold with the buffer
        self.source.vms["app3"].used_bytes = 2000 * 1024 ** 3
        self.source.relocate_delay = 0.05

        orch, summary = self.run_with(
            [f"app{i}" for i in range(1, 6)],
            max_concurrency=2,
            options=MigrationOptions(name_suffix="-Imported"),
        )

        self.assertEqual(summary.total_requested, 5)
        self.assertEqual(summary.succeeded, 4)
        self.assertEqual(summary.failed, 1)
        self.assertEqual(summary.total_processed, 5)
        self.assertEqual(summary.failures[0].workload_name, "app3")
        self.assertEqual(summary.failures[0].error_type, "PlacementError")
        self.assertEqual(summary.failures[0].phase.value, "building")
        self.assertIs(summary.outcome, RunOutcome.PARTIAL)
        self.assertEqual(summary.outcome.exit_code, 3)

        self.assertLessEqual(self.source.peak_relocates, 2)
        self.assertLessEqual(orch.scheduler.peak_in_flight, 2)
        self.assertEqual(sorted(self.target.vms), ["app1-Imported", "app2-Imported", "app4-Imported", "app5-Imported"])
        self.assertIn("app3", self.source.vms)

    def test_shared_path_created_once(self):
        for name in ("left", "right"):
            self.source.add_vm(name, folder=["A", "B", "C"], pool=["A", "B", "C"])
        self.source.relocate_delay = 0.05

        _, summary = self.run_with(["left", "right"], max_concurrency=2)

        self.assertIs(summary.outcome, RunOutcome.ALL_SUCCEEDED)
        for kind in EntityKind:
            for seg in ("A", "B", "C"):
                self.assertEqual(self.target.count_named(kind, seg), 1, (kind, seg))
        self.assertEqual(self.target.vms["left"].folder.path(), ("A", "B", "C"))
        self.assertIs(self.target.vms["left"].folder, self.target.vms["right"].folder)

    def test_sequential_keeps_order(self):
        names = ["s1", "s2", "s3"]
        for n in names:
            self.source.add_vm(n)
        orch, summary = self.run_with(names, max_concurrency=1)
        self.assertIs(summary.outcome, RunOutcome.ALL_SUCCEEDED)
        self.assertEqual(self.source.relocate_order, names)
        self.assertEqual(orch.scheduler.completion_order, names)

    def test_empty_mapping_keeps_network_names(self):
        self.source.add_vm("plain", adapters=[("Network adapter 1", "VM Network")])
        _, summary = self.run_with(["plain"])
        self.assertIs(summary.outcome, RunOutcome.ALL_SUCCEEDED)
        self.assertEqual(self.target.vms["plain"].adapters[0].network, "VM Network")

    def test_mapping_applied(self):
        self.source.add_vm("mapped")
        self.run_with(["mapped"], network_mapping={"VM Network": "dvPG-Prod"})
        a = self.target.vms["mapped"].adapters[0]
        self.assertEqual(a.network, "dvPG-Prod")
        self.assertTrue(a.distributed)

    def test_all_failed(self):
        self.source.add_vm("x")
        self.source.add_vm("y")
        self.source.fail_relocate.update({"x", "y"})
        _, summary = self.run_with(["x", "y"])
        self.assertIs(summary.outcome, RunOutcome.ALL_FAILED)
        self.assertEqual(summary.outcome.exit_code, 4)
        self.assertEqual({f.phase.value for f in summary.failures}, {"relocating"})

    def test_missing_vm_is_per_item_failure(self):
        self.source.add_vm("exists")
        _, summary = self.run_with(["exists", "ghost"])
        self.assertIs(summary.outcome, RunOutcome.PARTIAL)
        self.assertEqual(summary.failures[0].workload_name, "ghost")
        self.assertEqual(summary.failures[0].error_type, "WorkloadNotFound")

    def test_duplicate_names_run_once(self):
        self.source.add_vm("dup")
        _, summary = self.run_with(["dup", "dup"])
        self.assertEqual(summary.total_requested, 1)
        self.assertEqual(summary.succeeded, 1)

    def test_setup_sessions_closed(self):
        self.source.add_vm("v")
        self.run_with(["v"])
        self.assertTrue(self.provider.sessions)
        self.assertTrue(all(s.closed for s in self.provider.sessions))


class TestValidateOnly(OrchestratorTestBase):
    def test_nothing_moves_and_nothing_is_created(self):
        self.source.add_vm("v1", folder=["New", "Tree"], pool=["NewPool"])
        self.source.add_vm("v2")

        _, summary = self.run_with(["v1", "v2"], validate_only=True, options=MigrationOptions(name_suffix="-X"))

        self.assertTrue(summary.validate_only)
        self.assertEqual(summary.succeeded, 2)
        self.assertEqual({r.target_name for r in summary.results}, {"v1-X", "v2-X"})
        self.assertEqual({r.phase.value for r in summary.results}, {"not_started"})
        self.assertEqual(self.target.vms, {})
        self.assertEqual(sorted(self.source.vms), ["v1", "v2"])
        self.assertEqual(self.target.folder_root.children, {})
        self.assertEqual(self.target.pool_root.children, {})
        self.assertEqual(self.source.relocate_order, [])

    def test_plan_still_reports_unplaceable(self):
        self.source.add_vm("huge", used_bytes=5000 * 1024 ** 3)
        _, summary = self.run_with(["huge"], validate_only=True)
        self.assertIs(summary.outcome, RunOutcome.ALL_FAILED)


class TestSetupAborts(OrchestratorTestBase):
    def test_source_unreachable(self):
        self.source.add_vm("v")
        self.provider.fail_hosts.add("vc-src")
        with self.assertRaises(SetupError):
            self.run_with(["v"])

    def test_target_unreachable_closes_source(self):
        self.source.add_vm("v")
        self.provider.fail_hosts.add("vc-dst")
        with self.assertRaises(SetupError):
            self.run_with(["v"])
        self.assertTrue(all(s.closed for s in self.provider.sessions))

    def test_missing_cluster(self):
        self.source.add_vm("v")
        with self.assertRaises(SetupError):
            self.run_with(["v"], dest_cluster="NoSuchCluster")

    def test_missing_datastore(self):
        self.source.add_vm("v")
        with self.assertRaises(SetupError):
            self.run_with(["v"], dest_datastore="nope")

    def test_datastore_not_mounted_by_cluster(self):
        self.source.add_vm("v")
        self.target.add_datastore("ds-archive", free_gb=5000, attached=False)
        with self.assertRaises(SetupError) as cm:
            self.run_with(["v"], dest_datastore="ds-archive")
        self.assertIn("ds-archive", str(cm.exception))
        self.assertNotIn("v", self.target.vms)

    def test_missing_datacenter(self):
        from dataclasses import replace

        self.source.add_vm("v")
        self.dst_ep = replace(self.dst_ep, datacenter="DC-missing")
        with self.assertRaises(SetupError):
            self.run_with(["v"])

    def test_no_workload_exists(self):
        with self.assertRaises(SetupError):
            self.run_with(["ghost1", "ghost2"])

    def test_no_names(self):
        with self.assertRaises(SetupError):
            self.run_with([])

    def test_setup_error_exit_code(self):
        self.assertEqual(SetupError(msg="x").code, RunOutcome.ABORTED.exit_code)


class TestReportAndCleanupAction(OrchestratorTestBase):
    def test_report_written(self):
        self.source.add_vm("r1")
        with TemporaryDirectory() as td:
            path = Path(td) / "out" / "report.json"
            self.run_with(["r1"], report_path=path)
            data = json.loads(path.read_text(encoding="utf-8"))
        self.assertEqual(data["outcome"], "all_succeeded")
        self.assertEqual(data["succeeded"], 1)
        self.assertEqual(data["results"][0]["workload"], "r1")

    def test_cleanup_action_only_touches_target(self):
        self.target.add_vm("web01-Imported")
        _, summary = self.run_with(
            ["web01"], action=ACTION_CLEANUP, options=MigrationOptions(name_suffix="-Imported")
        )
        self.assertIs(summary.outcome, RunOutcome.ALL_SUCCEEDED)
        self.assertIn("web01", self.target.vms)
        self.assertEqual([s.domain.host for s in self.provider.sessions], ["vc-dst"])

    def test_cleanup_without_suffix_aborts(self):
        with self.assertRaises(SetupError):
            self.run_with(["web01"], action=ACTION_CLEANUP)


if __name__ == "__main__":
    unittest.main()
