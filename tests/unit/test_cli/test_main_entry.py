# SPDX-License-Identifier: LGPL-3.0-or-later
from __future__ import annotations

import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from fakes.fake_vsphere import make_pair
from vc2vc.__main__ import main

CONFIG = """
source_host: vc-src
source_user: admin
source_password: s3cret
target_host: vc-dst
target_user: admin
target_password: s3cret
dest_datacenter: DC1
poll_interval: 0.05
"""


class TestMainExitCodes(unittest.TestCase):
    def setUp(self):
        self._td = tempfile.TemporaryDirectory()
        self.cfg = Path(self._td.name) / "run.yaml"
        self.source, self.target, self.provider = make_pair()
        patcher = patch("vc2vc.__main__.VMwareConnectionProvider", return_value=self.provider)
        patcher.start()
        self.addCleanup(patcher.stop)
        self.addCleanup(self._td.cleanup)

    def run_main(self, extra_yaml="", argv=()):
        self.cfg.write_text(CONFIG + extra_yaml, encoding="utf-8")
        return main(["--config", str(self.cfg), "-q", *argv])

    def test_all_succeeded(self):
        self.source.add_vm("web01")
        self.assertEqual(self.run_main("vms: [web01]\n"), 0)
        self.assertIn("web01-Imported", self.target.vms)

    def test_partial(self):
        self.source.add_vm("web01")
        self.source.add_vm("web02")
        self.source.fail_relocate.add("web02")
        self.assertEqual(self.run_main("vms: [web01, web02]\n"), 3)

    def test_all_failed(self):
        self.source.add_vm("web01")
        self.source.fail_relocate.add("web01")
        self.assertEqual(self.run_main("vms: [web01]\n"), 4)

    def test_setup_failure_aborts(self):
        self.source.add_vm("web01")
        self.assertEqual(self.run_main("vms: [web01]\ndest_cluster: Missing\n"), 2)
        self.assertEqual(self.target.vms, {})

    def test_unreadable_config(self):
        self.assertEqual(main(["--config", str(Path(self._td.name) / "nope.yaml")]), 2)


if __name__ == "__main__":
    unittest.main()
