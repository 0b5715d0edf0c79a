# SPDX-License-Identifier: LGPL-3.0-or-later
"""
Unit Tests for CLI Configuration Loading

Tests YAML/JSON configuration file loading, merging, and two-phase parsing.
"""

import json
import logging
import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

import yaml

from fakes.fake_logger import FakeLogger
from vc2vc.cli.args import build_run_settings, parse_args_with_config, parse_network_map
from vc2vc.config.config_loader import Config
from vc2vc.core.exceptions import Fatal
from vc2vc.orchestrator.models import DiskFormat

BASE_YAML = """
source_host: vc-old.example.com
source_user: admin
source_password: s3cret
target_host: vc-new.example.com
target_user: admin
target_password: s3cret
dest_datacenter: DC-East
vms: [web01, db01]
"""

LOGGER = logging.getLogger("tests.cli")


def _parse(argv):
    return parse_args_with_config(argv=argv, logger=LOGGER)


class ConfigTestBase(unittest.TestCase):
    def setUp(self):
        self._td = tempfile.TemporaryDirectory()
        self.td = Path(self._td.name)

    def tearDown(self):
        self._td.cleanup()

    def write(self, name, text):
        p = self.td / name
        p.write_text(text, encoding="utf-8")
        return str(p)


class TestCLIConfigTwoPhaseParse(ConfigTestBase):
    """Test two-phase config parsing (config files + CLI args)"""

    def test_config_satisfies_required_endpoints(self):
        cfg = self.write("base.yaml", BASE_YAML)

        args, conf, _logger = _parse(["--config", cfg])

        self.assertEqual(args.source_host, "vc-old.example.com")
        self.assertEqual(args.vms, ["web01", "db01"])
        self.assertIn("target_host", conf)

    def test_cli_args_override_config(self):
        cfg = self.write("base.yaml", BASE_YAML + "max_concurrency: 3\nname_suffix: -Old\n")

        args, _conf, _logger = _parse(["--config", cfg, "--max-concurrency", "5", "--name-suffix", "-New"])

        self.assertEqual(args.max_concurrency, 5)
        self.assertEqual(args.name_suffix, "-New")

    def test_dash_leading_suffix_both_spellings(self):
        cfg = self.write("base.yaml", BASE_YAML)

        spaced, _conf, _logger = _parse(["--config", cfg, "--name-suffix", "-Moved"])
        joined, _conf, _logger = _parse(["--config", cfg, "--name-suffix=-Moved"])

        self.assertEqual(spaced.name_suffix, "-Moved")
        self.assertEqual(joined.name_suffix, "-Moved")

    def test_multiple_config_files_merge(self):
        base = self.write("base.yaml", BASE_YAML + "network_map:\n  A: dvA\n  B: dvB\n")
        wave = self.write("wave.yaml", "max-concurrency: 4\nnetwork_map:\n  B: dvB2\n")

        args, conf, _logger = _parse(["--config", base, "--config", wave])

        self.assertEqual(args.max_concurrency, 4)
        self.assertEqual(conf["network_map"], ["A=dvA", "B=dvB2"])
        self.assertEqual(parse_network_map(args.network_map), {"A": "dvA", "B": "dvB2"})

    def test_json_config(self):
        cfg = self.write(
            "base.json",
            json.dumps(
                {
                    "source_host": "a",
                    "source_user": "u",
                    "source_password": "p",
                    "target_host": "b",
                    "target_user": "u",
                    "target_password": "p",
                    "vms": "solo",
                }
            ),
        )

        args, _conf, _logger = _parse(["--config", cfg])

        self.assertEqual(args.vms, ["solo"])

    def test_boolean_toggles_from_config(self):
        cfg = self.write("base.yaml", BASE_YAML + "enhanced_network_handling: false\npreserve_mac: true\n")

        args, _conf, _logger = _parse(["--config", cfg])

        self.assertFalse(args.enhanced_network_handling)
        self.assertTrue(args.preserve_mac)

    def test_unknown_keys_are_ignored(self):
        cfg = self.write("base.yaml", BASE_YAML + "colour_scheme: neon\n")

        args, _conf, _logger = _parse(["--config", cfg])

        self.assertFalse(hasattr(args, "colour_scheme"))

    def test_password_from_env(self):
        cfg = self.write(
            "base.yaml",
            BASE_YAML.replace("source_password: s3cret", "source_password_env: VC2VC_TEST_SRC_PW"),
        )
        with patch.dict(os.environ, {"VC2VC_TEST_SRC_PW": "from-env"}):
            args, conf, _logger = _parse(["--config", cfg])
            settings = build_run_settings(args, conf)

        self.assertEqual(settings.source.password, "from-env")

    def test_dump_config_redacts_passwords(self):
        cfg = self.write("base.yaml", BASE_YAML)

        with patch("builtins.print") as fake_print:
            with self.assertRaises(SystemExit) as cm:
                _parse(["--config", cfg, "--dump-config"])

        self.assertEqual(cm.exception.code, 0)
        dumped = json.loads(fake_print.call_args[0][0])
        self.assertEqual(dumped["source_password"], "***REDACTED***")
        self.assertEqual(dumped["source_host"], "vc-old.example.com")


class TestValidation(ConfigTestBase):
    def assertRejected(self, argv, fragment):
        with self.assertRaises(SystemExit) as cm:
            _parse(argv)
        self.assertIn(fragment, str(cm.exception.code))

    def test_missing_source_host(self):
        cfg = self.write("base.yaml", BASE_YAML.replace("source_host: vc-old.example.com\n", ""))
        self.assertRejected(["--config", cfg], "source vCenter is required")

    def test_unset_password_env(self):
        cfg = self.write(
            "base.yaml",
            BASE_YAML.replace("target_password: s3cret", "target_password_env: VC2VC_TEST_UNSET_PW"),
        )
        with patch.dict(os.environ, {}, clear=False):
            os.environ.pop("VC2VC_TEST_UNSET_PW", None)
            self.assertRejected(["--config", cfg], "VC2VC_TEST_UNSET_PW")

    def test_no_vms(self):
        cfg = self.write("base.yaml", BASE_YAML.replace("vms: [web01, db01]\n", ""))
        self.assertRejected(["--config", cfg], "No VMs selected")

    def test_concurrency_out_of_range(self):
        cfg = self.write("base.yaml", BASE_YAML)
        self.assertRejected(["--config", cfg, "--max-concurrency", "9"], "--max-concurrency")

    def test_sequential_skips_concurrency_check(self):
        cfg = self.write("base.yaml", BASE_YAML)
        args, conf, _ = _parse(["--config", cfg, "--max-concurrency", "9", "--sequential"])
        self.assertEqual(build_run_settings(args, conf).max_concurrency, 1)

    def test_bad_network_map(self):
        cfg = self.write("base.yaml", BASE_YAML)
        self.assertRejected(["--config", cfg, "--network-map", "no-equals-sign"], "--network-map")

    def test_cleanup_needs_only_target_and_suffix(self):
        cfg = self.write("target.yaml", "target_host: b\ntarget_user: u\ntarget_password: p\nvms: [x]\n")
        args, _conf, _ = _parse(["--config", cfg, "--action", "cleanup"])
        self.assertEqual(args.action, "cleanup")
        self.assertRejected(["--config", cfg, "--action", "cleanup", "--name-suffix", ""], "name-suffix")

    def test_missing_vm_list_file(self):
        cfg = self.write("base.yaml", BASE_YAML)
        self.assertRejected(["--config", cfg, "--vm-list-file", str(self.td / "nope.txt")], "--vm-list-file")


class TestRunSettings(ConfigTestBase):
    def test_settings_from_args(self):
        names = self.write("wave.txt", "db01\napp01 # new\n")
        cfg = self.write(
            "base.yaml",
            BASE_YAML
            + "dest_cluster: Prod-01\ndisk_format: eagerZeroedThick\nnetwork_map:\n  VM Network: dvPG-100\n",
        )

        args, conf, _ = _parse(
            ["--config", cfg, "--vm-list-file", names, "--validate-only", "--report", str(self.td / "r.json")]
        )
        s = build_run_settings(args, conf)

        self.assertEqual(s.vm_names, ("web01", "db01", "app01"))
        self.assertEqual(s.dest_datacenter, "DC-East")
        self.assertEqual(s.target.datacenter, "DC-East")
        self.assertIsNone(s.source.datacenter)
        self.assertEqual(s.dest_cluster, "Prod-01")
        self.assertIs(s.options.disk_format, DiskFormat.EAGER_ZEROED_THICK)
        self.assertEqual(s.options.name_suffix, "-Imported")
        self.assertEqual(dict(s.network_mapping), {"VM Network": "dvPG-100"})
        self.assertEqual(s.max_concurrency, 2)
        self.assertTrue(s.validate_only)
        self.assertEqual(s.report_path, self.td / "r.json")

    def test_parse_network_map_later_wins(self):
        self.assertEqual(parse_network_map(["A=x", " A = y ", "B=z"]), {"A": "y", "B": "z"})
        with self.assertRaises(ValueError):
            parse_network_map(["=x"])


class TestConfigLoader(ConfigTestBase):
    def test_missing_file_is_fatal(self):
        with self.assertRaises(Fatal) as cm:
            Config.expand_configs(FakeLogger(), [str(self.td / "missing.yaml")])
        self.assertEqual(cm.exception.code, 2)

    def test_glob_expansion_sorted(self):
        self.write("20-b.yaml", "a: 1\n")
        self.write("10-a.yaml", "a: 2\n")
        paths = Config.expand_configs(FakeLogger(), [str(self.td / "*.yaml")])
        self.assertEqual([p.name for p in paths], ["10-a.yaml", "20-b.yaml"])
        self.assertEqual(Config.load_many(FakeLogger(), paths), {"a": 1})

    def test_top_level_must_be_mapping(self):
        p = Path(self.write("list.yaml", "- a\n- b\n"))
        with self.assertRaises(Fatal):
            Config.load_one(FakeLogger(), p)

    def test_invalid_yaml(self):
        p = Path(self.write("bad.yaml", "a: [1, 2\n"))
        with self.assertRaises(Fatal) as cm:
            Config.load_one(FakeLogger(), p)
        self.assertEqual(cm.exception.code, 2)
        self.assertIsInstance(cm.exception.cause, yaml.YAMLError)
        self.assertEqual(cm.exception.context, {"path": str(p)})

    def test_empty_file(self):
        p = Path(self.write("empty.yaml", ""))
        self.assertEqual(Config.load_one(FakeLogger(), p), {})

    def test_deep_merge_and_key_normalization(self):
        a = Path(self.write("a.yaml", "network-map:\n  A: x\n  B: y\n"))
        b = Path(self.write("b.yaml", "network_map:\n  B: z\n"))
        self.assertEqual(Config.load_many(FakeLogger(), [a, b]), {"network_map": {"A": "x", "B": "z"}})


if __name__ == "__main__":
    unittest.main()
