# SPDX-License-Identifier: LGPL-3.0-or-later
"""Tests for turning VM names into resolved migration requests."""
from __future__ import annotations

from dataclasses import replace

import pytest

from fakes.fake_logger import FakeLogger
from fakes.fake_vsphere import FakeSession, endpoints, make_pair
from vc2vc.core.exceptions import PlacementError, WorkloadNotFound
from vc2vc.orchestrator.models import EntityKind, MigrationOptions, MigrationPhase
from vc2vc.orchestrator.request_builder import BuildSettings, MigrationRequestBuilder
from vc2vc.orchestrator.results import ResultAggregator


def _builder(source, target, **settings):
    src_ep, dst_ep = endpoints()
    s = FakeSession(source, src_ep)
    t = FakeSession(target, dst_ep)
    roots = {kind: t.hierarchy_root(kind) for kind in EntityKind}
    return MigrationRequestBuilder(FakeLogger(), s, t, BuildSettings(**settings), roots=roots)


@pytest.mark.unit
class TestBuildOne:
    def test_resolves_placement_and_paths(self):
        source, target, _ = make_pair()
        source.add_vm("web01", folder=["Prod", "Web"], pool=["Tier1"])
        req = _builder(source, target, options=MigrationOptions(name_suffix="-Imported")).build_one("web01", 0)

        assert req.workload.name == "web01"
        assert req.placement.host_name == "esx01"
        assert req.placement.datastore_name == "ds-big"
        assert req.placement.folder_path == ("Prod", "Web")
        assert req.placement.resource_pool_path == ("Tier1",)
        assert req.target_name == "web01-Imported"

    def test_destination_paths_created_before_scheduling(self):
        source, target, _ = make_pair()
        source.add_vm("web01", folder=["Prod", "Web"], pool=["Tier1"])
        _builder(source, target).build_one("web01", 0)
        assert "Web" in target.folder_root.children["Prod"].children
        assert "Tier1" in target.pool_root.children

    def test_validate_only_creates_nothing(self):
        source, target, _ = make_pair()
        source.add_vm("web01", folder=["Prod"], pool=["Tier1"])
        req = _builder(source, target, create_missing=False).build_one("web01", 0)
        assert req.placement.folder_path == ("Prod",)
        assert target.folder_root.children == {}
        assert target.pool_root.children == {}

    def test_datastore_override(self):
        source, target, _ = make_pair()
        source.add_vm("web01")
        req = _builder(source, target, dest_datastore="ds-small").build_one("web01", 0)
        assert req.placement.datastore_name == "ds-small"

    def test_missing_vm(self):
        source, target, _ = make_pair()
        with pytest.raises(WorkloadNotFound):
            _builder(source, target).build_one("ghost", 0)

    def test_no_host_fits(self):
        source, target, _ = make_pair()
        target.hosts[:] = [replace(h, in_maintenance=True) for h in target.hosts]
        source.add_vm("web01")
        with pytest.raises(PlacementError):
            _builder(source, target).build_one("web01", 0)


@pytest.mark.unit
class TestBuild:
    def test_failures_recorded_and_excluded_from_queue(self):
        source, target, _ = make_pair()
        source.add_vm("ok1")
        source.add_vm("huge", used_bytes=5000 * 1024 ** 3)
        source.add_vm("ok2")
        agg = ResultAggregator()

        reqs = _builder(source, target).build(["ok1", "missing", "huge", "ok2"], agg)

        assert [r.workload.name for r in reqs] == ["ok1", "ok2"]
        assert [r.sequence for r in reqs] == [0, 3]
        summary = agg.summary(4)
        assert {f.workload_name: f.error_type for f in summary.failures} == {
            "missing": "WorkloadNotFound",
            "huge": "PlacementError",
        }
        assert all(f.phase is MigrationPhase.BUILDING for f in summary.failures)

    def test_network_mapping_copied_into_each_request(self):
        source, target, _ = make_pair()
        source.add_vm("a")
        mapping = {"VM Network": "dvPG-Prod"}
        reqs = _builder(source, target, network_mapping=mapping).build(["a"], ResultAggregator())
        mapping["VM Network"] = "changed"
        assert reqs[0].network_mapping == {"VM Network": "dvPG-Prod"}
