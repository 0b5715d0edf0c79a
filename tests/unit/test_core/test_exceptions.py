# SPDX-License-Identifier: LGPL-3.0-or-later
"""Tests for exception handling and secret redaction."""
from __future__ import annotations

import pytest
from vc2vc.core.exceptions import (
    DuplicateNameError,
    ExecutionError,
    Fatal,
    HierarchyError,
    MigrationItemError,
    PlacementError,
    SetupError,
    Vc2VcError,
    VMwareError,
    format_exception_for_cli,
    wrap_fatal,
    wrap_vmware,
)


@pytest.mark.unit
class TestExceptionHierarchy:
    """Test exception class hierarchy and basic functionality."""

    def test_base_exception_creation(self):
        err = Vc2VcError(code=1, msg="Test error")

        assert err.code == 1
        assert err.msg == "Test error"
        assert err.cause is None
        assert err.context == {}

    def test_setup_error_is_fatal_with_abort_code(self):
        err = SetupError(msg="Destination cluster 'X' not found")

        assert isinstance(err, Fatal)
        assert err.code == 2

    def test_duplicate_name_is_vmware_error(self):
        assert isinstance(DuplicateNameError(msg="dup"), VMwareError)

    @pytest.mark.parametrize("cls", [PlacementError, HierarchyError, ExecutionError])
    def test_item_errors_carry_phase(self, cls):
        err = cls(msg="boom", phase="relocating")

        assert isinstance(err, MigrationItemError)
        assert not isinstance(err, Fatal)
        assert err.phase == "relocating"
        assert str(err) == "boom"

    def test_exception_with_context(self):
        err = Vc2VcError(code=1, msg="Error").with_context(vm="web01", operation="relocate")

        assert err.context["vm"] == "web01"
        assert err.context["operation"] == "relocate"

    def test_message_is_single_line(self):
        err = Vc2VcError(msg="line one\nline two\r\n  three")

        assert err.msg == "line one line two three"

    @pytest.mark.parametrize("raw,expected", [(-3, 1), (999, 255), ("x", 1), ("7", 7)])
    def test_code_is_clamped(self, raw, expected):
        assert Vc2VcError(code=raw, msg="e").code == expected


@pytest.mark.security
class TestSecretRedaction:
    """Secrets never leave an error through to_dict() or the CLI formatter."""

    def test_password_redacted_in_context(self):
        err = Vc2VcError(code=1, msg="Auth failed").with_context(
            user="administrator@vsphere.local",
            password="super_secret_123",
            host="vcenter.local",
        )

        d = err.to_dict()

        assert d["context"]["password"] == "***REDACTED***"
        assert d["context"]["user"] == "administrator@vsphere.local"
        assert d["context"]["host"] == "vcenter.local"

    def test_cli_format_redacts(self):
        err = wrap_vmware("login failed", RuntimeError("401"), host="vc", session_id="abc")

        out = format_exception_for_cli(err, verbose=2)

        assert "abc" not in out
        assert "***REDACTED***" in out
        assert "RuntimeError: 401" in out


class TestFormatting:
    def test_levels(self):
        err = wrap_fatal("config broken", ValueError("bad yaml"), code=2, path="/tmp/x.yaml")

        assert format_exception_for_cli(err) == "config broken"
        assert "/tmp/x.yaml" in format_exception_for_cli(err, verbose=1)
        assert "bad yaml" not in format_exception_for_cli(err, verbose=1)
        assert "bad yaml" in format_exception_for_cli(err, verbose=2)

    def test_foreign_exception(self):
        assert format_exception_for_cli(KeyError("k")) == "'k'"
        assert format_exception_for_cli(ValueError(""), verbose=0) == "ValueError"
        assert format_exception_for_cli(ValueError("v"), verbose=2) == "ValueError: v"

    def test_to_dict_with_cause(self):
        err = wrap_vmware("relocate failed", TimeoutError("slow"))

        d = err.to_dict(include_cause=True)

        assert d["type"] == "VMwareError"
        assert d["code"] == 50
        assert d["cause"] == {"type": "TimeoutError", "message": "slow"}
