"""Tests for buildspine.core.errors: hierarchy, exit codes, serialization."""

from __future__ import annotations

from buildspine.core.errors import (
    EXIT_BUILD_FAILED,
    EXIT_TESTS_FAILED,
    BuildSpineError,
    CommandFailedError,
    ConfigError,
    ErrorCategory,
    InvalidConfigError,
    MissingConfigError,
    TestsFailedError,
    exit_code_for,
)


class TestBuildSpineError:
    def test_defaults(self):
        err = BuildSpineError("boom")
        assert err.category == ErrorCategory.INTERNAL
        assert err.exit_code == EXIT_BUILD_FAILED
        assert err.context == {}

    def test_with_context(self):
        err = BuildSpineError("boom").with_context(stage="build")
        assert err.context == {"stage": "build"}

    def test_cause_chained(self):
        cause = OSError("disk full")
        err = BuildSpineError("write failed", cause=cause)
        assert err.__cause__ is cause
        assert err.to_dict()["cause"] == "disk full"

    def test_to_dict(self):
        d = BuildSpineError("boom", category=ErrorCategory.FILESYSTEM).to_dict()
        assert d == {
            "error_type": "BuildSpineError",
            "message": "boom",
            "category": "FILESYSTEM",
            "exit_code": 1,
        }


class TestConfigErrors:
    def test_missing(self):
        err = MissingConfigError("solution")
        assert isinstance(err, ConfigError)
        assert err.category == ErrorCategory.CONFIG
        assert "solution" in err.message

    def test_invalid(self):
        err = InvalidConfigError("verbosity", "loud")
        assert err.value == "loud"
        assert "'loud'" in err.message


class TestCommandErrors:
    def test_command_failed(self):
        err = CommandFailedError(["dotnet", "build"], 1, cwd="/repo")
        assert err.exit_code == EXIT_BUILD_FAILED
        assert err.context == {"command": ["dotnet", "build"], "returncode": 1, "cwd": "/repo"}
        assert "dotnet build" in err.message

    def test_tests_failed_exit_code(self):
        err = TestsFailedError("Contoso.Api.Tests", ["dotnet", "test"], 1)
        assert isinstance(err, CommandFailedError)
        assert err.exit_code == EXIT_TESTS_FAILED == 3
        assert err.category == ErrorCategory.TEST
        assert err.context["project"] == "Contoso.Api.Tests"


class TestExitCodeFor:
    def test_mapping(self):
        assert exit_code_for(TestsFailedError("p", ["x"], 1)) == 3
        assert exit_code_for(CommandFailedError(["x"], 1)) == 1
        assert exit_code_for(RuntimeError("unexpected")) == 1
