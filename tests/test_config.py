"""Tests for buildspine.config: PipelineConfig and Verbosity."""

from __future__ import annotations

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from buildspine.config import PipelineConfig, Verbosity
from buildspine.core.errors import InvalidConfigError


class TestVerbosity:
    @pytest.mark.parametrize(
        "text,expected",
        [
            ("quiet", Verbosity.QUIET),
            ("q", Verbosity.QUIET),
            ("m", Verbosity.MINIMAL),
            ("min", Verbosity.MINIMAL),
            ("n", Verbosity.NORMAL),
            ("d", Verbosity.DETAILED),
            ("det", Verbosity.DETAILED),
            ("diag", Verbosity.DIAGNOSTIC),
            ("di", Verbosity.DIAGNOSTIC),
            ("diagnostic", Verbosity.DIAGNOSTIC),
            ("NORMAL", Verbosity.NORMAL),
            (" Detailed ", Verbosity.DETAILED),
        ],
    )
    def test_parse(self, text, expected):
        assert Verbosity.parse(text) is expected

    def test_parse_passthrough(self):
        assert Verbosity.parse(Verbosity.QUIET) is Verbosity.QUIET

    @pytest.mark.parametrize("text", ["", "loud", "dx", "x"])
    def test_parse_invalid(self, text):
        with pytest.raises(InvalidConfigError) as exc_info:
            Verbosity.parse(text)
        assert exc_info.value.key == "verbosity"


class TestPipelineConfig:
    def test_defaults(self):
        config = PipelineConfig()
        assert config.verbosity == Verbosity.MINIMAL
        assert config.configuration == "Release"
        assert config.zip_destination is None
        assert config.archiving_enabled is False
        assert config.db_prefix is None
        assert config.command_timeout is None
        assert len(config.run_id) == 12

    def test_run_id_unique(self):
        assert PipelineConfig().run_id != PipelineConfig().run_id

    def test_verbosity_string_is_parsed(self):
        assert PipelineConfig(verbosity="diag").verbosity == Verbosity.DIAGNOSTIC

    def test_paths_relative_to_repo_root(self, tmp_path):
        config = PipelineConfig(repo_root=tmp_path, solution="X.sln")
        assert config.artifacts_path == tmp_path / "artifacts"
        assert config.solution_path == tmp_path / "X.sln"

    def test_relative_repo_root_made_absolute(self, tmp_path, monkeypatch):
        (tmp_path / "app").mkdir()
        monkeypatch.chdir(tmp_path)

        config = PipelineConfig(repo_root=Path("app"))

        assert config.repo_root == tmp_path / "app"
        assert config.solution_path == tmp_path / "app" / "Contoso.sln"

    def test_archiving_enabled_with_destination(self, tmp_path):
        assert PipelineConfig(zip_destination=tmp_path).archiving_enabled is True


class TestFromEnv:
    @patch.dict(os.environ, {"BUILD_SOURCEBRANCHNAME": "feature-abc", "BUILD_BUILDID": "77"}, clear=True)
    def test_ci_variables(self):
        config = PipelineConfig.from_env()
        assert config.source_branch == "feature-abc"
        assert config.build_id == "77"

    @patch.dict(
        os.environ,
        {"BUILDSPINE_BRANCH": "override", "BUILD_SOURCEBRANCHNAME": "ci-branch"},
        clear=True,
    )
    def test_buildspine_variable_wins_over_ci_variable(self):
        assert PipelineConfig.from_env().source_branch == "override"

    @patch.dict(os.environ, {"BUILD_SOURCEBRANCHNAME": "ci-branch"}, clear=True)
    def test_kwargs_win_over_env(self):
        assert PipelineConfig.from_env(source_branch="explicit").source_branch == "explicit"

    @patch.dict(os.environ, {"BUILD_SOURCEBRANCHNAME": "ci-branch"}, clear=True)
    def test_none_kwargs_fall_through(self):
        assert PipelineConfig.from_env(source_branch=None).source_branch == "ci-branch"

    @patch.dict(
        os.environ,
        {
            "BUILDSPINE_VERBOSITY": "d",
            "BUILDSPINE_COMMAND_TIMEOUT": "90",
            "BUILDSPINE_JSON_LOGS": "yes",
            "BUILDSPINE_ZIP_DESTINATION": "/tmp/drop",
        },
        clear=True,
    )
    def test_typed_values(self):
        config = PipelineConfig.from_env()
        assert config.verbosity == Verbosity.DETAILED
        assert config.command_timeout == 90.0
        assert config.json_logs is True
        assert config.zip_destination == Path("/tmp/drop")

    @patch.dict(os.environ, {"BUILD_BUILDID": ""}, clear=True)
    def test_empty_variable_ignored(self):
        assert PipelineConfig.from_env().build_id is None

    @patch.dict(os.environ, {"BUILDSPINE_VERBOSITY": "loud"}, clear=True)
    def test_invalid_verbosity(self):
        with pytest.raises(InvalidConfigError):
            PipelineConfig.from_env()
