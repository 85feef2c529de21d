"""Tests for buildspine.publisher: dotnet publish and ApimPublish staging."""

from __future__ import annotations

import json

import pytest

from buildspine.core.errors import CommandFailedError
from buildspine.projects import API_PROJECT, ProjectSpec
from buildspine.publisher import APIM_FOLDER, ProjectPublisher, publish_command


class TestPublishCommand:
    def test_flags(self, config, tmp_path):
        cmd = publish_command(config, tmp_path / "out", "dev-00042")
        assert cmd == [
            "dotnet", "publish", "-c", "Release", "--no-restore", "--no-build",
            "-o", str((tmp_path / "out").resolve()), "-p:VersionSuffix=dev-00042",
        ]

    def test_release_has_no_suffix(self, config, tmp_path):
        cmd = publish_command(config, tmp_path / "out", "")
        assert not any(arg.startswith("-p:VersionSuffix") for arg in cmd)


class TestProjectPublisher:
    def test_publish_runs_in_project_dir(self, config, runner):
        project = ProjectSpec("Contoso.Web")
        output = ProjectPublisher(config, runner, "dev-00042").publish(project)

        assert output == config.artifacts_path / "Contoso.Web"
        (call,) = runner.calls
        assert call.cwd == str(config.repo_root / "Contoso.Web")
        assert "-p:VersionSuffix=dev-00042" in call.command
        assert not (config.artifacts_path / APIM_FOLDER).exists()

    def test_api_project_stages_openapi(self, config, runner):
        publisher = ProjectPublisher(config, runner, "")
        output = publisher.publish(API_PROJECT)

        apim = config.artifacts_path / APIM_FOLDER
        for name in API_PROJECT.openapi_specs:
            doc = apim / "apis" / name / f"{name}-v1.json"
            assert json.loads(doc.read_text(encoding="utf-8"))["info"]["title"] == name
        # Moved out of the project's publish folder
        assert not (output / APIM_FOLDER).exists()
        assert (output / "Contoso.Api.dll").exists()

    def test_restaging_replaces_previous_apim_folder(self, config, runner):
        stale = config.artifacts_path / APIM_FOLDER / "stale.txt"
        stale.parent.mkdir(parents=True)
        stale.write_text("old", encoding="utf-8")

        ProjectPublisher(config, runner, "").publish(API_PROJECT)

        assert not stale.exists()
        assert (config.artifacts_path / APIM_FOLDER / "apis").is_dir()

    def test_missing_fixture_raises(self, config, runner):
        project = ProjectSpec(
            "Contoso.Api",
            role=API_PROJECT.role,
            openapi_specs=("unknown",),
            openapi_fixture_dir=API_PROJECT.openapi_fixture_dir,
        )
        with pytest.raises(FileNotFoundError):
            ProjectPublisher(config, runner, "").publish(project)

    def test_publish_failure_raises(self, config, runner):
        runner.install_fault("publish")
        with pytest.raises(CommandFailedError):
            ProjectPublisher(config, runner, "").publish(ProjectSpec("Contoso.Web"))
