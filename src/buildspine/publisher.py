"""Per-project publishing into the artifacts tree.

Projects are published from the already-built solution (``--no-restore
--no-build``) into ``<artifacts>/<project path>``. The API project also
ships its approved OpenAPI documents in the layout the API Management
publishing job expects::

    <artifacts>/ApimPublish/
    └── apis/
        └── <name>/
            └── <name>-v1.json

The folder is assembled inside the API project's publish output and then
moved up to the artifacts root, so downstream jobs find it at a fixed path.
"""

from __future__ import annotations

import shutil
from pathlib import Path

from buildspine.config import PipelineConfig
from buildspine.core.logging import get_logger
from buildspine.projects import ProjectRole, ProjectSpec
from buildspine.shell import CommandRunner

logger = get_logger(__name__)

APIM_FOLDER = "ApimPublish"


def publish_command(config: PipelineConfig, output: Path, suffix: str) -> list[str]:
    cmd = [
        config.dotnet,
        "publish",
        "-c",
        config.configuration,
        "--no-restore",
        "--no-build",
        "-o",
        str(output.resolve()),
    ]
    if suffix:
        cmd.append(f"-p:VersionSuffix={suffix}")
    return cmd


class ProjectPublisher:
    """Publishes projects one at a time.

    Parameters
    ----------
    config
        Pipeline configuration (paths, dotnet executable).
    runner
        Command runner.
    suffix
        Package version suffix; empty for release builds.
    """

    def __init__(self, config: PipelineConfig, runner: CommandRunner, suffix: str) -> None:
        self.config = config
        self.runner = runner
        self.suffix = suffix

    @property
    def apim_dir(self) -> Path:
        return self.config.artifacts_path / APIM_FOLDER

    def publish(self, project: ProjectSpec) -> Path:
        """Publish one project and return its output directory."""
        output = project.publish_dir(self.config.artifacts_path)
        logger.info("project.publishing", project=project.path, output=str(output))
        self.runner.run(
            publish_command(self.config, output, self.suffix),
            cwd=project.source_dir(self.config.repo_root),
        )
        if project.role == ProjectRole.API:
            self.stage_openapi(project, output)
        logger.info("project.published", project=project.path)
        return output

    def stage_openapi(self, project: ProjectSpec, output: Path) -> Path:
        """Copy approved OpenAPI documents and move ``ApimPublish`` to the artifacts root.

        Missing fixture files raise ``FileNotFoundError``.
        """
        fixture_dir = self.config.repo_root / project.openapi_fixture_dir
        nested = output / APIM_FOLDER
        for name in project.openapi_specs:
            target = nested / "apis" / name / f"{name}-v1.json"
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(fixture_dir / f"{name}.approved.json", target)
            logger.debug("openapi.copied", api=name, target=str(target))

        if self.apim_dir.exists():
            shutil.rmtree(self.apim_dir)
        nested.mkdir(parents=True, exist_ok=True)
        shutil.move(str(nested), str(self.apim_dir))
        logger.info("openapi.staged", apis=list(project.openapi_specs), path=str(self.apim_dir))
        return self.apim_dir
