"""Solution build: one ``dotnet build`` for the whole solution."""

from __future__ import annotations

from buildspine.config import PipelineConfig
from buildspine.core.logging import get_logger
from buildspine.shell import CommandRunner

logger = get_logger(__name__)


def build_command(config: PipelineConfig, build_suffix: str) -> list[str]:
    return [
        config.dotnet,
        "build",
        str(config.solution_path),
        "-c",
        config.configuration,
        "--verbosity",
        config.verbosity.value,
        f"-p:VersionSuffix={build_suffix}",
    ]


def build_solution(config: PipelineConfig, runner: CommandRunner, build_suffix: str) -> None:
    """Compile the solution, embedding ``build_suffix`` in every assembly version."""
    logger.info("build.started", solution=config.solution, verbosity=config.verbosity.value)
    runner.run(build_command(config, build_suffix), cwd=config.repo_root)
    logger.info("build.completed", solution=config.solution)
