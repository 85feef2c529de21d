"""Test stage: ``dotnet test`` for each test project, stopping at the first failure."""

from __future__ import annotations

from collections.abc import Mapping

from buildspine.config import PipelineConfig
from buildspine.core.errors import CommandFailedError, TestsFailedError
from buildspine.core.logging import get_logger
from buildspine.projects import ProjectSpec
from buildspine.shell import CommandRunner

logger = get_logger(__name__)


class SuiteRunner:
    """Runs test projects sequentially against the already-built solution.

    Parameters
    ----------
    env
        Extra environment for every test process, typically the connection
        strings of the databases provisioned for this run.
    """

    def __init__(
        self,
        config: PipelineConfig,
        runner: CommandRunner,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self.config = config
        self.runner = runner
        self.env = dict(env or {})

    def command(self, project: ProjectSpec) -> list[str]:
        return [
            self.config.dotnet,
            "test",
            str(project.source_dir(self.config.repo_root)),
            "-c",
            self.config.configuration,
            "--no-restore",
            "--no-build",
        ]

    def run(self, projects: list[ProjectSpec]) -> list[str]:
        """Run every project; return the names that passed.

        Raises
        ------
        TestsFailedError
            On the first project whose tests exit non-zero.
        """
        passed = []
        for project in projects:
            cmd = self.command(project)
            logger.info("tests.started", project=project.path)
            try:
                self.runner.run(cmd, cwd=self.config.repo_root, env=self.env)
            except CommandFailedError as e:
                raise TestsFailedError(project.path, cmd, e.returncode, cwd=self.config.repo_root) from e
            logger.info("tests.passed", project=project.path)
            passed.append(project.name)
        return passed
