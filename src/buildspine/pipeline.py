"""Pipeline orchestrator: runs every stage in order, stopping at the first failure.

Stage order::

    version → databases → build → publish → archive → infra → tests

``databases`` runs only when a prefix is configured; ``archive`` and
``infra`` only when a zip destination is configured. A failure in any
stage ends the run: later stages are not started and the run's exit code
is the failing error's (1, or 3 for test failures).

Example::

    from buildspine.config import PipelineConfig
    from buildspine.pipeline import BuildPipeline

    result = BuildPipeline(PipelineConfig.from_env()).run()
    raise SystemExit(result.exit_code)
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from pathlib import Path

from buildspine.archiver import Archiver
from buildspine.builder import build_solution
from buildspine.config import PipelineConfig
from buildspine.core.errors import EXIT_BUILD_FAILED, EXIT_OK, BuildSpineError, ErrorCategory, exit_code_for
from buildspine.core.logging import LogContext, get_logger
from buildspine.database import DatabaseProvisioner, DatabaseRecord, join_names
from buildspine.infra import InfraPackager
from buildspine.projects import ProjectSpec, load_table, projects_to_test, publish_projects
from buildspine.publisher import APIM_FOLDER, ProjectPublisher
from buildspine.results import OverallStatus, PipelineResult, StageResult
from buildspine.shell import CommandRunner
from buildspine.testing import SuiteRunner
from buildspine.version import BuildIdentity, resolve_build_identity
from buildspine.vso import CiReporter

logger = get_logger(__name__)

SUMMARY_FILE = "build-summary.json"


class BuildPipeline:
    """Runs one CI build.

    Parameters
    ----------
    config
        Run configuration.
    runner
        Command runner; a default ``CommandRunner`` honouring
        ``config.command_timeout`` when omitted.
    reporter
        Destination for ``##vso`` commands (stdout by default).
    table
        Project table; loaded from ``config.manifest`` or the built-in
        table when omitted.
    clock
        Returns the current UTC time; used for database names.
    """

    def __init__(
        self,
        config: PipelineConfig,
        runner: CommandRunner | None = None,
        reporter: CiReporter | None = None,
        table: tuple[ProjectSpec, ...] | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.config = config
        self.runner = runner or CommandRunner(timeout=config.command_timeout)
        self.reporter = reporter or CiReporter()
        self.table = table if table is not None else load_table(config.manifest)
        self.clock = clock

        self.identity: BuildIdentity | None = None
        self.databases: list[DatabaseRecord] = []
        self.published: list[tuple[ProjectSpec, Path]] = []
        self.archiver = (
            Archiver(config.zip_destination, self.reporter) if config.zip_destination is not None else None
        )

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def run(self) -> PipelineResult:
        result = PipelineResult(run_id=self.config.run_id)
        exit_code = EXIT_OK

        stages: list[tuple[str, Callable[[], list[str]], bool]] = [
            ("version", self._stage_version, True),
            ("databases", self._stage_databases, bool(self.config.db_prefix or self.config.apim_db_prefix)),
            ("build", self._stage_build, True),
            ("publish", self._stage_publish, True),
            ("archive", self._stage_archive, self.archiver is not None),
            ("infra", self._stage_infra, self.archiver is not None),
            ("tests", self._stage_tests, True),
        ]

        with LogContext(run_id=self.config.run_id):
            logger.info("pipeline.started", repo_root=str(self.config.repo_root))
            try:
                for name, step, enabled in stages:
                    stage = StageResult(name=name)
                    result.stages.append(stage)
                    if not enabled:
                        stage.finish(OverallStatus.SKIPPED)
                        logger.info("stage.skipped", stage=name)
                        continue

                    error = self._run_stage(stage, step)
                    if error is not None:
                        exit_code = exit_code_for(error)
                        break
            except BaseException:
                exit_code = EXIT_BUILD_FAILED
                raise
            finally:
                if self.identity is not None:
                    result.identity = self.identity.to_dict()
                result.databases = [r.name for r in self.databases]
                result.ci_commands = list(self.reporter.lines)
                result.mark_complete(exit_code)
                self._write_summary(result)

            logger.info("pipeline.completed", summary=result.summary, exit_code=result.exit_code)
        return result

    def _run_stage(self, stage: StageResult, step: Callable[[], list[str]]) -> BuildSpineError | None:
        """Run one stage, returning the error that stopped it, if any."""
        stage.start()
        with LogContext(stage=stage.name):
            logger.info("stage.started")
            try:
                stage.artifacts = step()
            except BuildSpineError as e:
                error = e
            except OSError as e:
                error = BuildSpineError(str(e), category=ErrorCategory.FILESYSTEM, cause=e)
            except Exception as e:
                logger.exception("stage.crashed")
                error = BuildSpineError(f"Unexpected error: {e}", category=ErrorCategory.INTERNAL, cause=e)
            else:
                stage.finish(OverallStatus.PASSED)
                logger.info("stage.passed", duration_seconds=stage.duration_seconds)
                return None

            stage.finish(OverallStatus.FAILED, error.to_dict())
            logger.error("stage.failed", **error.to_dict())
            return error

    def _write_summary(self, result: PipelineResult) -> None:
        path = self.config.artifacts_path / SUMMARY_FILE
        try:
            result.write(path)
        except OSError as e:
            logger.warning("summary.write_failed", path=str(path), error=str(e))

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _stage_version(self) -> list[str]:
        self.identity = resolve_build_identity(
            self.runner,
            self.config.source_branch,
            self.config.build_id,
            git=self.config.git,
            repo_root=self.config.repo_root,
        )
        return []

    def _stage_databases(self) -> list[str]:
        provisioner = DatabaseProvisioner(self.config, self.runner)
        build_suffix = self.identity.build_suffix
        now = self.clock() if self.clock else None

        prefixes = [
            (self.config.db_prefix, self.config.migrations_dir, self.config.connection_string_variable),
            (self.config.apim_db_prefix, self.config.apim_migrations_dir, self.config.apim_connection_string_variable),
        ]
        for prefix, migrations_dir, variable in prefixes:
            if not prefix:
                continue
            record = provisioner.provision(prefix, build_suffix, migrations_dir, variable, now)
            self.databases.append(record)
            self.reporter.set_variable(record.variable, record.connection_string)
            # cumulative, so a later failure still leaves every created name listed
            self.reporter.set_variable(self.config.databases_created_variable, join_names(self.databases))
        return [r.name for r in self.databases]

    def _stage_build(self) -> list[str]:
        build_solution(self.config, self.runner, self.identity.build_suffix)
        return []

    def _stage_publish(self) -> list[str]:
        publisher = ProjectPublisher(self.config, self.runner, self.identity.suffix)
        for project in publish_projects(self.table):
            self.published.append((project, publisher.publish(project)))
        return [str(path) for _, path in self.published]

    def _stage_archive(self) -> list[str]:
        return [str(self.archiver.archive(path, project.name)) for project, path in self.published]

    def _stage_infra(self) -> list[str]:
        packager = InfraPackager(self.config, self.runner, self.reporter, self.archiver)
        output = packager.package()
        return [str(output), str(self.config.zip_destination / f"{APIM_FOLDER}.zip")]

    def _stage_tests(self) -> list[str]:
        env = {r.variable: r.connection_string for r in self.databases}
        return SuiteRunner(self.config, self.runner, env).run(projects_to_test(self.table))
