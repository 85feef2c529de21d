"""Ephemeral PostgreSQL databases for CI runs.

Each run can create up to two databases (main and APIM consumption). A
database is named ``<UTC timestamp><prefix><build suffix>`` and migrated
with the repository's database admin tool. The pipeline never drops what it
creates; the ``DatabasesCreated`` variable lists them for the cleanup job
(``buildspine db drop``).

Name uniqueness is only as fine as the timestamp: two runs using the same
prefix and build suffix that start in the same second get the same name.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

from buildspine.config import PipelineConfig
from buildspine.core.errors import CommandFailedError
from buildspine.core.logging import get_logger
from buildspine.shell import CommandRunner

logger = get_logger(__name__)

TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"


@dataclass(frozen=True)
class DatabaseRecord:
    prefix: str
    name: str
    connection_string: str
    variable: str
    """Environment variable the connection string is exported as."""


def database_name(prefix: str, build_suffix: str, now: datetime | None = None) -> str:
    """``<UTC timestamp, second precision><prefix><build suffix>``."""
    now = now or datetime.now(UTC)
    return f"{now.strftime(TIMESTAMP_FORMAT)}{prefix}{build_suffix}"


def connection_string(server_connection: str, name: str) -> str:
    return f"{server_connection.rstrip(';')};Database={name}"


class DatabaseProvisioner:
    """Creates and migrates databases through the admin tool.

    The admin tool is a console project run with ``dotnet run``; it
    understands ``create``, ``migrate`` and ``drop`` verbs, each taking
    ``--connection-string``.
    """

    def __init__(self, config: PipelineConfig, runner: CommandRunner) -> None:
        self.config = config
        self.runner = runner

    def _admin(self, *args: str) -> list[str]:
        project = str(self.config.repo_root / self.config.db_admin_project)
        return [self.config.dotnet, "run", "--project", project, "--", *args]

    def provision(
        self,
        prefix: str,
        build_suffix: str,
        migrations_dir: str,
        variable: str,
        now: datetime | None = None,
    ) -> DatabaseRecord:
        """Create one database and apply ``migrations_dir`` to it.

        Raises
        ------
        CommandFailedError
            If either the create or the migrate command exits non-zero.
        """
        name = database_name(prefix, build_suffix, now)
        conn = connection_string(self.config.db_server_connection, name)
        scripts = self.config.repo_root / migrations_dir

        logger.info("database.creating", database=name, prefix=prefix)
        self.runner.run(self._admin("create", "--connection-string", conn), cwd=self.config.repo_root)

        logger.info("database.migrating", database=name, scripts=str(scripts))
        self.runner.run(
            self._admin("migrate", "--connection-string", conn, "--scripts", str(scripts)),
            cwd=self.config.repo_root,
        )

        logger.info("database.ready", database=name, variable=variable)
        return DatabaseRecord(prefix=prefix, name=name, connection_string=conn, variable=variable)

    def drop(self, names: list[str]) -> list[str]:
        """Drop each database, continuing past failures.

        Returns the names that could not be dropped.
        """
        failed = []
        for name in names:
            conn = connection_string(self.config.db_server_connection, name)
            try:
                self.runner.run(self._admin("drop", "--connection-string", conn), cwd=self.config.repo_root)
                logger.info("database.dropped", database=name)
            except CommandFailedError as e:
                logger.error("database.drop_failed", database=name, returncode=e.returncode)
                failed.append(name)
        return failed


def split_names(value: str) -> list[str]:
    """Parse a comma-joined ``DatabasesCreated`` value."""
    return [n.strip() for n in value.split(",") if n.strip()]


def join_names(records: list[DatabaseRecord]) -> str:
    return ",".join(r.name for r in records)


def migrations_path(config: PipelineConfig, migrations_dir: str) -> Path:
    return config.repo_root / migrations_dir
