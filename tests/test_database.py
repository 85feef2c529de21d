"""Tests for buildspine.database: naming, provisioning and cleanup."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from buildspine.core.errors import CommandFailedError
from buildspine.database import (
    DatabaseProvisioner,
    DatabaseRecord,
    connection_string,
    database_name,
    join_names,
    split_names,
)

NOW = datetime(2026, 10, 16, 9, 5, 7, tzinfo=UTC)


class TestDatabaseName:
    def test_format(self):
        assert database_name("ci", "feature-xy-lo-abc1234", NOW) == "20261016090507cifeature-xy-lo-abc1234"

    def test_different_prefixes_same_second_differ(self):
        assert database_name("ci", "s", NOW) != database_name("apim", "s", NOW)

    def test_same_prefix_same_second_collides(self):
        # Second-resolution timestamps: a known, unguarded limitation.
        assert database_name("ci", "s", NOW) == database_name("ci", "s", NOW)

    def test_defaults_to_current_utc_time(self):
        name = database_name("ci", "s")
        assert name.endswith("cis")
        assert len(name) == len("YYYYmmddHHMMSS") + 3


class TestConnectionString:
    def test_appends_database(self):
        assert connection_string("Host=h;Port=5432", "db1") == "Host=h;Port=5432;Database=db1"

    def test_trailing_semicolon(self):
        assert connection_string("Host=h;", "db1") == "Host=h;Database=db1"


class TestProvision:
    def test_create_then_migrate(self, config, runner):
        record = DatabaseProvisioner(config, runner).provision(
            "ci", "dev-00042-abc1234", "database/migrations", "ConnectionStrings__Contoso", NOW
        )

        assert record == DatabaseRecord(
            prefix="ci",
            name="20261016090507cidev-00042-abc1234",
            connection_string=(
                "Host=localhost;Port=5432;Username=postgres;Password=postgres;"
                "Database=20261016090507cidev-00042-abc1234"
            ),
            variable="ConnectionStrings__Contoso",
        )
        create, migrate = runner.calls
        admin = str(config.repo_root / config.db_admin_project)
        assert create.command == ["dotnet", "run", "--project", admin, "--", "create", "--connection-string", record.connection_string]
        assert migrate.command[-5:] == [
            "migrate",
            "--connection-string",
            record.connection_string,
            "--scripts",
            str(config.repo_root / "database/migrations"),
        ]
        assert create.cwd == str(config.repo_root)

    def test_create_failure_skips_migrate(self, config, runner):
        runner.install_fault("create")
        with pytest.raises(CommandFailedError):
            DatabaseProvisioner(config, runner).provision("ci", "s", "database/migrations", "V", NOW)
        assert runner.commands_with("migrate") == []

    def test_migrate_failure_raises(self, config, runner):
        runner.install_fault("migrate", returncode=4)
        with pytest.raises(CommandFailedError) as exc_info:
            DatabaseProvisioner(config, runner).provision("ci", "s", "database/migrations", "V", NOW)
        assert exc_info.value.returncode == 4


class TestDrop:
    def test_drops_each(self, config, runner):
        failed = DatabaseProvisioner(config, runner).drop(["a", "b"])
        assert failed == []
        assert [c.command[-1] for c in runner.commands_with("drop")] == [
            connection_string(config.db_server_connection, "a"),
            connection_string(config.db_server_connection, "b"),
        ]

    def test_continues_past_failure(self, config, runner):
        runner.install_fault("drop", connection_string(config.db_server_connection, "a"))
        failed = DatabaseProvisioner(config, runner).drop(["a", "b"])
        assert failed == ["a"]
        assert len(runner.commands_with("drop")) == 2


class TestNameLists:
    def test_split(self):
        assert split_names(" a, b ,,c ") == ["a", "b", "c"]

    def test_split_empty(self):
        assert split_names("") == []

    def test_join(self):
        records = [DatabaseRecord("p", n, "cs", "V") for n in ("a", "b")]
        assert join_names(records) == "a,b"
