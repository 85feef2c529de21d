"""Configuration models for buildspine.

Every knob of a pipeline run lives on :class:`PipelineConfig`. Fields can
be set in code, from ``BUILDSPINE_*`` environment variables, or from CI
variables (``BUILD_SOURCEBRANCHNAME``, ``BUILD_BUILDID``) via
``from_env()``.

Key Concepts:
    PipelineConfig: Pydantic model for one run. ``from_env()`` applies
        overrides with precedence kwargs > env vars > field defaults.
    Verbosity: MSBuild verbosity levels. ``Verbosity.parse()`` accepts the
        full names, the MSBuild abbreviations (q, m, n, d, diag) and any
        unambiguous prefix.

Tags:
    config, settings, pydantic, environment, ci
"""

from __future__ import annotations

import os
import uuid
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from buildspine.core.errors import InvalidConfigError


class Verbosity(str, Enum):
    """``dotnet build --verbosity`` levels."""

    QUIET = "quiet"
    MINIMAL = "minimal"
    NORMAL = "normal"
    DETAILED = "detailed"
    DIAGNOSTIC = "diagnostic"

    @classmethod
    def parse(cls, value: str | Verbosity) -> Verbosity:
        """Resolve a full name, abbreviation or unambiguous prefix.

        >>> Verbosity.parse("diag")
        <Verbosity.DIAGNOSTIC: 'diagnostic'>
        >>> Verbosity.parse("d")
        <Verbosity.DETAILED: 'detailed'>
        """
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower()
        if text in _VERBOSITY_ALIASES:
            return _VERBOSITY_ALIASES[text]
        matches = [v for v in cls if text and v.value.startswith(text)]
        if len(matches) == 1:
            return matches[0]
        raise InvalidConfigError(
            "verbosity",
            value,
            f"Invalid verbosity {value!r}; expected one of "
            f"{', '.join(v.value for v in cls)} (or q, m, n, d, diag)",
        )


_VERBOSITY_ALIASES = {
    "q": Verbosity.QUIET,
    "m": Verbosity.MINIMAL,
    "n": Verbosity.NORMAL,
    "d": Verbosity.DETAILED,
    "diag": Verbosity.DIAGNOSTIC,
    **{v.value: v for v in Verbosity},
}


class PipelineConfig(BaseModel):
    """Configuration for one pipeline run.

    Example::

        config = PipelineConfig(
            source_branch="feature-xyz",
            build_id="42",
            zip_destination=Path("drop"),
            db_prefix="ci",
        )
    """

    # Inputs
    source_branch: str | None = Field(
        default=None,
        description="Branch name; the current git branch when unset",
    )
    build_id: str | None = Field(
        default=None,
        description="Numeric CI build id; non-numeric or unset means a local build",
    )
    zip_destination: Path | None = Field(
        default=None,
        description="Directory for per-project zips; archiving is skipped when unset",
    )
    verbosity: Verbosity = Field(default=Verbosity.MINIMAL, description="Build verbosity")
    db_prefix: str | None = Field(
        default=None,
        description="Prefix for the main database; provisioning is skipped when unset",
    )
    apim_db_prefix: str | None = Field(
        default=None,
        description="Prefix for the APIM consumption database; skipped when unset",
    )
    manifest: Path | None = Field(
        default=None,
        description="YAML project table replacing the built-in one",
    )

    # Layout
    repo_root: Path = Field(default=Path("."), description="Repository root")
    solution: str = Field(default="Contoso.sln", description="Solution file, relative to repo_root")
    configuration: str = Field(default="Release", description="Build configuration")
    artifacts_dir: Path = Field(default=Path("artifacts"), description="Artifacts root, relative to repo_root")

    # Tools
    dotnet: str = Field(default="dotnet", description="dotnet CLI executable")
    git: str = Field(default="git", description="git executable")
    command_timeout: float | None = Field(
        default=None,
        description="Per-command timeout in seconds; unset waits forever",
    )

    # Databases
    db_admin_project: str = Field(
        default="tools/Contoso.DbAdmin",
        description="Database admin tool project, relative to repo_root",
    )
    db_server_connection: str = Field(
        default="Host=localhost;Port=5432;Username=postgres;Password=postgres",
        description="Server connection string without a Database= part",
    )
    migrations_dir: str = Field(default="database/migrations")
    apim_migrations_dir: str = Field(default="database/apim-migrations")
    connection_string_variable: str = Field(default="ConnectionStrings__Contoso")
    apim_connection_string_variable: str = Field(default="ConnectionStrings__ApimConsumption")
    databases_created_variable: str = Field(default="DatabasesCreated")

    # Infrastructure
    infra_project: str = Field(
        default="Contoso.ResourceGroup",
        description="Resource group definition project, relative to repo_root",
    )
    infra_output: str = Field(
        default="Infrastructure",
        description="Folder under artifacts_dir for the merged infra bundle",
    )

    # Logging
    log_level: str = Field(default="INFO")
    json_logs: bool | None = Field(default=None, description="None auto-detects from the terminal")

    # Internal
    run_id: str = Field(default="", description="Unique run identifier (auto-generated)")

    @field_validator("verbosity", mode="before")
    @classmethod
    def _parse_verbosity(cls, value: Any) -> Any:
        if isinstance(value, str):
            return Verbosity.parse(value)
        return value

    @model_validator(mode="after")
    def _set_defaults(self) -> PipelineConfig:
        if not self.run_id:
            self.run_id = uuid.uuid4().hex[:12]
        # Commands get repo_root-based paths and also run with cwd=repo_root
        self.repo_root = self.repo_root.absolute()
        return self

    @property
    def artifacts_path(self) -> Path:
        return self.repo_root / self.artifacts_dir

    @property
    def solution_path(self) -> Path:
        return self.repo_root / self.solution

    @property
    def archiving_enabled(self) -> bool:
        return self.zip_destination is not None

    @classmethod
    def from_env(cls, **overrides: Any) -> PipelineConfig:
        """Create config from environment variables.

        ``None`` values in ``overrides`` are ignored so CLI options that
        were not given fall through to the environment.
        """
        env_map = {
            "source_branch": ("BUILDSPINE_BRANCH", "BUILD_SOURCEBRANCHNAME"),
            "build_id": ("BUILDSPINE_BUILD_ID", "BUILD_BUILDID"),
            "zip_destination": ("BUILDSPINE_ZIP_DESTINATION",),
            "verbosity": ("BUILDSPINE_VERBOSITY",),
            "db_prefix": ("BUILDSPINE_DB_PREFIX",),
            "apim_db_prefix": ("BUILDSPINE_APIM_DB_PREFIX",),
            "manifest": ("BUILDSPINE_MANIFEST",),
            "repo_root": ("BUILDSPINE_REPO_ROOT",),
            "solution": ("BUILDSPINE_SOLUTION",),
            "configuration": ("BUILDSPINE_CONFIGURATION",),
            "db_server_connection": ("BUILDSPINE_DB_SERVER_CONNECTION",),
            "command_timeout": ("BUILDSPINE_COMMAND_TIMEOUT",),
            "log_level": ("BUILDSPINE_LOG_LEVEL",),
            "json_logs": ("BUILDSPINE_JSON_LOGS",),
        }
        values: dict[str, Any] = {}
        for field_name, env_vars in env_map.items():
            env_val = next((os.environ[v] for v in env_vars if os.environ.get(v)), None)
            if env_val is None:
                continue
            if field_name == "command_timeout":
                values[field_name] = float(env_val)
            elif field_name == "json_logs":
                values[field_name] = env_val.lower() in ("true", "1", "yes")
            else:
                values[field_name] = env_val
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
