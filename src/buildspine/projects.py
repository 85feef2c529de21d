"""Declarative project table for the solution.

Every project the pipeline touches is a row: its path relative to the
repository root and its role. The built-in table describes the Contoso
solution; a YAML manifest can replace it without code changes.

Key Concepts:
    ProjectSpec: Frozen dataclass, one row of the table.
    ProjectRole: ``publish`` (publish + archive), ``api`` (publish, plus
        the OpenAPI copy into ``ApimPublish``), ``test`` (``dotnet test``).
    ProjectManifest: Pydantic model for the YAML form of the table.

Example YAML::

    projects:
      - path: Contoso.Api
        role: api
        openapi_specs: [contoso-api]
        openapi_fixture_dir: Contoso.Api.Tests/OpenApi
      - path: Contoso.Worker
    tests:
      - Contoso.Api.Tests
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path, PurePosixPath

from pydantic import BaseModel, Field, model_validator

from buildspine.core.errors import InvalidConfigError


class ProjectRole(str, Enum):
    """What the pipeline does with a project."""

    PUBLISH = "publish"
    API = "api"
    TEST = "test"


@dataclass(frozen=True)
class ProjectSpec:
    """One project of the solution."""

    path: str
    """Project directory relative to the repository root."""

    role: ProjectRole = ProjectRole.PUBLISH

    openapi_specs: tuple[str, ...] = ()
    """API names whose approved OpenAPI documents are shipped (``api`` role only)."""

    openapi_fixture_dir: str = ""
    """Directory holding ``<name>.approved.json`` files, relative to the repository root."""

    @property
    def name(self) -> str:
        """Last path component, used for zip and artifact names."""
        return PurePosixPath(self.path).name

    def source_dir(self, repo_root: Path) -> Path:
        return repo_root / self.path

    def publish_dir(self, artifacts_dir: Path) -> Path:
        return artifacts_dir / self.path


# ---------------------------------------------------------------------------
# Built-in table
# ---------------------------------------------------------------------------

API_PROJECT = ProjectSpec(
    path="Contoso.Api",
    role=ProjectRole.API,
    openapi_specs=("contoso-api", "contoso-consumption"),
    openapi_fixture_dir="Contoso.Api.Tests/OpenApi",
)

PROJECTS: tuple[ProjectSpec, ...] = (
    API_PROJECT,
    ProjectSpec("Contoso.Web"),
    ProjectSpec("Contoso.Functions"),
    ProjectSpec("Contoso.Worker"),
    ProjectSpec("Contoso.Scheduler"),
    ProjectSpec("Contoso.Notifications"),
    ProjectSpec("Contoso.Identity"),
    ProjectSpec("Contoso.Reporting"),
    ProjectSpec("Contoso.Integrations"),
    ProjectSpec("Contoso.Admin"),
    ProjectSpec("Contoso.Apim.Consumption"),
    ProjectSpec("Contoso.Api.Tests", role=ProjectRole.TEST),
    ProjectSpec("Contoso.Core.Tests", role=ProjectRole.TEST),
    ProjectSpec("Contoso.Functions.Tests", role=ProjectRole.TEST),
    ProjectSpec("Contoso.Worker.Tests", role=ProjectRole.TEST),
    ProjectSpec("Contoso.Identity.Tests", role=ProjectRole.TEST),
    ProjectSpec("Contoso.Reporting.Tests", role=ProjectRole.TEST),
    ProjectSpec("Contoso.Integrations.Tests", role=ProjectRole.TEST),
    ProjectSpec("Contoso.Apim.Consumption.Tests", role=ProjectRole.TEST),
)


def publish_projects(table: tuple[ProjectSpec, ...] = PROJECTS) -> list[ProjectSpec]:
    """Projects that get published, in table order."""
    return [p for p in table if p.role in (ProjectRole.PUBLISH, ProjectRole.API)]


def projects_to_test(table: tuple[ProjectSpec, ...] = PROJECTS) -> list[ProjectSpec]:
    """Projects that get tested, in table order."""
    return [p for p in table if p.role == ProjectRole.TEST]


# ---------------------------------------------------------------------------
# YAML manifest
# ---------------------------------------------------------------------------


class ProjectEntry(BaseModel):
    """A publishable project in the YAML manifest."""

    path: str
    role: ProjectRole = ProjectRole.PUBLISH
    openapi_specs: list[str] = Field(default_factory=list)
    openapi_fixture_dir: str = ""

    @model_validator(mode="after")
    def _check_role(self) -> ProjectEntry:
        if self.role == ProjectRole.TEST:
            raise ValueError(f"{self.path}: list test projects under 'tests', not 'projects'")
        if self.openapi_specs and self.role != ProjectRole.API:
            raise ValueError(f"{self.path}: openapi_specs is only valid for role 'api'")
        return self


class ProjectManifest(BaseModel):
    """YAML form of the project table."""

    projects: list[ProjectEntry] = Field(default_factory=list)
    tests: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _single_api(self) -> ProjectManifest:
        api = [p.path for p in self.projects if p.role == ProjectRole.API]
        if len(api) > 1:
            raise ValueError(f"At most one project may have role 'api', got {api}")
        return self

    def to_table(self) -> tuple[ProjectSpec, ...]:
        rows = [
            ProjectSpec(
                path=p.path,
                role=p.role,
                openapi_specs=tuple(p.openapi_specs),
                openapi_fixture_dir=p.openapi_fixture_dir,
            )
            for p in self.projects
        ]
        rows.extend(ProjectSpec(path=t, role=ProjectRole.TEST) for t in self.tests)
        return tuple(rows)

    @classmethod
    def from_yaml(cls, yaml_content: str) -> ProjectManifest:
        """Parse and validate YAML content.

        Raises
        ------
        InvalidConfigError
            If the YAML is malformed or does not match the schema.
        """
        import yaml
        from pydantic import ValidationError

        try:
            data = yaml.safe_load(yaml_content) or {}
        except yaml.YAMLError as e:
            raise InvalidConfigError("manifest", "<yaml>", f"Invalid YAML: {e}") from e

        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise InvalidConfigError("manifest", "<yaml>", f"Invalid project manifest: {e}") from e

    @classmethod
    def from_yaml_file(cls, path: str | Path) -> ProjectManifest:
        """Load and validate a manifest file."""
        content = Path(path).read_text(encoding="utf-8")
        return cls.from_yaml(content)


def load_table(manifest: str | Path | None = None) -> tuple[ProjectSpec, ...]:
    """Return the project table from ``manifest``, or the built-in one."""
    if manifest is None:
        return PROJECTS
    return ProjectManifest.from_yaml_file(manifest).to_table()
