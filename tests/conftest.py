"""
Shared pytest fixtures for buildspine tests.

This module provides:
- A throwaway repository layout (OpenAPI fixtures, migration scripts)
- A ``PipelineConfig`` pointing at it
- The recording ``FakeRunner`` and an in-memory ``CiReporter``
- structlog reset between tests

No test runs ``dotnet`` or ``git``: every command goes through
``FakeRunner`` or a patched ``subprocess.run``.
"""

from __future__ import annotations

import io
import logging
import sys
from collections.abc import Generator
from pathlib import Path

import pytest
import structlog

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from buildspine.config import PipelineConfig
from buildspine.projects import API_PROJECT
from buildspine.vso import CiReporter
from tests._support.fakes import FakeRunner


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-mark tests based on their location."""
    for item in items:
        test_path = Path(item.fspath).relative_to(Path(__file__).parent)
        if test_path.parts[0] == "cli":
            item.add_marker(pytest.mark.cli)
        else:
            item.add_marker(pytest.mark.unit)


@pytest.fixture(autouse=True)
def reset_structlog() -> Generator[None, None, None]:
    """Undo any ``configure_logging()`` a test triggered."""
    yield
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()
    logging.getLogger().handlers.clear()


@pytest.fixture
def repo(tmp_path: Path) -> Path:
    """Minimal repository: approved OpenAPI documents and two migration folders."""
    root = tmp_path / "repo"
    fixtures = root / API_PROJECT.openapi_fixture_dir
    fixtures.mkdir(parents=True)
    for name in API_PROJECT.openapi_specs:
        (fixtures / f"{name}.approved.json").write_text(f'{{"info": {{"title": "{name}"}}}}', encoding="utf-8")

    for migrations in ("database/migrations", "database/apim-migrations"):
        d = root / migrations
        d.mkdir(parents=True)
        (d / "0001_init.sql").write_text("create table t (id int);", encoding="utf-8")
    return root


@pytest.fixture
def config(repo: Path) -> PipelineConfig:
    return PipelineConfig(repo_root=repo, source_branch="feature-xyz", build_id="42")


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def reporter() -> CiReporter:
    return CiReporter(io.StringIO())
