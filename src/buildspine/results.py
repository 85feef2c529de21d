"""Result models for pipeline runs.

Each stage produces a :class:`StageResult`; the run aggregates them into a
:class:`PipelineResult` whose ``exit_code`` is what the CLI returns. The
result is serialised to ``<artifacts>/build-summary.json`` at the end of
every run, successful or not.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from buildspine.core.errors import EXIT_OK


class OverallStatus(str, Enum):
    """Status of a stage or run."""

    PASSED = "PASSED"
    FAILED = "FAILED"
    SKIPPED = "SKIPPED"
    RUNNING = "RUNNING"
    PENDING = "PENDING"


def _now() -> str:
    return datetime.now(UTC).isoformat()


def _elapsed(started_at: str, completed_at: str) -> float:
    start = datetime.fromisoformat(started_at)
    end = datetime.fromisoformat(completed_at)
    return (end - start).total_seconds()


class StageResult(BaseModel):
    """Outcome of one pipeline stage."""

    name: str
    status: OverallStatus = OverallStatus.PENDING
    started_at: str | None = None
    completed_at: str | None = None
    duration_seconds: float = 0.0
    artifacts: list[str] = Field(default_factory=list)
    error: dict[str, Any] | None = None

    def start(self) -> None:
        self.status = OverallStatus.RUNNING
        self.started_at = _now()

    def finish(self, status: OverallStatus, error: dict[str, Any] | None = None) -> None:
        self.completed_at = _now()
        if self.started_at:
            self.duration_seconds = _elapsed(self.started_at, self.completed_at)
        self.status = status
        self.error = error


class PipelineResult(BaseModel):
    """Aggregated result of a full pipeline run."""

    run_id: str
    started_at: str = Field(default_factory=_now)
    completed_at: str | None = None
    duration_seconds: float = 0.0
    identity: dict[str, Any] = Field(default_factory=dict)
    databases: list[str] = Field(default_factory=list)
    stages: list[StageResult] = Field(default_factory=list)
    ci_commands: list[str] = Field(default_factory=list)
    overall_status: OverallStatus = OverallStatus.PENDING
    exit_code: int = EXIT_OK
    summary: str = ""

    def stage(self, name: str) -> StageResult | None:
        return next((s for s in self.stages if s.name == name), None)

    @property
    def failed_stage(self) -> StageResult | None:
        return next((s for s in self.stages if s.status == OverallStatus.FAILED), None)

    def mark_complete(self, exit_code: int = EXIT_OK) -> None:
        """Finalise timestamps, exit code, status and summary."""
        self.completed_at = _now()
        self.duration_seconds = _elapsed(self.started_at, self.completed_at)
        self.exit_code = exit_code
        failed = self.failed_stage
        if exit_code == EXIT_OK and failed is None:
            self.overall_status = OverallStatus.PASSED
        else:
            self.overall_status = OverallStatus.FAILED

        ran = [s for s in self.stages if s.status != OverallStatus.SKIPPED]
        passed = sum(1 for s in ran if s.status == OverallStatus.PASSED)
        self.summary = f"{passed}/{len(ran)} stages passed in {self.duration_seconds:.1f}s"
        if failed is not None:
            self.summary += f"; failed at {failed.name} (exit {exit_code})"

    def write(self, path: Path) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return path
