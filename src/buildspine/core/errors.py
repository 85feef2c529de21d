"""
Structured error types for buildspine.

Every failure the pipeline can raise is a ``BuildSpineError`` carrying a
category, structured context and the process exit code that failure maps
to. The pipeline never retries: any error aborts the run and the CLI exits
with ``error.exit_code``.

Architecture:
    ::

        ┌──────────────────────────────────────────────────────────┐
        │                   BuildSpineError                         │
        │        (category, exit_code, context, cause)              │
        ├──────────────────────────────────────────────────────────┤
        │  ConfigError          CommandFailedError                  │
        │  (CONFIG, exit 1)     (COMMAND, exit 1)                   │
        │       │                     │                             │
        │  InvalidConfigError   TestsFailedError (TEST, exit 3)     │
        │  MissingConfigError                                       │
        └──────────────────────────────────────────────────────────┘

Exit codes:
    0  success
    1  build, publish, provisioning, packaging or configuration failure
    3  test failure

Usage:
    from buildspine.core.errors import CommandFailedError

    if proc.returncode != 0:
        raise CommandFailedError(cmd, proc.returncode, cwd=cwd)

Tags:
    error-handling, exception-hierarchy, exit-codes
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any

EXIT_OK = 0
EXIT_BUILD_FAILED = 1
EXIT_TESTS_FAILED = 3


class ErrorCategory(str, Enum):
    """Error categories for classification and reporting."""

    CONFIG = "CONFIG"  # Missing or invalid settings
    COMMAND = "COMMAND"  # External tool exited non-zero
    FILESYSTEM = "FILESYSTEM"  # Missing files, unwritable paths
    TEST = "TEST"  # Test project failed
    INTERNAL = "INTERNAL"  # Bugs, unexpected state


class BuildSpineError(Exception):
    """Base exception for all buildspine errors.

    Subclasses set ``default_category`` and ``exit_code``. Extra metadata
    goes in ``context`` and is serialised by :meth:`to_dict` for
    structured logging and the build summary.

    Example:
        >>> err = BuildSpineError("boom").with_context(stage="build")
        >>> err.to_dict()["context"]
        {'stage': 'build'}
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    exit_code: int = EXIT_BUILD_FAILED

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context: dict[str, Any] = dict(context or {})
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> BuildSpineError:
        """Add context to this error (fluent API)."""
        self.context.update(kwargs)
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "exit_code": self.exit_code,
        }
        if self.context:
            result["context"] = dict(self.context)
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigError(BuildSpineError):
    """Configuration error. The run cannot start until it is fixed."""

    default_category = ErrorCategory.CONFIG


class MissingConfigError(ConfigError):
    """Required configuration is missing."""

    def __init__(self, key: str, message: str | None = None):
        self.key = key
        super().__init__(message or f"Missing required configuration: {key}")


class InvalidConfigError(ConfigError):
    """Configuration value is invalid."""

    def __init__(self, key: str, value: Any, message: str | None = None):
        self.key = key
        self.value = value
        super().__init__(message or f"Invalid configuration for {key}: {value!r}")


# =============================================================================
# COMMAND ERRORS
# =============================================================================


class CommandFailedError(BuildSpineError):
    """An external command exited with a non-zero status."""

    default_category = ErrorCategory.COMMAND

    def __init__(
        self,
        command: list[str],
        returncode: int,
        *,
        cwd: str | Path | None = None,
        message: str | None = None,
    ):
        self.command = list(command)
        self.returncode = returncode
        self.cwd = str(cwd) if cwd is not None else None
        super().__init__(
            message or f"Command failed with exit code {returncode}: {' '.join(self.command)}",
            context={"command": self.command, "returncode": returncode, "cwd": self.cwd},
        )


class TestsFailedError(CommandFailedError):
    """A test project run exited non-zero."""

    __test__ = False

    default_category = ErrorCategory.TEST
    exit_code = EXIT_TESTS_FAILED

    def __init__(self, project: str, command: list[str], returncode: int, *, cwd: str | Path | None = None):
        self.project = project
        super().__init__(
            command,
            returncode,
            cwd=cwd,
            message=f"Tests failed in {project} (exit code {returncode})",
        )
        self.context["project"] = project


def exit_code_for(error: BaseException) -> int:
    """Map any exception raised during a run to a process exit code."""
    if isinstance(error, BuildSpineError):
        return error.exit_code
    return EXIT_BUILD_FAILED


__all__ = [
    "EXIT_OK",
    "EXIT_BUILD_FAILED",
    "EXIT_TESTS_FAILED",
    "ErrorCategory",
    "BuildSpineError",
    "ConfigError",
    "MissingConfigError",
    "InvalidConfigError",
    "CommandFailedError",
    "TestsFailedError",
    "exit_code_for",
]
