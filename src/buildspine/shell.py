"""Subprocess wrapper used by every stage that shells out.

Each command runs with an explicit working directory and an explicit
environment. Nothing here changes the process-wide current directory or
mutates ``os.environ``.

Key Concepts:
    CommandRunner: ``run()`` executes one command, blocks until it exits and
        raises :class:`~buildspine.core.errors.CommandFailedError` on a
        non-zero exit when ``check=True``.
    Output: build tools stream straight to the parent's stdout/stderr so
        the CI log shows compiler output live; ``capture=True`` is used for
        short queries such as ``git rev-parse``.
"""

from __future__ import annotations

import os
import shlex
import subprocess
import time
from collections.abc import Mapping
from pathlib import Path

from buildspine.core.errors import CommandFailedError
from buildspine.core.logging import get_logger

logger = get_logger(__name__)


class CommandRunner:
    """Runs external commands synchronously.

    Parameters
    ----------
    timeout
        Per-command timeout in seconds. ``None`` waits forever.
    base_env
        Environment every child inherits. Defaults to a snapshot of
        ``os.environ`` taken at construction time.
    """

    def __init__(
        self,
        timeout: float | None = None,
        base_env: Mapping[str, str] | None = None,
    ) -> None:
        self.timeout = timeout
        self.base_env = dict(os.environ if base_env is None else base_env)

    def run(
        self,
        command: list[str],
        *,
        cwd: str | Path | None = None,
        env: Mapping[str, str] | None = None,
        check: bool = True,
        capture: bool = False,
    ) -> subprocess.CompletedProcess[str]:
        """Run a command and wait for it to exit.

        Parameters
        ----------
        command
            Executable and arguments.
        cwd
            Working directory for the child only.
        env
            Extra variables layered over ``base_env`` for the child only.
        check
            Raise ``CommandFailedError`` on a non-zero exit.
        capture
            Capture stdout/stderr as text instead of streaming them.
        """
        full_env = {**self.base_env, **(env or {})}
        display = shlex.join(command)
        logger.info("command.started", command=display, cwd=str(cwd) if cwd else None)

        start = time.time()
        try:
            proc = subprocess.run(
                command,
                cwd=str(cwd) if cwd else None,
                env=full_env,
                capture_output=capture,
                text=True,
                timeout=self.timeout,
            )
        except FileNotFoundError as exc:
            logger.error("command.not_found", command=display)
            raise CommandFailedError(
                command,
                127,
                cwd=cwd,
                message=f"Executable not found: {command[0]}",
            ) from exc
        except subprocess.TimeoutExpired as exc:
            logger.error("command.timeout", command=display, timeout=self.timeout)
            raise CommandFailedError(
                command,
                -1,
                cwd=cwd,
                message=f"Command timed out after {self.timeout}s: {display}",
            ) from exc

        duration = round(time.time() - start, 3)
        if proc.returncode != 0:
            logger.error(
                "command.failed",
                command=display,
                returncode=proc.returncode,
                duration_seconds=duration,
            )
            if check:
                raise CommandFailedError(command, proc.returncode, cwd=cwd)
        else:
            logger.debug("command.completed", command=display, duration_seconds=duration)
        return proc

    def output(
        self,
        command: list[str],
        *,
        cwd: str | Path | None = None,
    ) -> str:
        """Run a query command and return its stripped stdout."""
        return self.run(command, cwd=cwd, capture=True).stdout.strip()
