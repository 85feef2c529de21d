"""Azure Pipelines logging commands.

The CI agent scans the job's stdout for lines of the form
``##vso[area.action key=value;...]data`` and acts on them. Lines must be
written verbatim, one per line, and flushed immediately so they interleave
correctly with child process output.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import TextIO


def _escape(value: str) -> str:
    # "%" first so the agent does not decode our own escapes twice
    return value.replace("%", "%AZP25").replace("\r", "%0D").replace("\n", "%0A")


def _escape_property(value: str) -> str:
    """Property values additionally must not contain the ``;`` and ``]`` delimiters."""
    return _escape(value).replace("]", "%5D").replace(";", "%3B")


def format_command(area_action: str, data: str, **properties: str) -> str:
    """Render one ``##vso[...]`` line."""
    props = ";".join(f"{key}={_escape_property(str(value))}" for key, value in properties.items())
    head = f"{area_action} {props}" if props else area_action
    return f"##vso[{head}]{_escape(data)}"


def artifact_upload(path: str | Path, name: str) -> str:
    return format_command("artifact.upload", str(path), containerfolder=name, artifactname=name)


def set_variable(name: str, value: str) -> str:
    return format_command("task.setvariable", value, variable=name)


class CiReporter:
    """Writes logging commands to a stream (stdout by default).

    Every line emitted is also kept in ``lines`` so the run summary can
    list what was published.
    """

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream
        self.lines: list[str] = []

    @property
    def stream(self) -> TextIO:
        return self._stream if self._stream is not None else sys.stdout

    def emit(self, line: str) -> None:
        self.lines.append(line)
        self.stream.write(line + "\n")
        self.stream.flush()

    def upload_artifact(self, path: str | Path, name: str) -> None:
        self.emit(artifact_upload(path, name))

    def set_variable(self, name: str, value: str) -> None:
        self.emit(set_variable(name, value))
