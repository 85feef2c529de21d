"""
CLI layer for buildspine.

A Typer application whose commands build a ``PipelineConfig`` and delegate
to :mod:`buildspine.pipeline`. This package handles only terminal
transport: argument parsing, exit codes and table formatting.

Entry point::

    buildspine --help
"""

from buildspine.cli.app import app

__all__ = ["app"]
