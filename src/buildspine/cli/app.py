"""
Root Typer application for the buildspine CLI.

Usage::

    buildspine run                                   # local build + tests
    buildspine run --zip-destination drop -v diag    # archive, infra bundle
    buildspine run --db-prefix ci --apim-db-prefix ciapim
    buildspine version                               # show the build identity
    buildspine projects                              # list the project table
    buildspine db drop "$(DatabasesCreated)"         # cleanup job

Exit codes: 0 success, 1 build/publish/provisioning failure, 3 test failure.
"""

from __future__ import annotations

import json
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from buildspine.cli.db import app as db_app
from buildspine.config import PipelineConfig, Verbosity
from buildspine.core.errors import EXIT_BUILD_FAILED, BuildSpineError, InvalidConfigError
from buildspine.core.logging import configure_logging

app = typer.Typer(
    name="buildspine",
    help="buildspine: CI build orchestration for the Contoso solution.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)
console = Console()
err_console = Console(stderr=True)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from importlib.metadata import PackageNotFoundError
        from importlib.metadata import version as pkg_version

        try:
            v = pkg_version("buildspine")
        except PackageNotFoundError:
            from buildspine import __version__ as v
        typer.echo(f"buildspine {v}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """buildspine CLI: build, publish, archive and test the solution."""


# ── Helpers ──────────────────────────────────────────────────────────────


def _parse_verbosity(value: str) -> Verbosity:
    try:
        return Verbosity.parse(value)
    except InvalidConfigError as e:
        raise typer.BadParameter(e.message) from e


def _load_config(**overrides) -> PipelineConfig:
    try:
        config = PipelineConfig.from_env(**overrides)
    except BuildSpineError as e:
        err_console.print(f"[bold red]Error[/bold red] ({e.category.value}): {e.message}")
        raise typer.Exit(code=e.exit_code) from e
    configure_logging(level=config.log_level, json_format=config.json_logs)
    return config


# ── Commands ─────────────────────────────────────────────────────────────


@app.command()
def run(
    zip_destination: Path | None = typer.Option(
        None, "--zip-destination", "-z", help="Directory for per-project zips. Enables archiving and infra packaging.",
    ),
    verbosity: str | None = typer.Option(
        None, "--verbosity", "-v",
        help="Build verbosity: quiet, minimal, normal, detailed, diagnostic (q, m, n, d, diag). Default: minimal.",
    ),
    branch: str | None = typer.Option(
        None, "--branch", "-b", envvar="BUILD_SOURCEBRANCHNAME", help="Source branch name.",
    ),
    build_id: str | None = typer.Option(
        None, "--build-id", envvar="BUILD_BUILDID", help="Numeric CI build id.",
    ),
    db_prefix: str | None = typer.Option(None, "--db-prefix", help="Provision the main database with this prefix."),
    apim_db_prefix: str | None = typer.Option(
        None, "--apim-db-prefix", help="Provision the APIM consumption database with this prefix.",
    ),
    manifest: Path | None = typer.Option(None, "--manifest", "-m", help="YAML project table."),
    repo_root: Path | None = typer.Option(None, "--repo-root", help="Repository root (default: current directory)."),
    json_out: bool = typer.Option(False, "--json", help="Print the run result as JSON."),
) -> None:
    """Run the full pipeline: version, databases, build, publish, archive, infra, tests."""
    from buildspine.pipeline import BuildPipeline

    config = _load_config(
        zip_destination=zip_destination,
        verbosity=_parse_verbosity(verbosity) if verbosity is not None else None,
        source_branch=branch,
        build_id=build_id,
        db_prefix=db_prefix,
        apim_db_prefix=apim_db_prefix,
        manifest=manifest,
        repo_root=repo_root,
    )

    try:
        pipeline = BuildPipeline(config)
    except BuildSpineError as e:
        err_console.print(f"[bold red]Error[/bold red] ({e.category.value}): {e.message}")
        raise typer.Exit(code=e.exit_code) from e

    result = pipeline.run()

    if json_out:
        typer.echo(result.model_dump_json(indent=2))
    else:
        _print_result(result)

    if result.exit_code:
        raise typer.Exit(code=result.exit_code)


@app.command()
def version(
    branch: str | None = typer.Option(None, "--branch", "-b", envvar="BUILD_SOURCEBRANCHNAME"),
    build_id: str | None = typer.Option(None, "--build-id", envvar="BUILD_BUILDID"),
    json_out: bool = typer.Option(False, "--json", help="Output as JSON."),
) -> None:
    """Show the resolved build identity (suffixes, revision, commit)."""
    from buildspine.shell import CommandRunner
    from buildspine.version import resolve_build_identity

    config = _load_config(source_branch=branch, build_id=build_id)
    try:
        identity = resolve_build_identity(
            CommandRunner(timeout=config.command_timeout),
            config.source_branch,
            config.build_id,
            git=config.git,
            repo_root=config.repo_root,
        )
    except BuildSpineError as e:
        err_console.print(f"[bold red]Error[/bold red]: {e.message}")
        raise typer.Exit(code=EXIT_BUILD_FAILED) from e

    if json_out:
        typer.echo(json.dumps(identity.to_dict(), indent=2))
        return
    for key, value in identity.to_dict().items():
        console.print(f"  [cyan]{key}[/cyan]: {value}")


@app.command()
def projects(
    manifest: Path | None = typer.Option(None, "--manifest", "-m", help="YAML project table."),
) -> None:
    """List the project table."""
    from buildspine.projects import load_table

    try:
        table_rows = load_table(manifest)
    except BuildSpineError as e:
        err_console.print(f"[bold red]Error[/bold red]: {e.message}")
        raise typer.Exit(code=e.exit_code) from e

    table = Table(title="Projects", show_lines=False, pad_edge=False)
    table.add_column("Path")
    table.add_column("Role")
    table.add_column("OpenAPI")
    for row in table_rows:
        table.add_row(row.path, row.role.value, ", ".join(row.openapi_specs) or "-")
    console.print(table)


app.add_typer(db_app, name="db", help="Ephemeral database maintenance.")


# ── Output helpers ───────────────────────────────────────────────────────


def _print_result(result) -> None:
    colors = {"PASSED": "green", "FAILED": "red", "SKIPPED": "dim"}
    table = Table(title=f"Run {result.run_id}", show_lines=False, pad_edge=False)
    table.add_column("Stage")
    table.add_column("Status")
    table.add_column("Duration", justify="right")
    for stage in result.stages:
        color = colors.get(stage.status.value, "yellow")
        table.add_row(stage.name, f"[{color}]{stage.status.value}[/]", f"{stage.duration_seconds:.1f}s")
    console.print(table)

    failed = result.failed_stage
    if failed is not None and failed.error:
        err_console.print(f"[bold red]✗ {failed.name}[/]: {failed.error.get('message', '')}")
    else:
        console.print(f"[bold green]✓[/] {result.summary}")
