"""
CLI: ``buildspine db``: cleanup of databases created by pipeline runs.
"""

from __future__ import annotations

import typer

app = typer.Typer(no_args_is_help=True)


@app.command()
def drop(
    names: str = typer.Argument(
        ..., envvar="DATABASESCREATED", help="Comma-joined database names (the DatabasesCreated variable).",
    ),
) -> None:
    """Drop databases created by earlier runs. Exits 1 if any drop failed."""
    from buildspine.cli.app import _load_config, console, err_console
    from buildspine.database import DatabaseProvisioner, split_names
    from buildspine.shell import CommandRunner

    config = _load_config()
    targets = split_names(names)
    if not targets:
        console.print("[dim]No databases to drop.[/dim]")
        return

    failed = DatabaseProvisioner(config, CommandRunner(timeout=config.command_timeout)).drop(targets)
    for name in targets:
        mark = "[red]✗[/]" if name in failed else "[green]✓[/]"
        console.print(f"  {mark} {name}")
    if failed:
        err_console.print(f"[bold red]{len(failed)} of {len(targets)} databases could not be dropped[/]")
        raise typer.Exit(code=1)
