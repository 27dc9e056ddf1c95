"""aspectql CLI: operator console for querying a local entity-aspect store."""

from __future__ import annotations

from typing import Optional

import typer

from aspectql.cli import query
from aspectql.logging import setup_logging

app = typer.Typer(
    name="aspectql",
    help="Run relationship queries against a local entity-aspect store.",
    no_args_is_help=True,
)


class _State:
    """Global CLI state shared across subcommands."""

    db: str = "aspectql.db"
    json_output: bool = False


state = _State()


def _version_callback(value: bool) -> None:
    if value:
        from aspectql import __version__

        print(f"aspectql {__version__}")
        raise typer.Exit()


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    db: Optional[str] = typer.Option(
        None,
        "--db",
        envvar="ASPECTQL_DB",
        help="SQLite database path or sqlite:/// URI (default: aspectql.db)",
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output"),
    log_level: str = typer.Option("WARNING", "--log-level", help="Log level for stderr logs"),
    version: bool = typer.Option(
        False, "--version", help="Show version", is_eager=True, callback=_version_callback
    ),
) -> None:
    """Global options for all aspectql commands."""
    setup_logging(log_level)
    state.db = db or "aspectql.db"
    state.json_output = json_output
    if ctx.invoked_subcommand is None and not version:
        print(ctx.get_help())
        raise typer.Exit()


app.add_typer(query.app, name="query", help="Query entities, related entities and relationships")


def main() -> None:
    """Entry point for the aspectql CLI."""
    app()
