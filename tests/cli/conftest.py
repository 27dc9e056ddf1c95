"""Shared fixtures for CLI tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from typer.testing import CliRunner

from aspectql import Database, LocalAspectAccess, LocalRelationshipWriter
from aspectql.cli import app

# Reuse the model types from the main conftest
from tests.conftest import AspectBar, AspectFoo, BarUrn, BelongsTo, FooUrn, ReportsTo, bootstrap

if TYPE_CHECKING:
    from click.testing import Result


@pytest.fixture
def runner():
    """Create a CLI test runner."""
    return CliRunner()


@pytest.fixture
def cli_db(tmp_path):
    """Create a temp DB path for the CLI."""
    return str(tmp_path / "cli_test.db")


@pytest.fixture
def seeded_db(cli_db):
    """A DB with Alice/Bob/Jack, two schools and ReportsTo/BelongsTo edges."""
    db = Database(cli_db)
    bootstrap(db)
    people = LocalAspectAccess(db, FooUrn)
    for urn_id, name, age in [(1, "Alice", "32"), (2, "Bob", "52"), (3, "Jack", "16")]:
        people.add(FooUrn(urn_id), AspectFoo(value=name), AspectFoo)
        people.add(FooUrn(urn_id), AspectBar(value=age), AspectBar)
    schools = LocalAspectAccess(db, BarUrn)
    schools.add(BarUrn(1), AspectFoo(value="Stanford"), AspectFoo)
    schools.add(BarUrn(2), AspectFoo(value="MIT"), AspectFoo)

    edges = LocalRelationshipWriter(db)
    edges.add_relationships(
        [
            ReportsTo(source=FooUrn(2), destination=FooUrn(1), since="2019"),
            ReportsTo(source=FooUrn(3), destination=FooUrn(1), since="2023"),
            BelongsTo(source=FooUrn(1), destination=BarUrn(2)),
            BelongsTo(source=FooUrn(1), destination=BarUrn(1)),
        ]
    )
    db.close()
    return cli_db


def invoke(runner: CliRunner, args: list[str], db_path: str | None = None) -> "Result":
    """Invoke CLI with proper state setup."""
    if db_path:
        # Inject --db before subcommand
        args = ["--db", db_path] + args
    return runner.invoke(app, args, catch_exceptions=False)
