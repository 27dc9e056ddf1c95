"""Shared test fixtures for aspectql tests."""

from __future__ import annotations

import pytest

from aspectql import (
    Aspect,
    Database,
    LocalAspectAccess,
    LocalRelationshipQueryDAO,
    LocalRelationshipWriter,
    Relationship,
    Snapshot,
    Urn,
)
from aspectql.schema import ensure_relationship_table, ensure_snapshot_tables

# --- Test Urn/Aspect/Snapshot/Relationship types ---


class FooUrn(Urn, entity_type="foo"):
    pass


class BarUrn(Urn, entity_type="bar"):
    pass


class AspectFoo(Aspect):
    value: str


class AspectBar(Aspect):
    value: str


class FooSnapshot(Snapshot, urn_type=FooUrn, aspects=(AspectFoo, AspectBar)):
    pass


class BarSnapshot(Snapshot, urn_type=BarUrn, aspects=(AspectFoo,)):
    pass


class ReportsTo(Relationship[FooUrn, FooUrn]):
    since: str | None = None


class BelongsTo(Relationship[FooUrn, BarUrn]):
    pass


class PairsWith(Relationship[FooUrn, FooUrn]):
    pass


SNAPSHOT_TYPES = (FooSnapshot, BarSnapshot)
RELATIONSHIP_TYPES = (ReportsTo, BelongsTo, PairsWith)


def bootstrap(database: Database) -> None:
    """Create every entity and relationship table used by the tests."""
    with database.connection() as conn:
        for snapshot_cls in SNAPSHOT_TYPES:
            ensure_snapshot_tables(conn, snapshot_cls)
        conn.commit()
        for relationship_cls in RELATIONSHIP_TYPES:
            ensure_relationship_table(conn, relationship_cls)


# --- Fixtures ---


@pytest.fixture
def tmp_db(tmp_path):
    """Create a temporary SQLite database path."""
    return str(tmp_path / "test.db")


@pytest.fixture
def database(tmp_db):
    """A pooled Database with all test tables created."""
    db = Database(tmp_db)
    bootstrap(db)
    yield db
    db.close()


@pytest.fixture
def foo_access(database):
    return LocalAspectAccess(database, FooUrn)


@pytest.fixture
def bar_access(database):
    return LocalAspectAccess(database, BarUrn)


@pytest.fixture
def edges(database):
    return LocalRelationshipWriter(database)


@pytest.fixture
def dao(database):
    return LocalRelationshipQueryDAO(database)


@pytest.fixture
def people(foo_access):
    """Alice, Bob, Jack and John as FooUrn(1..4) with ages in AspectBar."""
    names = {1: ("Alice", "32"), 2: ("Bob", "52"), 3: ("Jack", "16"), 4: ("John", "42")}
    urns = {}
    for urn_id, (name, age) in names.items():
        urn = FooUrn(urn_id)
        foo_access.add(urn, AspectFoo(value=name), AspectFoo)
        foo_access.add(urn, AspectBar(value=age), AspectBar)
        urns[name] = urn
    return urns
