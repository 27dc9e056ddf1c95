"""Table and column naming for the entity-aspect store, plus bootstrap DDL.

Both the writers and the query planners derive every physical name through the
functions in this module.
"""

from __future__ import annotations

import re
import sqlite3
from dataclasses import dataclass
from typing import Any

from aspectql.errors import FilterCompileError
from aspectql.types import (
    Aspect,
    Relationship,
    Snapshot,
    Urn,
    canonical_name,
    snapshot_types_for,
)

ENTITY_TABLE_PREFIX = "metadata_entity_"
RELATIONSHIP_TABLE_PREFIX = "metadata_relationship_"
ASPECT_COLUMN_PREFIX = "a_"

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _identifier(name: str) -> str:
    if not _IDENTIFIER_RE.match(name):
        raise ValueError(f"Invalid SQL identifier '{name}'")
    return name


def entity_table_name(urn_type: type[Urn] | str) -> str:
    """metadata_entity_<entity type>"""
    entity_type = urn_type if isinstance(urn_type, str) else urn_type.__entity_type__
    if not entity_type:
        raise ValueError(f"{urn_type!r} has no entity type")
    return _identifier(f"{ENTITY_TABLE_PREFIX}{entity_type.lower()}")


def aspect_column_name(aspect: type[Aspect] | str) -> str:
    """a_<aspect class name>, derived from the aspect's canonical name."""
    simple_name = canonical_name(aspect).rsplit(".", 1)[-1]
    return _identifier(f"{ASPECT_COLUMN_PREFIX}{simple_name.lower()}")


def relationship_table_name(relationship_cls: type[Relationship[Any, Any]]) -> str:
    """metadata_relationship_<relationship class name>"""
    return _identifier(f"{RELATIONSHIP_TABLE_PREFIX}{relationship_cls.__name__.lower()}")


@dataclass(frozen=True)
class AspectColumn:
    """One projected aspect of a snapshot and the column that stores it."""

    aspect_cls: type[Aspect]
    column: str

    @property
    def canonical_name(self) -> str:
        return self.aspect_cls.canonical_name()


@dataclass(frozen=True)
class SnapshotMetadata:
    """Maps a snapshot class to its entity table and ordered aspect columns."""

    snapshot_cls: type[Snapshot]
    urn_type: type[Urn]
    table: str
    aspects: tuple[AspectColumn, ...]

    @property
    def columns(self) -> tuple[str, ...]:
        return tuple(a.column for a in self.aspects)

    def column_for(self, aspect: type[Aspect] | str) -> str:
        """Resolve an aspect class or canonical name to its column."""
        name = canonical_name(aspect)
        for aspect_column in self.aspects:
            if aspect_column.canonical_name == name:
                return aspect_column.column
        raise FilterCompileError(
            f"Unknown aspect '{name}' for snapshot {self.snapshot_cls.__name__}; "
            f"known aspects: {[a.canonical_name for a in self.aspects]}"
        )


def snapshot_metadata(snapshot_cls: type[Snapshot]) -> SnapshotMetadata:
    """Build the table/column layout for a snapshot class."""
    urn_type = getattr(snapshot_cls, "__urn_type__", None)
    if urn_type is None:
        raise FilterCompileError(f"{snapshot_cls!r} is not a declared Snapshot type")
    return SnapshotMetadata(
        snapshot_cls=snapshot_cls,
        urn_type=urn_type,
        table=entity_table_name(urn_type),
        aspects=tuple(
            AspectColumn(aspect_cls=a, column=aspect_column_name(a))
            for a in snapshot_cls.__aspect_types__
        ),
    )


# --- Bootstrap DDL ---


def ensure_entity_table(conn: sqlite3.Connection, urn_type: type[Urn] | str) -> str:
    table = entity_table_name(urn_type)
    conn.execute(
        f"CREATE TABLE IF NOT EXISTS {table} ("
        "urn TEXT PRIMARY KEY NOT NULL, "
        "lastmodifiedon TEXT, "
        "lastmodifiedby TEXT"
        ")"
    )
    return table


def _table_columns(conn: sqlite3.Connection, table: str) -> set[str]:
    return {row[1] for row in conn.execute(f"PRAGMA table_info({_identifier(table)})").fetchall()}


def entity_aspect_columns(
    urn_type: type[Urn], extra: tuple[type[Aspect], ...] = ()
) -> tuple[str, ...]:
    """Every aspect column a reader can project from ``urn_type``'s table.

    That is the aspects of each Snapshot declared on the entity type, followed
    by ``extra``, without duplicates.
    """
    aspects = [a for s in snapshot_types_for(urn_type) for a in s.__aspect_types__]
    aspects.extend(extra)
    return tuple(dict.fromkeys(aspect_column_name(a) for a in aspects))


def ensure_entity_layout(
    conn: sqlite3.Connection, urn_type: type[Urn], *aspects: type[Aspect]
) -> str:
    """Create the entity table with all of its known aspect columns."""
    table = ensure_entity_table(conn, urn_type)
    existing = _table_columns(conn, table)
    for column in entity_aspect_columns(urn_type, aspects):
        if column not in existing:
            conn.execute(f"ALTER TABLE {table} ADD COLUMN {column} TEXT")
    return table


def ensure_snapshot_tables(conn: sqlite3.Connection, snapshot_cls: type[Snapshot]) -> None:
    metadata = snapshot_metadata(snapshot_cls)
    ensure_entity_layout(conn, metadata.urn_type, *snapshot_cls.__aspect_types__)


def ensure_relationship_table(
    conn: sqlite3.Connection, relationship_cls: type[Relationship[Any, Any]]
) -> str:
    table = relationship_table_name(relationship_cls)
    conn.executescript(f"""
        CREATE TABLE IF NOT EXISTS {table} (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            metadata TEXT,
            source TEXT NOT NULL,
            source_type TEXT NOT NULL,
            destination TEXT NOT NULL,
            destination_type TEXT NOT NULL,
            lastmodifiedon TEXT NOT NULL,
            lastmodifiedby TEXT NOT NULL,
            deleted_ts TEXT
        );

        CREATE INDEX IF NOT EXISTS idx_{table}_source ON {table}(source);

        CREATE INDEX IF NOT EXISTS idx_{table}_destination ON {table}(destination);
    """)
    return table
