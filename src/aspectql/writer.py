"""Local writers that populate entity and relationship tables.

The query engine itself is read-only; these collaborators create the rows it
reads, in the same physical layout (see ``aspectql.schema``).
"""

from __future__ import annotations

import json
import sqlite3
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from aspectql.database import Database
from aspectql.errors import BackendFailureError, InvalidArgumentError
from aspectql.logging import get_logger
from aspectql.schema import (
    aspect_column_name,
    ensure_entity_layout,
    ensure_relationship_table,
    relationship_table_name,
)
from aspectql.types import Aspect, Relationship, Urn

UNKNOWN_ACTOR = "urn:li:principal:unknown"

log = get_logger(__name__)


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class AuditStamp:
    """Who changed a row, and when (ISO-8601, UTC)."""

    actor: str = UNKNOWN_ACTOR
    time: str = field(default_factory=_utc_now)


class LocalAspectAccess:
    """Upserts aspect documents into one entity table."""

    def __init__(self, database: Database, urn_cls: type[Urn]) -> None:
        if getattr(urn_cls, "__entity_type__", None) is None:
            raise InvalidArgumentError(f"{urn_cls!r} is not a typed Urn class")
        self._database = database
        self._urn_cls = urn_cls

    def add(
        self,
        urn: Urn,
        aspect: Aspect,
        aspect_cls: type[Aspect],
        audit_stamp: AuditStamp | None = None,
    ) -> None:
        """Upsert one aspect document for ``urn``.

        The entity table is brought up to a column for every aspect of every
        Snapshot declared on this urn type, so snapshot queries can project
        aspects that were never written.
        """
        if not isinstance(urn, self._urn_cls):
            raise InvalidArgumentError(f"Expected {self._urn_cls.__name__}, got {urn!r}")
        if not isinstance(aspect, aspect_cls):
            raise InvalidArgumentError(
                f"Aspect {type(aspect).__name__} is not an instance of {aspect_cls.__name__}"
            )
        stamp = audit_stamp or AuditStamp()
        column = aspect_column_name(aspect_cls)

        try:
            with self._database.connection() as conn, conn:
                table = ensure_entity_layout(conn, self._urn_cls, aspect_cls)
                conn.execute(
                    f"INSERT INTO {table} (urn, {column}, lastmodifiedon, lastmodifiedby) "
                    "VALUES (?, ?, ?, ?) "
                    f"ON CONFLICT(urn) DO UPDATE SET {column} = excluded.{column}, "
                    "lastmodifiedon = excluded.lastmodifiedon, "
                    "lastmodifiedby = excluded.lastmodifiedby",
                    (str(urn), aspect.model_dump_json(), stamp.time, stamp.actor),
                )
        except sqlite3.Error as e:
            raise BackendFailureError("add_aspect", str(e)) from e
        log.info("aspect.added", urn=str(urn), aspect=aspect_cls.canonical_name())


class LocalRelationshipWriter:
    """Appends edges to relationship tables and soft-deletes them."""

    def __init__(self, database: Database) -> None:
        self._database = database

    def add_relationship(
        self,
        relationship: Relationship[Any, Any],
        audit_stamp: AuditStamp | None = None,
    ) -> int:
        """Insert one edge and return its id."""
        return self.add_relationships([relationship], audit_stamp)[0]

    def add_relationships(
        self,
        relationships: Iterable[Relationship[Any, Any]],
        audit_stamp: AuditStamp | None = None,
    ) -> list[int]:
        """Insert edges in one transaction, in order. Returns the new ids."""
        relationships = list(relationships)
        for relationship in relationships:
            if not isinstance(relationship, Relationship):
                raise InvalidArgumentError(f"{relationship!r} is not a Relationship")
        stamp = audit_stamp or AuditStamp()

        ids: list[int] = []
        try:
            with self._database.connection() as conn:
                for relationship_cls in {type(r) for r in relationships}:
                    ensure_relationship_table(conn, relationship_cls)
                with conn:
                    for relationship in relationships:
                        ids.append(self._insert(conn, relationship, stamp))
        except sqlite3.Error as e:
            raise BackendFailureError("add_relationships", str(e)) from e

        for relationship, edge_id in zip(relationships, ids):
            log.info(
                "relationship.added",
                relationship=type(relationship).__name__,
                id=edge_id,
                source=str(relationship.source),
                destination=str(relationship.destination),
            )
        return ids

    @staticmethod
    def _insert(
        conn: sqlite3.Connection, relationship: Relationship[Any, Any], stamp: AuditStamp
    ) -> int:
        table = relationship_table_name(type(relationship))
        cursor = conn.execute(
            f"INSERT INTO {table} (metadata, source, source_type, destination, "
            "destination_type, lastmodifiedon, lastmodifiedby) "
            "VALUES (?, ?, ?, ?, ?, ?, ?)",
            (
                json.dumps(relationship.attributes()),
                str(relationship.source),
                relationship.source.entity_type,
                str(relationship.destination),
                relationship.destination.entity_type,
                stamp.time,
                stamp.actor,
            ),
        )
        return int(cursor.lastrowid)  # type: ignore[arg-type]

    def remove_relationships(
        self,
        source: Urn,
        relationship_cls: type[Relationship[Any, Any]],
        audit_stamp: AuditStamp | None = None,
    ) -> int:
        """Soft-delete every live edge of ``relationship_cls`` leaving ``source``.

        Returns the number of edges marked deleted.
        """
        stamp = audit_stamp or AuditStamp()
        try:
            with self._database.connection() as conn:
                table = ensure_relationship_table(conn, relationship_cls)
                with conn:
                    cursor = conn.execute(
                        f"UPDATE {table} SET deleted_ts = ?, lastmodifiedon = ?, "
                        "lastmodifiedby = ? WHERE source = ? AND deleted_ts IS NULL",
                        (stamp.time, stamp.time, stamp.actor, str(source)),
                    )
        except sqlite3.Error as e:
            raise BackendFailureError("remove_relationships", str(e)) from e
        log.info(
            "relationship.removed",
            relationship=relationship_cls.__name__,
            source=str(source),
            count=cursor.rowcount,
        )
        return cursor.rowcount
