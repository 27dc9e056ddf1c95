"""Public query DAO over the local entity-aspect store."""

from __future__ import annotations

from typing import Any, TypeVar

from aspectql.assembler import assemble_relationship, assemble_snapshot
from aspectql.config import QueryConfig
from aspectql.database import Database
from aspectql.executor import QueryExecutor
from aspectql.filters import LocalRelationshipFilter
from aspectql.planner import plan_find_entities
from aspectql.relationships import plan_find_related_entities, plan_find_relationships
from aspectql.types import Relationship, Snapshot

SnapshotT = TypeVar("SnapshotT", bound=Snapshot)
RelationshipT = TypeVar("RelationshipT", bound=Relationship)


class LocalRelationshipQueryDAO:
    """Read-only queries over entity tables and the edges between them.

    Usage:
        dao = LocalRelationshipQueryDAO(Database("store.db"))
        alice = filter_of(aspect_field(AspectFoo, "/value") == "Alice")
        people = dao.find_entities(FooSnapshot, alice, 0, 10)

    Each call plans, compiles and executes one statement on one pooled
    connection; the DAO keeps no per-query state and is safe to share across
    threads.
    """

    def __init__(self, database: Database, config: QueryConfig | None = None) -> None:
        self._database = database
        self._config = config or QueryConfig()
        self._executor = QueryExecutor(database, self._config)

    @property
    def config(self) -> QueryConfig:
        return self._config

    def find_entities(
        self,
        snapshot_cls: type[SnapshotT],
        filter_: LocalRelationshipFilter | None,
        offset: int,
        limit: int,
        *,
        timeout: float | None = None,
    ) -> list[SnapshotT]:
        """Entities of one type matching ``filter_``, ordered by urn."""
        plan = plan_find_entities(snapshot_cls, filter_, offset, limit, self._config)
        return self._executor.fetch(
            plan,
            lambda row: assemble_snapshot(row, plan.projection),  # type: ignore[misc]
            timeout=timeout,
        )

    def find_related_entities(
        self,
        src_snapshot_cls: type[Snapshot],
        src_filter: LocalRelationshipFilter | None,
        dst_snapshot_cls: type[Snapshot],
        dst_filter: LocalRelationshipFilter | None,
        relationship_cls: type[Relationship[Any, Any]],
        relationship_filter: LocalRelationshipFilter,
        min_hops: int,
        max_hops: int,
        offset: int,
        limit: int,
        *,
        timeout: float | None = None,
    ) -> list[Snapshot]:
        """Entities one edge away from entities matching the source filter.

        ``relationship_filter.direction`` is required. OUTGOING and UNDIRECTED
        return ``dst_snapshot_cls`` instances; INCOMING walks the edge from
        the destination side and returns ``src_snapshot_cls`` instances.
        Results are distinct and ordered by urn.
        """
        plan = plan_find_related_entities(
            src_snapshot_cls,
            src_filter,
            dst_snapshot_cls,
            dst_filter,
            relationship_cls,
            relationship_filter,
            min_hops,
            max_hops,
            offset,
            limit,
            self._config,
        )
        return self._executor.fetch(
            plan,
            lambda row: assemble_snapshot(row, plan.projection),
            timeout=timeout,
        )

    def find_relationships(
        self,
        src_snapshot_cls: type[Snapshot],
        src_filter: LocalRelationshipFilter | None,
        dst_snapshot_cls: type[Snapshot],
        dst_filter: LocalRelationshipFilter | None,
        relationship_cls: type[RelationshipT],
        relationship_filter: LocalRelationshipFilter | None,
        offset: int,
        limit: int,
        *,
        timeout: float | None = None,
    ) -> list[RelationshipT]:
        """Edges of ``relationship_cls`` between matching entities.

        Ordered by destination urn, then insertion order.
        """
        plan = plan_find_relationships(
            src_snapshot_cls,
            src_filter,
            dst_snapshot_cls,
            dst_filter,
            relationship_cls,
            relationship_filter,
            offset,
            limit,
            self._config,
        )
        return self._executor.fetch(
            plan,
            lambda row: assemble_relationship(row, relationship_cls),  # type: ignore[misc]
            timeout=timeout,
        )
