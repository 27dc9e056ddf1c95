"""Relationship query planner: findRelationships and edge-bearing findEntities.

Each query joins three tables::

    <source entity table> src
      JOIN <relationship table> rt
      JOIN <destination entity table> dst

The direction decides which edge column each entity joins on. OUTGOING joins
``src`` to ``rt.source`` and ``dst`` to ``rt.destination``; INCOMING joins
``src`` to ``rt.destination`` and ``dst`` to ``rt.source``. UNDIRECTED is the
UNION of both branches, never an OR across join keys.

For related-entity queries the direction also picks which end is returned:

* OUTGOING: destinations of edges leaving entities that match the source filter.
* INCOMING: sources of edges entering entities that match the destination
  filter. The source pair (snapshot type and filter) describes what is returned.
* UNDIRECTED: entities matching the destination filter that share an edge, in
  either orientation, with an entity matching the source filter.

For relationship queries INCOMING means the source filter describes the edge's
destination and the destination filter its source.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from aspectql.compiler import CompiledPredicate, EntityTarget, RelationshipTarget, compile_filter
from aspectql.config import QueryConfig
from aspectql.errors import DIRECTION_REQUIRED_MESSAGE, InvalidArgumentError, UnsupportedError
from aspectql.filters import LocalRelationshipFilter, RelationshipDirection
from aspectql.planner import QueryPlan, check_filter, select_list, validate_page
from aspectql.schema import SnapshotMetadata, relationship_table_name, snapshot_metadata
from aspectql.types import Relationship, Snapshot

SUPPORTED_HOPS = (1, 1)

# (column joined to src, column joined to dst) per direction
_JOIN_COLUMNS: dict[RelationshipDirection, tuple[str, str]] = {
    RelationshipDirection.OUTGOING: ("source", "destination"),
    RelationshipDirection.INCOMING: ("destination", "source"),
}


@dataclass(frozen=True)
class _EdgeQuery:
    """Resolved tables and compiled predicates shared by every branch."""

    src: SnapshotMetadata
    dst: SnapshotMetadata
    edge_table: str
    src_predicate: CompiledPredicate
    dst_predicate: CompiledPredicate
    rel_predicate: CompiledPredicate

    def branch(self, select: str, direction: RelationshipDirection, *, distinct: bool) -> str:
        src_col, dst_col = _JOIN_COLUMNS[direction]
        keyword = "SELECT DISTINCT" if distinct else "SELECT"
        return (
            f"{keyword} {select} "
            f"FROM {self.src.table} src "
            f"JOIN {self.edge_table} rt ON src.urn = rt.{src_col} "
            f"JOIN {self.dst.table} dst ON dst.urn = rt.{dst_col} "
            "WHERE rt.deleted_ts IS NULL "
            f"AND ({self.src_predicate.sql}) "
            f"AND ({self.dst_predicate.sql}) "
            f"AND ({self.rel_predicate.sql})"
        )

    @property
    def branch_params(self) -> tuple[Any, ...]:
        return self.src_predicate.params + self.dst_predicate.params + self.rel_predicate.params


def _check_relationship_cls(relationship_cls: Any) -> type[Relationship[Any, Any]]:
    if not (isinstance(relationship_cls, type) and issubclass(relationship_cls, Relationship)):
        raise InvalidArgumentError(f"{relationship_cls!r} is not a Relationship type")
    return relationship_cls


def _check_hops(min_hops: int, max_hops: int) -> None:
    for name, hops in (("min_hops", min_hops), ("max_hops", max_hops)):
        if isinstance(hops, bool) or not isinstance(hops, int) or hops < 1:
            raise InvalidArgumentError(f"{name} must be a positive integer, got {hops!r}")
    if min_hops > max_hops:
        raise InvalidArgumentError(f"min_hops ({min_hops}) cannot exceed max_hops ({max_hops})")
    if (min_hops, max_hops) != SUPPORTED_HOPS:
        raise UnsupportedError(
            f"Only single-hop traversal (min_hops=1, max_hops=1) is supported, "
            f"got min_hops={min_hops}, max_hops={max_hops}"
        )


def _resolve(
    src_snapshot_cls: type[Snapshot],
    src_filter: LocalRelationshipFilter | None,
    dst_snapshot_cls: type[Snapshot],
    dst_filter: LocalRelationshipFilter | None,
    relationship_cls: type[Relationship[Any, Any]],
    relationship_filter: LocalRelationshipFilter,
    config: QueryConfig,
) -> _EdgeQuery:
    src = snapshot_metadata(src_snapshot_cls)
    dst = snapshot_metadata(dst_snapshot_cls)
    case_sensitive = config.case_sensitive_patterns
    return _EdgeQuery(
        src=src,
        dst=dst,
        edge_table=relationship_table_name(relationship_cls),
        src_predicate=compile_filter(
            check_filter(src_filter, "source filter"),
            EntityTarget("src", src),
            case_sensitive_patterns=case_sensitive,
        ),
        dst_predicate=compile_filter(
            check_filter(dst_filter, "destination filter"),
            EntityTarget("dst", dst),
            case_sensitive_patterns=case_sensitive,
        ),
        rel_predicate=compile_filter(
            relationship_filter,
            RelationshipTarget("rt"),
            case_sensitive_patterns=case_sensitive,
        ),
    )


def plan_find_related_entities(
    src_snapshot_cls: type[Snapshot],
    src_filter: LocalRelationshipFilter | None,
    dst_snapshot_cls: type[Snapshot],
    dst_filter: LocalRelationshipFilter | None,
    relationship_cls: type[Relationship[Any, Any]],
    relationship_filter: LocalRelationshipFilter | None,
    min_hops: int,
    max_hops: int,
    offset: int,
    limit: int,
    config: QueryConfig,
) -> QueryPlan:
    """Plan a query for destination entities reachable over one edge.

    The relationship filter must carry an explicit direction.
    """
    relationship_filter = check_filter(relationship_filter, "relationship filter")
    direction = relationship_filter.direction
    if direction is None or direction is RelationshipDirection.UNKNOWN:
        raise InvalidArgumentError(DIRECTION_REQUIRED_MESSAGE)
    _check_hops(min_hops, max_hops)
    validate_page(offset, limit, config)
    relationship_cls = _check_relationship_cls(relationship_cls)

    if direction is RelationshipDirection.INCOMING:
        # Walk the edge backwards: the destination pair is the anchor and the
        # source pair describes the entities returned.
        query = _resolve(
            dst_snapshot_cls,
            dst_filter,
            src_snapshot_cls,
            src_filter,
            relationship_cls,
            relationship_filter,
            config,
        )
    else:
        query = _resolve(
            src_snapshot_cls,
            src_filter,
            dst_snapshot_cls,
            dst_filter,
            relationship_cls,
            relationship_filter,
            config,
        )
    select = select_list("dst", query.dst)

    if direction is RelationshipDirection.UNDIRECTED:
        outgoing = query.branch(select, RelationshipDirection.OUTGOING, distinct=False)
        incoming = query.branch(select, RelationshipDirection.INCOMING, distinct=False)
        sql = (
            f"SELECT urn, {', '.join(query.dst.columns)} "
            f"FROM ({outgoing} UNION {incoming}) "
            "ORDER BY urn LIMIT ? OFFSET ?"
        )
        params = query.branch_params * 2
    else:
        sql = f"{query.branch(select, direction, distinct=True)} ORDER BY urn LIMIT ? OFFSET ?"
        params = query.branch_params

    return QueryPlan(
        operation="find_related_entities",
        sql=sql,
        params=params + (limit, offset),
        projection=query.dst,
    )


_EDGE_SELECT = (
    "rt.id AS id, rt.source AS source, rt.destination AS destination, rt.metadata AS metadata"
)


def plan_find_relationships(
    src_snapshot_cls: type[Snapshot],
    src_filter: LocalRelationshipFilter | None,
    dst_snapshot_cls: type[Snapshot],
    dst_filter: LocalRelationshipFilter | None,
    relationship_cls: type[Relationship[Any, Any]],
    relationship_filter: LocalRelationshipFilter | None,
    offset: int,
    limit: int,
    config: QueryConfig,
) -> QueryPlan:
    """Plan a query for edges between matching source and destination entities.

    Without a direction the edge is read as stored (OUTGOING). Returned edges
    always keep their stored source and destination.
    """
    relationship_filter = check_filter(relationship_filter, "relationship filter")
    direction = relationship_filter.direction
    if direction is RelationshipDirection.UNKNOWN:
        raise InvalidArgumentError(DIRECTION_REQUIRED_MESSAGE)
    if direction is None:
        direction = RelationshipDirection.OUTGOING
    validate_page(offset, limit, config)
    relationship_cls = _check_relationship_cls(relationship_cls)

    query = _resolve(
        src_snapshot_cls,
        src_filter,
        dst_snapshot_cls,
        dst_filter,
        relationship_cls,
        relationship_filter,
        config,
    )

    if direction is RelationshipDirection.UNDIRECTED:
        outgoing = query.branch(_EDGE_SELECT, RelationshipDirection.OUTGOING, distinct=False)
        incoming = query.branch(_EDGE_SELECT, RelationshipDirection.INCOMING, distinct=False)
        sql = (
            "SELECT id, source, destination, metadata "
            f"FROM ({outgoing} UNION {incoming}) "
            "ORDER BY destination, id LIMIT ? OFFSET ?"
        )
        params = query.branch_params * 2
    else:
        sql = (
            f"{query.branch(_EDGE_SELECT, direction, distinct=False)} "
            "ORDER BY rt.destination, rt.id LIMIT ? OFFSET ?"
        )
        params = query.branch_params

    return QueryPlan(
        operation="find_relationships",
        sql=sql,
        params=params + (limit, offset),
        projection=relationship_cls,
    )
