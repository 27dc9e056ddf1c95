"""Entity query planner: findEntities without an edge."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from aspectql.compiler import EntityTarget, compile_filter
from aspectql.config import QueryConfig
from aspectql.errors import InvalidArgumentError
from aspectql.filters import LocalRelationshipFilter
from aspectql.schema import SnapshotMetadata, snapshot_metadata
from aspectql.types import Snapshot


@dataclass(frozen=True)
class QueryPlan:
    """A ready-to-execute statement plus how to turn its rows into results.

    ``projection`` is the destination SnapshotMetadata for entity queries, or the
    Relationship class for edge queries.
    """

    operation: str
    sql: str
    params: tuple[Any, ...]
    projection: Any


def validate_page(offset: int, limit: int, config: QueryConfig) -> None:
    """Check pagination bounds: offset >= 0 and 1 <= limit <= max_page_size."""
    if isinstance(offset, bool) or not isinstance(offset, int) or offset < 0:
        raise InvalidArgumentError(f"offset must be a non-negative integer, got {offset!r}")
    if isinstance(limit, bool) or not isinstance(limit, int) or limit <= 0:
        raise InvalidArgumentError(f"limit must be a positive integer, got {limit!r}")
    if limit > config.max_page_size:
        raise InvalidArgumentError(
            f"limit {limit} exceeds the maximum page size of {config.max_page_size}"
        )


def check_filter(filter_: LocalRelationshipFilter | None, name: str) -> LocalRelationshipFilter:
    if filter_ is None:
        return LocalRelationshipFilter()
    if not isinstance(filter_, LocalRelationshipFilter):
        raise InvalidArgumentError(f"{name} must be a LocalRelationshipFilter, got {filter_!r}")
    return filter_


def select_list(alias: str, metadata: SnapshotMetadata) -> str:
    return ", ".join([f"{alias}.urn AS urn"] + [f"{alias}.{c} AS {c}" for c in metadata.columns])


def plan_find_entities(
    snapshot_cls: type[Snapshot],
    filter_: LocalRelationshipFilter | None,
    offset: int,
    limit: int,
    config: QueryConfig,
) -> QueryPlan:
    """Plan ``SELECT urn, <aspects> FROM <entity table> WHERE ... ORDER BY urn``."""
    validate_page(offset, limit, config)
    filter_ = check_filter(filter_, "filter")
    metadata = snapshot_metadata(snapshot_cls)

    predicate = compile_filter(
        filter_,
        EntityTarget("e", metadata),
        case_sensitive_patterns=config.case_sensitive_patterns,
    )
    sql = (
        f"SELECT {select_list('e', metadata)} "
        f"FROM {metadata.table} e "
        f"WHERE {predicate.sql} "
        "ORDER BY e.urn LIMIT ? OFFSET ?"
    )
    return QueryPlan(
        operation="find_entities",
        sql=sql,
        params=predicate.params + (limit, offset),
        projection=metadata,
    )
