"""Manual reads for entities, related entities and relationships (`aspectql query`)."""

from __future__ import annotations

import os
from typing import NoReturn, Optional

import typer

from aspectql.cli import _exitcodes as ec
from aspectql.cli._filters import parse_cli_filters
from aspectql.cli._loader import Models, load_models
from aspectql.cli._output import print_error, print_relationships, print_snapshots
from aspectql.config import QueryConfig
from aspectql.database import Database
from aspectql.errors import (
    AspectQLError,
    BackendFailureError,
    InvalidArgumentError,
    UnsupportedError,
)
from aspectql.filters import LocalRelationshipFilter, RelationshipDirection
from aspectql.query import LocalRelationshipQueryDAO

app = typer.Typer(no_args_is_help=True)

_MODELS_HELP = "Python import path for models"
_MODELS_PATH_HELP = "Filesystem path to models"
_FILTER_HELP = "'ASPECT PATH OP VALUE_JSON' or 'urn OP VALUE_JSON' (repeatable)"


def _exit_code(error: AspectQLError) -> int:
    if isinstance(error, (InvalidArgumentError, UnsupportedError)):
        return ec.USAGE_ERROR
    if isinstance(error, BackendFailureError):
        return ec.DATABASE_ERROR
    return ec.EXECUTION_FAILURE


def _fail(msg: str, code: int) -> NoReturn:
    print_error(msg)
    raise typer.Exit(code)


def _load(models: str | None, models_path: str | None) -> Models:
    if not models and not models_path:
        _fail("One of --models or --models-path is required", ec.USAGE_ERROR)
    try:
        return load_models(models, models_path)
    except Exception as e:
        _fail(f"Failed to load models: {e}", ec.GENERAL_ERROR)


def _pick(registry: dict[str, type], name: str, kind: str) -> type:
    if name not in registry:
        _fail(f"{kind} type '{name}' not found in models", ec.USAGE_ERROR)
    return registry[name]


def _parse_filter(
    filter_args: list[str] | None, found: Models, *, relationship: bool = False
) -> LocalRelationshipFilter:
    try:
        return parse_cli_filters(filter_args, found.aspects, relationship=relationship)
    except (ValueError, AspectQLError) as e:
        _fail(str(e), ec.USAGE_ERROR)


def _parse_direction(direction: str | None) -> RelationshipDirection | None:
    if direction is None:
        return None
    try:
        return RelationshipDirection(direction.upper())
    except ValueError:
        _fail(
            f"Unknown direction '{direction}'. "
            f"Valid directions: {', '.join(d.value for d in RelationshipDirection)}",
            ec.USAGE_ERROR,
        )


def _open_database(config: QueryConfig) -> Database:
    from aspectql.cli import state

    target = state.db
    if not target.startswith("sqlite:") and target != ":memory:" and not os.path.exists(target):
        _fail(f"Database not found: {target}", ec.DATABASE_ERROR)
    try:
        return Database.open(target, config)
    except AspectQLError as e:
        _fail(str(e), _exit_code(e))


@app.command(name="entities")
def query_entities_cmd(
    snapshot_name: str = typer.Argument(..., help="Snapshot class name"),
    models: Optional[str] = typer.Option(None, "--models", help=_MODELS_HELP),
    models_path: Optional[str] = typer.Option(None, "--models-path", help=_MODELS_PATH_HELP),
    filter_args: Optional[list[str]] = typer.Option(None, "--filter", help=_FILTER_HELP),
    offset: int = typer.Option(0, "--offset", help="Skip first N results"),
    limit: int = typer.Option(100, "--limit", help="Max results"),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Deadline in seconds"),
) -> None:
    """Query entities of one snapshot type."""
    from aspectql.cli import state

    found = _load(models, models_path)
    snapshot_cls = _pick(found.snapshots, snapshot_name, "Snapshot")
    filter_ = _parse_filter(filter_args, found)

    config = QueryConfig.from_env()
    database = _open_database(config)
    try:
        dao = LocalRelationshipQueryDAO(database, config)
        results = dao.find_entities(snapshot_cls, filter_, offset, limit, timeout=timeout)
    except AspectQLError as e:
        _fail(str(e), _exit_code(e))
    finally:
        database.close()
    print_snapshots(results, snapshot_cls, json_mode=state.json_output)


@app.command(name="related")
def query_related_cmd(
    src_name: str = typer.Argument(..., help="Source snapshot class name"),
    dst_name: str = typer.Argument(..., help="Destination snapshot class name"),
    relationship_name: str = typer.Argument(..., help="Relationship class name"),
    direction: Optional[str] = typer.Option(
        None, "--direction", help="OUTGOING, INCOMING or UNDIRECTED"
    ),
    models: Optional[str] = typer.Option(None, "--models", help=_MODELS_HELP),
    models_path: Optional[str] = typer.Option(None, "--models-path", help=_MODELS_PATH_HELP),
    src_filter_args: Optional[list[str]] = typer.Option(
        None, "--src-filter", help=_FILTER_HELP
    ),
    dst_filter_args: Optional[list[str]] = typer.Option(
        None, "--dst-filter", help=_FILTER_HELP
    ),
    rel_filter_args: Optional[list[str]] = typer.Option(
        None, "--rel-filter", help="'PATH OP VALUE_JSON' over edge attributes (repeatable)"
    ),
    min_hops: int = typer.Option(1, "--min-hops", help="Minimum traversal depth"),
    max_hops: int = typer.Option(1, "--max-hops", help="Maximum traversal depth"),
    offset: int = typer.Option(0, "--offset", help="Skip first N results"),
    limit: int = typer.Option(100, "--limit", help="Max results"),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Deadline in seconds"),
) -> None:
    """Query entities one relationship away from matching source entities."""
    from aspectql.cli import state

    found = _load(models, models_path)
    src_cls = _pick(found.snapshots, src_name, "Snapshot")
    dst_cls = _pick(found.snapshots, dst_name, "Snapshot")
    relationship_cls = _pick(found.relationships, relationship_name, "Relationship")
    src_filter = _parse_filter(src_filter_args, found)
    dst_filter = _parse_filter(dst_filter_args, found)
    relationship_filter = _parse_filter(rel_filter_args, found, relationship=True)
    parsed_direction = _parse_direction(direction)
    if parsed_direction is not None:
        relationship_filter = relationship_filter.with_direction(parsed_direction)

    config = QueryConfig.from_env()
    database = _open_database(config)
    try:
        dao = LocalRelationshipQueryDAO(database, config)
        results = dao.find_related_entities(
            src_cls,
            src_filter,
            dst_cls,
            dst_filter,
            relationship_cls,
            relationship_filter,
            min_hops,
            max_hops,
            offset,
            limit,
            timeout=timeout,
        )
    except AspectQLError as e:
        _fail(str(e), _exit_code(e))
    finally:
        database.close()
    returned_cls = src_cls if parsed_direction is RelationshipDirection.INCOMING else dst_cls
    print_snapshots(results, returned_cls, json_mode=state.json_output)


@app.command(name="relationships")
def query_relationships_cmd(
    src_name: str = typer.Argument(..., help="Source snapshot class name"),
    dst_name: str = typer.Argument(..., help="Destination snapshot class name"),
    relationship_name: str = typer.Argument(..., help="Relationship class name"),
    direction: Optional[str] = typer.Option(
        None, "--direction", help="OUTGOING (default), INCOMING or UNDIRECTED"
    ),
    models: Optional[str] = typer.Option(None, "--models", help=_MODELS_HELP),
    models_path: Optional[str] = typer.Option(None, "--models-path", help=_MODELS_PATH_HELP),
    src_filter_args: Optional[list[str]] = typer.Option(
        None, "--src-filter", help=_FILTER_HELP
    ),
    dst_filter_args: Optional[list[str]] = typer.Option(
        None, "--dst-filter", help=_FILTER_HELP
    ),
    rel_filter_args: Optional[list[str]] = typer.Option(
        None, "--rel-filter", help="'PATH OP VALUE_JSON' over edge attributes (repeatable)"
    ),
    offset: int = typer.Option(0, "--offset", help="Skip first N results"),
    limit: int = typer.Option(100, "--limit", help="Max results"),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Deadline in seconds"),
) -> None:
    """Query relationship records between matching entities."""
    from aspectql.cli import state

    found = _load(models, models_path)
    src_cls = _pick(found.snapshots, src_name, "Snapshot")
    dst_cls = _pick(found.snapshots, dst_name, "Snapshot")
    relationship_cls = _pick(found.relationships, relationship_name, "Relationship")
    src_filter = _parse_filter(src_filter_args, found)
    dst_filter = _parse_filter(dst_filter_args, found)
    relationship_filter = _parse_filter(rel_filter_args, found, relationship=True)
    parsed_direction = _parse_direction(direction)
    if parsed_direction is not None:
        relationship_filter = relationship_filter.with_direction(parsed_direction)

    config = QueryConfig.from_env()
    database = _open_database(config)
    try:
        dao = LocalRelationshipQueryDAO(database, config)
        results = dao.find_relationships(
            src_cls,
            src_filter,
            dst_cls,
            dst_filter,
            relationship_cls,
            relationship_filter,
            offset,
            limit,
            timeout=timeout,
        )
    except AspectQLError as e:
        _fail(str(e), _exit_code(e))
    finally:
        database.close()
    print_relationships(results, json_mode=state.json_output)
