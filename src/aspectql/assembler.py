"""Result assembler: hydrates rows into snapshots and relationship records."""

from __future__ import annotations

import json
import sqlite3
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from aspectql.errors import DecodeError, InvalidArgumentError
from aspectql.schema import SnapshotMetadata
from aspectql.types import Aspect, Relationship, Snapshot, Urn


def _load_json(raw: Any, urn: str, column: str) -> Any:
    try:
        return json.loads(raw)
    except (TypeError, ValueError) as e:
        raise DecodeError(urn, column, f"invalid JSON: {e}") from e


def _parse_urn(raw: Any, urn_type: type[Urn], column: str) -> Urn:
    try:
        return urn_type.parse(raw)
    except InvalidArgumentError as e:
        raise DecodeError(str(raw), column, e.message) from e


def decode_aspect(raw: Any, aspect_cls: type[Aspect], urn: str, column: str) -> Aspect:
    """Decode one stored aspect document into its aspect class."""
    data = _load_json(raw, urn, column)
    if not isinstance(data, dict):
        raise DecodeError(urn, column, f"expected a JSON object, got {type(data).__name__}")
    try:
        return aspect_cls.model_validate(data)
    except PydanticValidationError as e:
        raise DecodeError(urn, column, str(e)) from e


def assemble_snapshot(row: sqlite3.Row, metadata: SnapshotMetadata) -> Snapshot:
    """Build a snapshot from ``urn`` plus the projected aspect columns.

    Null columns are skipped; the rest keep the snapshot's declaration order.
    """
    raw_urn = row["urn"]
    urn = _parse_urn(raw_urn, metadata.urn_type, "urn")
    aspects = [
        decode_aspect(row[a.column], a.aspect_cls, raw_urn, a.column)
        for a in metadata.aspects
        if row[a.column] is not None
    ]
    return metadata.snapshot_cls(urn=urn, aspects=aspects)


def assemble_relationship(
    row: sqlite3.Row, relationship_cls: type[Relationship[Any, Any]]
) -> Relationship[Any, Any]:
    """Build a relationship record with its endpoints exactly as stored."""
    edge_ref = f"{row['source']} -> {row['destination']}"
    attributes: Any = {}
    if row["metadata"] is not None:
        attributes = _load_json(row["metadata"], edge_ref, "metadata")
        if not isinstance(attributes, dict):
            raise DecodeError(edge_ref, "metadata", "expected a JSON object")

    source = _parse_urn(row["source"], relationship_cls.source_urn_type(), "source")
    destination = _parse_urn(
        row["destination"], relationship_cls.destination_urn_type(), "destination"
    )
    try:
        return relationship_cls.model_validate(
            {**attributes, "source": source, "destination": destination}
        )
    except PydanticValidationError as e:
        raise DecodeError(edge_ref, "metadata", str(e)) from e
