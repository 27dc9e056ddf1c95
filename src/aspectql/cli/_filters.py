"""CLI filter token parser: converts --filter strings to a LocalRelationshipFilter."""

from __future__ import annotations

import json
from typing import Any

from aspectql.filters import (
    AspectField,
    Condition,
    Criterion,
    FieldRef,
    LocalRelationshipFilter,
    RelationshipField,
    UrnField,
)
from aspectql.types import Aspect

# Map CLI operator tokens to conditions; full condition names are accepted too
_OP_MAP: dict[str, Condition] = {
    "eq": Condition.EQUAL,
    "ne": Condition.NOT_EQUAL,
    "gt": Condition.GREATER_THAN,
    "gte": Condition.GREATER_THAN_OR_EQUAL_TO,
    "lt": Condition.LESS_THAN,
    "lte": Condition.LESS_THAN_OR_EQUAL_TO,
    "in": Condition.IN,
    "startswith": Condition.START_WITH,
    "endswith": Condition.END_WITH,
    "contains": Condition.CONTAIN,
}

URN_TOKEN = "urn"


def parse_condition(token: str) -> Condition:
    condition = _OP_MAP.get(token.lower())
    if condition is not None:
        return condition
    try:
        return Condition(token.upper())
    except ValueError:
        raise ValueError(
            f"Unknown filter operator '{token}'. "
            f"Valid operators: {', '.join(sorted(_OP_MAP))} or a condition name"
        ) from None


def parse_value(value_json: str) -> Any:
    try:
        return json.loads(value_json)
    except json.JSONDecodeError as e:
        raise ValueError(f"Filter value must be JSON, got {value_json!r}: {e.msg}") from e


def _entity_field(
    tokens: list[str], aspects: dict[str, type[Aspect]]
) -> tuple[FieldRef, list[str]]:
    if tokens[0] == URN_TOKEN:
        return UrnField(), tokens[1:]
    if len(tokens) < 4:
        raise ValueError("Entity filters take 'ASPECT PATH OP VALUE_JSON' or 'urn OP VALUE_JSON'")
    name = tokens[0]
    aspect: type[Aspect] | str = aspects.get(name, name)
    return AspectField(aspect, tokens[1]), tokens[2:]


def parse_cli_filters(
    filter_args: list[str] | None,
    aspects: dict[str, type[Aspect]] | None = None,
    *,
    relationship: bool = False,
) -> LocalRelationshipFilter:
    """Parse --filter strings into one AND-combined filter.

    Entity filters are 'ASPECT PATH OP VALUE_JSON' (ASPECT is a class name from
    the models module or a canonical name) or 'urn OP VALUE_JSON'. Relationship
    filters are 'PATH OP VALUE_JSON' over the edge attributes.
    """
    criteria: list[Criterion] = []
    for raw in filter_args or []:
        if relationship:
            tokens = raw.split(maxsplit=2)
            if len(tokens) != 3:
                raise ValueError(f"Relationship filters take 'PATH OP VALUE_JSON', got {raw!r}")
            field_ref: FieldRef = RelationshipField(tokens[0])
            rest = tokens[1:]
        else:
            tokens = raw.split(maxsplit=3)
            if len(tokens) < 3:
                raise ValueError(f"Malformed filter {raw!r}")
            if tokens[0] == URN_TOKEN:
                tokens = raw.split(maxsplit=2)
            field_ref, rest = _entity_field(tokens, aspects or {})
        condition = parse_condition(rest[0])
        criteria.append(Criterion(field_ref, condition, parse_value(rest[1])))
    return LocalRelationshipFilter(criteria=tuple(criteria))
