"""Predicate compiler: lowers a LocalRelationshipFilter to a SQL WHERE fragment."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from aspectql.errors import FilterCompileError
from aspectql.filters import (
    AspectField,
    Condition,
    Criterion,
    FieldRef,
    LocalRelationshipFilter,
    RelationshipField,
    Scalar,
    UrnField,
)
from aspectql.schema import SnapshotMetadata

MATCH_ALL = "1=1"

_COMPARISON_OPS: dict[Condition, str] = {
    Condition.EQUAL: "=",
    Condition.NOT_EQUAL: "<>",
}

_NUMERIC_OPS: dict[Condition, str] = {
    Condition.GREATER_THAN: ">",
    Condition.GREATER_THAN_OR_EQUAL_TO: ">=",
    Condition.LESS_THAN: "<",
    Condition.LESS_THAN_OR_EQUAL_TO: "<=",
}

_PATTERN_CONDITIONS = (Condition.START_WITH, Condition.END_WITH, Condition.CONTAIN)


@dataclass(frozen=True)
class CompiledPredicate:
    """A WHERE fragment with positional '?' placeholders and its bindings."""

    sql: str
    params: tuple[str, ...] = ()


@dataclass(frozen=True)
class EntityTarget:
    """An entity table alias; aspect columns resolve through its metadata."""

    alias: str
    metadata: SnapshotMetadata


@dataclass(frozen=True)
class RelationshipTarget:
    """An edge table alias; RelationshipField paths read its metadata column."""

    alias: str


Target = Union[EntityTarget, RelationshipTarget]


def render_scalar(value: Scalar) -> str:
    """Render a filter value as the string bound at the SQL boundary."""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def compile_filter(
    filter_: LocalRelationshipFilter,
    target: Target,
    *,
    case_sensitive_patterns: bool = True,
) -> CompiledPredicate:
    """Compile a filter into a SQL fragment against ``target``.

    Criteria are AND-combined; an empty filter compiles to ``1=1``.
    """
    params: list[str] = []
    parts = [
        _compile_criterion(c, target, params, case_sensitive_patterns) for c in filter_.criteria
    ]
    if not parts:
        return CompiledPredicate(MATCH_ALL)
    return CompiledPredicate(" AND ".join(parts), tuple(params))


def _field_source(field_ref: FieldRef, target: Target) -> tuple[str, str | None]:
    """Return (column expression, JSON path or None) for a field reference."""
    alias = target.alias
    if isinstance(field_ref, AspectField):
        if not isinstance(target, EntityTarget):
            raise FilterCompileError(
                f"Aspect field '{field_ref.aspect_name}{field_ref.path}' "
                "cannot be used in a relationship filter"
            )
        column = target.metadata.column_for(field_ref.aspect)
        return f"{alias}.{column}", field_ref.json_path
    if isinstance(field_ref, UrnField):
        if not isinstance(target, EntityTarget):
            raise FilterCompileError(
                "Urn field cannot be used in a relationship filter; "
                "constrain endpoints through the source or destination filter"
            )
        return f"{alias}.urn", None
    if isinstance(field_ref, RelationshipField):
        if not isinstance(target, RelationshipTarget):
            raise FilterCompileError(
                f"Relationship field '{field_ref.path}' can only be used in a relationship filter"
            )
        return f"{alias}.metadata", field_ref.json_path
    raise FilterCompileError(f"Unsupported criterion field: {field_ref!r}")


def _text_expr(column: str, path: str | None) -> str:
    # json_extract unquotes strings; booleans come back as 1/0 and are mapped back
    # to their JSON spelling so that "true" compares equal.
    if path is None:
        return column
    return (
        f"CASE json_type({column}, '{path}') "
        "WHEN 'true' THEN 'true' WHEN 'false' THEN 'false' "
        f"ELSE CAST(json_extract({column}, '{path}') AS TEXT) END"
    )


def _numeric_text(expr: str) -> str:
    return (
        f"CASE WHEN json_valid({expr}) THEN CASE json_type({expr}) "
        f"WHEN 'integer' THEN CAST({expr} AS REAL) "
        f"WHEN 'real' THEN CAST({expr} AS REAL) END END"
    )


def _numeric_expr(column: str, path: str | None) -> str:
    # JSON numbers and numeric strings compare by value; anything else is NULL
    # and never matches.
    if path is None:
        return _numeric_text(column)
    value = f"json_extract({column}, '{path}')"
    return (
        f"CASE json_type({column}, '{path}') "
        f"WHEN 'integer' THEN {value} WHEN 'real' THEN {value} "
        f"WHEN 'text' THEN {_numeric_text(value)} END"
    )


def _numeric_param(criterion: Criterion) -> str:
    value = criterion.value
    if not isinstance(value, bool):
        try:
            float(value)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            pass
        else:
            return render_scalar(value)  # type: ignore[arg-type]
    raise FilterCompileError(
        f"Condition {criterion.condition.value} requires a numeric value, got {value!r}"
    )


def _glob_escape(value: str) -> str:
    return "".join(f"[{ch}]" if ch in "*?[" else ch for ch in value)


def _like_escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _compile_pattern(
    text: str, criterion: Criterion, params: list[str], case_sensitive: bool
) -> str:
    raw = render_scalar(criterion.value)  # type: ignore[arg-type]
    if case_sensitive:
        escaped, wildcard, operator = _glob_escape(raw), "*", "GLOB ?"
    else:
        escaped, wildcard, operator = _like_escape(raw), "%", "LIKE ? ESCAPE '\\'"

    if criterion.condition is Condition.START_WITH:
        pattern = f"{escaped}{wildcard}"
    elif criterion.condition is Condition.END_WITH:
        pattern = f"{wildcard}{escaped}"
    else:
        pattern = f"{wildcard}{escaped}{wildcard}"
    params.append(pattern)
    return f"{text} {operator}"


def _compile_criterion(
    criterion: Criterion,
    target: Target,
    params: list[str],
    case_sensitive: bool,
) -> str:
    """Compile a single criterion to SQL."""
    column, path = _field_source(criterion.field, target)
    condition = criterion.condition

    if condition is Condition.IN:
        if not isinstance(criterion.value, tuple) or not criterion.value:
            raise FilterCompileError("Condition IN requires a non-empty sequence value")
        placeholders = ", ".join("?" for _ in criterion.value)
        params.extend(render_scalar(v) for v in criterion.value)
        return f"{_text_expr(column, path)} IN ({placeholders})"

    if isinstance(criterion.value, tuple):
        raise FilterCompileError(
            f"Condition {condition.value} requires a scalar value, got a sequence"
        )

    if condition in _COMPARISON_OPS:
        params.append(render_scalar(criterion.value))
        return f"{_text_expr(column, path)} {_COMPARISON_OPS[condition]} ?"

    if condition in _NUMERIC_OPS:
        params.append(_numeric_param(criterion))
        return f"{_numeric_expr(column, path)} {_NUMERIC_OPS[condition]} CAST(? AS REAL)"

    if condition in _PATTERN_CONDITIONS:
        return _compile_pattern(_text_expr(column, path), criterion, params, case_sensitive)

    raise FilterCompileError(f"Unknown condition: {condition!r}")
