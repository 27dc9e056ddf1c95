"""Filter model for local relationship queries: criteria, conditions, directions."""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Union

from aspectql.errors import FilterCompileError
from aspectql.types import Aspect, canonical_name

# --- Path validation helpers ---

_SEGMENT_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _validate_segment(segment: str) -> None:
    """Validate a single path segment (identifier)."""
    if not _SEGMENT_RE.match(segment):
        raise FilterCompileError(
            f"Invalid path segment '{segment}': must match [A-Za-z_][A-Za-z0-9_]*"
        )


def path_segments(path: str) -> tuple[str, ...]:
    """Split a slash-delimited document path ("/address/city") into segments."""
    if not isinstance(path, str) or not path.startswith("/") or path == "/":
        raise FilterCompileError(f"Invalid path {path!r}: expected '/field[/field...]'")
    segments = tuple(path[1:].split("/"))
    for segment in segments:
        _validate_segment(segment)
    return segments


def json_path(path: str) -> str:
    """Translate "/address/city" to the SQLite JSON path "$.address.city"."""
    return "$." + ".".join(path_segments(path))


class Condition(str, Enum):
    """Comparison conditions supported by the compiler."""

    EQUAL = "EQUAL"
    NOT_EQUAL = "NOT_EQUAL"
    GREATER_THAN = "GREATER_THAN"
    GREATER_THAN_OR_EQUAL_TO = "GREATER_THAN_OR_EQUAL_TO"
    LESS_THAN = "LESS_THAN"
    LESS_THAN_OR_EQUAL_TO = "LESS_THAN_OR_EQUAL_TO"
    IN = "IN"
    START_WITH = "START_WITH"
    END_WITH = "END_WITH"
    CONTAIN = "CONTAIN"


class RelationshipDirection(str, Enum):
    """How an edge is read relative to the source-entity filter."""

    INCOMING = "INCOMING"
    OUTGOING = "OUTGOING"
    UNDIRECTED = "UNDIRECTED"
    UNKNOWN = "UNKNOWN"


@dataclass(frozen=True)
class AspectField:
    """A path inside one aspect document of the entity row."""

    aspect: type[Aspect] | str
    path: str

    def __post_init__(self) -> None:
        path_segments(self.path)

    @property
    def aspect_name(self) -> str:
        return canonical_name(self.aspect)

    @property
    def json_path(self) -> str:
        return json_path(self.path)


@dataclass(frozen=True)
class UrnField:
    """The urn of the entity (or edge endpoint) itself."""


@dataclass(frozen=True)
class RelationshipField:
    """A path inside the edge attribute document. Valid in edge filters only."""

    path: str

    def __post_init__(self) -> None:
        path_segments(self.path)

    @property
    def json_path(self) -> str:
        return json_path(self.path)


FieldRef = Union[AspectField, UrnField, RelationshipField]
Scalar = Union[str, int, float, bool]

_FIELD_TYPES = (AspectField, UrnField, RelationshipField)
_SCALAR_TYPES = (str, int, float, bool)


def _coerce_condition(condition: Condition | str) -> Condition:
    if isinstance(condition, Condition):
        return condition
    try:
        return Condition(condition)
    except ValueError:
        raise FilterCompileError(
            f"Unknown condition {condition!r}. "
            f"Valid conditions: {', '.join(c.value for c in Condition)}"
        ) from None


@dataclass(frozen=True)
class Criterion:
    """A single (field, condition, value) predicate."""

    field: FieldRef
    condition: Condition
    value: Scalar | tuple[Scalar, ...]

    def __post_init__(self) -> None:
        if not isinstance(self.field, _FIELD_TYPES):
            raise FilterCompileError(f"Unsupported criterion field: {self.field!r}")
        condition = _coerce_condition(self.condition)
        object.__setattr__(self, "condition", condition)

        value = self.value
        if isinstance(value, (list, tuple)):
            value = tuple(value)
            object.__setattr__(self, "value", value)
            if condition is not Condition.IN:
                raise FilterCompileError(
                    f"Condition {condition.value} requires a scalar value, got a sequence"
                )
            if not value:
                raise FilterCompileError("Condition IN requires at least one value")
            for item in value:
                if not isinstance(item, _SCALAR_TYPES):
                    raise FilterCompileError(
                        f"IN values must be scalars, got {type(item).__name__}"
                    )
            return

        if condition is Condition.IN:
            raise FilterCompileError("Condition IN requires a sequence value, got a scalar")
        if not isinstance(value, _SCALAR_TYPES):
            raise FilterCompileError(
                f"Criterion value must be a string, number or boolean, got {type(value).__name__}"
            )

    @property
    def is_sequence(self) -> bool:
        return isinstance(self.value, tuple)

    def __and__(self, other: Criterion | LocalRelationshipFilter) -> LocalRelationshipFilter:
        return LocalRelationshipFilter(criteria=(self,)) & other


def _coerce_direction(
    direction: RelationshipDirection | str | None,
) -> RelationshipDirection | None:
    if direction is None or isinstance(direction, RelationshipDirection):
        return direction
    try:
        return RelationshipDirection(direction)
    except ValueError:
        raise FilterCompileError(
            f"Unknown relationship direction {direction!r}. "
            f"Valid directions: {', '.join(d.value for d in RelationshipDirection)}"
        ) from None


@dataclass(frozen=True)
class LocalRelationshipFilter:
    """A conjunction of criteria, plus the direction used by edge filters.

    An empty filter matches everything. ``direction`` is only read when the
    filter is passed as a relationship filter.
    """

    criteria: tuple[Criterion, ...] = field(default_factory=tuple)
    direction: RelationshipDirection | None = None

    def __post_init__(self) -> None:
        criteria = tuple(self.criteria)
        for criterion in criteria:
            if not isinstance(criterion, Criterion):
                raise FilterCompileError(f"Filter criteria must be Criterion, got {criterion!r}")
        object.__setattr__(self, "criteria", criteria)
        object.__setattr__(self, "direction", _coerce_direction(self.direction))

    @property
    def is_empty(self) -> bool:
        return not self.criteria

    def with_direction(self, direction: RelationshipDirection | str) -> LocalRelationshipFilter:
        return replace(self, direction=_coerce_direction(direction))

    def __and__(self, other: Criterion | LocalRelationshipFilter) -> LocalRelationshipFilter:
        if isinstance(other, Criterion):
            return replace(self, criteria=self.criteria + (other,))
        if isinstance(other, LocalRelationshipFilter):
            if (
                self.direction is not None
                and other.direction is not None
                and self.direction is not other.direction
            ):
                raise FilterCompileError(
                    f"Cannot combine filters with directions "
                    f"{self.direction.value} and {other.direction.value}"
                )
            return LocalRelationshipFilter(
                criteria=self.criteria + other.criteria,
                direction=self.direction or other.direction,
            )
        return NotImplemented


EMPTY_FILTER = LocalRelationshipFilter()


class FieldProxy:
    """Builds Criterion values from Python comparison operators.

    Usage: aspect_field(AspectFoo, "/value") == "foo"
    """

    def __init__(self, field_ref: FieldRef) -> None:
        self._field = field_ref

    @property
    def field(self) -> FieldRef:
        return self._field

    def __eq__(self, other: Any) -> Criterion:  # type: ignore[override]
        return Criterion(self._field, Condition.EQUAL, other)

    def __ne__(self, other: Any) -> Criterion:  # type: ignore[override]
        return Criterion(self._field, Condition.NOT_EQUAL, other)

    def __gt__(self, other: Any) -> Criterion:
        return Criterion(self._field, Condition.GREATER_THAN, other)

    def __ge__(self, other: Any) -> Criterion:
        return Criterion(self._field, Condition.GREATER_THAN_OR_EQUAL_TO, other)

    def __lt__(self, other: Any) -> Criterion:
        return Criterion(self._field, Condition.LESS_THAN, other)

    def __le__(self, other: Any) -> Criterion:
        return Criterion(self._field, Condition.LESS_THAN_OR_EQUAL_TO, other)

    def in_(self, values: list[Any] | tuple[Any, ...]) -> Criterion:
        return Criterion(self._field, Condition.IN, tuple(values))

    def startswith(self, prefix: str) -> Criterion:
        return Criterion(self._field, Condition.START_WITH, prefix)

    def endswith(self, suffix: str) -> Criterion:
        return Criterion(self._field, Condition.END_WITH, suffix)

    def contains(self, substring: str) -> Criterion:
        return Criterion(self._field, Condition.CONTAIN, substring)

    __hash__ = None  # type: ignore[assignment]


def aspect_field(aspect: type[Aspect] | str, path: str) -> FieldProxy:
    """Create a proxy for a path inside an aspect document."""
    return FieldProxy(AspectField(aspect, path))


def urn_field() -> FieldProxy:
    """Create a proxy for the entity urn."""
    return FieldProxy(UrnField())


def relationship_field(path: str) -> FieldProxy:
    """Create a proxy for a path inside the edge attribute document."""
    return FieldProxy(RelationshipField(path))


def filter_of(
    *criteria: Criterion,
    direction: RelationshipDirection | str | None = None,
) -> LocalRelationshipFilter:
    """Build a filter from criteria and an optional direction."""
    return LocalRelationshipFilter(criteria=criteria, direction=direction)
