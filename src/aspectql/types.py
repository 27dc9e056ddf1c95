"""Urn, Aspect, Snapshot, and Relationship types for aspectql."""

from __future__ import annotations

import re
from typing import Any, ClassVar, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, GetCoreSchemaHandler
from pydantic_core import core_schema

from aspectql.errors import InvalidArgumentError

URN_PREFIX = "urn:li:"

_ENTITY_TYPE_RE = re.compile(r"^[A-Za-z][A-Za-z0-9_]*$")

# entity type -> typed Urn subclass, filled by Urn.__init_subclass__
_URN_TYPES: dict[str, type[Urn]] = {}

# entity type -> Snapshot classes declared on it, in declaration order
_SNAPSHOT_TYPES: dict[str, list[type[Snapshot]]] = {}


class Urn:
    """Typed entity identifier rendered as ``urn:li:<entity_type>:<id>``.

    Subclasses bind an entity type so they can be built from the id alone::

        class FooUrn(Urn, entity_type="foo"):
            pass

        FooUrn(1) == Urn.parse("urn:li:foo:1")
    """

    __entity_type__: ClassVar[str | None] = None

    def __init_subclass__(cls, entity_type: str | None = None, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if entity_type is None:
            return
        if not _ENTITY_TYPE_RE.match(entity_type):
            raise TypeError(
                f"Invalid entity type '{entity_type}': must match [A-Za-z][A-Za-z0-9_]*"
            )
        cls.__entity_type__ = entity_type
        _URN_TYPES[entity_type] = cls

    def __init__(self, *parts: Any) -> None:
        bound = type(self).__entity_type__
        if bound is not None:
            if len(parts) != 1:
                raise TypeError(f"{type(self).__name__}() takes exactly one id argument")
            entity_type, raw_id = bound, parts[0]
        else:
            if len(parts) != 2:
                raise TypeError("Urn() takes (entity_type, id)")
            entity_type, raw_id = parts
        entity_id = str(raw_id)
        if not entity_id:
            raise InvalidArgumentError("Urn id must not be empty")
        self.entity_type: str = entity_type
        self.id: str = entity_id

    @classmethod
    def parse(cls, text: str) -> Urn:
        """Parse a urn string, returning the registered typed subclass when known."""
        if not isinstance(text, str) or not text.startswith(URN_PREFIX):
            raise InvalidArgumentError(f"Malformed urn: {text!r}")
        entity_type, sep, entity_id = text[len(URN_PREFIX) :].partition(":")
        if not sep or not entity_type or not entity_id:
            raise InvalidArgumentError(f"Malformed urn: {text!r}")

        if cls.__entity_type__ is not None:
            if entity_type != cls.__entity_type__:
                raise InvalidArgumentError(
                    f"Urn {text!r} is not a {cls.__name__} "
                    f"(expected entity type '{cls.__entity_type__}')"
                )
            return cls(entity_id)

        typed = _URN_TYPES.get(entity_type)
        if typed is not None:
            return typed(entity_id)
        return Urn(entity_type, entity_id)

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source_type: Any, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        return core_schema.no_info_plain_validator_function(
            cls._coerce,
            serialization=core_schema.plain_serializer_function_ser_schema(str),
        )

    @classmethod
    def _coerce(cls, value: Any) -> Urn:
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls.parse(value)
            except InvalidArgumentError as e:
                raise ValueError(str(e)) from e
        raise ValueError(f"Expected {cls.__name__} or urn string, got {type(value).__name__}")

    def __str__(self) -> str:
        return f"{URN_PREFIX}{self.entity_type}:{self.id}"

    def __repr__(self) -> str:
        return f"{type(self).__name__}({str(self)!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Urn):
            return NotImplemented
        return self.entity_type == other.entity_type and self.id == other.id

    def __hash__(self) -> int:
        return hash((self.entity_type, self.id))

    def __lt__(self, other: Urn) -> bool:
        return str(self) < str(other)


class Aspect(BaseModel):
    """Base class for aspect documents."""

    model_config = ConfigDict(frozen=True)

    @classmethod
    def canonical_name(cls) -> str:
        return f"{cls.__module__}.{cls.__qualname__}"


def canonical_name(aspect: type[Aspect] | str) -> str:
    """Canonical name of an aspect class, or the string itself."""
    if isinstance(aspect, str):
        return aspect
    return aspect.canonical_name()


class Snapshot:
    """Base class for entity snapshots: a urn plus an ordered list of aspects.

    Subclasses declare their urn type and the aspects they project, in order::

        class FooSnapshot(Snapshot, urn_type=FooUrn, aspects=(AspectFoo, AspectBar)):
            pass
    """

    __urn_type__: ClassVar[type[Urn]]
    __aspect_types__: ClassVar[tuple[type[Aspect], ...]]

    def __init_subclass__(
        cls,
        urn_type: type[Urn] | None = None,
        aspects: tuple[type[Aspect], ...] = (),
        **kwargs: Any,
    ) -> None:
        super().__init_subclass__(**kwargs)

        if urn_type is None or getattr(urn_type, "__entity_type__", None) is None:
            raise TypeError(f"Snapshot '{cls.__name__}' must declare a typed urn_type")
        if not aspects:
            raise TypeError(f"Snapshot '{cls.__name__}' must declare at least one aspect")
        for aspect in aspects:
            if not (isinstance(aspect, type) and issubclass(aspect, Aspect)):
                raise TypeError(f"Snapshot '{cls.__name__}' aspect {aspect!r} is not an Aspect")

        names = [a.__name__.lower() for a in aspects]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise TypeError(
                f"Snapshot '{cls.__name__}' declares aspects with clashing names: {duplicates}"
            )

        cls.__urn_type__ = urn_type
        cls.__aspect_types__ = tuple(aspects)
        _SNAPSHOT_TYPES.setdefault(urn_type.__entity_type__, []).append(cls)

    def __init__(self, urn: Urn, aspects: list[Aspect] | None = None) -> None:
        if not isinstance(urn, self.__urn_type__):
            raise TypeError(
                f"{type(self).__name__} requires a {self.__urn_type__.__name__}, "
                f"got {type(urn).__name__}"
            )
        aspects = list(aspects or [])
        for aspect in aspects:
            if not isinstance(aspect, self.__aspect_types__):
                raise TypeError(
                    f"{type(aspect).__name__} is not an aspect of {type(self).__name__}"
                )
        self.urn = urn
        self.aspects = aspects

    def get_aspect(self, aspect_cls: type[Aspect]) -> Aspect | None:
        for aspect in self.aspects:
            if isinstance(aspect, aspect_cls):
                return aspect
        return None

    def __repr__(self) -> str:
        return f"{type(self).__name__}(urn={self.urn!r}, aspects={self.aspects!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, self.__class__):
            return NotImplemented
        return self.urn == other.urn and self.aspects == other.aspects


def snapshot_types_for(urn_type: type[Urn] | str) -> tuple[type[Snapshot], ...]:
    """Snapshot classes declared on an entity type."""
    entity_type = urn_type if isinstance(urn_type, str) else urn_type.__entity_type__
    return tuple(_SNAPSHOT_TYPES.get(entity_type or "", ()))


S = TypeVar("S", bound=Urn)
D = TypeVar("D", bound=Urn)


class Relationship(BaseModel, Generic[S, D]):
    """Base class for typed directed edges.

    Endpoint urn types come from the generic parameters; any further fields
    are edge attributes, persisted as the edge's metadata document::

        class ReportsTo(Relationship[FooUrn, FooUrn]):
            since: str | None = None
    """

    model_config = ConfigDict(frozen=True)

    source: S
    destination: D

    @classmethod
    def source_urn_type(cls) -> type[Urn]:
        return _endpoint_type(cls, "source")

    @classmethod
    def destination_urn_type(cls) -> type[Urn]:
        return _endpoint_type(cls, "destination")

    def attributes(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude={"source", "destination"})


def _endpoint_type(cls: type[Relationship[Any, Any]], field_name: str) -> type[Urn]:
    annotation = cls.model_fields[field_name].annotation
    if isinstance(annotation, type) and issubclass(annotation, Urn):
        return annotation
    return Urn
