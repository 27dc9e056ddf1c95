"""Tests for the filter model and SQL predicate compilation."""

from __future__ import annotations

import pytest

from aspectql.compiler import (
    MATCH_ALL,
    EntityTarget,
    RelationshipTarget,
    compile_filter,
    render_scalar,
)
from aspectql.errors import FilterCompileError, InvalidArgumentError
from aspectql.filters import (
    EMPTY_FILTER,
    AspectField,
    Condition,
    Criterion,
    LocalRelationshipFilter,
    RelationshipDirection,
    RelationshipField,
    UrnField,
    aspect_field,
    filter_of,
    json_path,
    relationship_field,
    urn_field,
)
from aspectql.schema import snapshot_metadata
from tests.conftest import AspectBar, AspectFoo, FooSnapshot


@pytest.fixture
def foo_target():
    return EntityTarget("e", snapshot_metadata(FooSnapshot))


class TestPaths:
    def test_json_path(self):
        assert json_path("/value") == "$.value"
        assert json_path("/address/city") == "$.address.city"

    @pytest.mark.parametrize("path", ["value", "/", "/a//b", "/a-b", "/1abc", "/a b"])
    def test_invalid_paths_rejected(self, path):
        with pytest.raises(FilterCompileError):
            AspectField(AspectFoo, path)

    def test_injection_attempt_rejected(self):
        with pytest.raises(FilterCompileError, match="Invalid path segment"):
            RelationshipField("/x')--")


class TestCriterion:
    def test_string_condition_coerced(self):
        c = Criterion(AspectField(AspectFoo, "/value"), "EQUAL", "foo")
        assert c.condition is Condition.EQUAL

    def test_unknown_condition(self):
        with pytest.raises(FilterCompileError, match="Unknown condition"):
            Criterion(AspectField(AspectFoo, "/value"), "LIKE", "foo")

    def test_in_requires_sequence(self):
        with pytest.raises(FilterCompileError, match="requires a sequence"):
            Criterion(AspectField(AspectFoo, "/value"), Condition.IN, "foo")

    def test_in_rejects_empty_sequence(self):
        with pytest.raises(FilterCompileError, match="at least one value"):
            Criterion(AspectField(AspectFoo, "/value"), Condition.IN, [])

    def test_scalar_condition_rejects_sequence(self):
        with pytest.raises(FilterCompileError, match="requires a scalar"):
            Criterion(AspectField(AspectFoo, "/value"), Condition.EQUAL, ["a", "b"])

    def test_in_list_becomes_tuple(self):
        c = Criterion(AspectField(AspectFoo, "/value"), Condition.IN, ["a", "b"])
        assert c.value == ("a", "b")
        assert c.is_sequence

    def test_rejects_non_scalar_value(self):
        with pytest.raises(FilterCompileError):
            Criterion(AspectField(AspectFoo, "/value"), Condition.EQUAL, {"a": 1})

    def test_filter_compile_error_is_invalid_argument(self):
        with pytest.raises(InvalidArgumentError):
            Criterion(AspectField(AspectFoo, "/value"), Condition.IN, "foo")


class TestFieldProxy:
    def test_eq(self):
        c = aspect_field(AspectFoo, "/value") == "foo"
        assert isinstance(c, Criterion)
        assert c.condition is Condition.EQUAL
        assert c.value == "foo"

    def test_ne(self):
        assert (aspect_field(AspectFoo, "/value") != "foo").condition is Condition.NOT_EQUAL

    def test_ordering_operators(self):
        age = aspect_field(AspectBar, "/value")
        assert (age > 30).condition is Condition.GREATER_THAN
        assert (age >= 30).condition is Condition.GREATER_THAN_OR_EQUAL_TO
        assert (age < 30).condition is Condition.LESS_THAN
        assert (age <= 30).condition is Condition.LESS_THAN_OR_EQUAL_TO

    def test_patterns(self):
        name = aspect_field(AspectFoo, "/value")
        assert name.startswith("Al").condition is Condition.START_WITH
        assert name.endswith("ce").condition is Condition.END_WITH
        assert name.contains("lic").condition is Condition.CONTAIN

    def test_in_(self):
        c = aspect_field(AspectFoo, "/value").in_(["a", "b"])
        assert c.condition is Condition.IN
        assert c.value == ("a", "b")

    def test_urn_and_relationship_fields(self):
        assert isinstance((urn_field() == "urn:li:foo:1").field, UrnField)
        assert isinstance((relationship_field("/since") == "2020").field, RelationshipField)


class TestLocalRelationshipFilter:
    def test_empty(self):
        assert EMPTY_FILTER.is_empty
        assert EMPTY_FILTER.direction is None

    def test_criterion_and_criterion(self):
        f = (aspect_field(AspectFoo, "/value") == "a") & (aspect_field(AspectBar, "/value") > 1)
        assert isinstance(f, LocalRelationshipFilter)
        assert len(f.criteria) == 2

    def test_with_direction_returns_new_filter(self):
        f = filter_of(aspect_field(AspectFoo, "/value") == "a")
        g = f.with_direction("OUTGOING")
        assert f.direction is None
        assert g.direction is RelationshipDirection.OUTGOING
        assert g.criteria == f.criteria

    def test_unknown_direction_string(self):
        with pytest.raises(FilterCompileError, match="Unknown relationship direction"):
            filter_of(direction="SIDEWAYS")

    def test_conflicting_directions(self):
        a = filter_of(direction=RelationshipDirection.INCOMING)
        b = filter_of(direction=RelationshipDirection.OUTGOING)
        with pytest.raises(FilterCompileError, match="Cannot combine"):
            a & b

    def test_combining_keeps_direction(self):
        a = filter_of(direction=RelationshipDirection.INCOMING)
        b = filter_of(relationship_field("/since") == "2020")
        assert (a & b).direction is RelationshipDirection.INCOMING


class TestSQLCompilation:
    def test_empty_filter_matches_all(self, foo_target):
        compiled = compile_filter(EMPTY_FILTER, foo_target)
        assert compiled.sql == MATCH_ALL
        assert compiled.params == ()

    def test_compile_eq(self, foo_target):
        compiled = compile_filter(filter_of(aspect_field(AspectFoo, "/value") == "foo"), foo_target)
        assert "json_extract(e.a_aspectfoo, '$.value')" in compiled.sql
        assert compiled.sql.endswith("= ?")
        assert compiled.params == ("foo",)

    def test_compile_ne(self, foo_target):
        compiled = compile_filter(filter_of(aspect_field(AspectFoo, "/value") != "x"), foo_target)
        assert "<> ?" in compiled.sql

    def test_compile_numeric(self, foo_target):
        compiled = compile_filter(filter_of(aspect_field(AspectBar, "/value") > "30"), foo_target)
        assert compiled.sql.startswith("CASE json_type(e.a_aspectbar, '$.value')")
        assert "CAST(json_extract(e.a_aspectbar, '$.value') AS REAL)" in compiled.sql
        assert compiled.sql.endswith("> CAST(? AS REAL)")
        assert compiled.params == ("30",)

    @pytest.mark.parametrize("value", ["abc", "", True])
    def test_numeric_condition_requires_numeric_value(self, foo_target, value):
        with pytest.raises(FilterCompileError, match="requires a numeric value"):
            compile_filter(filter_of(aspect_field(AspectBar, "/value") > value), foo_target)

    def test_compile_in(self, foo_target):
        compiled = compile_filter(
            filter_of(aspect_field(AspectFoo, "/value").in_(["a", "b", "c"])), foo_target
        )
        assert "IN (?, ?, ?)" in compiled.sql
        assert compiled.params == ("a", "b", "c")

    def test_compile_patterns_case_sensitive(self, foo_target):
        name = aspect_field(AspectFoo, "/value")
        assert compile_filter(filter_of(name.startswith("Al")), foo_target).params == ("Al*",)
        assert compile_filter(filter_of(name.endswith("ce")), foo_target).params == ("*ce",)
        compiled = compile_filter(filter_of(name.contains("li")), foo_target)
        assert "GLOB ?" in compiled.sql
        assert compiled.params == ("*li*",)

    def test_glob_metacharacters_escaped(self, foo_target):
        criterion = aspect_field(AspectFoo, "/value").contains("a*b?")
        compiled = compile_filter(filter_of(criterion), foo_target)
        assert compiled.params == ("*a[*]b[?]*",)

    def test_compile_patterns_case_insensitive(self, foo_target):
        compiled = compile_filter(
            filter_of(aspect_field(AspectFoo, "/value").startswith("50%_")),
            foo_target,
            case_sensitive_patterns=False,
        )
        assert "LIKE ? ESCAPE" in compiled.sql
        assert compiled.params == ("50\\%\\_%",)

    def test_compile_and(self, foo_target):
        f = (aspect_field(AspectFoo, "/value") == "a") & (aspect_field(AspectBar, "/value") == "b")
        compiled = compile_filter(f, foo_target)
        assert " AND " in compiled.sql
        assert compiled.params == ("a", "b")

    def test_booleans_bound_as_json_spelling(self, foo_target):
        criterion = aspect_field(AspectFoo, "/flag") == True  # noqa: E712
        compiled = compile_filter(filter_of(criterion), foo_target)
        assert compiled.params == ("true",)
        assert render_scalar(False) == "false"
        assert render_scalar(3) == "3"

    def test_compile_urn_field(self, foo_target):
        compiled = compile_filter(filter_of(urn_field() == "urn:li:foo:1"), foo_target)
        assert compiled.sql == "e.urn = ?"

    def test_unknown_aspect(self, foo_target):
        with pytest.raises(FilterCompileError, match="Unknown aspect"):
            missing = aspect_field("com.example.Missing", "/value") == "x"
            compile_filter(filter_of(missing), foo_target)

    def test_aspect_by_canonical_name(self, foo_target):
        compiled = compile_filter(
            filter_of(aspect_field(AspectFoo.canonical_name(), "/value") == "x"), foo_target
        )
        assert "e.a_aspectfoo" in compiled.sql

    def test_relationship_field_on_edge(self):
        compiled = compile_filter(
            filter_of(relationship_field("/since") == "2020"), RelationshipTarget("rt")
        )
        assert "json_extract(rt.metadata, '$.since')" in compiled.sql

    def test_relationship_field_rejected_on_entity(self, foo_target):
        with pytest.raises(FilterCompileError, match="only be used in a relationship filter"):
            compile_filter(filter_of(relationship_field("/since") == "2020"), foo_target)

    def test_aspect_field_rejected_on_edge(self):
        with pytest.raises(FilterCompileError, match="cannot be used in a relationship filter"):
            compile_filter(
                filter_of(aspect_field(AspectFoo, "/value") == "x"), RelationshipTarget("rt")
            )
