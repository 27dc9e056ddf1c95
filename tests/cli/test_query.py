"""Tests for aspectql query commands."""

import json

from aspectql.cli import _exitcodes as ec
from tests.cli.conftest import invoke

MODELS = ["--models", "tests.conftest"]


def test_query_entities(runner, seeded_db):
    result = invoke(runner, ["query", "entities", "FooSnapshot", *MODELS], seeded_db)
    assert result.exit_code == 0
    assert "Alice" in result.output
    assert "urn:li:foo:3" in result.output


def test_query_entities_json(runner, seeded_db):
    result = invoke(runner, ["--json", "query", "entities", "FooSnapshot", *MODELS], seeded_db)
    assert result.exit_code == 0
    data = json.loads(result.output)
    assert [d["urn"] for d in data] == ["urn:li:foo:1", "urn:li:foo:2", "urn:li:foo:3"]
    assert data[0]["aspects"] == {"AspectFoo": {"value": "Alice"}, "AspectBar": {"value": "32"}}


def test_query_entities_filter(runner, seeded_db):
    result = invoke(
        runner,
        [
            "--json",
            "query",
            "entities",
            "FooSnapshot",
            *MODELS,
            "--filter",
            'AspectBar /value gt "30"',
        ],
        seeded_db,
    )
    assert result.exit_code == 0
    data = json.loads(result.output)
    assert {d["aspects"]["AspectFoo"]["value"] for d in data} == {"Alice", "Bob"}


def test_query_entities_multiple_filters(runner, seeded_db):
    result = invoke(
        runner,
        [
            "--json",
            "query",
            "entities",
            "FooSnapshot",
            *MODELS,
            "--filter",
            'AspectBar /value GREATER_THAN "30"',
            "--filter",
            'AspectFoo /value in ["Bob", "Jack"]',
        ],
        seeded_db,
    )
    assert result.exit_code == 0
    assert [d["urn"] for d in json.loads(result.output)] == ["urn:li:foo:2"]


def test_query_entities_urn_filter(runner, seeded_db):
    result = invoke(
        runner,
        ["--json", "query", "entities", "FooSnapshot", *MODELS]
        + ["--filter", 'urn eq "urn:li:foo:2"'],
        seeded_db,
    )
    assert result.exit_code == 0
    assert [d["urn"] for d in json.loads(result.output)] == ["urn:li:foo:2"]


def test_query_entities_pagination(runner, seeded_db):
    result = invoke(
        runner,
        ["--json", "query", "entities", "FooSnapshot", *MODELS, "--offset", "1", "--limit", "1"],
        seeded_db,
    )
    assert result.exit_code == 0
    assert [d["urn"] for d in json.loads(result.output)] == ["urn:li:foo:2"]


def test_query_entities_invalid_limit(runner, seeded_db):
    result = invoke(
        runner, ["query", "entities", "FooSnapshot", *MODELS, "--limit", "0"], seeded_db
    )
    assert result.exit_code == ec.USAGE_ERROR


def test_query_entities_bad_filter(runner, seeded_db):
    result = invoke(
        runner,
        ["query", "entities", "FooSnapshot", *MODELS, "--filter", "AspectFoo /value like x"],
        seeded_db,
    )
    assert result.exit_code == ec.USAGE_ERROR


def test_query_entities_unknown_snapshot(runner, seeded_db):
    result = invoke(runner, ["query", "entities", "Nope", *MODELS], seeded_db)
    assert result.exit_code == ec.USAGE_ERROR


def test_query_requires_models(runner, seeded_db):
    result = invoke(runner, ["query", "entities", "FooSnapshot"], seeded_db)
    assert result.exit_code == ec.USAGE_ERROR


def test_query_models_import_failure(runner, seeded_db):
    result = invoke(
        runner, ["query", "entities", "FooSnapshot", "--models", "no.such.module"], seeded_db
    )
    assert result.exit_code == ec.GENERAL_ERROR


def test_query_missing_database(runner, tmp_path):
    result = invoke(
        runner,
        ["query", "entities", "FooSnapshot", *MODELS],
        str(tmp_path / "missing.db"),
    )
    assert result.exit_code == ec.DATABASE_ERROR


def test_query_related_incoming(runner, seeded_db):
    result = invoke(
        runner,
        [
            "--json",
            "query",
            "related",
            "FooSnapshot",
            "FooSnapshot",
            "ReportsTo",
            *MODELS,
            "--direction",
            "incoming",
            "--dst-filter",
            'AspectFoo /value eq "Alice"',
        ],
        seeded_db,
    )
    assert result.exit_code == 0
    data = json.loads(result.output)
    assert {d["aspects"]["AspectFoo"]["value"] for d in data} == {"Bob", "Jack"}


def test_query_related_outgoing(runner, seeded_db):
    result = invoke(
        runner,
        [
            "--json",
            "query",
            "related",
            "FooSnapshot",
            "BarSnapshot",
            "BelongsTo",
            *MODELS,
            "--direction",
            "OUTGOING",
            "--src-filter",
            'AspectFoo /value eq "Alice"',
        ],
        seeded_db,
    )
    assert result.exit_code == 0
    data = json.loads(result.output)
    assert [d["aspects"]["AspectFoo"]["value"] for d in data] == ["Stanford", "MIT"]


def test_query_related_requires_direction(runner, seeded_db):
    result = invoke(
        runner,
        ["query", "related", "FooSnapshot", "FooSnapshot", "ReportsTo", *MODELS],
        seeded_db,
    )
    assert result.exit_code == ec.USAGE_ERROR
    assert "Relationship direction cannot be null or UNKNOWN." in result.output


def test_query_related_multi_hop_unsupported(runner, seeded_db):
    result = invoke(
        runner,
        [
            "query",
            "related",
            "FooSnapshot",
            "FooSnapshot",
            "ReportsTo",
            *MODELS,
            "--direction",
            "OUTGOING",
            "--max-hops",
            "3",
        ],
        seeded_db,
    )
    assert result.exit_code == ec.USAGE_ERROR


def test_query_related_bad_direction(runner, seeded_db):
    result = invoke(
        runner,
        [
            "query",
            "related",
            "FooSnapshot",
            "FooSnapshot",
            "ReportsTo",
            *MODELS,
            "--direction",
            "sideways",
        ],
        seeded_db,
    )
    assert result.exit_code == ec.USAGE_ERROR


def test_query_relationships(runner, seeded_db):
    result = invoke(
        runner,
        ["--json", "query", "relationships", "FooSnapshot", "FooSnapshot", "ReportsTo", *MODELS],
        seeded_db,
    )
    assert result.exit_code == 0
    data = json.loads(result.output)
    assert data == [
        {
            "source": "urn:li:foo:2",
            "destination": "urn:li:foo:1",
            "attributes": {"since": "2019"},
        },
        {
            "source": "urn:li:foo:3",
            "destination": "urn:li:foo:1",
            "attributes": {"since": "2023"},
        },
    ]


def test_query_relationships_rel_filter(runner, seeded_db):
    result = invoke(
        runner,
        [
            "--json",
            "query",
            "relationships",
            "FooSnapshot",
            "FooSnapshot",
            "ReportsTo",
            *MODELS,
            "--rel-filter",
            '/since eq "2023"',
        ],
        seeded_db,
    )
    assert result.exit_code == 0
    assert [d["source"] for d in json.loads(result.output)] == ["urn:li:foo:3"]


def test_query_relationships_text(runner, seeded_db):
    result = invoke(
        runner,
        ["query", "relationships", "FooSnapshot", "BarSnapshot", "BelongsTo", *MODELS],
        seeded_db,
    )
    assert result.exit_code == 0
    assert "source" in result.output
    assert "urn:li:bar:1" in result.output


def test_version(runner):
    result = invoke(runner, ["--version"])
    assert result.exit_code == 0
    assert result.output.startswith("aspectql ")
