"""Output formatting helpers for the CLI."""

from __future__ import annotations

import json
import sys
from typing import Any

from aspectql.types import Relationship, Snapshot


def snapshot_to_dict(snapshot: Snapshot) -> dict[str, Any]:
    return {
        "urn": str(snapshot.urn),
        "aspects": {type(a).__name__: a.model_dump(mode="json") for a in snapshot.aspects},
    }


def relationship_to_dict(relationship: Relationship[Any, Any]) -> dict[str, Any]:
    return {
        "source": str(relationship.source),
        "destination": str(relationship.destination),
        "attributes": relationship.attributes(),
    }


def print_table(headers: list[str], rows: list[list[Any]], *, json_mode: bool = False) -> None:
    """Print data as a table (text) or JSON array."""
    if json_mode:
        data = [dict(zip(headers, row)) for row in rows]
        print(json.dumps(data, indent=2, default=str))
        return

    if not rows:
        return

    widths = [len(h) for h in headers]
    str_rows = [[str(v) for v in row] for row in rows]
    for row in str_rows:
        for i, val in enumerate(row):
            widths[i] = max(widths[i], len(val))

    print("  ".join(h.ljust(widths[i]) for i, h in enumerate(headers)))
    print("  ".join("-" * w for w in widths))
    for row in str_rows:
        print("  ".join(val.ljust(widths[i]) for i, val in enumerate(row)).rstrip())


def print_snapshots(
    snapshots: list[Snapshot], snapshot_cls: type[Snapshot], *, json_mode: bool = False
) -> None:
    if json_mode:
        print(json.dumps([snapshot_to_dict(s) for s in snapshots], indent=2))
        return
    aspect_names = [a.__name__ for a in snapshot_cls.__aspect_types__]
    rows = []
    for snapshot in snapshots:
        docs = snapshot_to_dict(snapshot)["aspects"]
        rows.append(
            [str(snapshot.urn)]
            + [json.dumps(docs[name]) if name in docs else "" for name in aspect_names]
        )
    print_table(["urn"] + aspect_names, rows)


def print_relationships(
    relationships: list[Relationship[Any, Any]], *, json_mode: bool = False
) -> None:
    data = [relationship_to_dict(r) for r in relationships]
    if json_mode:
        print(json.dumps(data, indent=2))
        return
    print_table(
        ["source", "destination", "attributes"],
        [[d["source"], d["destination"], json.dumps(d["attributes"])] for d in data],
    )


def print_error(msg: str) -> None:
    """Print an error message to stderr."""
    print(f"Error: {msg}", file=sys.stderr)
