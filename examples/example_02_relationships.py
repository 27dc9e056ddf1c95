"""Example 02: Relationships - Directions and Edge Queries.

This example demonstrates:
- Writing edges with LocalRelationshipWriter
- Related-entity queries in OUTGOING, INCOMING and UNDIRECTED direction
- Edge queries with attribute filters
- Soft-deleting edges
- Per-query deadlines
"""

from pathlib import Path

from aspectql import (
    Aspect,
    Database,
    InvalidArgumentError,
    LocalAspectAccess,
    LocalRelationshipQueryDAO,
    LocalRelationshipWriter,
    Relationship,
    RelationshipDirection,
    Snapshot,
    Urn,
    aspect_field,
    filter_of,
    relationship_field,
)


class PersonUrn(Urn, entity_type="person"):
    pass


class SchoolUrn(Urn, entity_type="school"):
    pass


class Name(Aspect):
    value: str


class PersonSnapshot(Snapshot, urn_type=PersonUrn, aspects=(Name,)):
    pass


class SchoolSnapshot(Snapshot, urn_type=SchoolUrn, aspects=(Name,)):
    pass


class ReportsTo(Relationship[PersonUrn, PersonUrn]):
    """Directed reporting line."""

    since: str


class BelongsTo(Relationship[PersonUrn, SchoolUrn]):
    """Alumni membership."""


def names(snapshots: list[Snapshot]) -> list[str]:
    return [s.get_aspect(Name).value for s in snapshots]


def main() -> None:
    db_path = Path("tmp/relationships.db")
    db_path.parent.mkdir(exist_ok=True)
    db_path.unlink(missing_ok=True)

    print("=" * 80)
    print("RELATIONSHIPS")
    print("=" * 80)

    with Database(str(db_path)) as db:
        people = LocalAspectAccess(db, PersonUrn)
        schools = LocalAspectAccess(db, SchoolUrn)
        alice, bob, jack = PersonUrn(1), PersonUrn(2), PersonUrn(3)
        stanford, mit = SchoolUrn(1), SchoolUrn(2)
        for urn, value in [(alice, "Alice"), (bob, "Bob"), (jack, "Jack")]:
            people.add(urn, Name(value=value), Name)
        for urn, value in [(stanford, "Stanford"), (mit, "MIT")]:
            schools.add(urn, Name(value=value), Name)

        edges = LocalRelationshipWriter(db)
        edges.add_relationships(
            [
                ReportsTo(source=bob, destination=alice, since="2019"),
                ReportsTo(source=jack, destination=alice, since="2023"),
                BelongsTo(source=alice, destination=mit),
                BelongsTo(source=alice, destination=stanford),
                BelongsTo(source=bob, destination=stanford),
            ]
        )

        dao = LocalRelationshipQueryDAO(db)
        is_alice = filter_of(aspect_field(Name, "/value") == "Alice")

        print("\n1. OUTGOING: schools Alice belongs to")
        outgoing = filter_of(direction=RelationshipDirection.OUTGOING)
        found = dao.find_related_entities(
            PersonSnapshot, is_alice, SchoolSnapshot, None, BelongsTo, outgoing, 1, 1, 0, 10
        )
        print(f"   {names(found)}")

        print("\n2. INCOMING: who reports to Alice")
        incoming = filter_of(direction=RelationshipDirection.INCOMING)
        found = dao.find_related_entities(
            PersonSnapshot, None, PersonSnapshot, is_alice, ReportsTo, incoming, 1, 1, 0, 10
        )
        print(f"   {names(found)}")

        print("\n3. UNDIRECTED: everyone sharing a reporting line with Alice")
        undirected = filter_of(direction=RelationshipDirection.UNDIRECTED)
        found = dao.find_related_entities(
            PersonSnapshot, is_alice, PersonSnapshot, None, ReportsTo, undirected, 1, 1, 0, 10
        )
        print(f"   {names(found)}")

        print("\n4. Edge query filtered on edge attributes")
        recent = filter_of(relationship_field("/since") >= "2020")
        for edge in dao.find_relationships(
            PersonSnapshot, None, PersonSnapshot, None, ReportsTo, recent, 0, 10
        ):
            print(f"   {edge.source} -> {edge.destination} since {edge.since}")

        print("\n5. Soft delete")
        removed = edges.remove_relationships(bob, BelongsTo)
        found = dao.find_related_entities(
            PersonSnapshot, None, SchoolSnapshot, None, BelongsTo, outgoing, 1, 1, 0, 10
        )
        print(f"   removed {removed}; schools still linked: {names(found)}")

        print("\n6. A direction is required for related-entity queries")
        try:
            dao.find_related_entities(
                PersonSnapshot, None, SchoolSnapshot, None, BelongsTo, None, 1, 1, 0, 10
            )
        except InvalidArgumentError as e:
            print(f"   {type(e).__name__}: {e}")

        print("\n7. Per-query deadline")
        found = dao.find_entities(PersonSnapshot, None, 0, 10, timeout=2.0)
        print(f"   {len(found)} people within 2s")

    print(f"\nDatabase file: {db_path}")
    print("=" * 80)


if __name__ == "__main__":
    main()
