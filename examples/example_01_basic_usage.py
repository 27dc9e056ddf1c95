"""Example 01: Basic Usage - Entities, Aspects and Filters.

This example demonstrates:
- Declaring urns, aspects and snapshots
- Writing aspects with LocalAspectAccess
- Querying entities with aspect filters (EQUAL, IN, numeric, patterns)
- Paginating results
"""

from pathlib import Path

from aspectql import (
    Aspect,
    Database,
    LocalAspectAccess,
    LocalRelationshipQueryDAO,
    Snapshot,
    Urn,
    aspect_field,
    filter_of,
)


class PersonUrn(Urn, entity_type="person"):
    pass


class Name(Aspect):
    """Display name of a person."""

    value: str


class Profile(Aspect):
    """Free-form profile details."""

    age: int
    city: str


class PersonSnapshot(Snapshot, urn_type=PersonUrn, aspects=(Name, Profile)):
    pass


def main() -> None:
    db_path = Path("tmp/basic_usage.db")
    db_path.parent.mkdir(exist_ok=True)
    db_path.unlink(missing_ok=True)

    print("=" * 80)
    print("BASIC USAGE")
    print("=" * 80)

    with Database(str(db_path)) as db:
        people = LocalAspectAccess(db, PersonUrn)
        for urn_id, name, age, city in [
            (1, "Alice", 32, "Zurich"),
            (2, "Bob", 52, "Berlin"),
            (3, "Jack", 16, "Zurich"),
            (4, "John", 42, "Lisbon"),
        ]:
            people.add(PersonUrn(urn_id), Name(value=name), Name)
            people.add(PersonUrn(urn_id), Profile(age=age, city=city), Profile)

        dao = LocalRelationshipQueryDAO(db)
        name = aspect_field(Name, "/value")
        age = aspect_field(Profile, "/age")
        city = aspect_field(Profile, "/city")

        print("\n1. Exact match")
        for snapshot in dao.find_entities(PersonSnapshot, filter_of(name == "Alice"), 0, 10):
            print(f"   {snapshot.urn}: {snapshot.aspects}")

        print("\n2. Numeric comparison AND string equality")
        adults_in_zurich = (age >= 18) & (city == "Zurich")
        for snapshot in dao.find_entities(PersonSnapshot, adults_in_zurich, 0, 10):
            print(f"   {snapshot.urn}: {snapshot.get_aspect(Name).value}")

        print("\n3. IN and START_WITH")
        for criterion in (name.in_(["Bob", "John"]), name.startswith("J")):
            found = dao.find_entities(PersonSnapshot, filter_of(criterion), 0, 10)
            print(f"   {criterion.condition.value}: {[s.get_aspect(Name).value for s in found]}")

        print("\n4. Pagination (2 per page)")
        offset = 0
        while page := dao.find_entities(PersonSnapshot, None, offset, 2):
            print(f"   offset={offset}: {[str(s.urn) for s in page]}")
            offset += len(page)

    print(f"\nDatabase file: {db_path}")
    print("=" * 80)


if __name__ == "__main__":
    main()
