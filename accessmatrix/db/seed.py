"""Database seeding for the household access matrix.

Creates a household and its members with role-default permissions.
"""

from typing import Dict, Iterable, Optional, Tuple

from sqlalchemy.orm import Session

from accessmatrix.core.rbac.roles import Role, get_default_permissions
from accessmatrix.db.models import Household, HouseholdMember


def seed_household(
    db: Session,
    household_id: str,
    name: Optional[str] = None,
) -> Household:
    """
    Create a household at version 0.

    Idempotent - if the household already exists, returns it unchanged.

    Args:
        db: Database session
        household_id: Household ID
        name: Display name

    Returns:
        The household row
    """
    existing = db.get(Household, household_id)
    if existing:
        return existing

    household = Household(id=household_id, name=name, version=0)
    db.add(household)
    db.flush()
    return household


def seed_members(
    db: Session,
    household_id: str,
    members: Iterable[Tuple[str, str, str]],
) -> Dict[str, HouseholdMember]:
    """
    Create household members from (user_id, name, role) tuples.

    Members that already exist are left as they are.

    Returns:
        Dict mapping user id to member row
    """
    created = {}
    for user_id, name, role in members:
        existing = (
            db.query(HouseholdMember)
            .filter_by(household_id=household_id, user_id=user_id)
            .first()
        )
        if existing:
            created[user_id] = existing
            continue

        role = Role.parse(role)
        member = HouseholdMember(
            household_id=household_id,
            user_id=user_id,
            name=name,
            role=role.value,
            permissions=get_default_permissions(role),
        )
        db.add(member)
        created[user_id] = member

    db.flush()
    return created


# CLI script for seeding
if __name__ == "__main__":
    import sys
    from accessmatrix.db.migrate import upgrade_database
    from accessmatrix.db.session import create_session_factory

    upgrade_database()
    SessionLocal = create_session_factory()

    db = SessionLocal()
    try:
        household = seed_household(db, "demo-household", name="Demo Household")
        members = seed_members(db, household.id, [
            ("owner", "Household Owner", "super_admin"),
            ("parent", "Parent", "admin"),
            ("kid", "Kid", "member"),
        ])
        db.commit()
        print(f"Seeded household {household.id} with {len(members)} member(s)")
        for member in members.values():
            print(f"  - {member.user_id}: {member.role}")

    except Exception as e:
        db.rollback()
        print(f"Error: {e}")
        sys.exit(1)
    finally:
        db.close()
