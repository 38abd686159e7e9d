"""Group registry lookups."""

from collections.abc import Iterable

from sqlalchemy import func
from sqlalchemy.orm import Session

from tracker.models import Group
from tracker.services.errors import InvalidGroupReference


def check_group_by_id(db: Session, group_id: int) -> Group:
    group = db.get(Group, group_id)
    if group is None:
        raise InvalidGroupReference(f"There is no group with the id '{group_id}'.")
    return group


def check_group_by_name(db: Session, name: str) -> Group:
    """Case-insensitive lookup by name. Raises InvalidGroupReference if missing."""
    cleaned = (name or "").strip()
    group = None
    if cleaned:
        group = (
            db.query(Group)
            .filter(func.lower(Group.name) == cleaned.lower())
            .first()
        )
    if group is None:
        raise InvalidGroupReference(f"The group '{name}' does not exist.")
    return group


def check_groups_by_name(db: Session, names: Iterable[str]) -> list[Group]:
    """Resolve names to groups, dropping duplicates and keeping request order."""
    groups: list[Group] = []
    seen: set[int] = set()
    for name in names:
        group = check_group_by_name(db, name)
        if group.id not in seen:
            seen.add(group.id)
            groups.append(group)
    return groups
