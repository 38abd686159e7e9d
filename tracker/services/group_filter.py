"""Group-scoped visibility: who the caller may see, and which memberships are disclosed."""

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

from tracker.models import Group, User
from tracker.services.context import CallerContext
from tracker.services.errors import InvalidGroupReference
from tracker.services.groups import check_group_by_id, check_group_by_name

if TYPE_CHECKING:
    from tracker.core.config import Settings

logger = logging.getLogger(__name__)


def can_see_user(caller: CallerContext, target: User, settings: "Settings") -> bool:
    """
    Visibility predicate for resolving users by id.

    Everyone is visible unless visibility groups are enabled, in which case the
    caller sees themselves and users sharing at least one group with them.
    """
    if not settings.USE_VISIBILITY_GROUPS:
        return True
    if caller.is_self(target):
        return True
    return any(g.id in caller.group_ids for g in target.groups)


def _user_in_any_group(user: User, group_ids: set[int]) -> bool:
    return any(g.id in group_ids for g in user.groups)


def filter_users_by_group(
    db: Session,
    caller: CallerContext,
    users: Sequence[User],
    group_ids: Sequence[int] | None = None,
    group_names: Sequence[str] | None = None,
) -> list[User]:
    """
    Keep users belonging to at least one of the given groups.

    With no group constraint the input is returned unchanged. Every group id
    must exist; every group name must exist and the caller must be a member.
    """
    if not group_ids and not group_names:
        return list(users)

    groups: list[Group] = [check_group_by_id(db, gid) for gid in group_ids or []]
    for name in group_names or []:
        group = check_group_by_name(db, name)
        if not caller.is_member_of(group):
            raise InvalidGroupReference(f"The group '{name}' does not exist.")
        groups.append(group)

    wanted = {g.id for g in groups}
    in_group = [u for u in users if _user_in_any_group(u, wanted)]
    logger.debug(
        "Group filter applied",
        extra={"group_count": len(wanted), "users_in": len(users), "users_out": len(in_group)},
    )
    return in_group


def disclosable_groups(
    caller: CallerContext, target: User, settings: "Settings"
) -> list[Group]:
    """
    Memberships of target the caller may see.

    All of them for self-view or holders of the confidential group; otherwise
    only groups the caller administers (account admins) or can bless.
    Anything else is silently left out.
    """
    groups = target.groups
    if caller.is_self(target) or caller.in_group(settings.CONFIDENTIAL_GROUP):
        return groups
    if caller.can_manage_accounts(settings):
        return groups
    return [g for g in groups if caller.can_bless(g)]
