"""Apply account edits to one or more users in a single transaction."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from sqlalchemy.orm import Session

from tracker.core.security import hash_password
from tracker.models import Group, User, UserGroupMap
from tracker.schemas.user import GroupChange, UserUpdateRequest
from tracker.services.accounts import check_email, check_login_available, check_password
from tracker.services.context import CallerContext
from tracker.services.errors import AccessDenied, MissingParameter, UnsupportedBatchOperation
from tracker.services.groups import check_groups_by_name
from tracker.services.resolver import check_user_by_id, check_user_by_login

if TYPE_CHECKING:
    from tracker.core.config import Settings

logger = logging.getLogger(__name__)

# Change-report name -> whether the membership rows are bless rights.
GROUP_FIELDS = {"groups": False, "bless_groups": True}


@dataclass
class _GroupDelta:
    isbless: bool
    add: list[Group] = field(default_factory=list)
    remove: list[Group] = field(default_factory=list)


@dataclass
class _PendingUpdate:
    """Everything validated for one target, not yet written."""

    user: User
    login_name: str | None = None
    realname: str | None = None
    disabledtext: str | None = None
    email_enabled: bool | None = None
    cryptpassword: str | None = None
    groups: dict[str, _GroupDelta] = field(default_factory=dict)


def _as_text(value: Any) -> str:
    """Normalize a reported value: None -> "", lists -> comma-joined, bools -> 0/1."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, (list, tuple)):
        return ",".join(str(v) for v in value)
    return str(value)


def _change(removed: Any, added: Any) -> dict[str, str]:
    return {"removed": _as_text(removed), "added": _as_text(added)}


def _resolve_targets(
    db: Session, ids: Sequence[int] | None, names: Sequence[str] | None
) -> list[User]:
    targets: list[User] = []
    seen: set[int] = set()
    for user in [check_user_by_id(db, i) for i in ids or []] + [
        check_user_by_login(db, n) for n in names or []
    ]:
        if user.id not in seen:
            seen.add(user.id)
            targets.append(user)
    return targets


def _plan_group_change(
    db: Session,
    caller: CallerContext,
    user: User,
    change: GroupChange,
    isbless: bool,
) -> _GroupDelta:
    """
    Work out which memberships to add and remove.

    Any existing group may be added. Removing needs bless rights on the group:
    an explicit remove without them is refused, while set quietly keeps
    memberships the caller cannot revoke.
    """
    current = {g.id: g for g in (user.bless_groups if isbless else user.groups)}
    delta = _GroupDelta(isbless=isbless)

    if change.set is not None:
        wanted = {g.id: g for g in check_groups_by_name(db, change.set)}
        delta.add = [g for gid, g in wanted.items() if gid not in current]
        delta.remove = [
            g for gid, g in current.items() if gid not in wanted and caller.can_bless(g)
        ]
        return delta

    adds = check_groups_by_name(db, change.add or [])
    removes = check_groups_by_name(db, change.remove or [])
    for group in removes:
        if not caller.can_bless(group):
            raise AccessDenied(f"You are not allowed to remove users from the '{group.name}' group.")
    removing = {g.id for g in removes}
    delta.add = [g for g in adds if g.id not in current and g.id not in removing]
    delta.remove = [g for g in removes if g.id in current]
    return delta


def _plan(
    db: Session,
    caller: CallerContext,
    settings: "Settings",
    user: User,
    request: UserUpdateRequest,
) -> _PendingUpdate:
    pending = _PendingUpdate(user=user)

    if request.email is not None:
        email = check_email(request.email.strip(), settings)
        if email != user.login_name:
            check_login_available(db, email, exclude_user_id=user.id)
            pending.login_name = email
    if request.full_name is not None:
        pending.realname = request.full_name.strip()
    if request.login_denied_text is not None:
        pending.disabledtext = request.login_denied_text.strip()
    if request.email_enabled is not None:
        pending.email_enabled = request.email_enabled
    if request.password is not None:
        pending.cryptpassword = hash_password(check_password(request.password.strip(), settings))

    for name, isbless in GROUP_FIELDS.items():
        change = getattr(request, name)
        if change is not None:
            pending.groups[name] = _plan_group_change(db, caller, user, change, isbless)
    return pending


def _apply(pending: _PendingUpdate) -> dict[str, dict[str, str]]:
    """Write one target's changes to the session and report what changed."""
    user = pending.user
    changes: dict[str, dict[str, str]] = {}

    if pending.login_name is not None and pending.login_name != user.login_name:
        changes["email"] = _change(user.login_name, pending.login_name)
        user.login_name = pending.login_name
    if pending.realname is not None and pending.realname != (user.realname or ""):
        changes["full_name"] = _change(user.realname, pending.realname)
        user.realname = pending.realname
    if pending.disabledtext is not None and pending.disabledtext != (user.disabledtext or ""):
        changes["login_denied_text"] = _change(user.disabledtext, pending.disabledtext)
        user.disabledtext = pending.disabledtext
        enabled = not pending.disabledtext
        if enabled != bool(user.is_enabled):
            changes["can_login"] = _change(bool(user.is_enabled), enabled)
            user.is_enabled = enabled
    if pending.email_enabled is not None and pending.email_enabled != bool(user.email_enabled):
        changes["email_enabled"] = _change(bool(user.email_enabled), pending.email_enabled)
        user.email_enabled = pending.email_enabled
    if pending.cryptpassword is not None:
        # Never echo credential material.
        changes["password"] = _change(None, None)
        user.cryptpassword = pending.cryptpassword

    if "email" in changes or "full_name" in changes:
        old_nick = user.nickname
        user.refresh_nickname()
        if user.nickname != old_nick:
            changes["nick"] = _change(old_nick, user.nickname)

    for name, delta in pending.groups.items():
        if not delta.add and not delta.remove:
            continue
        remove_ids = {g.id for g in delta.remove}
        for row in list(user.group_rows):
            if row.isbless == delta.isbless and row.group_id in remove_ids:
                user.group_rows.remove(row)
        for group in delta.add:
            user.group_rows.append(UserGroupMap(group=group, isbless=delta.isbless))
        changes[name] = _change(
            sorted(g.name for g in delta.remove), sorted(g.name for g in delta.add)
        )
    return changes


def update_users(
    db: Session,
    caller: CallerContext,
    settings: "Settings",
    request: UserUpdateRequest,
) -> list[dict[str, Any]]:
    """
    Update every user named by request.ids / request.names.

    All targets are validated before anything is written, and the writes are
    committed together: either every target is updated or none is.
    """
    if not caller.is_authenticated or not caller.can_manage_accounts(settings):
        raise AccessDenied(
            f"Only members of the '{settings.ACCOUNT_ADMIN_GROUP}' group may edit users."
        )
    if request.ids is None and request.names is None:
        raise MissingParameter("At least one of 'ids' or 'names' is required.")

    targets = _resolve_targets(db, request.ids, request.names)
    if request.email is not None and len(targets) > 1:
        raise UnsupportedBatchOperation("The email of more than one user cannot be changed at once.")

    plans = [_plan(db, caller, settings, user, request) for user in targets]

    try:
        results = [{"id": p.user.id, "changes": _apply(p)} for p in plans]
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("User update failed; transaction rolled back")
        raise

    logger.info(
        "Users updated",
        extra={
            "updated_by": caller.user_id,
            "user_ids": [r["id"] for r in results],
            "changed_fields": sorted({f for r in results for f in r["changes"]}),
        },
    )
    return results
