"""Turn login names, ids and match strings into a deduplicated set of users."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from sqlalchemy import func
from sqlalchemy.orm import Session

from tracker.models import User
from tracker.services.context import CallerContext
from tracker.services.errors import AccessDenied, MissingParameter, NotFound
from tracker.services.group_filter import can_see_user
from tracker.services.matching import effective_limit, match_users

if TYPE_CHECKING:
    from tracker.core.config import Settings

logger = logging.getLogger(__name__)


@dataclass
class ResolutionResult:
    """Users unique by id, plus per-name faults collected in permissive mode."""

    users: list[User] = field(default_factory=list)
    faults: list[dict[str, Any]] = field(default_factory=list)
    _seen: set[int] = field(default_factory=set, init=False, repr=False)

    def add(self, user: User) -> None:
        if user.id not in self._seen:
            self._seen.add(user.id)
            self.users.append(user)


def get_user_by_login(db: Session, login: str) -> User | None:
    cleaned = (login or "").strip()
    if not cleaned:
        return None
    return (
        db.query(User)
        .filter(func.lower(User.login_name) == cleaned.lower())
        .first()
    )


def check_user_by_login(db: Session, login: str) -> User:
    user = get_user_by_login(db, login)
    if user is None:
        raise NotFound(f"There is no user named '{login}'.")
    return user


def check_user_by_id(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise NotFound(f"There is no user with the id '{user_id}'.")
    return user


def resolve_users(
    db: Session,
    caller: CallerContext,
    settings: "Settings",
    names: Sequence[str] | None = None,
    ids: Sequence[int] | None = None,
    match: Sequence[str] | None = None,
    limit: int | None = None,
    include_disabled: bool = False,
    permissive: bool = False,
) -> ResolutionResult:
    """
    Resolve users by login name, id and match string.

    Anonymous callers may only resolve by login name. With permissive=True an
    unknown login name is recorded as a fault instead of failing the request.
    The match limit applies to each match string separately.
    """
    if names is None and ids is None and match is None:
        raise MissingParameter("At least one of 'ids', 'names' or 'match' is required.")

    if not caller.is_authenticated:
        if ids:
            raise AccessDenied("Logged-out users cannot use the 'ids' argument.")
        if match:
            raise AccessDenied("You must log in before using the user match feature.")

    result = ResolutionResult()

    for name in names or []:
        if permissive:
            try:
                user = check_user_by_login(db, name)
            except NotFound as e:
                result.faults.append({"name": name, "error": True, "message": e.message})
                continue
        else:
            user = check_user_by_login(db, name)
        result.add(user)

    for user_id in ids or []:
        user = check_user_by_id(db, user_id)
        if not can_see_user(caller, user, settings):
            raise AccessDenied(f"You are not authorized to access user {user_id}.")
        result.add(user)

    per_token_limit = effective_limit(limit, settings)
    for text in match or []:
        for user in match_users(db, text, per_token_limit, exclude_disabled=not include_disabled):
            result.add(user)

    logger.debug(
        "Users resolved",
        extra={
            "name_count": len(names or []),
            "id_count": len(ids or []),
            "match_count": len(match or []),
            "resolved_count": len(result.users),
            "fault_count": len(result.faults),
        },
    )
    return result
