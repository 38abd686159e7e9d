"""Shape user records for API responses according to caller privilege and field filters."""

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from tracker.models import Group, SavedSearch, User
from tracker.services.context import CallerContext
from tracker.services.group_filter import disclosable_groups

if TYPE_CHECKING:
    from tracker.core.config import Settings


class UserField(str, Enum):
    ID = "id"
    REAL_NAME = "real_name"
    NICK = "nick"
    NAME = "name"
    EMAIL = "email"
    CAN_LOGIN = "can_login"
    IAM_USERNAME = "iam_username"
    LAST_SEEN_DATE = "last_seen_date"
    CREATION_TIME = "creation_time"
    EMAIL_ENABLED = "email_enabled"
    LOGIN_DENIED_TEXT = "login_denied_text"
    SAVED_SEARCHES = "saved_searches"
    GROUPS = "groups"


# Pseudo-fields accepted in include_fields.
ALL_FIELDS = "_all"
DEFAULT_FIELDS = "_default"
EXTRA_FIELDS = "_extra"
FIELD_SELECTORS = frozenset({ALL_FIELDS, DEFAULT_FIELDS, EXTRA_FIELDS})

PUBLIC = (UserField.ID, UserField.REAL_NAME, UserField.NICK, UserField.NAME)
AUTHENTICATED = (
    UserField.EMAIL,
    UserField.CAN_LOGIN,
    UserField.IAM_USERNAME,
    UserField.LAST_SEEN_DATE,
    UserField.CREATION_TIME,
)
# Returned only when asked for by name, _extra or _all.
EXTRA = (
    UserField.EMAIL_ENABLED,
    UserField.LOGIN_DENIED_TEXT,
    UserField.SAVED_SEARCHES,
    UserField.GROUPS,
)


@dataclass(frozen=True)
class FieldFilter:
    """include_fields / exclude_fields from the request; exclusion always wins."""

    include: frozenset[str] = frozenset()
    exclude: frozenset[str] = frozenset()

    @classmethod
    def from_lists(
        cls, include: Iterable[str] | None = None, exclude: Iterable[str] | None = None
    ) -> "FieldFilter":
        return cls(frozenset(include or ()), frozenset(exclude or ()))

    def wants(self, field: UserField) -> bool:
        name = field.value
        if name in self.exclude:
            return False
        if name in self.include or ALL_FIELDS in self.include:
            return True
        if field in EXTRA:
            return EXTRA_FIELDS in self.include
        return not self.include or DEFAULT_FIELDS in self.include


def group_to_dict(group: Group) -> dict[str, Any]:
    return {"id": group.id, "name": group.name, "description": group.description or ""}


def saved_search_to_dict(search: SavedSearch) -> dict[str, Any]:
    return {"id": search.id, "name": search.name, "query": search.query}


Extractor = Callable[[User, CallerContext, "Settings"], Any]

EXTRACTORS: dict[UserField, Extractor] = {
    UserField.ID: lambda u, c, s: u.id,
    UserField.REAL_NAME: lambda u, c, s: u.realname or "",
    UserField.NICK: lambda u, c, s: u.nickname or "",
    UserField.NAME: lambda u, c, s: u.login_name,
    UserField.EMAIL: lambda u, c, s: u.email,
    UserField.CAN_LOGIN: lambda u, c, s: bool(u.is_enabled),
    UserField.IAM_USERNAME: lambda u, c, s: u.iam_username,
    UserField.LAST_SEEN_DATE: lambda u, c, s: u.last_seen_date,
    UserField.CREATION_TIME: lambda u, c, s: u.creation_ts,
    UserField.EMAIL_ENABLED: lambda u, c, s: bool(u.email_enabled),
    UserField.LOGIN_DENIED_TEXT: lambda u, c, s: u.disabledtext or "",
    UserField.SAVED_SEARCHES: lambda u, c, s: [
        saved_search_to_dict(q) for q in sorted(u.saved_searches, key=lambda q: q.name)
    ],
    UserField.GROUPS: lambda u, c, s: [group_to_dict(g) for g in disclosable_groups(c, u, s)],
}


def visible_fields(
    user: User, caller: CallerContext, settings: "Settings"
) -> tuple[UserField, ...]:
    """Fields this caller is allowed to receive for this user."""
    if not caller.is_authenticated:
        return PUBLIC
    fields = list(PUBLIC + AUTHENTICATED)
    if caller.in_group(settings.ACCOUNT_DISABLE_GROUP) or caller.can_manage_accounts(settings):
        fields += [UserField.EMAIL_ENABLED, UserField.LOGIN_DENIED_TEXT]
    if caller.is_self(user):
        fields.append(UserField.SAVED_SEARCHES)
    fields.append(UserField.GROUPS)
    return tuple(fields)


def project_user(
    user: User,
    caller: CallerContext,
    settings: "Settings",
    field_filter: FieldFilter | None = None,
) -> dict[str, Any]:
    field_filter = field_filter or FieldFilter()
    return {
        field.value: EXTRACTORS[field](user, caller, settings)
        for field in visible_fields(user, caller, settings)
        if field_filter.wants(field)
    }
