"""Request-scoped caller identity and privilege lookups."""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from tracker.models import User

if TYPE_CHECKING:
    from tracker.core.config import Settings
    from tracker.models import Group


@dataclass
class CallerContext:
    """
    Who is making the request. user is None for anonymous callers.

    Membership and bless rights are snapshotted when the context is built so
    that privilege checks do not see changes made later in the same request.
    """

    user: User | None = None
    group_names: frozenset[str] = field(default_factory=frozenset)
    group_ids: frozenset[int] = field(default_factory=frozenset)
    bless_group_ids: frozenset[int] = field(default_factory=frozenset)
    token_id: str | None = None

    @classmethod
    def for_user(cls, user: User | None, token_id: str | None = None) -> "CallerContext":
        if user is None:
            return cls()
        groups = user.groups
        return cls(
            user=user,
            group_names=frozenset(g.name for g in groups),
            group_ids=frozenset(g.id for g in groups),
            bless_group_ids=frozenset(g.id for g in user.bless_groups),
            token_id=token_id,
        )

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @property
    def user_id(self) -> int | None:
        return self.user.id if self.user is not None else None

    def in_group(self, name: str) -> bool:
        return name in self.group_names

    def is_member_of(self, group: "Group") -> bool:
        return group.id in self.group_ids

    def can_bless(self, group: "Group") -> bool:
        return group.id in self.bless_group_ids

    def is_self(self, user: User) -> bool:
        return self.user is not None and self.user.id == user.id

    def can_manage_accounts(self, settings: "Settings") -> bool:
        return self.in_group(settings.ACCOUNT_ADMIN_GROUP)
