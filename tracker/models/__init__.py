"""SQLAlchemy ORM models."""

from tracker.models.base import Base
from tracker.models.group import Group, UserGroupMap
from tracker.models.user import AccountToken, LoginToken, SavedSearch, User

__all__ = [
    "AccountToken",
    "Base",
    "Group",
    "LoginToken",
    "SavedSearch",
    "User",
    "UserGroupMap",
]
