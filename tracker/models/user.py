"""ORM models for user accounts, saved searches and login/account tokens."""

import re

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import relationship

from tracker.models.base import Base

# ":nick" inside a real name, e.g. "Jane Doe [:jdoe]" or "Jane Doe (:jdoe)".
_NICK_IN_REALNAME = re.compile(r"(?:^|[\s\[(,]):([\w.\-]+)")


def derive_nickname(realname: str | None, login_name: str) -> str:
    """Nickname from the real name's :nick marker, else the login's local part."""
    if realname:
        m = _NICK_IN_REALNAME.search(realname)
        if m:
            return m.group(1)
    return login_name.split("@", 1)[0]


class User(Base):
    """
    User account (the profiles table).

    login_name is unique and compared case-insensitively. A non-empty
    disabledtext means the account may not log in.
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    login_name = Column(String(255), nullable=False, unique=True, index=True)
    realname = Column(String(255), nullable=False, default="")
    nickname = Column(String(255), nullable=False, default="", index=True)
    cryptpassword = Column(String(255), nullable=False, default="*")
    password_change_required = Column(Boolean, nullable=False, default=False)
    disabledtext = Column(Text, nullable=False, default="")
    is_enabled = Column(Boolean, nullable=False, default=True)
    email_enabled = Column(Boolean, nullable=False, default=True)
    iam_username = Column(String(255), nullable=True, unique=True)
    mfa = Column(String(32), nullable=True)
    last_seen_date = Column(DateTime(timezone=True), nullable=True)
    last_activity_ts = Column(DateTime(timezone=True), nullable=True)
    creation_ts = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    group_rows = relationship(
        "UserGroupMap",
        back_populates="user",
        cascade="all, delete-orphan",
    )
    saved_searches = relationship(
        "SavedSearch",
        order_by="SavedSearch.name",
        cascade="all, delete-orphan",
    )

    @property
    def email(self) -> str:
        return self.login_name

    @property
    def groups(self) -> list:
        """Groups the user is a member of, ordered by name."""
        rows = [r.group for r in self.group_rows if not r.isbless]
        return sorted(rows, key=lambda g: g.name)

    @property
    def bless_groups(self) -> list:
        """Groups the user may grant to others, ordered by name."""
        rows = [r.group for r in self.group_rows if r.isbless]
        return sorted(rows, key=lambda g: g.name)

    def refresh_nickname(self) -> None:
        self.nickname = derive_nickname(self.realname, self.login_name)


class SavedSearch(Base):
    """A named search saved by a user (query is the search URL query string)."""

    __tablename__ = "namedqueries"

    id = Column(Integer, primary_key=True, autoincrement=True)
    userid = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String(64), nullable=False)
    query = Column(Text, nullable=False, default="")


class LoginToken(Base):
    """A live login session; the JWT jti claim points at one of these rows."""

    __tablename__ = "logincookies"

    token = Column(String(64), primary_key=True)
    userid = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    lastused = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )


class AccountToken(Base):
    """Pending account creation offered to an email address."""

    __tablename__ = "tokens"

    token = Column(String(64), primary_key=True)
    tokentype = Column(String(16), nullable=False, default="account")
    eventdata = Column(String(255), nullable=False)
    issuedate = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
