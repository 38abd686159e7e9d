"""ORM models for groups and the user/group membership relation."""

from sqlalchemy import Boolean, Column, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from tracker.models.base import Base


class Group(Base):
    """Named group; membership grants access, bless rights allow granting it to others."""

    __tablename__ = "groups"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False, unique=True, index=True)
    description = Column(Text, nullable=False, default="")


class UserGroupMap(Base):
    """
    One row per (user, group, isbless).

    isbless=False: the user is a member of the group.
    isbless=True: the user may add or remove other users' membership in the group.
    """

    __tablename__ = "user_group_map"

    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    group_id = Column(
        Integer, ForeignKey("groups.id", ondelete="CASCADE"), primary_key=True
    )
    isbless = Column(Boolean, primary_key=True, default=False)

    user = relationship("User", back_populates="group_rows")
    group = relationship("Group", lazy="joined")
