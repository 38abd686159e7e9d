"""Shared fixtures for store-backed tests: an in-memory SQLite user store and builders."""

from datetime import datetime, timedelta, timezone

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from tracker.core.config import Settings, get_settings
from tracker.core.security import NO_PASSWORD, hash_password
from tracker.models import Base, Group, SavedSearch, User, UserGroupMap
from tracker.services.context import CallerContext

BASE_TIME = datetime(2026, 1, 1, tzinfo=timezone.utc)


def make_session_factory() -> sessionmaker:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def make_session() -> Session:
    return make_session_factory()()


def make_settings(**overrides: object) -> Settings:
    return get_settings().model_copy(update=overrides)


def add_user(
    db: Session,
    login: str,
    realname: str = "",
    enabled: bool = True,
    active_days_ago: int | None = None,
    password: str | None = None,
    **fields: object,
) -> User:
    """Add a user; active_days_ago sets last_activity_ts relative to BASE_TIME."""
    user = User(
        login_name=login,
        realname=realname,
        cryptpassword=hash_password(password) if password else NO_PASSWORD,
        is_enabled=enabled,
        disabledtext="" if enabled else "Account closed.",
        email_enabled=True,
        last_activity_ts=(
            BASE_TIME - timedelta(days=active_days_ago) if active_days_ago is not None else None
        ),
        **fields,
    )
    user.refresh_nickname()
    db.add(user)
    db.commit()
    return user


def add_group(db: Session, name: str, description: str = "") -> Group:
    group = Group(name=name, description=description or f"{name} group")
    db.add(group)
    db.commit()
    return group


def join(db: Session, user: User, group: Group, isbless: bool = False) -> None:
    user.group_rows.append(UserGroupMap(group=group, isbless=isbless))
    db.commit()


def add_saved_search(db: Session, user: User, name: str, query: str) -> SavedSearch:
    search = SavedSearch(userid=user.id, name=name, query=query)
    db.add(search)
    db.commit()
    db.refresh(user)
    return search


def caller_for(user: User | None) -> CallerContext:
    return CallerContext.for_user(user, token_id="test-token" if user else None)
