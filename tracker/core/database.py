"""PostgreSQL connection and session management."""

from collections.abc import Generator

from sqlalchemy import create_engine, text
from sqlalchemy.orm import Session, sessionmaker

from tracker.core.config import settings

engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
    echo=settings.DEBUG,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Lookups may run against a read replica; without one they share the primary.
if settings.SHADOW_DATABASE_URL:
    shadow_engine = create_engine(
        settings.SHADOW_DATABASE_URL,
        pool_pre_ping=True,
        echo=settings.DEBUG,
    )
    ShadowSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=shadow_engine)
else:
    ShadowSessionLocal = SessionLocal


def get_db() -> Generator[Session, None, None]:
    """Dependency that yields a DB session and closes it when done."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_read_db() -> Generator[Session, None, None]:
    """Dependency that yields a session on the read replica (or the primary)."""
    db = ShadowSessionLocal()
    try:
        yield db
    finally:
        db.close()


def check_db_connected(db: Session) -> bool:
    """Run a trivial query to verify the database is reachable."""
    try:
        db.execute(text("SELECT 1"))
        return True
    except Exception:
        return False
