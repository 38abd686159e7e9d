"""Health check endpoint with database and read-replica connectivity checks."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from tracker.core.config import settings
from tracker.core.database import check_db_connected, get_db, get_read_db
from tracker.schemas.health import HealthResponse

router = APIRouter()


def _status(db: Session) -> str:
    return "connected" if check_db_connected(db) else "disconnected"


@router.get("/", response_model=HealthResponse)
def get_health(
    db: Annotated[Session, Depends(get_db)],
    read_db: Annotated[Session, Depends(get_read_db)],
) -> HealthResponse:
    """
    Return service health status and database connectivity.
    The replica is only reported when SHADOW_DATABASE_URL is configured.
    """
    return HealthResponse(
        status="ok",
        environment=settings.APP_ENV,
        database=_status(db),
        replica=_status(read_db) if settings.SHADOW_DATABASE_URL else None,
    )
