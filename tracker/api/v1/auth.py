"""Login/logout endpoints and the request caller dependency."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from tracker.core.database import get_db
from tracker.schemas.auth import (
    EmptyResponse,
    LoginRequest,
    LoginResponse,
    ValidLoginRequest,
    ValidLoginResponse,
)
from tracker.services import accounts
from tracker.services.context import CallerContext
from tracker.services.errors import UserServiceError

router = APIRouter()
security = HTTPBearer(auto_error=False)


def http_error(e: UserServiceError) -> HTTPException:
    """Translate a service error into an HTTP error with a structured detail."""
    headers = {"WWW-Authenticate": "Bearer"} if e.status_code == status.HTTP_401_UNAUTHORIZED else None
    return HTTPException(
        status_code=e.status_code,
        detail={"code": e.code, "message": e.message},
        headers=headers,
    )


def get_caller(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[Session, Depends(get_db)],
) -> CallerContext:
    """
    Dependency: the caller for this request. Anonymous without an Authorization
    header; 401 if a bearer token is present but invalid, expired or revoked.
    """
    if credentials is None:
        return CallerContext()
    caller = accounts.caller_from_token(db, credentials.credentials)
    if caller is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"code": "invalid_credentials", "message": "Invalid or expired token"},
            headers={"WWW-Authenticate": "Bearer"},
        )
    return caller


@router.post("/login", response_model=LoginResponse, response_model_exclude_none=True)
def login(
    body: LoginRequest,
    db: Annotated[Session, Depends(get_db)],
    caller: Annotated[CallerContext, Depends(get_caller)],
) -> LoginResponse:
    """
    Authenticate with login and password; returns the user id and a JWT.
    Include the token in the Authorization header as: Bearer <token>
    """
    try:
        result = accounts.login(db, caller, body.login, body.password, remember=body.remember)
    except UserServiceError as e:
        raise http_error(e) from e
    return LoginResponse(**result)


@router.post("/logout", response_model=EmptyResponse)
def logout(
    db: Annotated[Session, Depends(get_db)],
    caller: Annotated[CallerContext, Depends(get_caller)],
) -> EmptyResponse:
    """Revoke the bearer token used for this request."""
    accounts.logout(db, caller)
    return EmptyResponse()


@router.post("/valid_login", response_model=ValidLoginResponse)
def valid_login(
    body: ValidLoginRequest,
    db: Annotated[Session, Depends(get_db)],
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> ValidLoginResponse:
    """Whether the token (or the Authorization bearer token) is a live login for body.login."""
    token = body.token or (credentials.credentials if credentials else None)
    try:
        valid = accounts.valid_login(db, CallerContext(), body.login, token)
    except UserServiceError as e:
        raise http_error(e) from e
    return ValidLoginResponse(valid=valid)
