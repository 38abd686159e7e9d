"""Pydantic request/response schemas."""

from tracker.schemas.auth import (
    EmptyResponse,
    LoginRequest,
    LoginResponse,
    ValidLoginRequest,
    ValidLoginResponse,
)
from tracker.schemas.health import HealthResponse
from tracker.schemas.user import (
    CreateUserRequest,
    CreateUserResponse,
    FieldChange,
    GroupChange,
    MfaEnrollRequest,
    MfaEnrollResponse,
    OfferAccountRequest,
    SuggestResponse,
    UserChanges,
    UserFault,
    UserGetRequest,
    UserGetResponse,
    UserUpdateRequest,
    UserUpdateResponse,
    WhoamiResponse,
)

__all__ = [
    "CreateUserRequest",
    "CreateUserResponse",
    "EmptyResponse",
    "FieldChange",
    "GroupChange",
    "HealthResponse",
    "LoginRequest",
    "LoginResponse",
    "MfaEnrollRequest",
    "MfaEnrollResponse",
    "OfferAccountRequest",
    "SuggestResponse",
    "UserChanges",
    "UserFault",
    "UserGetRequest",
    "UserGetResponse",
    "UserUpdateRequest",
    "UserUpdateResponse",
    "ValidLoginRequest",
    "ValidLoginResponse",
    "WhoamiResponse",
]
