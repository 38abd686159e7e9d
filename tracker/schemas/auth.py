"""Request/response schemas for login endpoints."""

from pydantic import BaseModel, Field

from tracker.core.security import LOGIN_MAX_LEN, PASSWORD_MAX_LEN


class LoginRequest(BaseModel):
    """Credentials for login. Missing values are reported as missing_parameter."""

    login: str | None = Field(default=None, max_length=LOGIN_MAX_LEN, description="Login name (email)")
    password: str | None = Field(default=None, max_length=PASSWORD_MAX_LEN, description="Password")
    remember: bool = Field(default=False, description="Issue a long-lived token")


class LoginResponse(BaseModel):
    """User id and, for a fresh login, the bearer token to send as Authorization: Bearer <token>."""

    id: int
    token: str | None = Field(default=None, description="JWT access token")


class ValidLoginRequest(BaseModel):
    login: str | None = Field(default=None, max_length=LOGIN_MAX_LEN)
    token: str | None = Field(
        default=None,
        description="Token to check; defaults to the Authorization bearer token",
    )


class ValidLoginResponse(BaseModel):
    valid: bool


class EmptyResponse(BaseModel):
    """Operations with nothing to return."""

    pass
