"""Request/response schemas for the user endpoints."""

from typing import Any

from pydantic import BaseModel, Field, field_validator

from tracker.services.projection import FIELD_SELECTORS, UserField

_KNOWN_FIELDS = frozenset(f.value for f in UserField) | FIELD_SELECTORS


def _check_field_names(v: list[str] | None) -> list[str] | None:
    if v is None:
        return None
    unknown = sorted(set(v) - _KNOWN_FIELDS)
    if unknown:
        raise ValueError(f"Unknown user fields: {', '.join(unknown)}")
    return v


class OfferAccountRequest(BaseModel):
    email: str | None = Field(default=None, description="Address to send the account offer to")


class CreateUserRequest(BaseModel):
    email: str | None = Field(default=None, description="Login name of the new account")
    full_name: str | None = Field(default=None, max_length=255)
    password: str | None = Field(
        default=None,
        description="Optional; without one the account cannot log in with a password",
    )
    iam_username: str | None = Field(default=None, max_length=255)


class CreateUserResponse(BaseModel):
    id: int


class UserGetRequest(BaseModel):
    """Identify users by id, login name or match string, optionally restricted to groups."""

    ids: list[int] | None = None
    names: list[str] | None = None
    match: list[str] | None = None
    group_ids: list[int] | None = None
    groups: list[str] | None = None
    include_disabled: bool = False
    limit: int | None = Field(default=None, gt=0, description="Max users per match string")
    permissive: bool = Field(
        default=False,
        description="Report unknown names as faults instead of failing the request",
    )
    include_fields: list[str] | None = None
    exclude_fields: list[str] | None = None

    @field_validator("include_fields", "exclude_fields")
    @classmethod
    def validate_field_names(cls, v: list[str] | None) -> list[str] | None:
        return _check_field_names(v)


class UserFault(BaseModel):
    name: str
    error: bool = True
    message: str


class UserGetResponse(BaseModel):
    users: list[dict[str, Any]]
    faults: list[UserFault] = Field(default_factory=list)


class SuggestResponse(BaseModel):
    users: list[dict[str, Any]]


class GroupChange(BaseModel):
    """Membership edits by group name. When set is given, add and remove are ignored."""

    add: list[str] | None = None
    remove: list[str] | None = None
    set: list[str] | None = None


class UserUpdateRequest(BaseModel):
    """Targets (ids and/or names) and the values to set on each of them."""

    ids: list[int] | None = None
    names: list[str] | None = None
    email: str | None = Field(default=None, description="New login name; single target only")
    full_name: str | None = Field(default=None, max_length=255)
    login_denied_text: str | None = Field(
        default=None,
        description="Non-empty text disables the account and is shown on login",
    )
    email_enabled: bool | None = None
    password: str | None = None
    groups: GroupChange | None = None
    bless_groups: GroupChange | None = None


class FieldChange(BaseModel):
    removed: str
    added: str


class UserChanges(BaseModel):
    id: int
    changes: dict[str, FieldChange]


class UserUpdateResponse(BaseModel):
    users: list[UserChanges]


class MfaEnrollRequest(BaseModel):
    provider: str | None = Field(default=None, description="Second-factor provider name, e.g. totp")


class MfaEnrollResponse(BaseModel):
    provider: str


class WhoamiResponse(BaseModel):
    id: int
    real_name: str
    nick: str
    name: str
    mfa_status: bool
    groups: list[str]
    uuid: str = Field(..., description="Anonymized tracking id for this user")
    iam_username: str | None = None
