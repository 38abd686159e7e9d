"""User endpoints: account offers and creation, lookup, suggest, update and whoami."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Header, Query
from sqlalchemy.orm import Session

from tracker.api.v1.auth import get_caller, http_error
from tracker.core.config import get_settings
from tracker.core.database import get_db, get_read_db
from tracker.schemas.auth import EmptyResponse
from tracker.schemas.user import (
    CreateUserRequest,
    CreateUserResponse,
    MfaEnrollRequest,
    MfaEnrollResponse,
    OfferAccountRequest,
    SuggestResponse,
    UserGetRequest,
    UserGetResponse,
    UserUpdateRequest,
    UserUpdateResponse,
    WhoamiResponse,
)
from tracker.services import accounts
from tracker.services.context import CallerContext
from tracker.services.errors import UserServiceError
from tracker.services.group_filter import filter_users_by_group
from tracker.services.matching import suggest_users
from tracker.services.mutator import update_users
from tracker.services.projection import PUBLIC, FieldFilter, project_user
from tracker.services.resolver import resolve_users

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/offer_account_by_email", response_model=EmptyResponse)
def offer_account_by_email(
    body: OfferAccountRequest,
    db: Annotated[Session, Depends(get_db)],
) -> EmptyResponse:
    """Start self-service account creation for an email address."""
    try:
        accounts.offer_account_by_email(db, get_settings(), body.email)
    except UserServiceError as e:
        raise http_error(e) from e
    return EmptyResponse()


@router.post("", response_model=CreateUserResponse)
def create_user(
    body: CreateUserRequest,
    db: Annotated[Session, Depends(get_db)],
    caller: Annotated[CallerContext, Depends(get_caller)],
) -> CreateUserResponse:
    """Create an account (account administrators only)."""
    try:
        result = accounts.create_user(
            db,
            caller,
            get_settings(),
            body.email,
            full_name=body.full_name,
            password=body.password,
            iam_username=body.iam_username,
        )
    except UserServiceError as e:
        raise http_error(e) from e
    return CreateUserResponse(**result)


@router.post("/get", response_model=UserGetResponse)
def get_users(
    body: UserGetRequest,
    read_db: Annotated[Session, Depends(get_read_db)],
    caller: Annotated[CallerContext, Depends(get_caller)],
) -> UserGetResponse:
    """
    Look up users by ids, login names and/or match strings.

    Anonymous callers may only use names and receive id, real_name, nick and
    name. Use group_ids / groups to keep only members of those groups, and
    include_fields / exclude_fields to choose the returned fields.
    """
    settings = get_settings()
    field_filter = FieldFilter.from_lists(body.include_fields, body.exclude_fields)
    try:
        resolved = resolve_users(
            read_db,
            caller,
            settings,
            names=body.names,
            ids=body.ids,
            match=body.match,
            limit=body.limit,
            include_disabled=body.include_disabled,
            permissive=body.permissive,
        )
        in_group = filter_users_by_group(
            read_db, caller, resolved.users, group_ids=body.group_ids, group_names=body.groups
        )
        users = [project_user(u, caller, settings, field_filter) for u in in_group]
    except UserServiceError as e:
        raise http_error(e) from e
    return UserGetResponse(users=users, faults=resolved.faults)


@router.get("/suggest", response_model=SuggestResponse)
def suggest(
    read_db: Annotated[Session, Depends(get_read_db)],
    caller: Annotated[CallerContext, Depends(get_caller)],
    match: Annotated[str, Query(description="At least 3 characters")],
) -> SuggestResponse:
    """Autocomplete: up to 25 enabled users, most recently active first."""
    settings = get_settings()
    try:
        users = suggest_users(read_db, caller, match)
    except UserServiceError as e:
        raise http_error(e) from e
    public_only = FieldFilter.from_lists([f.value for f in PUBLIC])
    return SuggestResponse(users=[project_user(u, caller, settings, public_only) for u in users])


@router.put("", response_model=UserUpdateResponse)
def update(
    body: UserUpdateRequest,
    db: Annotated[Session, Depends(get_db)],
    caller: Annotated[CallerContext, Depends(get_caller)],
) -> UserUpdateResponse:
    """
    Update one or more accounts (account administrators only).

    Returns, per user, each changed field with its removed and added value.
    """
    try:
        results = update_users(db, caller, get_settings(), body)
    except UserServiceError as e:
        raise http_error(e) from e
    return UserUpdateResponse(users=results)


@router.post("/mfa_enroll", response_model=MfaEnrollResponse)
def mfa_enroll(
    body: MfaEnrollRequest,
    db: Annotated[Session, Depends(get_db)],
    caller: Annotated[CallerContext, Depends(get_caller)],
) -> MfaEnrollResponse:
    """Enrol the logged-in user in a two-factor provider; whoami then reports mfa_status."""
    try:
        result = accounts.mfa_enroll(db, caller, get_settings(), body.provider)
    except UserServiceError as e:
        raise http_error(e) from e
    return MfaEnrollResponse(**result)


@router.get("/whoami", response_model=WhoamiResponse)
async def whoami(
    db: Annotated[Session, Depends(get_db)],
    caller: Annotated[CallerContext, Depends(get_caller)],
    x_identity_token: Annotated[str | None, Header()] = None,
) -> WhoamiResponse:
    """Describe the logged-in user, or the owner of an X-Identity-Token."""
    try:
        result = await accounts.whoami(db, caller, get_settings(), identity_token=x_identity_token)
    except UserServiceError as e:
        raise http_error(e) from e
    return WhoamiResponse(**result)
