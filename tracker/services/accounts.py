"""Login sessions, account creation and whoami."""

import logging
import re
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

import jwt
from sqlalchemy.orm import Session

from tracker.core.config import get_settings
from tracker.core.security import (
    LOGIN_MAX_LEN,
    NO_PASSWORD,
    PASSWORD_MAX_LEN,
    create_access_token,
    decode_access_token,
    generate_token_id,
    hash_password,
    tracking_id,
    verify_password,
)
from tracker.models import AccountToken, LoginToken, User
from tracker.services.context import CallerContext
from tracker.services.errors import (
    AccessDenied,
    AccountCreationDisabled,
    AccountDisabled,
    AccountExists,
    InvalidCredentials,
    InvalidEmailFormat,
    MissingParameter,
    PasswordChangeRequired,
    PasswordTooShort,
    UnknownMfaProvider,
)
from tracker.services.identity import is_identity_provider_configured, user_from_identity_token
from tracker.services.resolver import get_user_by_login

if TYPE_CHECKING:
    from tracker.core.config import Settings

logger = logging.getLogger(__name__)


def _required(value: str | None, param: str) -> str:
    cleaned = (value or "").strip()
    if not cleaned:
        raise MissingParameter(f"The '{param}' parameter is required.")
    return cleaned


def check_email(email: str, settings: "Settings") -> str:
    """Validate the shape of a login email address."""
    if len(email) > LOGIN_MAX_LEN or not re.match(settings.EMAIL_REGEXP, email):
        raise InvalidEmailFormat(f"The email address '{email}' is not valid.")
    return email


def check_login_available(db: Session, email: str, exclude_user_id: int | None = None) -> None:
    existing = get_user_by_login(db, email)
    if existing is not None and existing.id != exclude_user_id:
        raise AccountExists(f"There is already an account with the login name '{email}'.")


def check_password(password: str, settings: "Settings") -> str:
    if len(password) < settings.PASSWORD_MIN_LEN:
        raise PasswordTooShort(
            f"The password must be at least {settings.PASSWORD_MIN_LEN} characters long."
        )
    if len(password) > PASSWORD_MAX_LEN:
        raise PasswordTooShort(f"The password must be at most {PASSWORD_MAX_LEN} characters long.")
    return password


def caller_from_token(db: Session, token: str, touch: bool = True) -> CallerContext | None:
    """
    Caller for a bearer JWT, or None if the token is invalid, expired, revoked
    (logged out) or belongs to a disabled account.

    With touch, the login record and the user's last activity are stamped with
    the current time.
    """
    try:
        payload = decode_access_token(token)
    except jwt.PyJWTError:
        return None
    jti = payload.get("jti")
    try:
        user_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        return None
    if not jti:
        return None
    row = db.get(LoginToken, jti)
    if row is None or row.userid != user_id:
        return None
    user = db.get(User, user_id)
    if user is None or not user.is_enabled:
        return None
    if touch:
        now = datetime.now(UTC)
        row.lastused = now
        user.last_activity_ts = now
        db.commit()
    return CallerContext.for_user(user, token_id=jti)


def prune_login_tokens(db: Session, cutoff: datetime) -> int:
    """Delete login records unused since cutoff; no token issued before then is still valid."""
    removed = (
        db.query(LoginToken)
        .filter(LoginToken.lastused < cutoff)
        .delete(synchronize_session=False)
    )
    if removed:
        logger.info("Pruned stale login records", extra={"count": removed})
    return removed


def login(
    db: Session,
    caller: CallerContext,
    login_name: str | None,
    password: str | None,
    remember: bool = False,
) -> dict[str, Any]:
    """Authenticate with login and password; returns the user id and a bearer token."""
    if caller.is_authenticated:
        return {"id": caller.user_id}

    login_name = _required(login_name, "login")
    if password is None or password == "":
        raise MissingParameter("The 'password' parameter is required.")

    user = get_user_by_login(db, login_name)
    if user is None or not verify_password(password, user.cryptpassword):
        logger.info("Login failed", extra={"reason": "invalid_credentials"})
        raise InvalidCredentials("The username or password you entered is not valid.")
    if not user.is_enabled:
        logger.info("Login failed", extra={"reason": "account_disabled", "user_id": user.id})
        raise AccountDisabled(user.disabledtext or "Your account has been disabled.")
    if user.password_change_required:
        raise PasswordChangeRequired(
            "You are required to change your password before you can log in."
        )

    now = datetime.now(UTC)
    prune_login_tokens(db, now - timedelta(days=get_settings().JWT_REMEMBER_DAYS))
    jti = generate_token_id()
    db.add(LoginToken(token=jti, userid=user.id, lastused=now))
    user.last_seen_date = now
    user.last_activity_ts = now
    db.commit()
    logger.info("Login succeeded", extra={"user_id": user.id, "remember": remember})
    return {"id": user.id, "token": create_access_token(sub=user.id, jti=jti, remember=remember)}


def logout(db: Session, caller: CallerContext) -> dict[str, Any]:
    """Revoke the caller's current login token. A no-op for anonymous callers."""
    if caller.token_id:
        db.query(LoginToken).filter(LoginToken.token == caller.token_id).delete(
            synchronize_session=False
        )
        db.commit()
        logger.info("Logout", extra={"user_id": caller.user_id})
    return {}


def valid_login(
    db: Session, caller: CallerContext, login_name: str | None, token: str | None = None
) -> bool:
    """True if token (or the current session) is a live login for login_name."""
    login_name = _required(login_name, "login")
    if token:
        caller = caller_from_token(db, token, touch=False) or CallerContext()
    if not caller.is_authenticated:
        return False
    return caller.user.login_name.lower() == login_name.lower()


def offer_account_by_email(db: Session, settings: "Settings", email: str | None) -> dict[str, Any]:
    """
    Issue an account-creation token for email. Delivering the confirmation
    email is left to the mail transport.
    """
    email = _required(email, "email")
    if not settings.ACCOUNT_CREATION_ENABLED:
        raise AccountCreationDisabled("User account creation has been disabled.")
    check_email(email, settings)
    check_login_available(db, email)

    # Only the most recent offer for an address stays valid.
    db.query(AccountToken).filter(
        AccountToken.tokentype == "account", AccountToken.eventdata == email
    ).delete(synchronize_session=False)
    db.add(AccountToken(token=generate_token_id(), tokentype="account", eventdata=email))
    db.commit()
    logger.info("Account creation offered", extra={"email": email})
    return {}


def insert_user(
    db: Session,
    settings: "Settings",
    email: str | None,
    full_name: str | None = None,
    password: str | None = None,
    iam_username: str | None = None,
) -> User:
    """Validate and add a new user to the session. The caller commits."""
    email = _required(email, "email")
    check_email(email, settings)
    check_login_available(db, email)

    password = (password or "").strip()
    cryptpassword = hash_password(check_password(password, settings)) if password else NO_PASSWORD

    iam_username = (iam_username or "").strip() or None
    if iam_username is not None:
        taken = db.query(User).filter(User.iam_username == iam_username).first()
        if taken is not None:
            raise AccountExists(f"The IAM username '{iam_username}' is already in use.")

    user = User(
        login_name=email,
        realname=(full_name or "").strip(),
        cryptpassword=cryptpassword,
        iam_username=iam_username,
        is_enabled=True,
        disabledtext="",
        email_enabled=True,
    )
    user.refresh_nickname()
    db.add(user)
    db.flush()
    return user


def create_user(
    db: Session,
    caller: CallerContext,
    settings: "Settings",
    email: str | None,
    full_name: str | None = None,
    password: str | None = None,
    iam_username: str | None = None,
) -> dict[str, Any]:
    """Create an account directly (account administrators only)."""
    if not caller.can_manage_accounts(settings):
        raise AccessDenied(
            f"Only members of the '{settings.ACCOUNT_ADMIN_GROUP}' group may add users."
        )
    user = insert_user(db, settings, email, full_name, password, iam_username)
    db.commit()
    logger.info("User created", extra={"user_id": user.id, "created_by": caller.user_id})
    return {"id": user.id}


def mfa_enroll(
    db: Session, caller: CallerContext, settings: "Settings", provider: str | None
) -> dict[str, Any]:
    """Switch the caller's second factor to provider (one of MFA_PROVIDERS)."""
    if not caller.is_authenticated:
        raise AccessDenied("You must log in to enrol in two-factor authentication.")
    name = _required(provider, "provider").lower()
    if name not in settings.MFA_PROVIDERS:
        raise UnknownMfaProvider(f"Unknown MFA provider '{name}'.")

    user = db.get(User, caller.user_id)
    user.mfa = name
    db.commit()
    logger.info("MFA provider enrolled", extra={"user_id": user.id, "provider": name})
    return {"provider": name}


async def whoami(
    db: Session,
    caller: CallerContext,
    settings: "Settings",
    identity_token: str | None = None,
) -> dict[str, Any]:
    """
    Describe the current user. Without a session, an identity-provider token
    (when configured) is exchanged for the user.
    """
    user = caller.user
    if user is None and identity_token and is_identity_provider_configured(settings):
        user = await user_from_identity_token(db, identity_token, settings)
    if user is None:
        raise AccessDenied("You must log in to use whoami.")

    uuid = tracking_id(user.id, settings.SITE_WIDE_SECRET.get_secret_value())
    return {
        "id": user.id,
        "real_name": user.realname or "",
        "nick": user.nickname or "",
        "name": user.login_name,
        "mfa_status": bool(user.mfa),
        "groups": [g.name for g in user.groups],
        "uuid": f"{settings.WHOAMI_UUID_PREFIX}{uuid}",
        "iam_username": user.iam_username,
    }
