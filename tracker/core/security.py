"""Password hashing, JWT creation/verification and keyed user tracking ids."""

import hashlib
import hmac
import secrets
from datetime import UTC, datetime, timedelta
from typing import Any

import bcrypt
import jwt

from tracker.core.config import settings

# Bcrypt cost (rounds); 12 is a good default for security vs speed.
BCRYPT_ROUNDS = 12

# Stored in place of a hash for accounts that cannot log in with a password.
NO_PASSWORD = "*"

PASSWORD_MAX_LEN = 128
LOGIN_MAX_LEN = 255


def hash_password(plain_password: str) -> str:
    """Hash a plain-text password for storage. Do not store plain passwords."""
    # bcrypt has a 72-byte limit; truncate to avoid errors (validation already limits length).
    pw_bytes = plain_password.encode("utf-8")[:72]
    return bcrypt.hashpw(pw_bytes, bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(plain_password: str, hashed: str) -> bool:
    """Verify a plain password against a stored hash."""
    if not hashed or hashed == NO_PASSWORD:
        return False
    pw_bytes = plain_password.encode("utf-8")[:72]
    try:
        return bcrypt.checkpw(pw_bytes, hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def generate_token_id() -> str:
    """Random identifier for a login session or an account-creation token."""
    return secrets.token_urlsafe(24)


def create_access_token(sub: str | int, jti: str, remember: bool = False) -> str:
    """Create a JWT access token with sub (user id), jti (login record) and exp."""
    now = datetime.now(UTC)
    if remember:
        expire = now + timedelta(days=settings.JWT_REMEMBER_DAYS)
    else:
        expire = now + timedelta(minutes=settings.JWT_EXPIRE_MINUTES)
    payload: dict[str, Any] = {
        "sub": str(sub),
        "jti": jti,
        "exp": expire,
        "iat": now,
    }
    secret = settings.JWT_SECRET.get_secret_value()
    return jwt.encode(
        payload,
        secret,
        algorithm=settings.JWT_ALGORITHM,
    )


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Decode and validate JWT; return payload (sub, jti, exp, iat).
    Raises jwt.PyJWTError on invalid or expired token.
    """
    secret = settings.JWT_SECRET.get_secret_value()
    return jwt.decode(
        token,
        secret,
        algorithms=[settings.JWT_ALGORITHM],
    )


def tracking_id(user_id: int, secret: str) -> str:
    """Deterministic, non-reversible id for a user: HMAC-SHA1 of the id keyed by secret."""
    return hmac.new(
        secret.encode("utf-8"),
        str(user_id).encode("utf-8"),
        hashlib.sha1,
    ).hexdigest()
