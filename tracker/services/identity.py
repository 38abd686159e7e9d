"""Exchange an external identity-provider API token for a local user (used by whoami)."""

import json
import logging
from typing import TYPE_CHECKING

import httpx
from sqlalchemy.orm import Session

from tracker.models import User
from tracker.services.errors import InvalidApiCredential
from tracker.services.resolver import get_user_by_login

if TYPE_CHECKING:
    from tracker.core.config import Settings

logger = logging.getLogger(__name__)

USER_AGENT = "tracker user.whoami shim"
INVALID_API_KEY = "The API key you specified is invalid or has expired."


def is_identity_provider_configured(settings: "Settings") -> bool:
    return bool(settings.IDENTITY_PROVIDER_BASE_URL)


async def fetch_primary_email(token: str, settings: "Settings") -> str:
    """
    Ask the identity provider's user.whoami endpoint who owns token.

    Any failure (unreachable, error payload, missing email) raises InvalidApiCredential.
    """
    base_url = (settings.IDENTITY_PROVIDER_BASE_URL or "").rstrip("/")
    url = f"{base_url}/api/user.whoami"
    timeout = httpx.Timeout(settings.IDENTITY_REQUEST_TIMEOUT_SEC)

    try:
        async with httpx.AsyncClient(timeout=timeout, headers={"User-Agent": USER_AGENT}) as client:
            response = await client.get(url, params={"api.token": token})
    except httpx.HTTPError as e:
        logger.warning("Identity provider request failed", extra={"url": url, "error": str(e)[:200]})
        raise InvalidApiCredential(INVALID_API_KEY) from e

    if response.status_code != 200:
        logger.warning(
            "Identity provider returned an error status",
            extra={"url": url, "status_code": response.status_code},
        )
        raise InvalidApiCredential(INVALID_API_KEY)

    try:
        body = response.json()
    except json.JSONDecodeError as e:
        logger.warning("Identity provider response is not valid JSON", extra={"url": url})
        raise InvalidApiCredential(INVALID_API_KEY) from e

    if not isinstance(body, dict):
        raise InvalidApiCredential(INVALID_API_KEY)

    # Any provider-side error means the token is not usable.
    if body.get("error_info"):
        logger.debug("Identity provider user.whoami failed: %s", body["error_info"])
        raise InvalidApiCredential(INVALID_API_KEY)

    result = body.get("result") or {}
    email = result.get("primaryEmail") if isinstance(result, dict) else None
    if not email or not isinstance(email, str):
        raise InvalidApiCredential(INVALID_API_KEY)
    return email


async def user_from_identity_token(db: Session, token: str, settings: "Settings") -> User:
    """Local user whose login matches the provider's primary email for token."""
    email = await fetch_primary_email(token, settings)
    user = get_user_by_login(db, email)
    if user is None:
        logger.debug("No local user for identity provider email: %s", email)
        raise InvalidApiCredential(INVALID_API_KEY)
    return user
