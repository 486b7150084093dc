"""Google OAuth 2.0 authorization-code flow."""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import urlencode

import httpx
import structlog

from ratemykol.config import get_settings

logger = structlog.get_logger()

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"  # noqa: S105
GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v3/userinfo"
_TIMEOUT_SECONDS = 10.0


class GoogleOAuthError(Exception):
    """Raised when the code exchange or profile lookup fails."""


@dataclass(frozen=True)
class GoogleProfile:
    google_id: str
    email: str
    first_name: str | None = None
    last_name: str | None = None
    picture: str | None = None


def is_configured() -> bool:
    settings = get_settings()
    return bool(settings.google_client_id and settings.google_client_secret and settings.google_redirect_uri)


def build_authorization_url(state: str) -> str:
    """URL the browser is redirected to for Google consent."""
    settings = get_settings()
    params = {
        "client_id": settings.google_client_id,
        "redirect_uri": settings.google_redirect_uri,
        "response_type": "code",
        "scope": "openid email profile",
        "state": state,
        "access_type": "online",
        "prompt": "select_account",
    }
    return f"{GOOGLE_AUTH_URL}?{urlencode(params)}"


async def fetch_google_profile(code: str, client: httpx.AsyncClient | None = None) -> GoogleProfile:
    """
    Exchange an authorization code for a token and read the user's profile.

    Raises:
        GoogleOAuthError: On any HTTP failure or a profile without an email.
    """
    settings = get_settings()
    owns_client = client is None
    if client is None:
        client = httpx.AsyncClient(timeout=_TIMEOUT_SECONDS)
    try:
        token_resp = await client.post(
            GOOGLE_TOKEN_URL,
            data={
                "code": code,
                "client_id": settings.google_client_id,
                "client_secret": settings.google_client_secret,
                "redirect_uri": settings.google_redirect_uri,
                "grant_type": "authorization_code",
            },
        )
        token_resp.raise_for_status()
        access_token = token_resp.json().get("access_token")
        if not access_token:
            msg = "Token response did not include an access token"
            raise GoogleOAuthError(msg)

        info_resp = await client.get(GOOGLE_USERINFO_URL, headers={"Authorization": f"Bearer {access_token}"})
        info_resp.raise_for_status()
        info = info_resp.json()
    except httpx.HTTPError as e:
        logger.warning("google_oauth_http_error", error=str(e))
        msg = "Google authentication failed"
        raise GoogleOAuthError(msg) from e
    finally:
        if owns_client:
            await client.aclose()

    if not info.get("sub") or not info.get("email"):
        msg = "Google profile is missing an id or email"
        raise GoogleOAuthError(msg)

    return GoogleProfile(
        google_id=str(info["sub"]),
        email=info["email"],
        first_name=info.get("given_name"),
        last_name=info.get("family_name"),
        picture=info.get("picture"),
    )
