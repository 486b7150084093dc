"""
Signed session cookies.

The session cookie carries an HS256 JWT with the user id and the way the user
authenticated ("local" or "google"). Nothing is stored server-side; logout
simply clears the cookie.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Literal

import jwt
from starlette.responses import Response

from ratemykol.config import get_settings

OAUTH_STATE_COOKIE = "oauth_state"
_OAUTH_STATE_TTL_SECONDS = 600


def create_session_token(user_id: int, auth_type: Literal["local", "google"] = "local") -> str:
    """Encode a session token valid for `session_max_age_seconds`."""
    settings = get_settings()
    now = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        "sub": str(user_id),
        "auth_type": auth_type,
        "iat": now,
        "exp": now + timedelta(seconds=settings.session_max_age_seconds),
        "type": "session",
    }
    return jwt.encode(payload, settings.session_secret, algorithm=settings.session_algorithm)


def decode_session_token(token: str) -> dict[str, Any]:
    """
    Verify and decode a session token.

    Raises:
        jwt.InvalidTokenError: If the token is malformed, expired, or not a session token.
    """
    settings = get_settings()
    payload: dict[str, Any] = jwt.decode(
        token,
        settings.session_secret,
        algorithms=[settings.session_algorithm],
        options={"require": ["sub", "exp", "type"]},
    )
    if payload.get("type") != "session":
        msg = "Not a session token"
        raise jwt.InvalidTokenError(msg)
    return payload


def set_session_cookie(response: Response, user_id: int, auth_type: Literal["local", "google"] = "local") -> None:
    """Attach a fresh session cookie to the response."""
    settings = get_settings()
    response.set_cookie(
        key=settings.session_cookie_name,
        value=create_session_token(user_id, auth_type),
        max_age=settings.session_max_age_seconds,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
    )


def clear_session_cookie(response: Response) -> None:
    settings = get_settings()
    response.delete_cookie(
        key=settings.session_cookie_name,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
    )


# ---------------------------------------------------------------------------
# OAuth state
# ---------------------------------------------------------------------------


def create_state_token(state: str) -> str:
    """Sign the OAuth `state` value so the callback can check it came from us."""
    settings = get_settings()
    now = datetime.now(timezone.utc)
    payload = {
        "state": state,
        "iat": now,
        "exp": now + timedelta(seconds=_OAUTH_STATE_TTL_SECONDS),
        "type": "oauth_state",
    }
    return jwt.encode(payload, settings.session_secret, algorithm=settings.session_algorithm)


def verify_state_token(token: str, state: str) -> bool:
    """True when the signed cookie matches the `state` query parameter."""
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.session_secret, algorithms=[settings.session_algorithm])
    except jwt.InvalidTokenError:
        return False
    return payload.get("type") == "oauth_state" and payload.get("state") == state
