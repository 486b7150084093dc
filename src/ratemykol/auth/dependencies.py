"""FastAPI authentication dependencies.

Every request resolves an explicit `Identity` from its session cookie.
Handlers receive it as an argument; nothing reads ambient session state.
"""

from __future__ import annotations

from dataclasses import dataclass

import jwt
from fastapi import Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ratemykol.auth.service import get_user_by_id
from ratemykol.auth.session import decode_session_token
from ratemykol.config import get_settings
from ratemykol.database import get_session
from ratemykol.db.models import User


@dataclass(frozen=True)
class Identity:
    """The authenticated user behind the current request."""

    user_id: int
    username: str
    auth_type: str
    user_type: str
    trader_id: int | None = None

    @classmethod
    def from_user(cls, user: User) -> Identity:
        return cls(
            user_id=user.id,
            username=user.username,
            auth_type=user.auth_type,
            user_type=user.user_type,
            trader_id=user.trader_id,
        )


async def get_optional_identity(
    request: Request,
    db: AsyncSession = Depends(get_session),
) -> Identity | None:
    """Resolve the session cookie to an Identity, or None for anonymous requests."""
    token = request.cookies.get(get_settings().session_cookie_name)
    if not token:
        return None
    try:
        payload = decode_session_token(token)
    except jwt.InvalidTokenError:
        return None

    user = await get_user_by_id(db, int(payload["sub"]))
    if user is None:
        return None
    return Identity.from_user(user)


async def require_identity(
    identity: Identity | None = Depends(get_optional_identity),
) -> Identity:
    """Same as get_optional_identity but raises 401 for anonymous requests."""
    if identity is None:
        raise HTTPException(status_code=401, detail="Authentication required")
    return identity


async def get_current_user(
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_session),
) -> User:
    """Load the full User row for the authenticated identity."""
    user = await get_user_by_id(db, identity.user_id)
    if user is None:
        raise HTTPException(status_code=401, detail="Authentication required")
    return user


async def require_admin(
    identity: Identity = Depends(require_identity),
    db: AsyncSession = Depends(get_session),
) -> Identity:
    """
    Require an admin session.

    The role is re-read from the database on every call so a demotion takes
    effect immediately.
    """
    user = await get_user_by_id(db, identity.user_id)
    if user is None:
        raise HTTPException(status_code=401, detail="Authentication required")
    if not user.is_admin:
        raise HTTPException(status_code=403, detail="Admin access required")
    return identity
