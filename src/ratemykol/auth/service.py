"""
Account business logic.

Handles local registration (plain users and trader-linked users), password
login, Google account linking, and profile updates.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import func, select

from ratemykol.auth.password import (
    check_needs_rehash,
    hash_password,
    validate_password_strength,
    verify_password,
)
from ratemykol.db.models import User
from ratemykol.traders.service import create_trader

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


class UsernameTakenError(ValueError):
    """Raised when a username is already registered."""


class EmailTakenError(ValueError):
    """Raised when an email is already registered."""


# ---------------------------------------------------------------------------
# User queries
# ---------------------------------------------------------------------------


async def get_user_by_id(db: AsyncSession, user_id: int) -> User | None:
    """Fetch a user by ID."""
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_user_by_username(db: AsyncSession, username: str) -> User | None:
    """Fetch a user by username (case-insensitive)."""
    result = await db.execute(select(User).where(func.lower(User.username) == username.lower()))
    return result.scalar_one_or_none()


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    """Fetch a user by email (case-insensitive)."""
    result = await db.execute(select(User).where(func.lower(User.email) == email.lower()))
    return result.scalar_one_or_none()


async def get_user_by_google_id(db: AsyncSession, google_id: str) -> User | None:
    result = await db.execute(select(User).where(User.google_id == google_id))
    return result.scalar_one_or_none()


async def list_users(db: AsyncSession) -> list[User]:
    result = await db.execute(select(User).order_by(User.created_at, User.id))
    return list(result.scalars())


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------


async def _check_available(db: AsyncSession, username: str, email: str | None) -> None:
    if await get_user_by_username(db, username) is not None:
        msg = "Username already exists"
        raise UsernameTakenError(msg)
    if email and await get_user_by_email(db, email) is not None:
        msg = "Email already exists"
        raise EmailTakenError(msg)


async def register_local_user(
    db: AsyncSession,
    username: str,
    password: str,
    email: str | None = None,
) -> User:
    """
    Register a new username/password user.

    Raises:
        PasswordStrengthError: If the password is too weak.
        UsernameTakenError / EmailTakenError: If the username or email exists.
    """
    validate_password_strength(password)
    await _check_available(db, username, email)

    user = User(
        username=username,
        email=email,
        password_hash=hash_password(password),
        auth_type="local",
        role="user",
        user_type="user",
    )
    db.add(user)
    await db.flush()
    logger.info("user_registered", user_id=user.id, username=username, method="local")
    return user


async def register_trader_user(
    db: AsyncSession,
    username: str,
    password: str,
    name: str,
    wallet_address: str,
    email: str | None = None,
    bio: str | None = None,
    twitter_url: str | None = None,
) -> User:
    """
    Register a user together with the Trader profile they own.

    Both rows are flushed in the caller's transaction; nothing is committed here.

    Raises:
        DuplicateWalletError: If a trader with this wallet already exists.
    """
    validate_password_strength(password)
    await _check_available(db, username, email)

    trader = await create_trader(
        db,
        name=name,
        wallet_address=wallet_address,
        bio=bio,
        twitter_url=twitter_url,
    )
    user = User(
        username=username,
        email=email,
        password_hash=hash_password(password),
        auth_type="local",
        role="user",
        user_type="trader",
        trader_id=trader.id,
    )
    db.add(user)
    await db.flush()
    logger.info("user_registered", user_id=user.id, username=username, method="local", trader_id=trader.id)
    return user


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------


async def authenticate_local_user(db: AsyncSession, username: str, password: str) -> User:
    """
    Authenticate a user with username + password.

    Raises:
        ValueError: If credentials are invalid.
    """
    user = await get_user_by_username(db, username)
    if user is None or not user.password_hash:
        msg = "Invalid username or password"
        raise ValueError(msg)

    if not verify_password(password, user.password_hash):
        msg = "Invalid username or password"
        raise ValueError(msg)

    if check_needs_rehash(user.password_hash):
        user.password_hash = hash_password(password)
        await db.flush()
        logger.info("password_rehashed", user_id=user.id)

    return user


# ---------------------------------------------------------------------------
# Google accounts
# ---------------------------------------------------------------------------


async def _unique_username(db: AsyncSession, seed: str) -> str:
    """Derive a free username from an email local part or display name."""
    base = re.sub(r"[^a-zA-Z0-9._-]", "", seed)[:40] or "user"
    if len(base) < 3:
        base = f"{base}user"
    candidate = base
    suffix = 1
    while await get_user_by_username(db, candidate) is not None:
        suffix += 1
        candidate = f"{base}{suffix}"
    return candidate


async def get_or_create_google_user(
    db: AsyncSession,
    google_id: str,
    email: str,
    first_name: str | None = None,
    last_name: str | None = None,
    picture: str | None = None,
) -> tuple[User, bool]:
    """
    Resolve a Google profile to a local user, creating one on first login.

    An existing local account with the same email is linked rather than duplicated.

    Returns:
        Tuple of (user, created) where created is True if a new user was made.
    """
    user = await get_user_by_google_id(db, google_id)
    if user is None:
        user = await get_user_by_email(db, email)
        if user is not None:
            user.google_id = google_id
            await db.flush()
            logger.info("google_account_linked", user_id=user.id)
    if user is not None:
        return user, False

    user = User(
        username=await _unique_username(db, email.split("@", 1)[0]),
        email=email.lower(),
        auth_type="google",
        google_id=google_id,
        first_name=first_name,
        last_name=last_name,
        profile_image_url=picture,
    )
    db.add(user)
    await db.flush()
    logger.info("user_registered", user_id=user.id, username=user.username, method="google")
    return user, True


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------


async def update_profile(
    db: AsyncSession,
    user: User,
    email: str | None = None,
    bio: str | None = None,
    profile_image_url: str | None = None,
) -> User:
    """
    Update editable profile fields. None means "leave unchanged".

    Raises:
        EmailTakenError: If the email belongs to another account.
    """
    if email is not None and email != (user.email or "").lower():
        existing = await get_user_by_email(db, email)
        if existing is not None and existing.id != user.id:
            msg = "Email already exists"
            raise EmailTakenError(msg)
        user.email = email
    if bio is not None:
        user.bio = bio
    if profile_image_url is not None:
        user.profile_image_url = profile_image_url
    user.updated_at = datetime.now(timezone.utc)
    await db.flush()
    return user


async def update_username(db: AsyncSession, user: User, username: str) -> User:
    """
    Change a username.

    Raises:
        UsernameTakenError: If another account already uses it.
    """
    existing = await get_user_by_username(db, username)
    if existing is not None and existing.id != user.id:
        msg = "Username is already taken"
        raise UsernameTakenError(msg)
    user.username = username
    user.updated_at = datetime.now(timezone.utc)
    await db.flush()
    return user
