"""Authentication router: all /api/auth/* endpoints."""

from __future__ import annotations

import secrets

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, Response
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ratemykol.auth import oauth
from ratemykol.auth.dependencies import Identity, get_current_user, get_optional_identity
from ratemykol.auth.password import PasswordStrengthError
from ratemykol.auth.schemas import (
    AdminStatusResponse,
    AuthResponse,
    LoginRequest,
    MessageResponse,
    ProfileUpdateRequest,
    RegisterRequest,
    TraderRegisterRequest,
    UserResponse,
)
from ratemykol.auth.service import (
    EmailTakenError,
    UsernameTakenError,
    authenticate_local_user,
    get_or_create_google_user,
    get_user_by_id,
    register_local_user,
    register_trader_user,
    update_profile,
)
from ratemykol.auth.session import (
    OAUTH_STATE_COOKIE,
    clear_session_cookie,
    create_state_token,
    set_session_cookie,
    verify_state_token,
)
from ratemykol.config import get_settings
from ratemykol.database import get_session
from ratemykol.db.models import User
from ratemykol.traders.service import DuplicateWalletError

logger = structlog.get_logger()

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


# ---------------------------------------------------------------------------
# Local auth
# ---------------------------------------------------------------------------


@router.post("/register", response_model=AuthResponse, status_code=201)
async def register(
    body: RegisterRequest,
    response: Response,
    db: AsyncSession = Depends(get_session),
) -> AuthResponse:
    """Register with username + password and start a session."""
    try:
        user = await register_local_user(db, username=body.username, password=body.password, email=body.email)
    except (PasswordStrengthError, UsernameTakenError, EmailTakenError) as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()

    set_session_cookie(response, user.id, "local")
    return AuthResponse(message="User registered successfully", user=UserResponse.model_validate(user))


@router.post("/register-trader", response_model=AuthResponse, status_code=201)
async def register_trader(
    body: TraderRegisterRequest,
    response: Response,
    db: AsyncSession = Depends(get_session),
) -> AuthResponse:
    """Register a trader account; the Trader profile and its owner are created together."""
    try:
        user = await register_trader_user(
            db,
            username=body.username,
            password=body.password,
            name=body.name,
            wallet_address=body.wallet_address,
            email=body.email,
            bio=body.bio,
            twitter_url=body.twitter_url,
        )
    except DuplicateWalletError as e:
        await db.rollback()
        raise HTTPException(status_code=409, detail=str(e)) from e
    except (PasswordStrengthError, UsernameTakenError, EmailTakenError) as e:
        await db.rollback()
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()

    set_session_cookie(response, user.id, "local")
    return AuthResponse(message="Trader registered successfully", user=UserResponse.model_validate(user))


@router.post("/login", response_model=AuthResponse)
async def login(
    body: LoginRequest,
    response: Response,
    db: AsyncSession = Depends(get_session),
) -> AuthResponse:
    """Login with username + password."""
    try:
        user = await authenticate_local_user(db, body.username, body.password)
    except ValueError as e:
        logger.info("login_failed", username=body.username)
        raise HTTPException(status_code=401, detail=str(e)) from e
    await db.commit()

    set_session_cookie(response, user.id, "local")
    logger.info("user_logged_in", user_id=user.id, method="local")
    return AuthResponse(message="Login successful", user=UserResponse.model_validate(user))


@router.post("/logout", response_model=MessageResponse)
async def logout(response: Response) -> MessageResponse:
    """End the session. Always succeeds, even without a session."""
    clear_session_cookie(response)
    return MessageResponse(message="Logged out successfully")


@router.get("/me", response_model=UserResponse)
async def me(
    identity: Identity | None = Depends(get_optional_identity),
    db: AsyncSession = Depends(get_session),
) -> UserResponse:
    """Return the current user's profile."""
    user = await get_user_by_id(db, identity.user_id) if identity else None
    if user is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return UserResponse.model_validate(user)


@router.get("/admin-status", response_model=AdminStatusResponse)
async def admin_status(
    identity: Identity | None = Depends(get_optional_identity),
    db: AsyncSession = Depends(get_session),
) -> AdminStatusResponse:
    """Whether the caller is an admin. Anonymous callers are simply not admins."""
    user = await get_user_by_id(db, identity.user_id) if identity else None
    return AdminStatusResponse(is_admin=bool(user and user.is_admin))


@router.put("/profile", response_model=UserResponse)
async def put_profile(
    body: ProfileUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> UserResponse:
    """Update the current user's email, bio, or profile image."""
    try:
        await update_profile(
            db,
            user,
            email=body.email,
            bio=body.bio,
            profile_image_url=body.profile_image_url,
        )
    except EmailTakenError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    await db.commit()
    return UserResponse.model_validate(user)


# ---------------------------------------------------------------------------
# Google OAuth
# ---------------------------------------------------------------------------


@router.get("/google")
async def google_login() -> RedirectResponse:
    """Start the Google authorization-code flow."""
    if not oauth.is_configured():
        raise HTTPException(status_code=503, detail="Google authentication is not configured")

    state = secrets.token_urlsafe(24)
    redirect = RedirectResponse(oauth.build_authorization_url(state), status_code=302)
    redirect.set_cookie(
        key=OAUTH_STATE_COOKIE,
        value=create_state_token(state),
        max_age=600,
        httponly=True,
        secure=get_settings().session_cookie_secure,
        samesite="lax",
    )
    return redirect


@router.get("/google/callback")
async def google_callback(
    request: Request,
    code: str | None = None,
    state: str | None = None,
    db: AsyncSession = Depends(get_session),
) -> RedirectResponse:
    """Finish the Google flow, then redirect back into the SPA."""
    settings = get_settings()
    if not oauth.is_configured():
        raise HTTPException(status_code=503, detail="Google authentication is not configured")

    failure = RedirectResponse(settings.oauth_failure_redirect, status_code=302)
    failure.delete_cookie(OAUTH_STATE_COOKIE)

    state_cookie = request.cookies.get(OAUTH_STATE_COOKIE)
    if not code or not state or not state_cookie or not verify_state_token(state_cookie, state):
        logger.warning("google_oauth_state_mismatch")
        return failure

    try:
        profile = await oauth.fetch_google_profile(code)
    except oauth.GoogleOAuthError:
        return failure

    user, _created = await get_or_create_google_user(
        db,
        google_id=profile.google_id,
        email=profile.email,
        first_name=profile.first_name,
        last_name=profile.last_name,
        picture=profile.picture,
    )
    await db.commit()

    success = RedirectResponse(settings.oauth_success_redirect, status_code=302)
    success.delete_cookie(OAUTH_STATE_COOKIE)
    set_session_cookie(success, user.id, "google")
    logger.info("user_logged_in", user_id=user.id, method="google")
    return success
