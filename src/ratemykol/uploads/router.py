"""Image uploads: user avatars and trader profile pictures, served from /uploads."""

from __future__ import annotations

import uuid
from pathlib import Path

import structlog
from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from ratemykol.auth.dependencies import Identity, get_current_user, require_admin
from ratemykol.config import get_settings
from ratemykol.database import get_session
from ratemykol.db.models import User
from ratemykol.traders.service import get_trader

logger = structlog.get_logger()

router = APIRouter(prefix="/api/upload", tags=["Uploads"])

UPLOADS_URL_PREFIX = "/uploads"

ALLOWED_CONTENT_TYPES = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/gif": ".gif",
    "image/webp": ".webp",
}


class UploadResponse(BaseModel):
    url: str


async def save_image(file: UploadFile) -> str:
    """
    Validate and store an uploaded image under a random name.

    Returns the public URL path. Raises HTTPException(400) for a bad type or size.
    """
    settings = get_settings()
    extension = ALLOWED_CONTENT_TYPES.get(file.content_type or "")
    if extension is None:
        raise HTTPException(status_code=400, detail="Only PNG, JPEG, GIF and WebP images are allowed")

    data = await file.read(settings.upload_max_bytes + 1)
    if not data:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")
    if len(data) > settings.upload_max_bytes:
        raise HTTPException(status_code=400, detail="File too large")

    upload_dir = Path(settings.upload_dir)
    upload_dir.mkdir(parents=True, exist_ok=True)
    filename = f"{uuid.uuid4().hex}{extension}"
    await run_in_threadpool((upload_dir / filename).write_bytes, data)

    logger.info("image_uploaded", filename=filename, size=len(data))
    return f"{UPLOADS_URL_PREFIX}/{filename}"


@router.post("/profile-image", response_model=UploadResponse)
async def upload_profile_image(
    image: UploadFile = File(...),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> UploadResponse:
    """Upload an avatar for the current user."""
    url = await save_image(image)
    user.profile_image_url = url
    await db.commit()
    return UploadResponse(url=url)


@router.post("/trader-image/{trader_id}", response_model=UploadResponse)
async def upload_trader_image(
    trader_id: int,
    image: UploadFile = File(...),
    _admin: Identity = Depends(require_admin),
    db: AsyncSession = Depends(get_session),
) -> UploadResponse:
    trader = await get_trader(db, trader_id)
    if trader is None:
        raise HTTPException(status_code=404, detail="Trader not found")
    url = await save_image(image)
    trader.profile_image = url
    await db.commit()
    return UploadResponse(url=url)
