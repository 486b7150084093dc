"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

import structlog
import uvicorn
from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from ratemykol.admin.router import router as admin_router
from ratemykol.auth.router import router as auth_router
from ratemykol.config import get_settings
from ratemykol.database import close_db, init_db
from ratemykol.gamification.router import router as badges_router
from ratemykol.health.router import router as health_router
from ratemykol.middleware import setup_middleware
from ratemykol.ratings.router import router as ratings_router
from ratemykol.redis_client import close_redis, init_redis
from ratemykol.traders.router import router as traders_router
from ratemykol.uploads.router import UPLOADS_URL_PREFIX
from ratemykol.uploads.router import router as uploads_router
from ratemykol.users.router import router as users_router

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    if settings.redis_url:
        await init_redis(settings.redis_url)
    else:
        logger.info("redis_disabled")
    logger.info("app_started", environment=settings.environment, version=settings.app_version)

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="RateMyKOL API",
        description="Backend API for RateMyKOL, community ratings for crypto KOL traders",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(auth_router)
    app.include_router(ratings_router)
    app.include_router(traders_router)
    app.include_router(users_router)
    app.include_router(badges_router)
    app.include_router(admin_router)
    app.include_router(uploads_router)

    upload_dir = Path(settings.upload_dir)
    upload_dir.mkdir(parents=True, exist_ok=True)
    app.mount(UPLOADS_URL_PREFIX, StaticFiles(directory=upload_dir), name="uploads")

    return app


def run() -> None:
    """Console entry point: serve the app with uvicorn."""
    settings = get_settings()
    uvicorn.run(
        "ratemykol.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        server_header=False,
        proxy_headers=True,
    )


app = create_app()
