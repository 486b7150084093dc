"""Global error handler — every error leaves as {"error": "<message>"}."""

import random

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from ratemykol.config import Settings

logger = structlog.get_logger()

# Production never echoes internals; one of these is returned instead
GENERIC_ERROR_MESSAGES = (
    "Something went wrong. Please try again later.",
    "An unexpected error occurred.",
    "The server could not complete your request.",
    "Internal server error",
)


def validation_message(exc: RequestValidationError) -> str:
    """Human-readable message for the first validation failure."""
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    message = str(first.get("msg", "Invalid request")).removeprefix("Value error, ")
    location = [str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path")]
    return f"{'.'.join(location)}: {message}" if location else message


def setup_error_handlers(app: FastAPI, settings: Settings) -> None:
    """Register global exception handlers."""

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
        """Handle HTTP exceptions with consistent JSON format."""
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
        """Request validation failures are plain 400s."""
        return JSONResponse(
            status_code=400,
            content={"error": validation_message(exc)},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all for unhandled exceptions — always return JSON."""
        logger.error(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=exc,
        )
        if settings.is_production:
            message = random.choice(GENERIC_ERROR_MESSAGES)  # noqa: S311
        else:
            message = str(exc) or "Internal server error"
        return JSONResponse(
            status_code=500,
            content={"error": message},
        )
