"""Shared test fixtures.

Tests run against an in-memory SQLite database (one shared connection per
test) with Redis left uninitialized, so rate limiting and the leaderboard
cache pass through.
"""

from __future__ import annotations

import os
import tempfile
from collections.abc import AsyncGenerator, Awaitable, Callable
from dataclasses import dataclass

# Settings are read at import time by ratemykol.main, so the environment
# must be in place before any ratemykol import.
os.environ["RMK_DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["RMK_REDIS_URL"] = ""
os.environ["RMK_UPLOAD_DIR"] = tempfile.mkdtemp(prefix="rmk_test_uploads_")
os.environ["RMK_LOG_FORMAT"] = "console"
os.environ["RMK_GOOGLE_CLIENT_ID"] = ""
os.environ["RMK_GOOGLE_CLIENT_SECRET"] = ""

import pytest_asyncio  # noqa: E402
from fastapi import FastAPI  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker  # noqa: E402

from ratemykol.config import get_settings  # noqa: E402
from ratemykol.database import close_db, get_engine, init_db  # noqa: E402
from ratemykol.db.base import Base  # noqa: E402
from ratemykol.db.models import User  # noqa: E402
from ratemykol.main import create_app  # noqa: E402

TEST_PASSWORD = "secret123"

WALLET_A = "7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU"
WALLET_B = "9WzDXwBbmkg8ZTbNMqUxvQRAyrZzDsGYdLVL9zYtAWWM"
WALLET_C = "HN7cABqLq46Es1jh92dQQisAq662SmxELLLsHHe4YWrH"

RATING_BODY = {
    "overall_rating": 4,
    "strategy_rating": 4,
    "communication_rating": 3,
    "reliability_rating": 5,
    "profitability_rating": 4,
    "comment": "Solid calls, explains entries well.",
    "tags": ["memecoins", "swing"],
}


@pytest_asyncio.fixture
async def app() -> AsyncGenerator[FastAPI, None]:
    """Fresh application over a fresh in-memory schema."""
    get_settings.cache_clear()
    await init_db(get_settings().database_url)
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield create_app()

    await close_db()
    get_settings.cache_clear()


@pytest_asyncio.fixture
async def session_factory(app: FastAPI) -> async_sessionmaker[AsyncSession]:
    """Sessions for arranging and asserting database state directly."""
    return async_sessionmaker(get_engine(), class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def make_client(app: FastAPI) -> AsyncGenerator[Callable[[], Awaitable[AsyncClient]], None]:
    """Factory for extra clients, each with its own cookie jar."""
    clients: list[AsyncClient] = []

    async def _make() -> AsyncClient:
        ac = AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver")
        clients.append(ac)
        return ac

    yield _make

    for ac in clients:
        await ac.aclose()


@pytest_asyncio.fixture
async def client(make_client: Callable[[], Awaitable[AsyncClient]]) -> AsyncClient:
    """Anonymous HTTP client."""
    return await make_client()


async def register(client: AsyncClient, username: str, password: str = TEST_PASSWORD, **extra: object) -> dict:
    """Register through the API; the client keeps the session cookie."""
    response = await client.post("/api/auth/register", json={"username": username, "password": password, **extra})
    assert response.status_code == 201, response.text
    return response.json()["user"]


async def promote_to_admin(session_factory: async_sessionmaker[AsyncSession], user_id: int) -> None:
    async with session_factory() as db:
        user = await db.get(User, user_id)
        assert user is not None
        user.role = "admin"
        await db.commit()


async def create_trader_via_api(
    admin_client: AsyncClient,
    name: str = "Ansem",
    wallet_address: str = WALLET_A,
    **extra: object,
) -> dict:
    response = await admin_client.post("/api/traders", json={"name": name, "wallet_address": wallet_address, **extra})
    assert response.status_code == 201, response.text
    return response.json()


@dataclass
class SignedIn:
    """A client holding a session cookie, plus the account it belongs to."""

    client: AsyncClient
    user: dict


async def _signed_in(
    make_client: Callable[[], Awaitable[AsyncClient]],
    username: str,
) -> SignedIn:
    ac = await make_client()
    return SignedIn(client=ac, user=await register(ac, username))


@pytest_asyncio.fixture
async def alice(make_client: Callable[[], Awaitable[AsyncClient]]) -> SignedIn:
    return await _signed_in(make_client, "alice")


@pytest_asyncio.fixture
async def bob(make_client: Callable[[], Awaitable[AsyncClient]]) -> SignedIn:
    return await _signed_in(make_client, "bob")


@pytest_asyncio.fixture
async def admin(
    make_client: Callable[[], Awaitable[AsyncClient]],
    session_factory: async_sessionmaker[AsyncSession],
) -> SignedIn:
    """Admin 'root'. The role is read from the database on every request."""
    signed_in = await _signed_in(make_client, "root")
    await promote_to_admin(session_factory, signed_in.user["id"])
    return signed_in


@pytest_asyncio.fixture
async def trader(admin: SignedIn) -> dict:
    """A trader created by the admin."""
    return await create_trader_via_api(admin.client, bio="Solana memecoin caller", specialty="Memecoins")
