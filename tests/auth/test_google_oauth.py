"""Google sign-in: authorization redirect, callback, and the profile fetch."""

from __future__ import annotations

from urllib.parse import parse_qs, urlparse

import httpx
import pytest
from conftest import register
from httpx import AsyncClient

from ratemykol.auth import oauth
from ratemykol.config import get_settings


@pytest.fixture
def google_configured(monkeypatch):
    monkeypatch.setenv("RMK_GOOGLE_CLIENT_ID", "client-123")
    monkeypatch.setenv("RMK_GOOGLE_CLIENT_SECRET", "shh")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def google_profile(monkeypatch):
    """Replace the network exchange with a fixed profile."""
    profile = oauth.GoogleProfile(
        google_id="g-1",
        email="satoshi@example.com",
        first_name="Satoshi",
        last_name="N",
        picture="https://lh3.googleusercontent.com/a/pic",
    )

    async def fake_fetch(code: str, client=None) -> oauth.GoogleProfile:
        assert code == "auth-code"
        return profile

    monkeypatch.setattr(oauth, "fetch_google_profile", fake_fetch)
    return profile


async def _start_flow(client: AsyncClient) -> str:
    response = await client.get("/api/auth/google")
    assert response.status_code == 302
    return parse_qs(urlparse(response.headers["location"]).query)["state"][0]


class TestGoogleRedirect:
    async def test_redirects_to_google(self, client: AsyncClient, google_configured):
        response = await client.get("/api/auth/google")
        assert response.status_code == 302
        location = urlparse(response.headers["location"])
        assert f"{location.scheme}://{location.netloc}{location.path}" == oauth.GOOGLE_AUTH_URL
        params = parse_qs(location.query)
        assert params["client_id"] == ["client-123"]
        assert params["response_type"] == ["code"]
        assert "email" in params["scope"][0]
        assert "oauth_state" in response.cookies


class TestGoogleCallback:
    async def test_first_login_creates_user(self, client: AsyncClient, google_configured, google_profile):
        state = await _start_flow(client)
        response = await client.get("/api/auth/google/callback", params={"code": "auth-code", "state": state})
        assert response.status_code == 302
        assert response.headers["location"] == "/"

        me = await client.get("/api/auth/me")
        assert me.status_code == 200
        user = me.json()
        assert user["username"] == "satoshi"
        assert user["auth_type"] == "google"
        assert user["email"] == "satoshi@example.com"
        assert user["profile_image_url"] == google_profile.picture

    async def test_second_login_reuses_user(self, make_client, google_configured, google_profile):
        ids = []
        for _ in range(2):
            client = await make_client()
            state = await _start_flow(client)
            await client.get("/api/auth/google/callback", params={"code": "auth-code", "state": state})
            ids.append((await client.get("/api/auth/me")).json()["id"])
        assert ids[0] == ids[1]

    async def test_links_existing_email_account(self, make_client, google_configured, google_profile):
        local = await register(await make_client(), "satoshi_local", email="satoshi@example.com")

        client = await make_client()
        state = await _start_flow(client)
        await client.get("/api/auth/google/callback", params={"code": "auth-code", "state": state})
        me = (await client.get("/api/auth/me")).json()
        assert me["id"] == local["id"]
        assert me["username"] == "satoshi_local"

    async def test_username_collision_gets_suffix(self, make_client, google_configured, google_profile):
        await register(await make_client(), "satoshi")

        client = await make_client()
        state = await _start_flow(client)
        await client.get("/api/auth/google/callback", params={"code": "auth-code", "state": state})
        assert (await client.get("/api/auth/me")).json()["username"] == "satoshi2"

    async def test_state_mismatch_fails(self, client: AsyncClient, google_configured, google_profile):
        await _start_flow(client)
        response = await client.get("/api/auth/google/callback", params={"code": "auth-code", "state": "forged"})
        assert response.status_code == 302
        assert response.headers["location"] == "/signin"
        assert (await client.get("/api/auth/me")).status_code == 401

    async def test_missing_code_fails(self, client: AsyncClient, google_configured, google_profile):
        state = await _start_flow(client)
        response = await client.get("/api/auth/google/callback", params={"state": state})
        assert response.headers["location"] == "/signin"

    async def test_exchange_failure_fails(self, client: AsyncClient, google_configured, monkeypatch):
        async def failing_fetch(code: str, client=None):
            raise oauth.GoogleOAuthError("Google authentication failed")

        monkeypatch.setattr(oauth, "fetch_google_profile", failing_fetch)
        state = await _start_flow(client)
        response = await client.get("/api/auth/google/callback", params={"code": "auth-code", "state": state})
        assert response.headers["location"] == "/signin"


class TestFetchGoogleProfile:
    async def test_exchanges_code_and_reads_profile(self, google_configured):
        def handler(request: httpx.Request) -> httpx.Response:
            if str(request.url) == oauth.GOOGLE_TOKEN_URL:
                assert b"code=the-code" in request.content
                return httpx.Response(200, json={"access_token": "tok"})
            assert request.headers["Authorization"] == "Bearer tok"
            return httpx.Response(200, json={
                "sub": "1234",
                "email": "v@example.com",
                "given_name": "Vitalik",
                "family_name": "B",
            })

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            profile = await oauth.fetch_google_profile("the-code", client=client)

        assert profile == oauth.GoogleProfile(
            google_id="1234", email="v@example.com", first_name="Vitalik", last_name="B", picture=None
        )

    async def test_token_error(self, google_configured):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, json={"error": "invalid_grant"})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(oauth.GoogleOAuthError):
                await oauth.fetch_google_profile("bad", client=client)

    async def test_profile_without_email(self, google_configured):
        def handler(request: httpx.Request) -> httpx.Response:
            if str(request.url) == oauth.GOOGLE_TOKEN_URL:
                return httpx.Response(200, json={"access_token": "tok"})
            return httpx.Response(200, json={"sub": "1234"})

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(oauth.GoogleOAuthError):
                await oauth.fetch_google_profile("the-code", client=client)
