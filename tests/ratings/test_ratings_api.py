"""Submitting and listing trader ratings."""

from __future__ import annotations

from conftest import RATING_BODY, WALLET_B, SignedIn, create_trader_via_api
from httpx import AsyncClient
from sqlalchemy import func, select

from ratemykol.db.models import Rating, TraderBadge, User, UserBadge
from ratemykol.gamification import badge_service


class TestSubmitRating:
    async def test_requires_session(self, client: AsyncClient, trader: dict):
        response = await client.post(f"/api/traders/{trader['id']}/ratings", json=RATING_BODY)
        assert response.status_code == 401
        assert response.json() == {"error": "Authentication required to leave a review"}

    async def test_submit(self, alice: SignedIn, trader: dict):
        response = await alice.client.post(f"/api/traders/{trader['id']}/ratings", json=RATING_BODY)
        assert response.status_code == 201
        data = response.json()
        assert data["trader_id"] == trader["id"]
        assert data["user_id"] == alice.user["id"]
        assert data["reviewer_name"] == "alice"
        assert data["overall_rating"] == 4
        assert data["communication_rating"] == 3
        assert data["tags"] == ["memecoins", "swing"]
        assert data["helpful"] == 0
        assert data["not_helpful"] == 0

    async def test_first_rating_earns_first_review_badge(self, alice: SignedIn, trader: dict, admin: SignedIn):
        data = (await alice.client.post(f"/api/traders/{trader['id']}/ratings", json=RATING_BODY)).json()
        assert [(b["badge_type"], b["tier"]) for b in data["new_badges"]] == [("first_review", "Bronze")]
        assert data["new_badges"][0]["name"] == "First Review"
        assert data["new_badges"][0]["metadata"]["review_count"] == 1

        other = await create_trader_via_api(admin.client, "Cupsey", WALLET_B)
        again = (await alice.client.post(f"/api/traders/{other['id']}/ratings", json=RATING_BODY)).json()
        assert again["new_badges"] == []

    async def test_reported_badges_survive_trader_badge_conflict(
        self, alice: SignedIn, trader: dict, session_factory, monkeypatch
    ):
        async with session_factory() as db:
            others = [User(username=f"early{i}", password_hash="x") for i in range(4)]
            db.add_all(others)
            await db.flush()
            db.add_all([
                Rating(
                    trader_id=trader["id"],
                    user_id=u.id,
                    reviewer_name=u.username,
                    overall_rating=5,
                    strategy_rating=5,
                    communication_rating=5,
                    reliability_rating=5,
                    profitability_rating=5,
                )
                for u in others
            ])
            # A concurrent submission already stored the badge this rating unlocks
            db.add(TraderBadge(trader_id=trader["id"], badge_type="rising_star", badge_level=1))
            await db.commit()

        async def stale_listing(_db, _trader_id: int) -> list[TraderBadge]:
            return []

        monkeypatch.setattr(badge_service, "list_trader_badges", stale_listing)

        response = await alice.client.post(
            f"/api/traders/{trader['id']}/ratings", json={**RATING_BODY, "overall_rating": 5}
        )
        assert response.status_code == 201
        assert [b["badge_type"] for b in response.json()["new_badges"]] == ["first_review"]

        async with session_factory() as db:
            stored = await db.execute(select(UserBadge.badge_type).where(UserBadge.user_id == alice.user["id"]))
            assert stored.scalars().all() == ["first_review"]
            count = await db.execute(select(func.count()).select_from(TraderBadge))
            assert count.scalar_one() == 1

    async def test_custom_reviewer_name(self, alice: SignedIn, trader: dict):
        response = await alice.client.post(
            f"/api/traders/{trader['id']}/ratings", json={**RATING_BODY, "reviewer_name": "Anon Degen"}
        )
        assert response.json()["reviewer_name"] == "Anon Degen"

    async def test_tags_are_cleaned(self, alice: SignedIn, trader: dict):
        response = await alice.client.post(
            f"/api/traders/{trader['id']}/ratings", json={**RATING_BODY, "tags": ["  scalper ", "", "   ", "alpha"]}
        )
        assert response.json()["tags"] == ["scalper", "alpha"]

    async def test_one_rating_per_trader(self, alice: SignedIn, trader: dict):
        await alice.client.post(f"/api/traders/{trader['id']}/ratings", json=RATING_BODY)
        response = await alice.client.post(f"/api/traders/{trader['id']}/ratings", json=RATING_BODY)
        assert response.status_code == 409
        assert response.json() == {"error": "You have already rated this trader"}

    async def test_score_out_of_range(self, alice: SignedIn, trader: dict):
        for bad in (0, 6):
            response = await alice.client.post(
                f"/api/traders/{trader['id']}/ratings", json={**RATING_BODY, "strategy_rating": bad}
            )
            assert response.status_code == 400
            assert response.json()["error"].startswith("strategy_rating:")

    async def test_missing_score(self, alice: SignedIn, trader: dict):
        body = {k: v for k, v in RATING_BODY.items() if k != "overall_rating"}
        response = await alice.client.post(f"/api/traders/{trader['id']}/ratings", json=body)
        assert response.status_code == 400

    async def test_unknown_trader(self, alice: SignedIn):
        response = await alice.client.post("/api/traders/999/ratings", json=RATING_BODY)
        assert response.status_code == 404
        assert response.json() == {"error": "Trader not found"}

    async def test_cannot_rate_own_profile(self, make_client):
        owner = await make_client()
        registered = await owner.post("/api/auth/register-trader", json={
            "username": "cupsey",
            "password": "secret123",
            "name": "Cupsey",
            "wallet_address": WALLET_B,
        })
        trader_id = registered.json()["user"]["trader_id"]
        response = await owner.post(f"/api/traders/{trader_id}/ratings", json=RATING_BODY)
        assert response.status_code == 403


class TestListRatings:
    async def test_trader_ratings_newest_first(
        self, client: AsyncClient, alice: SignedIn, bob: SignedIn, trader: dict
    ):
        await alice.client.put("/api/auth/profile", json={"profile_image_url": "/uploads/alice.png"})
        await alice.client.post(f"/api/traders/{trader['id']}/ratings", json=RATING_BODY)
        await bob.client.post(f"/api/traders/{trader['id']}/ratings", json={**RATING_BODY, "overall_rating": 2})

        response = await client.get(f"/api/traders/{trader['id']}/ratings")
        assert response.status_code == 200
        data = response.json()
        assert [r["reviewer_name"] for r in data] == ["bob", "alice"]
        assert data[0]["user_profile_image"] is None
        assert data[1]["user_profile_image"] == "/uploads/alice.png"

    async def test_trader_without_ratings(self, client: AsyncClient, trader: dict):
        response = await client.get(f"/api/traders/{trader['id']}/ratings")
        assert response.json() == []

    async def test_unknown_trader(self, client: AsyncClient):
        response = await client.get("/api/traders/999/ratings")
        assert response.status_code == 404

    async def test_own_ratings_include_trader(self, alice: SignedIn, bob: SignedIn, trader: dict):
        await alice.client.post(f"/api/traders/{trader['id']}/ratings", json=RATING_BODY)
        await bob.client.post(f"/api/traders/{trader['id']}/ratings", json=RATING_BODY)

        response = await alice.client.get("/api/user/ratings")
        assert response.status_code == 200
        data = response.json()
        assert len(data) == 1
        assert data[0]["user_id"] == alice.user["id"]
        assert data[0]["trader_name"] == "Ansem"
        assert data[0]["trader_wallet"] == trader["wallet_address"]

    async def test_own_ratings_require_session(self, client: AsyncClient):
        response = await client.get("/api/user/ratings")
        assert response.status_code == 401
