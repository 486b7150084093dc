"""Badge catalogue, earned badges and progress endpoints."""

from __future__ import annotations

from conftest import RATING_BODY, SignedIn
from httpx import AsyncClient

from ratemykol.db.models import TraderBadge


class TestDefinitions:
    async def test_lists_every_badge(self, client: AsyncClient):
        response = await client.get("/api/badges/definitions")
        assert response.status_code == 200
        badges = {b["badge_type"]: b for b in response.json()["badges"]}
        assert len(badges) == 11
        assert badges["first_review"]["subject"] == "user"
        assert badges["rising_star"]["subject"] == "trader"

    async def test_levels_and_requirements(self, client: AsyncClient):
        badges = {b["badge_type"]: b for b in (await client.get("/api/badges/definitions")).json()["badges"]}
        prolific = badges["prolific_reviewer"]["levels"]
        assert [(lvl["level"], lvl["tier"], lvl["target"]) for lvl in prolific] == [
            (1, "Bronze", 5),
            (2, "Silver", 15),
            (3, "Gold", 30),
        ]
        assert badges["diamond_hands"]["levels"][0]["requirement"] == "Receive 20+ five-star reviews"


class TestUserBadges:
    async def test_no_badges_yet(self, client: AsyncClient, alice: SignedIn):
        response = await client.get(f"/api/badges/user/{alice.user['id']}")
        assert response.status_code == 200
        assert response.json() == {"earned": [], "total_earned": 0, "total_available": 9}

    async def test_earned_after_first_review(self, client: AsyncClient, alice: SignedIn, trader: dict):
        await alice.client.post(f"/api/traders/{trader['id']}/ratings", json=RATING_BODY)
        data = (await client.get(f"/api/badges/user/{alice.user['id']}")).json()
        assert data["total_earned"] == 1
        badge = data["earned"][0]
        assert badge["badge_type"] == "first_review"
        assert badge["tier"] == "Bronze"
        assert badge["description"] == "Wrote your first review"
        assert badge["earned_at"] is not None

    async def test_progress(self, client: AsyncClient, alice: SignedIn, trader: dict):
        await alice.client.post(f"/api/traders/{trader['id']}/ratings", json=RATING_BODY)
        response = await client.get(f"/api/badges/progress/{alice.user['id']}")
        assert response.status_code == 200
        progress = {(p["badge_type"], p["badge_level"]): p for p in response.json()["progress"]}
        assert progress[("first_review", 1)]["earned"] is True
        assert progress[("prolific_reviewer", 1)]["current"] == 1
        assert progress[("prolific_reviewer", 1)]["target"] == 5
        assert progress[("prolific_reviewer", 1)]["earned"] is False
        assert progress[("prolific_reviewer", 1)]["requirement"] == "Write 5 reviews"

    async def test_unknown_user(self, client: AsyncClient):
        assert (await client.get("/api/badges/user/999")).status_code == 404
        assert (await client.get("/api/badges/progress/999")).status_code == 404


class TestTraderBadges:
    async def test_no_badges_yet(self, client: AsyncClient, trader: dict):
        response = await client.get(f"/api/trader-badges/{trader['id']}")
        assert response.status_code == 200
        assert response.json() == {"earned": [], "total_earned": 0, "total_available": 10}

    async def test_lists_stored_badges(self, client: AsyncClient, trader: dict, session_factory):
        async with session_factory() as db:
            db.add(TraderBadge(
                trader_id=trader["id"],
                badge_type="top_performer",
                badge_level=2,
                badge_metadata={"average_rating": 4.6},
            ))
            await db.commit()

        data = (await client.get(f"/api/trader-badges/{trader['id']}")).json()
        assert data["total_earned"] == 1
        assert data["earned"][0]["name"] == "Top Performer"
        assert data["earned"][0]["tier"] == "Silver"
        assert data["earned"][0]["metadata"] == {"average_rating": 4.6}

    async def test_progress(self, client: AsyncClient, alice: SignedIn, bob: SignedIn, trader: dict):
        await alice.client.post(f"/api/traders/{trader['id']}/ratings", json={**RATING_BODY, "overall_rating": 5})
        await bob.client.post(f"/api/traders/{trader['id']}/ratings", json={**RATING_BODY, "overall_rating": 5})

        response = await client.get(f"/api/trader-badges/progress/{trader['id']}")
        progress = {(p["badge_type"], p["badge_level"]): p for p in response.json()["progress"]}
        assert progress[("rising_star", 1)]["current"] == 2
        assert progress[("rising_star", 1)]["target"] == 5
        assert progress[("diamond_hands", 1)]["current"] == 2
        assert not any(p["earned"] for p in progress.values())

    async def test_unknown_trader(self, client: AsyncClient):
        assert (await client.get("/api/trader-badges/999")).status_code == 404
        assert (await client.get("/api/trader-badges/progress/999")).status_code == 404
