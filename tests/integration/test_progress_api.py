"""Integration tests for achievements, daily challenges and daily login."""

from __future__ import annotations

import pytest
from httpx import AsyncClient


def _as(account_id: str) -> dict[str, str]:
    return {"X-Test-Account": account_id}


async def _play(client: AsyncClient, account_id: str, activity: str, score: int, duration: int = 60) -> dict:
    start = await client.post("/api/v1/gameplay/sessions", json={"activity_id": activity}, headers=_as(account_id))
    body = {
        "session_id": start.json()["session_id"],
        "activity_id": activity,
        "score": score,
        "duration_seconds": duration,
    }
    response = await client.post("/api/v1/gameplay/complete", json=body, headers=_as(account_id))
    return response.json()


class TestAchievementsEndpoints:
    @pytest.mark.asyncio
    async def test_catalog_listed_for_new_player(self, client: AsyncClient, veteran: str):
        response = await client.get("/api/v1/achievements", headers=_as(veteran))
        assert response.status_code == 200
        data = response.json()
        assert len(data["achievements"]) == 12
        assert data["claimable"] == 0
        explorer = next(a for a in data["achievements"] if a["id"] == "all-games")
        assert explorer["target"] == 15
        assert explorer["progress"] == 0

    @pytest.mark.asyncio
    async def test_claim_flow(self, client: AsyncClient, veteran: str):
        await _play(client, veteran, "orange-pong", 10)

        listing = (await client.get("/api/v1/achievements", headers=_as(veteran))).json()
        first_game = next(a for a in listing["achievements"] if a["id"] == "first-game")
        assert first_game["completed"] is True
        assert first_game["claimed"] is False
        assert listing["claimable"] == 1

        claim = await client.post(
            "/api/v1/achievements/claim", json={"achievement_id": "first-game"}, headers=_as(veteran),
        )
        assert claim.status_code == 200
        assert claim.json()["reward"]["oranges"] == 50
        assert claim.json()["new_balance"]["oranges"] == 100 + 10 + 50

        again = await client.post(
            "/api/v1/achievements/claim", json={"achievement_id": "first-game"}, headers=_as(veteran),
        )
        assert again.status_code == 409
        assert again.json()["error"] == "AlreadyClaimed"

    @pytest.mark.asyncio
    async def test_claim_incomplete(self, client: AsyncClient, veteran: str):
        await _play(client, veteran, "orange-pong", 10)
        response = await client.post(
            "/api/v1/achievements/claim", json={"achievement_id": "games-10"}, headers=_as(veteran),
        )
        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "NotCompleted"
        assert (data["progress"], data["target"]) == (1, 10)

    @pytest.mark.asyncio
    async def test_unknown_achievement_rejected(self, client: AsyncClient, veteran: str):
        response = await client.post(
            "/api/v1/achievements/claim", json={"achievement_id": "be-rich"}, headers=_as(veteran),
        )
        assert response.status_code == 422


class TestChallengesEndpoints:
    @pytest.mark.asyncio
    async def test_marathon_challenge(self, client: AsyncClient, veteran: str):
        result = await _play(client, veteran, "knife-game", 50, duration=600)
        assert "play-time-600" in result["completed_challenges"]

        listing = (await client.get("/api/v1/challenges", headers=_as(veteran))).json()
        assert len(listing["challenges"]) == 3
        assert listing["claimable"] == 1

        claim = await client.post(
            "/api/v1/challenges/claim", json={"challenge_id": "play-time-600"}, headers=_as(veteran),
        )
        assert claim.status_code == 200
        assert claim.json()["reward"] == {"oranges": 70, "gems": 0, "breakdown": None}

    @pytest.mark.asyncio
    async def test_unstarted_challenge(self, client: AsyncClient, veteran: str):
        response = await client.post(
            "/api/v1/challenges/claim", json={"challenge_id": "games-played-5"}, headers=_as(veteran),
        )
        assert response.status_code == 400
        assert response.json()["target"] == 5


class TestDailyLoginEndpoints:
    @pytest.mark.asyncio
    async def test_claim_once_per_day(self, client: AsyncClient, veteran: str):
        status = (await client.get("/api/v1/daily-login", headers=_as(veteran))).json()
        assert status["claimed_today"] is False
        assert status["reward_oranges"] == 15

        first = await client.post("/api/v1/daily-login", headers=_as(veteran))
        second = await client.post("/api/v1/daily-login", headers=_as(veteran))

        assert first.json()["streak_day"] == 1
        assert first.json()["new_balance"]["oranges"] == 115
        assert second.json()["already_applied"] is True
        assert second.json()["new_balance"]["oranges"] == 115

        status = (await client.get("/api/v1/daily-login", headers=_as(veteran))).json()
        assert status["claimed_today"] is True
