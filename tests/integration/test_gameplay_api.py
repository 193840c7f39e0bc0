"""Integration tests for the gameplay endpoints."""

from __future__ import annotations

import pytest
from httpx import AsyncClient


def _as(account_id: str) -> dict[str, str]:
    return {"X-Test-Account": account_id}


async def _start(client: AsyncClient, account_id: str, activity: str) -> str:
    response = await client.post("/api/v1/gameplay/sessions", json={"activity_id": activity}, headers=_as(account_id))
    assert response.status_code == 200, response.text
    return response.json()["session_id"]


class TestSessions:
    @pytest.mark.asyncio
    async def test_start_and_current(self, client: AsyncClient, veteran: str):
        session_id = await _start(client, veteran, "orange-pong")

        response = await client.get("/api/v1/gameplay/sessions/current", headers=_as(veteran))
        data = response.json()
        assert data["active"] is True
        assert data["session"]["session_id"] == session_id

    @pytest.mark.asyncio
    async def test_second_start_conflicts(self, client: AsyncClient, veteran: str):
        await _start(client, veteran, "orange-pong")
        response = await client.post(
            "/api/v1/gameplay/sessions", json={"activity_id": "merge-2048"}, headers=_as(veteran),
        )

        assert response.status_code == 409
        data = response.json()
        assert data["error"] == "Conflict"
        assert data["active_activity"] == "orange-pong"
        assert 0 < data["expires_in_seconds"] <= 120

    @pytest.mark.asyncio
    async def test_heartbeat(self, client: AsyncClient, veteran: str):
        session_id = await _start(client, veteran, "orange-pong")
        ok = await client.post(
            "/api/v1/gameplay/sessions/heartbeat", json={"session_id": session_id}, headers=_as(veteran),
        )
        gone = await client.post(
            "/api/v1/gameplay/sessions/heartbeat", json={"session_id": "stale"}, headers=_as(veteran),
        )
        assert ok.status_code == 200
        assert gone.status_code == 404
        assert gone.json()["error"] == "SessionNotFound"

    @pytest.mark.asyncio
    async def test_unknown_activity_rejected(self, client: AsyncClient, veteran: str):
        response = await client.post(
            "/api/v1/gameplay/sessions", json={"activity_id": "pacman"}, headers=_as(veteran),
        )
        assert response.status_code == 422


class TestComplete:
    @pytest.mark.asyncio
    async def test_reward_and_replay(self, client: AsyncClient, veteran: str):
        session_id = await _start(client, veteran, "wojak-runner")
        body = {
            "session_id": session_id,
            "activity_id": "wojak-runner",
            "score": 500,
            "duration_seconds": 90,
            "is_high_score": True,
        }
        first = await client.post("/api/v1/gameplay/complete", json=body, headers=_as(veteran))
        second = await client.post("/api/v1/gameplay/complete", json=body, headers=_as(veteran))

        assert first.status_code == 200
        data = first.json()
        assert data["success"] is True
        assert data["reward"]["oranges"] == 35
        assert data["new_balance"] == {"oranges": 135, "gems": 0}
        assert "first-game" in data["completed_achievements"]

        replay = second.json()
        assert replay["already_applied"] is True
        assert replay["reward"]["oranges"] == 35
        assert replay["new_balance"]["oranges"] == 135

    @pytest.mark.asyncio
    async def test_fresh_account_earns_half(self, client: AsyncClient):
        session_id = await _start(client, "user_fresh", "wojak-runner")
        body = {"session_id": session_id, "activity_id": "wojak-runner", "score": 500, "is_high_score": True}
        response = await client.post("/api/v1/gameplay/complete", json=body, headers=_as("user_fresh"))

        data = response.json()
        assert data["reward"]["oranges"] == 17
        assert "staged_trust:50%" in data["reward"]["breakdown"]["bonuses"]

    @pytest.mark.asyncio
    async def test_below_minimum(self, client: AsyncClient, veteran: str):
        session_id = await _start(client, veteran, "merge-2048")
        body = {"session_id": session_id, "activity_id": "merge-2048", "score": 100}
        response = await client.post("/api/v1/gameplay/complete", json=body, headers=_as(veteran))

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is False
        assert data["error"] == "BelowMinimum"
        assert data["min_score"] == 256
        assert data["your_score"] == 100
        assert data["reward"]["oranges"] == 0

        retry = await client.post("/api/v1/gameplay/complete", json=body, headers=_as(veteran))
        assert retry.status_code == 200
        assert retry.json()["error"] == "BelowMinimum"

    @pytest.mark.asyncio
    async def test_unknown_session(self, client: AsyncClient, veteran: str):
        body = {"session_id": "nope", "activity_id": "orange-pong", "score": 10}
        response = await client.post("/api/v1/gameplay/complete", json=body, headers=_as(veteran))
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_negative_score_rejected(self, client: AsyncClient, veteran: str):
        body = {"session_id": "s", "activity_id": "orange-pong", "score": -1}
        response = await client.post("/api/v1/gameplay/complete", json=body, headers=_as(veteran))
        assert response.status_code == 422
