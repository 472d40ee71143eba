"""End-to-end tests for the HTTP routes."""

from datetime import timedelta

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from backend.api.deps import get_scheduler
from backend.clock import FixedClock
from backend.errors import PersistenceError
from backend.main import app
from backend.models.deck import Deck
from backend.models.user import User
from backend.models.user_stats import UserStats
from backend.srs.scheduler import ReviewScheduler
from tests.conftest import START


def _headers(user: User) -> dict[str, str]:
    return {"X-User-Id": str(user.id)}


class TestDeckRoutes:
    @pytest.mark.asyncio
    async def test_create_and_list_decks(self, client: AsyncClient, user: User) -> None:
        response = await client.post("/api/decks", json={"name": "History"}, headers=_headers(user))
        assert response.status_code == 201
        assert response.json()["name"] == "History"

        listed = await client.get("/api/decks", headers=_headers(user))
        assert [d["name"] for d in listed.json()] == ["History"]

    @pytest.mark.asyncio
    async def test_other_users_deck_is_not_found(
        self, client: AsyncClient, deck: Deck, other_user: User
    ) -> None:
        response = await client.delete(f"/api/decks/{deck.id}", headers=_headers(other_user))
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_missing_user_header(self, client: AsyncClient) -> None:
        response = await client.get("/api/decks")
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_malformed_user_header(self, client: AsyncClient) -> None:
        response = await client.get("/api/decks", headers={"X-User-Id": "0"})
        assert response.status_code == 400


class TestReviewRoutes:
    @pytest.mark.asyncio
    async def test_review_reschedules_card(
        self, client: AsyncClient, user: User, deck: Deck, clock: FixedClock
    ) -> None:
        created = await client.post(
            f"/api/decks/{deck.id}/flashcards",
            json={"question": "Powerhouse of the cell?", "answer": "Mitochondria"},
            headers=_headers(user),
        )
        card_id = created.json()["id"]

        due = await client.get("/api/flashcards/due", headers=_headers(user))
        assert [c["id"] for c in due.json()] == [card_id]

        reviewed = await client.post(
            f"/api/flashcards/{card_id}/review", json={"difficulty": "medium"}, headers=_headers(user)
        )
        assert reviewed.status_code == 200
        body = reviewed.json()
        assert body["review_count"] == 1
        assert body["success_rate"] == 0.5
        assert body["difficulty"] == "medium"

        due = await client.get("/api/flashcards/due", params={"deck_id": deck.id}, headers=_headers(user))
        assert due.json() == []

        clock.advance(days=3)
        due = await client.get("/api/flashcards/due", headers=_headers(user))
        assert [c["id"] for c in due.json()] == [card_id]

    @pytest.mark.asyncio
    async def test_unknown_difficulty(self, client: AsyncClient, user: User, deck: Deck) -> None:
        created = await client.post(
            f"/api/decks/{deck.id}/flashcards",
            json={"question": "q", "answer": "a"},
            headers=_headers(user),
        )
        response = await client.post(
            f"/api/flashcards/{created.json()['id']}/review",
            json={"difficulty": "trivial"},
            headers=_headers(user),
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_review_unknown_card(self, client: AsyncClient, user: User) -> None:
        response = await client.post(
            "/api/flashcards/999/review", json={"difficulty": "easy"}, headers=_headers(user)
        )
        assert response.status_code == 404


class TestStreakRoutes:
    @pytest.mark.asyncio
    async def test_fresh_user_streak(self, client: AsyncClient, user: User) -> None:
        response = await client.get("/api/streak", headers=_headers(user))
        assert response.status_code == 200
        body = response.json()
        assert body["current_streak"] == 0
        assert body["last_study_date"] is None
        assert len(body["achievements"]) == 7
        assert not any(a["unlocked"] for a in body["achievements"])

    @pytest.mark.asyncio
    async def test_update_across_days(self, client: AsyncClient, user: User, clock: FixedClock) -> None:
        first = await client.post("/api/streak/update", headers=_headers(user))
        assert first.json()["current_streak"] == 1
        assert first.json()["streak_maintained"] is False

        clock.advance(days=1)
        second = await client.post("/api/streak/update", headers=_headers(user))
        assert second.json()["current_streak"] == 2
        assert second.json()["streak_maintained"] is True

    @pytest.mark.asyncio
    async def test_freezes(self, client: AsyncClient, user: User) -> None:
        empty = await client.post("/api/streak/freezes/use", headers=_headers(user))
        assert empty.status_code == 409

        earned = await client.post("/api/streak/freezes/earn", headers=_headers(user))
        assert earned.json() == {"streak_freezes": 1}

        used = await client.post("/api/streak/freezes/use", headers=_headers(user))
        assert used.json() == {"streak_freezes": 0}

    @pytest.mark.asyncio
    async def test_unknown_user(self, client: AsyncClient) -> None:
        response = await client.post("/api/streak/freezes/use", headers={"X-User-Id": "404"})
        assert response.status_code == 404

        response = await client.get("/api/streak", headers={"X-User-Id": "404"})
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_check_achievements(self, client: AsyncClient, db: AsyncSession, user: User) -> None:
        db.add(UserStats(user_id=user.id, total_sessions=1))
        await db.commit()

        response = await client.post("/api/streak/achievements/check", headers=_headers(user))
        assert [(a["id"], a["unlocked_at"]) for a in response.json()] == [("first-step", START.isoformat())]

        again = await client.post("/api/streak/achievements/check", headers=_headers(user))
        assert again.json() == []


class TestSessionRoutes:
    @pytest.mark.asyncio
    async def test_complete_session(self, client: AsyncClient, user: User, deck: Deck) -> None:
        response = await client.post(
            "/api/sessions/complete",
            json={
                "cards_studied": 12,
                "correct_answers": 12,
                "started_at": (START - timedelta(minutes=30)).isoformat() + "Z",
                "deck_id": deck.id,
            },
            headers=_headers(user),
        )
        assert response.status_code == 200
        body = response.json()
        assert body["minutes"] == 30.0
        assert body["accuracy"] == 100.0
        assert body["streak"]["current_streak"] == 1
        assert {a["id"] for a in body["streak"]["new_achievements"]} == {"first-step", "getting-started"}
        assert {a["unlocked_at"] for a in body["streak"]["new_achievements"]} == {START.isoformat()}

        achievements = await client.get("/api/streak/achievements", headers=_headers(user))
        unlocked = {a["id"] for a in achievements.json() if a["unlocked"]}
        assert unlocked == {"first-step", "getting-started"}

    @pytest.mark.asyncio
    async def test_correct_exceeds_studied(self, client: AsyncClient, user: User) -> None:
        response = await client.post(
            "/api/sessions/complete",
            json={"cards_studied": 1, "correct_answers": 2, "started_at": START.isoformat()},
            headers=_headers(user),
        )
        assert response.status_code == 400


class TestErrorMapping:
    @pytest.mark.asyncio
    async def test_store_failure_is_service_unavailable(
        self, client: AsyncClient, user: User, clock: FixedClock
    ) -> None:
        class FailingScheduler(ReviewScheduler):
            async def review_flashcard(self, db, user_id, card_id, difficulty):
                raise PersistenceError(f"Flashcard {card_id} was modified concurrently")

        app.dependency_overrides[get_scheduler] = lambda: FailingScheduler(clock)
        response = await client.post(
            "/api/flashcards/1/review", json={"difficulty": "easy"}, headers=_headers(user)
        )
        assert response.status_code == 503
        assert response.json() == {"detail": "Flashcard 1 was modified concurrently"}
