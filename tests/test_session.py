"""Tests for study-session completion and stats folding."""

from datetime import date, timedelta

import pytest
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from backend.clock import FixedClock
from backend.errors import InvalidInputError, NotFoundError, PersistenceError
from backend.models.deck import Deck
from backend.models.study_session import StudySession
from backend.models.user import User
from backend.models.user_stats import UserStats
from backend.models.user_streak import UserStreak
from backend.srs import session as session_module
from backend.srs.decks import DeckService
from backend.srs.session import SessionRecorder
from backend.srs.stats import SessionMetrics, fold_session, get_or_create_stats
from backend.srs.streak import StreakEngine
from tests.conftest import START


def _recorder(clock: FixedClock) -> SessionRecorder:
    return SessionRecorder(clock, StreakEngine(clock), DeckService(clock))


class TestFoldSession:
    def _stats(self, **overrides) -> UserStats:
        values = dict(
            total_sessions=0,
            total_cards_reviewed=0,
            max_cards_per_day=0,
            best_session_accuracy=0.0,
            longest_session_minutes=0.0,
            max_daily_minutes=0.0,
            total_minutes=0.0,
            stats_date=None,
            cards_today=0,
            minutes_today=0.0,
        )
        values.update(overrides)
        return UserStats(user_id=1, **values)

    def test_first_session(self) -> None:
        folded = fold_session(self._stats(), SessionMetrics(8, 6, 12.5, date(2024, 3, 15)))
        assert folded["total_sessions"] == 1
        assert folded["total_cards_reviewed"] == 8
        assert folded["cards_today"] == folded["max_cards_per_day"] == 8
        assert folded["best_session_accuracy"] == 75.0
        assert folded["longest_session_minutes"] == 12.5
        assert folded["total_minutes"] == 12.5

    def test_same_day_accumulates(self) -> None:
        stats = self._stats(stats_date=date(2024, 3, 15), cards_today=8, max_cards_per_day=8, minutes_today=10.0)
        folded = fold_session(stats, SessionMetrics(5, 5, 20.0, date(2024, 3, 15)))
        assert folded["cards_today"] == 13
        assert folded["max_cards_per_day"] == 13
        assert folded["minutes_today"] == 30.0
        assert folded["max_daily_minutes"] == 30.0

    def test_new_day_restarts_daily_counters(self) -> None:
        stats = self._stats(stats_date=date(2024, 3, 14), cards_today=20, max_cards_per_day=20, max_daily_minutes=45.0)
        folded = fold_session(stats, SessionMetrics(3, 1, 5.0, date(2024, 3, 15)))
        assert folded["cards_today"] == 3
        assert folded["max_cards_per_day"] == 20
        assert folded["minutes_today"] == 5.0
        assert folded["max_daily_minutes"] == 45.0

    def test_empty_session_accuracy(self) -> None:
        assert SessionMetrics(0, 0, 1.0, date(2024, 3, 15)).accuracy == 0.0


class TestCompleteSession:
    @pytest.mark.asyncio
    async def test_records_session_stats_and_streak(
        self, db: AsyncSession, user: User, deck: Deck, clock: FixedClock
    ) -> None:
        started = START - timedelta(minutes=25)
        summary = await _recorder(clock).complete_session(
            db, user.id, cards_studied=10, correct_answers=9, started_at=started, deck_id=deck.id
        )

        assert summary.minutes == 25.0
        assert summary.accuracy == pytest.approx(90.0)
        assert summary.streak.current_streak == 1
        assert {a.id for a in summary.streak.new_achievements} == {"first-step", "getting-started"}

        record = (await db.execute(select(StudySession))).scalar_one()
        assert (record.start_time, record.end_time) == (started, START)
        assert record.deck_id == deck.id

        stats = await db.get(UserStats, user.id, populate_existing=True)
        assert stats.total_sessions == 1
        assert stats.total_cards_reviewed == 10
        assert stats.longest_session_minutes == 25.0

    @pytest.mark.asyncio
    async def test_two_sessions_same_day_keep_streak(self, db: AsyncSession, user: User, clock: FixedClock) -> None:
        recorder = _recorder(clock)
        await recorder.complete_session(db, user.id, 4, 4, started_at=START - timedelta(minutes=5))
        clock.advance(hours=2)
        second = await recorder.complete_session(db, user.id, 7, 3, started_at=clock.now() - timedelta(minutes=5))

        assert second.streak.current_streak == 1
        assert second.streak.streak_maintained is True
        # 4 + 7 cards on one day crosses the 10-cards-per-day milestone.
        assert [a.id for a in second.streak.new_achievements] == ["getting-started"]

    @pytest.mark.asyncio
    async def test_consecutive_days(self, db: AsyncSession, user: User, clock: FixedClock) -> None:
        recorder = _recorder(clock)
        for _ in range(3):
            summary = await recorder.complete_session(db, user.id, 1, 1, started_at=clock.now())
            clock.advance(days=1)
        assert summary.streak.current_streak == 3
        assert "first-streak" in {a.id for a in summary.streak.new_achievements}

    @pytest.mark.asyncio
    async def test_invalid_counts(self, db: AsyncSession, user: User, clock: FixedClock) -> None:
        recorder = _recorder(clock)
        with pytest.raises(InvalidInputError):
            await recorder.complete_session(db, user.id, 3, 4, started_at=START)
        with pytest.raises(InvalidInputError):
            await recorder.complete_session(db, user.id, 3, 1, started_at=START + timedelta(hours=1))
        assert (await db.execute(select(StudySession))).first() is None

    @pytest.mark.asyncio
    async def test_unknown_user_or_deck(self, db: AsyncSession, user: User, clock: FixedClock) -> None:
        recorder = _recorder(clock)
        with pytest.raises(NotFoundError):
            await recorder.complete_session(db, 404, 1, 1, started_at=START)
        with pytest.raises(NotFoundError):
            await recorder.complete_session(db, user.id, 1, 1, started_at=START, deck_id=999)

    @pytest.mark.asyncio
    async def test_lost_stats_race_writes_nothing(
        self, db: AsyncSession, user: User, clock: FixedClock, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        db.add(UserStats(user_id=user.id, total_sessions=3, total_cards_reviewed=30))
        await db.commit()
        user_id = user.id

        async def racing_get_or_create_stats(db: AsyncSession, user_id: int) -> UserStats:
            stats = await get_or_create_stats(db, user_id)
            # Another tab folds its own session after we read the row.
            await db.execute(
                update(UserStats)
                .where(UserStats.user_id == user_id)
                .values(total_sessions=UserStats.total_sessions + 1)
                .execution_options(synchronize_session=False)
            )
            return stats

        monkeypatch.setattr(session_module, "get_or_create_stats", racing_get_or_create_stats)
        with pytest.raises(PersistenceError):
            await _recorder(clock).complete_session(db, user_id, 5, 5, started_at=START - timedelta(minutes=5))

        stats = await db.get(UserStats, user_id, populate_existing=True)
        assert (stats.total_sessions, stats.total_cards_reviewed) == (3, 30)
        assert (await db.execute(select(StudySession))).first() is None
        assert await db.get(UserStreak, user_id) is None
