"""Study-session completion.

A study-session runner reviews cards one by one through the scheduler and
then reports the finished session here. Completion is two steps:

1. persist the ``StudySession`` and fold it into ``UserStats`` (one transaction)
2. call ``StreakEngine.update_streak`` once (its own transaction)

If step 2 fails the session stays recorded; ``update_streak`` is safe to
retry on its own.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.clock import Clock
from backend.errors import InvalidInputError, NotFoundError, PersistenceError
from backend.models.study_session import StudySession
from backend.models.user import User
from backend.models.user_stats import UserStats
from backend.srs.calendar_days import calendar_date
from backend.srs.decks import DeckService
from backend.srs.scheduler import validate_id
from backend.srs.stats import SessionMetrics, fold_session, get_or_create_stats
from backend.srs.streak import StreakEngine, StreakUpdate

logger = logging.getLogger(__name__)


@dataclass
class SessionSummary:
    """Result of completing a study session."""

    session_id: int
    cards_studied: int
    correct_answers: int
    accuracy: float
    minutes: float
    streak: StreakUpdate


class SessionRecorder:
    """Records finished study sessions and advances the streak."""

    def __init__(self, clock: Clock, streak_engine: StreakEngine, decks: DeckService) -> None:
        self.clock = clock
        self.streak_engine = streak_engine
        self.decks = decks

    async def complete_session(
        self,
        db: AsyncSession,
        user_id: int,
        cards_studied: int,
        correct_answers: int,
        started_at: datetime,
        deck_id: int | None = None,
    ) -> SessionSummary:
        """Record a finished session ending now and update the user's streak.

        Args:
            db: Database session.
            user_id: The user who studied.
            cards_studied: Number of cards reviewed in the session.
            correct_answers: How many of those were answered correctly.
            started_at: When the session began (naive UTC).
            deck_id: The deck studied, if the session was limited to one.

        Returns:
            The stored session metrics and the streak update.
        """
        ended_at = self.clock.now()
        if cards_studied < 0 or correct_answers < 0:
            raise InvalidInputError("Session counts must not be negative")
        if correct_answers > cards_studied:
            raise InvalidInputError("correct_answers cannot exceed cards_studied")
        if started_at > ended_at:
            raise InvalidInputError("Session cannot start in the future")

        metrics = SessionMetrics(
            cards_studied=cards_studied,
            correct_answers=correct_answers,
            minutes=(ended_at - started_at).total_seconds() / 60,
            day=calendar_date(ended_at, self.streak_engine.tz),
        )

        try:
            if await db.get(User, user_id) is None:
                raise NotFoundError(f"User {user_id} not found")
            if deck_id is not None:
                validate_id(deck_id, "deck")
                await self.decks.get_deck(db, user_id, deck_id)

            record = StudySession(
                user_id=user_id,
                deck_id=deck_id,
                start_time=started_at,
                end_time=ended_at,
                cards_studied=cards_studied,
                correct_answers=correct_answers,
            )
            db.add(record)

            stats = await get_or_create_stats(db, user_id)
            # total_sessions only grows, so it guards against a concurrent fold.
            stmt = (
                update(UserStats)
                .where(UserStats.user_id == user_id, UserStats.total_sessions == stats.total_sessions)
                .values(fold_session(stats, metrics))
                .returning(UserStats.user_id)
                .execution_options(synchronize_session=False)
            )
            if (await db.execute(stmt)).scalar_one_or_none() is None:
                await db.rollback()
                raise PersistenceError(f"Stats for user {user_id} were modified concurrently")
            await db.commit()
        except SQLAlchemyError as exc:
            await db.rollback()
            raise PersistenceError(f"Failed to record study session for user {user_id}") from exc

        logger.info(
            "User %d finished session %d: %d cards, %d correct, %.1f min",
            user_id,
            record.id,
            cards_studied,
            correct_answers,
            metrics.minutes,
        )

        streak = await self.streak_engine.update_streak(db, user_id)
        return SessionSummary(
            session_id=record.id,
            cards_studied=cards_studied,
            correct_answers=correct_answers,
            accuracy=metrics.accuracy,
            minutes=metrics.minutes,
            streak=streak,
        )
