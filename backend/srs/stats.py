"""Maintenance of the cumulative counters behind achievements."""

import logging
from dataclasses import dataclass
from datetime import date

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from backend.models.user_stats import UserStats

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionMetrics:
    """What one finished study session contributes to a user's stats."""

    cards_studied: int
    correct_answers: int
    minutes: float
    day: date  # calendar day the session finished on

    @property
    def accuracy(self) -> float:
        """Percentage of correct answers, 0 when no cards were studied."""
        if self.cards_studied <= 0:
            return 0.0
        return self.correct_answers / self.cards_studied * 100


def fold_session(stats: UserStats, metrics: SessionMetrics) -> dict[str, object]:
    """Return the column values of ``stats`` after adding ``metrics``.

    The per-day counters restart when the session lands on a new calendar day.
    """
    same_day = stats.stats_date == metrics.day
    cards_today = (stats.cards_today if same_day else 0) + metrics.cards_studied
    minutes_today = (stats.minutes_today if same_day else 0.0) + metrics.minutes

    return {
        "total_sessions": stats.total_sessions + 1,
        "total_cards_reviewed": stats.total_cards_reviewed + metrics.cards_studied,
        "stats_date": metrics.day,
        "cards_today": cards_today,
        "max_cards_per_day": max(stats.max_cards_per_day, cards_today),
        "best_session_accuracy": max(stats.best_session_accuracy, metrics.accuracy),
        "longest_session_minutes": max(stats.longest_session_minutes, metrics.minutes),
        "minutes_today": minutes_today,
        "max_daily_minutes": max(stats.max_daily_minutes, minutes_today),
        "total_minutes": stats.total_minutes + metrics.minutes,
    }


async def get_or_create_stats(db: AsyncSession, user_id: int) -> UserStats:
    """Load the user's stats row, inserting a zeroed one if needed. Does not commit."""
    stmt = select(UserStats).where(UserStats.user_id == user_id).execution_options(populate_existing=True)
    stats = (await db.execute(stmt)).scalar_one_or_none()
    if stats is None:
        stats = UserStats(
            user_id=user_id,
            total_sessions=0,
            total_cards_reviewed=0,
            max_cards_per_day=0,
            decks_created=0,
            cards_created=0,
            best_session_accuracy=0.0,
            monthly_accuracy=0.0,
            longest_session_minutes=0.0,
            max_daily_minutes=0.0,
            total_minutes=0.0,
            on_time_reviews=0,
            all_daily_reviews=0,
            days_without_overdue=0,
            cards_today=0,
            minutes_today=0.0,
        )
        db.add(stats)
        await db.flush()
    return stats


async def increment_counter(db: AsyncSession, user_id: int, column: str, amount: int = 1) -> None:
    """Atomically add ``amount`` to one integer counter. Does not commit."""
    await get_or_create_stats(db, user_id)
    target = getattr(UserStats, column)
    stmt = (
        update(UserStats)
        .where(UserStats.user_id == user_id)
        .values({target: target + amount})
        .execution_options(synchronize_session=False)
    )
    await db.execute(stmt)
    logger.debug("User %d: %s += %d", user_id, column, amount)
