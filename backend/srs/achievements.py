"""Achievement catalog and rule evaluation.

Each achievement compares one tracked statistic against a numeric
milestone. Evaluation here is pure; persistence of unlocks lives in the
streak engine.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any


class AchievementCategory(Enum):
    PROGRESS = "progress"
    STREAK = "streak"
    KNOWLEDGE = "knowledge"
    PRECISION = "precision"
    STUDY_TIME = "study_time"
    CONSISTENCY = "consistency"


class AchievementCondition(Enum):
    """The statistic an achievement is measured against."""

    SESSIONS = "sessions"
    CARDS_PER_DAY = "cards_per_day"
    TOTAL_CARDS = "total_cards"
    CONSECUTIVE_DAYS = "consecutive_days"
    STREAK_DAYS = "streak_days"
    DECKS_CREATED = "decks_created"
    CARDS_CREATED = "cards_created"
    SESSION_ACCURACY = "session_accuracy"
    MONTHLY_ACCURACY = "monthly_accuracy"
    SESSION_MINUTES = "session_minutes"
    DAILY_MINUTES = "daily_minutes"
    TOTAL_MINUTES = "total_minutes"
    ON_TIME_REVIEWS = "on_time_reviews"
    ALL_DAILY_REVIEWS = "all_daily_reviews"
    DAYS_WITHOUT_OVERDUE = "days_without_overdue"


# Conditions read from the streak row; both use the live streak, not the record.
STREAK_CONDITIONS: dict[AchievementCondition, str] = {
    AchievementCondition.CONSECUTIVE_DAYS: "current_streak",
    AchievementCondition.STREAK_DAYS: "current_streak",
}

# Conditions read from UserStats columns.
STATS_CONDITIONS: dict[AchievementCondition, str] = {
    AchievementCondition.SESSIONS: "total_sessions",
    AchievementCondition.CARDS_PER_DAY: "max_cards_per_day",
    AchievementCondition.TOTAL_CARDS: "total_cards_reviewed",
    AchievementCondition.DECKS_CREATED: "decks_created",
    AchievementCondition.CARDS_CREATED: "cards_created",
    AchievementCondition.SESSION_ACCURACY: "best_session_accuracy",
    AchievementCondition.MONTHLY_ACCURACY: "monthly_accuracy",
    AchievementCondition.SESSION_MINUTES: "longest_session_minutes",
    AchievementCondition.DAILY_MINUTES: "max_daily_minutes",
    AchievementCondition.TOTAL_MINUTES: "total_minutes",
    AchievementCondition.ON_TIME_REVIEWS: "on_time_reviews",
    AchievementCondition.ALL_DAILY_REVIEWS: "all_daily_reviews",
    AchievementCondition.DAYS_WITHOUT_OVERDUE: "days_without_overdue",
}


@dataclass(frozen=True)
class Achievement:
    """A static catalog entry."""

    id: str
    name: str
    description: str
    milestone: float
    category: AchievementCategory
    condition: AchievementCondition


@dataclass(frozen=True)
class AchievementStatus:
    """A catalog entry joined with one user's unlock state."""

    achievement: Achievement
    unlocked: bool
    unlocked_at: datetime | None = None


DEFAULT_CATALOG: tuple[Achievement, ...] = (
    # Progress
    Achievement(
        id="first-step",
        name="First Step",
        description="Complete your first study session.",
        milestone=1,
        category=AchievementCategory.PROGRESS,
        condition=AchievementCondition.SESSIONS,
    ),
    Achievement(
        id="getting-started",
        name="Getting Started",
        description="Study 10 cards in one day.",
        milestone=10,
        category=AchievementCategory.PROGRESS,
        condition=AchievementCondition.CARDS_PER_DAY,
    ),
    Achievement(
        id="review-master",
        name="Review Master",
        description="Review 100 cards in total.",
        milestone=100,
        category=AchievementCategory.PROGRESS,
        condition=AchievementCondition.TOTAL_CARDS,
    ),
    Achievement(
        id="repetition-expert",
        name="Repetition Expert",
        description="Review more than 1,000 cards.",
        milestone=1000,
        category=AchievementCategory.PROGRESS,
        condition=AchievementCondition.TOTAL_CARDS,
    ),
    # Streak
    Achievement(
        id="first-streak",
        name="First Streak",
        description="Keep a 3-day streak.",
        milestone=3,
        category=AchievementCategory.STREAK,
        condition=AchievementCondition.CONSECUTIVE_DAYS,
    ),
    Achievement(
        id="weekly-warrior",
        name="Weekly Warrior",
        description="Keep a 7-day streak.",
        milestone=7,
        category=AchievementCategory.STREAK,
        condition=AchievementCondition.CONSECUTIVE_DAYS,
    ),
    Achievement(
        id="monthly-master",
        name="Monthly Master",
        description="Keep a 30-day streak.",
        milestone=30,
        category=AchievementCategory.STREAK,
        condition=AchievementCondition.CONSECUTIVE_DAYS,
    ),
)


def metric_value(condition: AchievementCondition, streak: Any, stats: Any) -> float:
    """Read the statistic behind ``condition``.

    ``streak`` and ``stats`` may be ``None`` or carry unset attributes; both
    count as zero.
    """
    if condition in STREAK_CONDITIONS:
        source, attr = streak, STREAK_CONDITIONS[condition]
    else:
        source, attr = stats, STATS_CONDITIONS[condition]
    return getattr(source, attr, None) or 0


def evaluate_achievements(
    catalog: "tuple[Achievement, ...] | list[Achievement]",
    unlocked_ids: set[str],
    streak: Any,
    stats: Any,
) -> list[Achievement]:
    """Return catalog entries that are newly reached.

    Entries already in ``unlocked_ids`` are never re-evaluated, which keeps
    unlocking monotone.
    """
    return [
        achievement
        for achievement in catalog
        if achievement.id not in unlocked_ids
        and metric_value(achievement.condition, streak, stats) >= achievement.milestone
    ]
