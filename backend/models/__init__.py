"""SQLAlchemy ORM models for the StudyCards database."""

from backend.models.base import Base
from backend.models.deck import Deck
from backend.models.flashcard import Flashcard
from backend.models.study_session import StudySession
from backend.models.user import User
from backend.models.user_achievement import UserAchievement
from backend.models.user_stats import UserStats
from backend.models.user_streak import UserStreak

__all__ = [
    "Base",
    "Deck",
    "Flashcard",
    "StudySession",
    "User",
    "UserAchievement",
    "UserStats",
    "UserStreak",
]
