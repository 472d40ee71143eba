"""Pydantic schemas for API request/response models."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from backend.srs.achievements import AchievementStatus

# --- Decks & flashcards ---


class DeckRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: str = ""


class DeckResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str
    created_at: datetime


class FlashcardRequest(BaseModel):
    question: str = Field(min_length=1)
    answer: str = Field(min_length=1)
    media_url: str | None = None
    media_type: str | None = None  # image, audio, video


class FlashcardResponse(BaseModel):
    """A flashcard with its review state."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    deck_id: int
    question: str
    answer: str
    review_count: int
    success_rate: float
    difficulty: str | None
    last_reviewed_at: datetime | None
    next_review_date: datetime | None
    has_media: bool
    media_url: str | None
    media_type: str | None


class ReviewRequest(BaseModel):
    """Request to record a review of one flashcard."""

    # Kept as a plain string so unknown ratings reach the scheduler's own validation.
    difficulty: str


# --- Streak & achievements ---


class AchievementResponse(BaseModel):
    id: str
    name: str
    description: str
    milestone: float
    category: str
    condition: str
    unlocked: bool
    unlocked_at: datetime | None = None

    @classmethod
    def from_status(cls, status: AchievementStatus) -> "AchievementResponse":
        a = status.achievement
        return cls(
            id=a.id,
            name=a.name,
            description=a.description,
            milestone=a.milestone,
            category=a.category.value,
            condition=a.condition.value,
            unlocked=status.unlocked,
            unlocked_at=status.unlocked_at,
        )


class StreakResponse(BaseModel):
    current_streak: int
    longest_streak: int
    last_study_date: datetime | None
    streak_freezes: int
    achievements: list[AchievementResponse]


class StreakUpdateResponse(BaseModel):
    """Outcome of recording a completed study day."""

    current_streak: int
    longest_streak: int
    streak_freezes: int
    streak_maintained: bool
    new_achievements: list[AchievementResponse]


class FreezeResponse(BaseModel):
    streak_freezes: int


# --- Sessions ---


class SessionCompleteRequest(BaseModel):
    """Request to record a finished study session."""

    cards_studied: int = Field(ge=0)
    correct_answers: int = Field(ge=0)
    started_at: datetime
    deck_id: int | None = None


class SessionCompleteResponse(BaseModel):
    session_id: int
    cards_studied: int
    correct_answers: int
    accuracy: float
    minutes: float
    streak: StreakUpdateResponse
