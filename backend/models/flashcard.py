"""Flashcard model with fixed-interval review state."""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.models.base import Base, TimestampMixin


class Flashcard(Base, TimestampMixin):
    """A question/answer card owned by a deck.

    ``review_count`` doubles as the compare-and-set token for review updates.
    """

    __tablename__ = "flashcards"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    deck_id: Mapped[int] = mapped_column(ForeignKey("decks.id", ondelete="CASCADE"), nullable=False, index=True)
    question: Mapped[str] = mapped_column(Text, nullable=False)  # Markdown
    answer: Mapped[str] = mapped_column(Text, nullable=False)  # Markdown
    review_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    success_rate: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    difficulty: Mapped[str | None] = mapped_column(String(10), nullable=True)  # easy, medium, hard
    last_reviewed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    next_review_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True, index=True)
    has_media: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    media_url: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    media_type: Mapped[str | None] = mapped_column(String(10), nullable=True)  # image, audio, video

    deck: Mapped["Deck"] = relationship(back_populates="flashcards")  # type: ignore[name-defined] # noqa: F821
