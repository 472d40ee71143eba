"""Cumulative per-user counters read by the achievement evaluator."""

from datetime import date

from sqlalchemy import Date, Float, ForeignKey, Integer
from sqlalchemy.orm import Mapped, mapped_column

from backend.models.base import Base, TimestampMixin


class UserStats(Base, TimestampMixin):
    __tablename__ = "user_stats"

    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), primary_key=True)

    # Progress
    total_sessions: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_cards_reviewed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    max_cards_per_day: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Knowledge
    decks_created: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    cards_created: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Precision (percentages, 0-100); monthly_accuracy is written by an external review tracker
    best_session_accuracy: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    monthly_accuracy: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    # Study time (minutes)
    longest_session_minutes: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    max_daily_minutes: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    total_minutes: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    # Consistency; written by an external review tracker, only read here
    on_time_reviews: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    all_daily_reviews: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    days_without_overdue: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Rolling per-day counters; reset when stats_date moves to a new calendar day
    stats_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    cards_today: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    minutes_today: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
