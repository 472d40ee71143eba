"""Per-user streak state, mutated only by the streak engine."""

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer
from sqlalchemy.orm import Mapped, mapped_column

from backend.models.base import Base, TimestampMixin


class UserStreak(Base, TimestampMixin):
    __tablename__ = "user_streaks"
    __table_args__ = (
        CheckConstraint("current_streak >= 0", name="ck_current_streak_nonneg"),
        CheckConstraint("longest_streak >= current_streak", name="ck_longest_ge_current"),
        CheckConstraint("streak_freezes >= 0", name="ck_streak_freezes_nonneg"),
    )

    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), primary_key=True)
    current_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    longest_streak: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_study_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    streak_freezes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)  # compare-and-set token
