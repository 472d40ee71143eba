from datetime import UTC, datetime
from pathlib import Path

from pydantic_settings import BaseSettings


def utcnow() -> datetime:
    """Return the current UTC time as a naive datetime.

    Replaces the deprecated ``datetime.utcnow()`` while keeping datetimes
    naive so they stay compatible with SQLite (which doesn't store tz info).
    """
    return datetime.now(UTC).replace(tzinfo=None)


class Settings(BaseSettings):
    app_name: str = "StudyCards"
    database_url: str = f"sqlite+aiosqlite:///{Path(__file__).resolve().parent.parent / 'data' / 'studycards.db'}"
    calendar_timezone: str = "UTC"  # IANA zone used for streak day boundaries
    initial_streak_freezes: int = 0
    freeze_bonus_streaks: list[int] = [7, 30]
    debug: bool = False

    model_config = {"env_prefix": "STUDYCARDS_", "env_file": ".env"}


settings = Settings()
