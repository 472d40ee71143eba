"""FastAPI dependencies wiring services to their collaborators.

Services are built per request from the application's clock and the
configured settings; nothing is held in module-level singletons.
"""

from fastapi import Header, HTTPException, Request

from backend.clock import Clock
from backend.config import settings
from backend.srs.decks import DeckService
from backend.srs.scheduler import ReviewScheduler
from backend.srs.session import SessionRecorder
from backend.srs.streak import StreakEngine


def get_clock(request: Request) -> Clock:
    return request.app.state.clock


def get_user_id(x_user_id: int = Header(...)) -> int:
    """Return the caller's user id, resolved upstream by the auth layer."""
    if x_user_id <= 0:
        raise HTTPException(status_code=400, detail="Malformed user id")
    return x_user_id


def build_streak_engine(clock: Clock) -> StreakEngine:
    return StreakEngine(
        clock,
        calendar_timezone=settings.calendar_timezone,
        initial_freezes=settings.initial_streak_freezes,
        freeze_bonus_streaks=settings.freeze_bonus_streaks,
    )


def get_scheduler(request: Request) -> ReviewScheduler:
    return ReviewScheduler(get_clock(request))


def get_deck_service(request: Request) -> DeckService:
    return DeckService(get_clock(request))


def get_streak_engine(request: Request) -> StreakEngine:
    return build_streak_engine(get_clock(request))


def get_session_recorder(request: Request) -> SessionRecorder:
    clock = get_clock(request)
    return SessionRecorder(clock, build_streak_engine(clock), DeckService(clock))
