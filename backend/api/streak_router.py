"""API routes for streaks, streak freezes and achievements."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from backend.api.deps import get_streak_engine, get_user_id
from backend.api.schemas import (
    AchievementResponse,
    FreezeResponse,
    StreakResponse,
    StreakUpdateResponse,
)
from backend.database import get_session
from backend.srs.achievements import AchievementStatus
from backend.srs.streak import StreakEngine, StreakUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/streak", tags=["streak"])


def to_update_response(update: StreakUpdate) -> StreakUpdateResponse:
    return StreakUpdateResponse(
        current_streak=update.current_streak,
        longest_streak=update.longest_streak,
        streak_freezes=update.streak_freezes,
        streak_maintained=update.streak_maintained,
        new_achievements=[
            AchievementResponse.from_status(
                AchievementStatus(achievement=a, unlocked=True, unlocked_at=update.unlocked_at)
            )
            for a in update.new_achievements
        ],
    )


@router.get("", response_model=StreakResponse)
async def get_streak(
    user_id: int = Depends(get_user_id),
    db: AsyncSession = Depends(get_session),
    engine: StreakEngine = Depends(get_streak_engine),
) -> StreakResponse:
    data = await engine.get_streak_data(db, user_id)
    return StreakResponse(
        current_streak=data.current_streak,
        longest_streak=data.longest_streak,
        last_study_date=data.last_study_date,
        streak_freezes=data.streak_freezes,
        achievements=[AchievementResponse.from_status(s) for s in data.achievements],
    )


@router.post("/update", response_model=StreakUpdateResponse)
async def update_streak(
    user_id: int = Depends(get_user_id),
    db: AsyncSession = Depends(get_session),
    engine: StreakEngine = Depends(get_streak_engine),
) -> StreakUpdateResponse:
    """Record that the caller studied today."""
    return to_update_response(await engine.update_streak(db, user_id))


@router.post("/freezes/use", response_model=FreezeResponse)
async def use_freeze(
    user_id: int = Depends(get_user_id),
    db: AsyncSession = Depends(get_session),
    engine: StreakEngine = Depends(get_streak_engine),
) -> FreezeResponse:
    return FreezeResponse(streak_freezes=await engine.use_streak_freeze(db, user_id))


@router.post("/freezes/earn", response_model=FreezeResponse)
async def earn_freeze(
    user_id: int = Depends(get_user_id),
    db: AsyncSession = Depends(get_session),
    engine: StreakEngine = Depends(get_streak_engine),
) -> FreezeResponse:
    return FreezeResponse(streak_freezes=await engine.earn_streak_freeze(db, user_id))


@router.get("/achievements", response_model=list[AchievementResponse])
async def list_achievements(
    user_id: int = Depends(get_user_id),
    db: AsyncSession = Depends(get_session),
    engine: StreakEngine = Depends(get_streak_engine),
) -> list[AchievementResponse]:
    return [AchievementResponse.from_status(s) for s in await engine.get_achievements(db, user_id)]


@router.post("/achievements/check", response_model=list[AchievementResponse])
async def check_achievements(
    user_id: int = Depends(get_user_id),
    db: AsyncSession = Depends(get_session),
    engine: StreakEngine = Depends(get_streak_engine),
) -> list[AchievementResponse]:
    """Unlock anything the caller has reached and return what is new."""
    new_ids = {a.id for a in await engine.check_achievements(db, user_id)}
    statuses = await engine.get_achievements(db, user_id)
    return [AchievementResponse.from_status(s) for s in statuses if s.achievement.id in new_ids]
