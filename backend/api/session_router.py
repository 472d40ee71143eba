"""API routes for study sessions."""

import logging
from datetime import UTC

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from backend.api.deps import get_session_recorder, get_user_id
from backend.api.schemas import SessionCompleteRequest, SessionCompleteResponse
from backend.api.streak_router import to_update_response
from backend.database import get_session
from backend.srs.session import SessionRecorder

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/sessions", tags=["sessions"])


@router.post("/complete", response_model=SessionCompleteResponse)
async def complete_session(
    request: SessionCompleteRequest,
    user_id: int = Depends(get_user_id),
    db: AsyncSession = Depends(get_session),
    recorder: SessionRecorder = Depends(get_session_recorder),
) -> SessionCompleteResponse:
    """Record a finished study session and advance the caller's streak."""
    # Clients may send aware timestamps; storage is naive UTC.
    started_at = request.started_at
    if started_at.tzinfo is not None:
        started_at = started_at.astimezone(UTC).replace(tzinfo=None)

    summary = await recorder.complete_session(
        db,
        user_id,
        cards_studied=request.cards_studied,
        correct_answers=request.correct_answers,
        started_at=started_at,
        deck_id=request.deck_id,
    )
    return SessionCompleteResponse(
        session_id=summary.session_id,
        cards_studied=summary.cards_studied,
        correct_answers=summary.correct_answers,
        accuracy=summary.accuracy,
        minutes=summary.minutes,
        streak=to_update_response(summary.streak),
    )
