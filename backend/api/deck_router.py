"""API routes for decks, flashcards and reviews."""

import logging

from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession

from backend.api.deps import get_deck_service, get_scheduler, get_user_id
from backend.api.schemas import (
    DeckRequest,
    DeckResponse,
    FlashcardRequest,
    FlashcardResponse,
    ReviewRequest,
)
from backend.database import get_session
from backend.srs.decks import DeckService
from backend.srs.scheduler import ReviewScheduler

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["decks"])


# --- Decks ---


@router.get("/decks", response_model=list[DeckResponse])
async def list_decks(
    user_id: int = Depends(get_user_id),
    db: AsyncSession = Depends(get_session),
    decks: DeckService = Depends(get_deck_service),
) -> list[DeckResponse]:
    return [DeckResponse.model_validate(d) for d in await decks.list_decks(db, user_id)]


@router.post("/decks", response_model=DeckResponse, status_code=201)
async def create_deck(
    request: DeckRequest,
    user_id: int = Depends(get_user_id),
    db: AsyncSession = Depends(get_session),
    decks: DeckService = Depends(get_deck_service),
) -> DeckResponse:
    deck = await decks.create_deck(db, user_id, request.name, request.description)
    return DeckResponse.model_validate(deck)


@router.put("/decks/{deck_id}", response_model=DeckResponse)
async def update_deck(
    deck_id: int,
    request: DeckRequest,
    user_id: int = Depends(get_user_id),
    db: AsyncSession = Depends(get_session),
    decks: DeckService = Depends(get_deck_service),
) -> DeckResponse:
    deck = await decks.update_deck(db, user_id, deck_id, request.name, request.description)
    return DeckResponse.model_validate(deck)


@router.delete("/decks/{deck_id}", status_code=204)
async def delete_deck(
    deck_id: int,
    user_id: int = Depends(get_user_id),
    db: AsyncSession = Depends(get_session),
    decks: DeckService = Depends(get_deck_service),
) -> Response:
    await decks.delete_deck(db, user_id, deck_id)
    return Response(status_code=204)


# --- Flashcards ---


@router.get("/decks/{deck_id}/flashcards", response_model=list[FlashcardResponse])
async def list_flashcards(
    deck_id: int,
    user_id: int = Depends(get_user_id),
    db: AsyncSession = Depends(get_session),
    decks: DeckService = Depends(get_deck_service),
) -> list[FlashcardResponse]:
    cards = await decks.list_flashcards(db, user_id, deck_id)
    return [FlashcardResponse.model_validate(c) for c in cards]


@router.post("/decks/{deck_id}/flashcards", response_model=FlashcardResponse, status_code=201)
async def create_flashcard(
    deck_id: int,
    request: FlashcardRequest,
    user_id: int = Depends(get_user_id),
    db: AsyncSession = Depends(get_session),
    decks: DeckService = Depends(get_deck_service),
) -> FlashcardResponse:
    card = await decks.create_flashcard(
        db,
        user_id,
        deck_id,
        request.question,
        request.answer,
        media_url=request.media_url,
        media_type=request.media_type,
    )
    return FlashcardResponse.model_validate(card)


@router.get("/flashcards", response_model=list[FlashcardResponse])
async def list_all_flashcards(
    user_id: int = Depends(get_user_id),
    db: AsyncSession = Depends(get_session),
    decks: DeckService = Depends(get_deck_service),
) -> list[FlashcardResponse]:
    return [FlashcardResponse.model_validate(c) for c in await decks.list_all_flashcards(db, user_id)]


@router.get("/flashcards/due", response_model=list[FlashcardResponse])
async def due_flashcards(
    deck_id: int | None = None,
    user_id: int = Depends(get_user_id),
    db: AsyncSession = Depends(get_session),
    scheduler: ReviewScheduler = Depends(get_scheduler),
) -> list[FlashcardResponse]:
    """List the caller's due cards, optionally limited to one deck."""
    cards = await scheduler.get_due_flashcards(db, user_id, deck_id)
    return [FlashcardResponse.model_validate(c) for c in cards]


@router.put("/flashcards/{card_id}", response_model=FlashcardResponse)
async def update_flashcard(
    card_id: int,
    request: FlashcardRequest,
    user_id: int = Depends(get_user_id),
    db: AsyncSession = Depends(get_session),
    decks: DeckService = Depends(get_deck_service),
) -> FlashcardResponse:
    card = await decks.update_flashcard(
        db,
        user_id,
        card_id,
        request.question,
        request.answer,
        media_url=request.media_url,
        media_type=request.media_type,
    )
    return FlashcardResponse.model_validate(card)


@router.delete("/flashcards/{card_id}", status_code=204)
async def delete_flashcard(
    card_id: int,
    user_id: int = Depends(get_user_id),
    db: AsyncSession = Depends(get_session),
    decks: DeckService = Depends(get_deck_service),
) -> Response:
    await decks.delete_flashcard(db, user_id, card_id)
    return Response(status_code=204)


@router.post("/flashcards/{card_id}/review", response_model=FlashcardResponse)
async def review_flashcard(
    card_id: int,
    request: ReviewRequest,
    user_id: int = Depends(get_user_id),
    db: AsyncSession = Depends(get_session),
    scheduler: ReviewScheduler = Depends(get_scheduler),
) -> FlashcardResponse:
    """Record a review and return the rescheduled card."""
    card = await scheduler.review_flashcard(db, user_id, card_id, request.difficulty)
    return FlashcardResponse.model_validate(card)
