"""Deck and flashcard management.

Creation bumps the ``decks_created`` and ``cards_created`` counters the
achievement evaluator reads. Every lookup is scoped to the requesting
user; another user's deck or card is reported as not found.
"""

import logging
from enum import Enum

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.clock import Clock
from backend.errors import InvalidInputError, NotFoundError, PersistenceError
from backend.models.deck import Deck
from backend.models.flashcard import Flashcard
from backend.models.user import User
from backend.srs.scheduler import validate_id
from backend.srs.stats import increment_counter

logger = logging.getLogger(__name__)


class MediaType(Enum):
    IMAGE = "image"
    AUDIO = "audio"
    VIDEO = "video"


def _media_fields(media_url: str | None, media_type: str | None) -> dict[str, object]:
    if media_type is not None:
        try:
            media_type = MediaType(media_type).value
        except ValueError as exc:
            raise InvalidInputError(f"Invalid media type {media_type!r}") from exc
    return {
        "has_media": bool(media_url) and bool(media_type),
        "media_url": media_url,
        "media_type": media_type,
    }


def _require_text(value: str, field: str) -> str:
    if not value or not value.strip():
        raise InvalidInputError(f"{field} must not be empty")
    return value


class DeckService:
    def __init__(self, clock: Clock) -> None:
        self.clock = clock

    # --- Decks ---

    async def list_decks(self, db: AsyncSession, user_id: int) -> list[Deck]:
        """Return the user's decks, newest first."""
        stmt = select(Deck).where(Deck.user_id == user_id).order_by(Deck.created_at.desc(), Deck.id.desc())
        try:
            return list((await db.execute(stmt)).scalars().all())
        except SQLAlchemyError as exc:
            raise PersistenceError("Failed to list decks") from exc

    async def create_deck(self, db: AsyncSession, user_id: int, name: str, description: str = "") -> Deck:
        _require_text(name, "Deck name")
        try:
            if await db.get(User, user_id) is None:
                raise NotFoundError(f"User {user_id} not found")
            now = self.clock.now()
            deck = Deck(user_id=user_id, name=name, description=description, created_at=now, updated_at=now)
            db.add(deck)
            await db.flush()
            await increment_counter(db, user_id, "decks_created")
            await db.commit()
        except SQLAlchemyError as exc:
            await db.rollback()
            raise PersistenceError("Failed to create deck") from exc

        logger.info("User %d created deck %d (%s)", user_id, deck.id, name)
        return deck

    async def update_deck(
        self, db: AsyncSession, user_id: int, deck_id: int, name: str, description: str = ""
    ) -> Deck:
        _require_text(name, "Deck name")
        try:
            deck = await self.get_deck(db, user_id, deck_id)
            deck.name = name
            deck.description = description
            deck.updated_at = self.clock.now()
            await db.commit()
        except SQLAlchemyError as exc:
            await db.rollback()
            raise PersistenceError(f"Failed to update deck {deck_id}") from exc
        return deck

    async def delete_deck(self, db: AsyncSession, user_id: int, deck_id: int) -> None:
        """Delete a deck and its flashcards."""
        try:
            deck = await self.get_deck(db, user_id, deck_id)
            await db.execute(delete(Flashcard).where(Flashcard.deck_id == deck_id))
            await db.delete(deck)
            await db.commit()
        except SQLAlchemyError as exc:
            await db.rollback()
            raise PersistenceError(f"Failed to delete deck {deck_id}") from exc
        logger.info("User %d deleted deck %d", user_id, deck_id)

    async def get_deck(self, db: AsyncSession, user_id: int, deck_id: int) -> Deck:
        validate_id(deck_id, "deck")
        stmt = select(Deck).where(Deck.id == deck_id, Deck.user_id == user_id)
        deck = (await db.execute(stmt)).scalar_one_or_none()
        if deck is None:
            raise NotFoundError(f"Deck {deck_id} not found")
        return deck

    # --- Flashcards ---

    async def list_flashcards(self, db: AsyncSession, user_id: int, deck_id: int) -> list[Flashcard]:
        """Return the cards of one deck, newest first."""
        try:
            await self.get_deck(db, user_id, deck_id)
            stmt = (
                select(Flashcard)
                .where(Flashcard.deck_id == deck_id)
                .order_by(Flashcard.created_at.desc(), Flashcard.id.desc())
            )
            return list((await db.execute(stmt)).scalars().all())
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to list flashcards of deck {deck_id}") from exc

    async def list_all_flashcards(self, db: AsyncSession, user_id: int) -> list[Flashcard]:
        stmt = (
            select(Flashcard)
            .join(Deck, Flashcard.deck_id == Deck.id)
            .where(Deck.user_id == user_id)
            .order_by(Flashcard.created_at.desc(), Flashcard.id.desc())
        )
        try:
            return list((await db.execute(stmt)).scalars().all())
        except SQLAlchemyError as exc:
            raise PersistenceError("Failed to list flashcards") from exc

    async def create_flashcard(
        self,
        db: AsyncSession,
        user_id: int,
        deck_id: int,
        question: str,
        answer: str,
        media_url: str | None = None,
        media_type: str | None = None,
    ) -> Flashcard:
        """Add a card to a deck. New cards are due immediately."""
        _require_text(question, "Question")
        _require_text(answer, "Answer")
        media = _media_fields(media_url, media_type)
        now = self.clock.now()
        try:
            await self.get_deck(db, user_id, deck_id)
            card = Flashcard(
                deck_id=deck_id,
                question=question,
                answer=answer,
                review_count=0,
                success_rate=0.0,
                next_review_date=now,
                created_at=now,
                updated_at=now,
                **media,
            )
            db.add(card)
            await db.flush()
            await increment_counter(db, user_id, "cards_created")
            await db.commit()
        except SQLAlchemyError as exc:
            await db.rollback()
            raise PersistenceError(f"Failed to create flashcard in deck {deck_id}") from exc

        logger.info("User %d added card %d to deck %d", user_id, card.id, deck_id)
        return card

    async def update_flashcard(
        self,
        db: AsyncSession,
        user_id: int,
        card_id: int,
        question: str,
        answer: str,
        media_url: str | None = None,
        media_type: str | None = None,
    ) -> Flashcard:
        """Edit a card's content. Review state is left untouched."""
        _require_text(question, "Question")
        _require_text(answer, "Answer")
        media = _media_fields(media_url, media_type)
        try:
            card = await self._get_flashcard(db, user_id, card_id)
            card.question = question
            card.answer = answer
            for key, value in media.items():
                setattr(card, key, value)
            card.updated_at = self.clock.now()
            await db.commit()
        except SQLAlchemyError as exc:
            await db.rollback()
            raise PersistenceError(f"Failed to update flashcard {card_id}") from exc
        return card

    async def delete_flashcard(self, db: AsyncSession, user_id: int, card_id: int) -> None:
        try:
            card = await self._get_flashcard(db, user_id, card_id)
            await db.delete(card)
            await db.commit()
        except SQLAlchemyError as exc:
            await db.rollback()
            raise PersistenceError(f"Failed to delete flashcard {card_id}") from exc

    async def _get_flashcard(self, db: AsyncSession, user_id: int, card_id: int) -> Flashcard:
        validate_id(card_id, "flashcard")
        stmt = (
            select(Flashcard)
            .join(Deck, Flashcard.deck_id == Deck.id)
            .where(Flashcard.id == card_id, Deck.user_id == user_id)
        )
        card = (await db.execute(stmt)).scalar_one_or_none()
        if card is None:
            raise NotFoundError(f"Flashcard {card_id} not found")
        return card
