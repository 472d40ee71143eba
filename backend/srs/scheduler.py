"""Fixed-interval review scheduler.

A review rating maps to a fixed delay measured from the moment of review:

- hard: +1 day
- medium: +3 days
- easy: +7 days

The card's previous due date is ignored, so a long-overdue card is
rescheduled relative to today rather than compounding the delay.
``success_rate`` is the cumulative running mean of per-rating weights
(easy=1.0, medium=0.5, hard=0.0).
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

from sqlalchemy import or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.clock import Clock
from backend.errors import InvalidInputError, NotFoundError, PersistenceError
from backend.models.deck import Deck
from backend.models.flashcard import Flashcard

logger = logging.getLogger(__name__)


class Difficulty(Enum):
    """Self-reported recall difficulty for a single review."""

    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


REVIEW_INTERVAL_DAYS = {
    Difficulty.HARD: 1,
    Difficulty.MEDIUM: 3,
    Difficulty.EASY: 7,
}

SUCCESS_WEIGHTS = {
    Difficulty.EASY: 1.0,
    Difficulty.MEDIUM: 0.5,
    Difficulty.HARD: 0.0,
}


@dataclass(frozen=True)
class ReviewOutcome:
    """The card fields written by a single review."""

    review_count: int
    success_rate: float
    difficulty: Difficulty
    last_reviewed_at: datetime
    next_review_date: datetime


def parse_difficulty(value: "str | Difficulty") -> Difficulty:
    """Coerce a raw rating into a ``Difficulty``, rejecting anything else."""
    if isinstance(value, Difficulty):
        return value
    try:
        return Difficulty(value)
    except ValueError as exc:
        raise InvalidInputError(
            f"Invalid difficulty {value!r}; expected one of easy, medium, hard"
        ) from exc


def apply_review(
    review_count: int,
    success_rate: float,
    difficulty: Difficulty,
    now: datetime,
) -> ReviewOutcome:
    """Compute the post-review state of a card.

    Args:
        review_count: Reviews applied so far.
        success_rate: Current running mean in [0, 1].
        difficulty: The rating for this review.
        now: Review time; the next due date is measured from here.

    Returns:
        The new review count, success rate and schedule.
    """
    new_count = review_count + 1
    new_rate = (success_rate * (new_count - 1) + SUCCESS_WEIGHTS[difficulty]) / new_count
    return ReviewOutcome(
        review_count=new_count,
        success_rate=new_rate,
        difficulty=difficulty,
        last_reviewed_at=now,
        next_review_date=now + timedelta(days=REVIEW_INTERVAL_DAYS[difficulty]),
    )


def is_due(next_review_date: datetime | None, now: datetime) -> bool:
    """A card is due when it has never been scheduled or its date has passed."""
    return next_review_date is None or next_review_date <= now


def validate_id(value: int, kind: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise InvalidInputError(f"Malformed {kind} id: {value!r}")
    return value


class ReviewScheduler:
    """Applies reviews to persisted flashcards and lists due cards."""

    def __init__(self, clock: Clock) -> None:
        self.clock = clock

    async def review_flashcard(
        self,
        db: AsyncSession,
        user_id: int,
        card_id: int,
        difficulty: "str | Difficulty",
    ) -> Flashcard:
        """Record a review of one card and reschedule it.

        The write is guarded on the ``review_count`` that was read, so a
        concurrent review from another tab fails instead of being lost.

        Raises:
            InvalidInputError: Unknown rating or malformed id.
            NotFoundError: The card does not exist or belongs to another user.
            PersistenceError: The store failed or the guarded write lost a race.
        """
        rating = parse_difficulty(difficulty)
        validate_id(card_id, "flashcard")
        now = self.clock.now()

        try:
            card = await self._get_owned_card(db, user_id, card_id)
            outcome = apply_review(card.review_count, card.success_rate, rating, now)

            stmt = (
                update(Flashcard)
                .where(Flashcard.id == card.id, Flashcard.review_count == card.review_count)
                .values(
                    review_count=outcome.review_count,
                    success_rate=outcome.success_rate,
                    difficulty=outcome.difficulty.value,
                    last_reviewed_at=outcome.last_reviewed_at,
                    next_review_date=outcome.next_review_date,
                    updated_at=now,
                )
                .returning(Flashcard.id)
                .execution_options(synchronize_session=False)
            )
            written = (await db.execute(stmt)).scalar_one_or_none()
            if written is None:
                await db.rollback()
                logger.warning("Review of card %d lost a concurrent update", card_id)
                raise PersistenceError(f"Flashcard {card_id} was modified concurrently")

            await db.commit()
            await db.refresh(card)
        except SQLAlchemyError as exc:
            await db.rollback()
            raise PersistenceError(f"Failed to review flashcard {card_id}") from exc

        logger.info(
            "Reviewed card %d as %s: count=%d rate=%.3f next=%s",
            card_id,
            rating.value,
            outcome.review_count,
            outcome.success_rate,
            outcome.next_review_date.isoformat(),
        )
        return card

    async def get_due_flashcards(
        self,
        db: AsyncSession,
        user_id: int,
        deck_id: int | None = None,
    ) -> list[Flashcard]:
        """Return the user's cards that are due now, optionally for one deck.

        Order is not significant.
        """
        if deck_id is not None:
            validate_id(deck_id, "deck")
        now = self.clock.now()

        stmt = (
            select(Flashcard)
            .join(Deck, Flashcard.deck_id == Deck.id)
            .where(
                Deck.user_id == user_id,
                or_(Flashcard.next_review_date.is_(None), Flashcard.next_review_date <= now),
            )
        )
        if deck_id is not None:
            stmt = stmt.where(Flashcard.deck_id == deck_id)

        try:
            result = await db.execute(stmt)
        except SQLAlchemyError as exc:
            raise PersistenceError("Failed to load due flashcards") from exc

        cards = list(result.scalars().all())
        logger.debug("User %d has %d due cards", user_id, len(cards))
        return cards

    async def _get_owned_card(self, db: AsyncSession, user_id: int, card_id: int) -> Flashcard:
        stmt = (
            select(Flashcard)
            .join(Deck, Flashcard.deck_id == Deck.id)
            .where(Flashcard.id == card_id, Deck.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        card = (await db.execute(stmt)).scalar_one_or_none()
        if card is None:
            raise NotFoundError(f"Flashcard {card_id} not found")
        return card
