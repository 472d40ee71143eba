"""CLI interface for StudyCards.

Usage:
    python -m studycards review [--deck ID]          Study due cards
    python -m studycards due [--deck ID]             Show how many cards are due
    python -m studycards streak                      Show your streak
    python -m studycards achievements                List achievements
    python -m studycards add-deck "name"             Create a deck
    python -m studycards add-card DECK "q" "a"       Add a card to a deck
    python -m studycards freeze {use,earn}           Spend or grant a streak freeze
"""

import argparse
import asyncio
import logging

from sqlalchemy import select

from backend.clock import SystemClock
from backend.config import settings
from backend.database import async_session, engine
from backend.errors import StudyCardsError
from backend.models import Base
from backend.models.user import User
from backend.srs.decks import DeckService
from backend.srs.scheduler import Difficulty, ReviewScheduler
from backend.srs.session import SessionRecorder
from backend.srs.streak import StreakEngine

RATING_KEYS = {
    "e": Difficulty.EASY,
    "m": Difficulty.MEDIUM,
    "h": Difficulty.HARD,
}


def build_services() -> tuple[ReviewScheduler, StreakEngine, DeckService]:
    clock = SystemClock()
    streak_engine = StreakEngine(
        clock,
        calendar_timezone=settings.calendar_timezone,
        initial_freezes=settings.initial_streak_freezes,
        freeze_bonus_streaks=settings.freeze_bonus_streaks,
    )
    return ReviewScheduler(clock), streak_engine, DeckService(clock)


async def ensure_db() -> None:
    """Create tables if they don't exist."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def ensure_user() -> int:
    """Ensure there's a default user and return the ID."""
    async with async_session() as db:
        stmt = select(User).order_by(User.id).limit(1)
        user = (await db.execute(stmt)).scalar_one_or_none()
        if user:
            return user.id

        user = User(display_name="Student")
        db.add(user)
        await db.commit()
        await db.refresh(user)
        return user.id


def print_new_achievements(achievements: list) -> None:
    for achievement in achievements:
        print(f"  Achievement unlocked: {achievement.name} - {achievement.description}")


async def cmd_review(args: argparse.Namespace) -> None:
    """Run an interactive review session."""
    await ensure_db()
    user_id = await ensure_user()
    scheduler, streak_engine, decks = build_services()
    recorder = SessionRecorder(scheduler.clock, streak_engine, decks)
    started_at = scheduler.clock.now()

    async with async_session() as db:
        cards = await scheduler.get_due_flashcards(db, user_id, args.deck)
        cards = cards[: args.max_cards]

        if not cards:
            print("\nNo cards due for review. You're all caught up!")
            return

        print(f"\n  Review Session: {len(cards)} cards due")
        print("  Ratings: e=easy (+7d)  m=medium (+3d)  h=hard (+1d)")
        print("  Type 'q' to quit\n")

        reviewed = 0
        correct = 0

        for i, card in enumerate(cards, 1):
            print(f"  [{i}/{len(cards)}]")
            print(f"  {card.question}")
            if input("\n  Press enter to show the answer ").strip().lower() == "q":
                print("\n  Session ended early.")
                break
            print(f"  {card.answer}\n")

            key = ""
            while key not in RATING_KEYS and key != "q":
                key = input("  Rate [e/m/h]: ").strip().lower()
            if key == "q":
                print("\n  Session ended early.")
                break

            rating = RATING_KEYS[key]
            card = await scheduler.review_flashcard(db, user_id, card.id, rating)
            reviewed += 1
            if rating is not Difficulty.HARD:
                correct += 1
            print(f"  Next review: {card.next_review_date:%Y-%m-%d}\n")

        if not reviewed:
            return

        summary = await recorder.complete_session(
            db,
            user_id,
            cards_studied=reviewed,
            correct_answers=correct,
            started_at=started_at,
            deck_id=args.deck,
        )

    print("\n  Session Complete!")
    print(f"  Reviewed: {reviewed}  Correct: {correct}  Accuracy: {summary.accuracy:.0f}%")
    print(f"  Streak: {summary.streak.current_streak} day(s)")
    print_new_achievements(summary.streak.new_achievements)
    print()


async def cmd_due(args: argparse.Namespace) -> None:
    """Show how many cards are due."""
    await ensure_db()
    user_id = await ensure_user()
    scheduler, _, _ = build_services()

    async with async_session() as db:
        cards = await scheduler.get_due_flashcards(db, user_id, args.deck)

    print(f"  {len(cards)} cards due")


async def cmd_streak(args: argparse.Namespace) -> None:
    """Show the current streak."""
    await ensure_db()
    user_id = await ensure_user()
    _, streak_engine, _ = build_services()

    async with async_session() as db:
        data = await streak_engine.get_streak_data(db, user_id)

    last = f"{data.last_study_date:%Y-%m-%d}" if data.last_study_date else "never"
    print("\n  Streak")
    print(f"  {'Current:':<16} {data.current_streak}")
    print(f"  {'Longest:':<16} {data.longest_streak}")
    print(f"  {'Freezes:':<16} {data.streak_freezes}")
    print(f"  {'Last studied:':<16} {last}")
    print()


async def cmd_achievements(args: argparse.Namespace) -> None:
    """List achievements with their unlock state."""
    await ensure_db()
    user_id = await ensure_user()
    _, streak_engine, _ = build_services()

    async with async_session() as db:
        statuses = await streak_engine.get_achievements(db, user_id)

    print()
    for status in statuses:
        mark = "x" if status.unlocked else " "
        print(f"  [{mark}] {status.achievement.name:<20} {status.achievement.description}")
    print()


async def cmd_add_deck(args: argparse.Namespace) -> None:
    await ensure_db()
    user_id = await ensure_user()
    _, _, decks = build_services()

    async with async_session() as db:
        deck = await decks.create_deck(db, user_id, args.name, args.description)

    print(f"  Created deck {deck.id}: {deck.name}")


async def cmd_add_card(args: argparse.Namespace) -> None:
    await ensure_db()
    user_id = await ensure_user()
    _, _, decks = build_services()

    async with async_session() as db:
        card = await decks.create_flashcard(db, user_id, args.deck, args.question, args.answer)

    print(f"  Added card {card.id} (ready for review)")


async def cmd_freeze(args: argparse.Namespace) -> None:
    """Spend or grant one streak freeze."""
    await ensure_db()
    user_id = await ensure_user()
    _, streak_engine, _ = build_services()

    async with async_session() as db:
        if args.action == "use":
            remaining = await streak_engine.use_streak_freeze(db, user_id)
            print(f"  Freeze used. {remaining} left.")
        else:
            total = await streak_engine.earn_streak_freeze(db, user_id)
            print(f"  Freeze earned. {total} available.")


def main() -> None:
    """Entry point for the StudyCards CLI application."""
    parser = argparse.ArgumentParser(
        prog="studycards",
        description="StudyCards flashcard trainer",
    )
    parser.add_argument("-v", "--verbose", action="store_true")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # review
    review_parser = subparsers.add_parser("review", help="Study due cards")
    review_parser.add_argument("--deck", type=int, default=None, help="Limit to one deck")
    review_parser.add_argument("--max-cards", type=int, default=20, help="Max cards per session")

    # due
    due_parser = subparsers.add_parser("due", help="Show cards due for review")
    due_parser.add_argument("--deck", type=int, default=None, help="Limit to one deck")

    # streak / achievements
    subparsers.add_parser("streak", help="Show your streak")
    subparsers.add_parser("achievements", help="List achievements")

    # add-deck
    deck_parser = subparsers.add_parser("add-deck", help="Create a deck")
    deck_parser.add_argument("name", help="Deck name")
    deck_parser.add_argument("-d", "--description", default="", help="Deck description")

    # add-card
    card_parser = subparsers.add_parser("add-card", help="Add a flashcard to a deck")
    card_parser.add_argument("deck", type=int, help="Deck ID")
    card_parser.add_argument("question", help="Question (Markdown)")
    card_parser.add_argument("answer", help="Answer (Markdown)")

    # freeze
    freeze_parser = subparsers.add_parser("freeze", help="Spend or grant a streak freeze")
    freeze_parser.add_argument("action", choices=["use", "earn"])

    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)

    if not args.command:
        parser.print_help()
        return

    cmd_map = {
        "review": cmd_review,
        "due": cmd_due,
        "streak": cmd_streak,
        "achievements": cmd_achievements,
        "add-deck": cmd_add_deck,
        "add-card": cmd_add_card,
        "freeze": cmd_freeze,
    }

    try:
        asyncio.run(cmd_map[args.command](args))
    except StudyCardsError as exc:
        parser.exit(1, f"  Error: {exc}\n")


if __name__ == "__main__":
    main()
