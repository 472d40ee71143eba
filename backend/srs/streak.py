"""Streak and achievement engine.

Tracks consecutive study days per user, spends and grants streak freezes,
and unlocks catalog achievements. One event drives the state machine:
``update_streak`` is called once when a study session completes.

Transitions on ``last_study_date`` (calendar days in the configured zone):

- never studied: streak starts at 1
- today: nothing changes except ``last_study_date``
- yesterday: streak + 1
- older, with a freeze available: one freeze is spent, streak + 1
- older, no freeze: streak resets to 1

Reaching one of the bonus lengths (7 and 30 by default) grants a freeze.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from zoneinfo import ZoneInfo

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.clock import Clock
from backend.errors import InsufficientResourceError, NotFoundError, PersistenceError
from backend.models.user import User
from backend.models.user_achievement import UserAchievement
from backend.models.user_stats import UserStats
from backend.models.user_streak import UserStreak
from backend.srs.achievements import (
    DEFAULT_CATALOG,
    Achievement,
    AchievementStatus,
    evaluate_achievements,
)
from backend.srs.calendar_days import is_today, is_yesterday

logger = logging.getLogger(__name__)

DEFAULT_FREEZE_BONUS_STREAKS = (7, 30)


@dataclass(frozen=True)
class StreakState:
    """Snapshot of the persisted streak fields."""

    current_streak: int = 0
    longest_streak: int = 0
    last_study_date: datetime | None = None
    streak_freezes: int = 0

    @classmethod
    def from_row(cls, row: UserStreak) -> "StreakState":
        return cls(
            current_streak=row.current_streak,
            longest_streak=row.longest_streak,
            last_study_date=row.last_study_date,
            streak_freezes=row.streak_freezes,
        )


@dataclass(frozen=True)
class StreakTransition:
    """Outcome of applying one completed session to a streak."""

    state: StreakState
    streak_maintained: bool
    studied_today_already: bool = False
    freeze_consumed: bool = False
    bonus_freeze: bool = False


@dataclass
class StreakUpdate:
    current_streak: int
    longest_streak: int
    streak_freezes: int
    streak_maintained: bool
    new_achievements: list[Achievement] = field(default_factory=list)
    unlocked_at: datetime | None = None  # stamp of new_achievements


@dataclass
class StreakData:
    current_streak: int
    longest_streak: int
    last_study_date: datetime | None
    streak_freezes: int
    achievements: list[AchievementStatus] = field(default_factory=list)


def advance_streak(
    state: StreakState,
    now: datetime,
    tz: ZoneInfo,
    bonus_streaks: Iterable[int] = DEFAULT_FREEZE_BONUS_STREAKS,
) -> StreakTransition:
    """Apply a completed study session at ``now`` to ``state``.

    Pure function; the bonus freeze is reported, not applied.
    """
    last = state.last_study_date
    freezes = state.streak_freezes
    freeze_consumed = False

    if last is not None and is_today(last, now, tz):
        return StreakTransition(
            state=StreakState(
                current_streak=state.current_streak,
                longest_streak=state.longest_streak,
                last_study_date=now,
                streak_freezes=freezes,
            ),
            streak_maintained=True,
            studied_today_already=True,
        )

    if last is None:
        current, maintained = 1, False
    elif is_yesterday(last, now, tz):
        current, maintained = state.current_streak + 1, True
    elif freezes > 0:
        # A freeze covers the gap whatever its length.
        current, maintained = state.current_streak + 1, True
        freezes -= 1
        freeze_consumed = True
    else:
        current, maintained = 1, False

    return StreakTransition(
        state=StreakState(
            current_streak=current,
            longest_streak=max(state.longest_streak, current),
            last_study_date=now,
            streak_freezes=freezes,
        ),
        streak_maintained=maintained,
        freeze_consumed=freeze_consumed,
        bonus_freeze=current in set(bonus_streaks),
    )


class StreakEngine:
    """Persists streak transitions, freeze balances and achievement unlocks.

    Every mutating method is one transaction: it either commits all of its
    writes or raises with nothing written.
    """

    def __init__(
        self,
        clock: Clock,
        catalog: Iterable[Achievement] = DEFAULT_CATALOG,
        calendar_timezone: str = "UTC",
        initial_freezes: int = 0,
        freeze_bonus_streaks: Iterable[int] = DEFAULT_FREEZE_BONUS_STREAKS,
    ) -> None:
        self.clock = clock
        self.catalog = tuple(catalog)
        self.tz = ZoneInfo(calendar_timezone)
        self.initial_freezes = initial_freezes
        self.freeze_bonus_streaks = tuple(freeze_bonus_streaks)

    # --- Reads ---

    async def get_streak_data(self, db: AsyncSession, user_id: int) -> StreakData:
        """Return the streak fields and per-user achievement states.

        Does not create a streak row; a user who never studied gets defaults.

        Raises:
            NotFoundError: The user does not exist.
        """
        try:
            row = await self._load_streak(db, user_id)
            if row is None:
                await self._require_user(db, user_id)
            statuses = await self._achievement_statuses(db, user_id)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to load streak for user {user_id}") from exc

        state = StreakState.from_row(row) if row else StreakState(streak_freezes=self.initial_freezes)
        return StreakData(
            current_streak=state.current_streak,
            longest_streak=state.longest_streak,
            last_study_date=state.last_study_date,
            streak_freezes=state.streak_freezes,
            achievements=statuses,
        )

    async def get_achievements(self, db: AsyncSession, user_id: int) -> list[AchievementStatus]:
        try:
            await self._require_user(db, user_id)
            return await self._achievement_statuses(db, user_id)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to load achievements for user {user_id}") from exc

    # --- State transitions ---

    async def update_streak(self, db: AsyncSession, user_id: int) -> StreakUpdate:
        """Record that ``user_id`` completed a study session now.

        Safe to retry: a second call on the same calendar day only refreshes
        ``last_study_date``.

        Raises:
            NotFoundError: The user does not exist.
            PersistenceError: The store failed or a concurrent update won.
        """
        now = self.clock.now()
        try:
            row = await self._get_or_create_streak(db, user_id)
            version = row.version
            transition = advance_streak(
                StreakState.from_row(row), now, self.tz, self.freeze_bonus_streaks
            )
            new = transition.state

            if transition.studied_today_already:
                values = {"last_study_date": now}
            else:
                values = {
                    "current_streak": new.current_streak,
                    "longest_streak": new.longest_streak,
                    "last_study_date": new.last_study_date,
                    "streak_freezes": new.streak_freezes,
                }
            stmt = (
                update(UserStreak)
                .where(UserStreak.user_id == user_id, UserStreak.version == version)
                .values(**values, version=version + 1, updated_at=now)
                .returning(UserStreak.user_id)
                .execution_options(synchronize_session=False)
            )
            if (await db.execute(stmt)).scalar_one_or_none() is None:
                await db.rollback()
                logger.warning("Streak update for user %d lost a concurrent update", user_id)
                raise PersistenceError(f"Streak for user {user_id} was modified concurrently")

            freezes = new.streak_freezes
            if transition.bonus_freeze:
                freezes = await self._increment_freezes(db, user_id)

            new_achievements = await self._unlock_achievements(db, user_id, new, now)
            await db.commit()
        except IntegrityError as exc:
            await db.rollback()
            raise PersistenceError(f"Conflicting streak write for user {user_id}") from exc
        except SQLAlchemyError as exc:
            await db.rollback()
            raise PersistenceError(f"Failed to update streak for user {user_id}") from exc

        if transition.studied_today_already:
            logger.debug("User %d already studied today; streak stays %d", user_id, new.current_streak)
        else:
            logger.info(
                "Streak for user %d: %d (longest %d, maintained=%s, freeze_used=%s)",
                user_id,
                new.current_streak,
                new.longest_streak,
                transition.streak_maintained,
                transition.freeze_consumed,
            )
        if transition.bonus_freeze:
            logger.info("User %d earned a bonus freeze at streak %d", user_id, new.current_streak)

        return StreakUpdate(
            current_streak=new.current_streak,
            longest_streak=new.longest_streak,
            streak_freezes=freezes,
            streak_maintained=transition.streak_maintained,
            new_achievements=new_achievements,
            unlocked_at=now if new_achievements else None,
        )

    async def use_streak_freeze(self, db: AsyncSession, user_id: int) -> int:
        """Spend one freeze and return the remaining balance.

        Not idempotent: each call spends one freeze.

        Raises:
            InsufficientResourceError: The balance is zero.
            NotFoundError: The user does not exist.
        """
        stmt = (
            update(UserStreak)
            .where(UserStreak.user_id == user_id, UserStreak.streak_freezes > 0)
            .values(streak_freezes=UserStreak.streak_freezes - 1, version=UserStreak.version + 1)
            .returning(UserStreak.streak_freezes)
            .execution_options(synchronize_session=False)
        )
        try:
            remaining = (await db.execute(stmt)).scalar_one_or_none()
            if remaining is None:
                await self._require_user(db, user_id)
                logger.warning("User %d tried to use a streak freeze with none left", user_id)
                raise InsufficientResourceError(f"User {user_id} has no streak freezes left")
            await db.commit()
        except SQLAlchemyError as exc:
            await db.rollback()
            raise PersistenceError(f"Failed to use streak freeze for user {user_id}") from exc

        logger.info("User %d used a streak freeze; %d left", user_id, remaining)
        return remaining

    async def earn_streak_freeze(self, db: AsyncSession, user_id: int) -> int:
        """Grant one freeze and return the new balance. No upper bound; not idempotent."""
        try:
            await self._get_or_create_streak(db, user_id)
            total = await self._increment_freezes(db, user_id)
            await db.commit()
        except SQLAlchemyError as exc:
            await db.rollback()
            raise PersistenceError(f"Failed to grant streak freeze for user {user_id}") from exc

        logger.info("User %d earned a streak freeze; %d total", user_id, total)
        return total

    async def check_achievements(self, db: AsyncSession, user_id: int) -> list[Achievement]:
        """Unlock every catalog entry the user has reached and return the new ones."""
        now = self.clock.now()
        try:
            row = await self._load_streak(db, user_id)
            if row is None:
                await self._require_user(db, user_id)
            state = StreakState.from_row(row) if row else StreakState()
            unlocked = await self._unlock_achievements(db, user_id, state, now)
            await db.commit()
        except SQLAlchemyError as exc:
            await db.rollback()
            raise PersistenceError(f"Failed to check achievements for user {user_id}") from exc
        return unlocked

    # --- Helpers (no commit) ---

    async def _load_streak(self, db: AsyncSession, user_id: int) -> UserStreak | None:
        stmt = (
            select(UserStreak)
            .where(UserStreak.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        return (await db.execute(stmt)).scalar_one_or_none()

    async def _require_user(self, db: AsyncSession, user_id: int) -> None:
        if await db.get(User, user_id) is None:
            raise NotFoundError(f"User {user_id} not found")

    async def _get_or_create_streak(self, db: AsyncSession, user_id: int) -> UserStreak:
        row = await self._load_streak(db, user_id)
        if row is not None:
            return row

        await self._require_user(db, user_id)
        row = UserStreak(
            user_id=user_id,
            current_streak=0,
            longest_streak=0,
            last_study_date=None,
            streak_freezes=self.initial_freezes,
            version=0,
        )
        db.add(row)
        await db.flush()
        logger.info("Created streak record for user %d", user_id)
        return row

    async def _increment_freezes(self, db: AsyncSession, user_id: int) -> int:
        stmt = (
            update(UserStreak)
            .where(UserStreak.user_id == user_id)
            .values(streak_freezes=UserStreak.streak_freezes + 1, version=UserStreak.version + 1)
            .returning(UserStreak.streak_freezes)
            .execution_options(synchronize_session=False)
        )
        return (await db.execute(stmt)).scalar_one()

    async def _unlocked_ids(self, db: AsyncSession, user_id: int) -> dict[str, datetime]:
        stmt = select(UserAchievement.achievement_id, UserAchievement.unlocked_at).where(
            UserAchievement.user_id == user_id
        )
        return {row.achievement_id: row.unlocked_at for row in (await db.execute(stmt)).all()}

    async def _achievement_statuses(self, db: AsyncSession, user_id: int) -> list[AchievementStatus]:
        unlocked = await self._unlocked_ids(db, user_id)
        return [
            AchievementStatus(
                achievement=achievement,
                unlocked=achievement.id in unlocked,
                unlocked_at=unlocked.get(achievement.id),
            )
            for achievement in self.catalog
        ]

    async def _unlock_achievements(
        self,
        db: AsyncSession,
        user_id: int,
        streak: StreakState,
        now: datetime,
    ) -> list[Achievement]:
        unlocked = await self._unlocked_ids(db, user_id)
        stats = await db.get(UserStats, user_id, populate_existing=True)
        reached = evaluate_achievements(self.catalog, set(unlocked), streak, stats)

        for achievement in reached:
            db.add(UserAchievement(user_id=user_id, achievement_id=achievement.id, unlocked_at=now))
        if reached:
            await db.flush()
            logger.info(
                "User %d unlocked %d achievement(s): %s",
                user_id,
                len(reached),
                ", ".join(a.id for a in reached),
            )
        return reached
