"""Shared fixtures: an in-memory database per test and a fixed clock."""

from collections.abc import AsyncGenerator
from datetime import datetime

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from backend.clock import FixedClock
from backend.database import get_session
from backend.main import app
from backend.models import Base
from backend.models.deck import Deck
from backend.models.user import User

# A Friday at noon UTC.
START = datetime(2024, 3, 15, 12, 0, 0)


@pytest_asyncio.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine, None]:
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(START)


@pytest_asyncio.fixture
async def user(db: AsyncSession) -> User:
    user = User(email="student@example.com", display_name="Student")
    db.add(user)
    await db.commit()
    return user


@pytest_asyncio.fixture
async def other_user(db: AsyncSession) -> User:
    user = User(email="other@example.com", display_name="Other")
    db.add(user)
    await db.commit()
    return user


@pytest_asyncio.fixture
async def deck(db: AsyncSession, user: User) -> Deck:
    deck = Deck(user_id=user.id, name="Biology", description="Cells")
    db.add(deck)
    await db.commit()
    return deck


@pytest_asyncio.fixture
async def client(
    session_factory: async_sessionmaker[AsyncSession], clock: FixedClock
) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client bound to the app with the test database and clock."""

    async def override_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_session
    previous_clock = app.state.clock
    app.state.clock = clock
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as http:
        yield http
    app.state.clock = previous_clock
    app.dependency_overrides.clear()
