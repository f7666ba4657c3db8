"""Shared test fixtures."""

import datetime as dt

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from match_engine.api.app import app
from match_engine.api.deps import get_db_factory
from match_engine.matching.config import ConfigHolder
from match_engine.models.base import Base
from match_engine.models.interest import Interest
from match_engine.models.user import User

BASE_TIME = dt.datetime(2026, 3, 1, 12, 0, 0)


def make_profile(user_id: str, **overrides) -> dict:
    """Return a scoring profile dict shaped like ``repository.user_to_dict``."""
    profile = {
        "id": user_id,
        "display_name": user_id.title(),
        "age": 30,
        "gender": "female",
        "latitude": 48.0,
        "longitude": 7.8,
        "interests": frozenset(),
        "preferences": {
            "age_min": None,
            "age_max": None,
            "gender_preference": None,
            "max_distance_km": None,
        },
        "last_active_at": None,
    }
    preferences = overrides.pop("preferences", None)
    if preferences:
        profile["preferences"] = {**profile["preferences"], **preferences}
    if "interests" in overrides:
        overrides["interests"] = frozenset(overrides["interests"])
    profile.update(overrides)
    return profile


@pytest.fixture
async def test_engine():
    """Create an async SQLite in-memory engine for tests."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    """Create an async session factory bound to the test engine."""
    return async_sessionmaker(test_engine, expire_on_commit=False)


@pytest.fixture
def add_user(test_session_factory):
    """Return a coroutine that inserts a user (and any missing interests)."""

    async def _add_user(user_id: str, interests: tuple[str, ...] = (), **fields) -> User:
        async with test_session_factory() as session, session.begin():
            tags = []
            for tag in interests:
                interest = await session.get(Interest, tag)
                if interest is None:
                    interest = Interest(id=tag, label=tag.title())
                    session.add(interest)
                tags.append(interest)
            user = User(id=user_id, interests=tags, **fields)
            session.add(user)
        return user

    return _add_user


@pytest.fixture
async def seeded_users(add_user):
    """Three nearby users and one far away, all without stated preferences."""
    await add_user(
        "alice",
        interests=("hiking", "music", "travel"),
        age=29,
        gender="female",
        latitude=48.0,
        longitude=7.8,
        last_active_at=BASE_TIME,
    )
    await add_user(
        "bob",
        interests=("hiking", "music"),
        age=31,
        gender="male",
        latitude=48.01,
        longitude=7.81,
        last_active_at=BASE_TIME - dt.timedelta(hours=1),
    )
    await add_user(
        "carol",
        interests=("cooking",),
        age=40,
        gender="female",
        latitude=48.2,
        longitude=7.9,
        last_active_at=BASE_TIME - dt.timedelta(hours=2),
    )
    await add_user(
        "dave",
        interests=("hiking",),
        age=33,
        gender="male",
        latitude=52.5,
        longitude=13.4,
        last_active_at=BASE_TIME - dt.timedelta(days=1),
    )
    return ["alice", "bob", "carol", "dave"]


@pytest.fixture
async def api_client(test_engine, test_session_factory):
    """Async HTTP client hitting the FastAPI app with test DB."""
    app.dependency_overrides[get_db_factory] = lambda: test_session_factory
    app.state.config_holder = ConfigHolder()
    app.state.learner_scheduler = None

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
    app.state.config_holder = ConfigHolder()
