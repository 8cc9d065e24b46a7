"""
Pytest fixtures for test database, client, principals and events.

Each test gets its own SQLite file (aiosqlite) so concurrent sessions behave
like separate connections to a real database. Redis is disabled.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./campus_events_dev.db")
os.environ["REDIS_ENABLED"] = "false"
os.environ.setdefault("SECRET_KEY", "test-secret-key")

from datetime import datetime, timedelta
from typing import AsyncGenerator

import jwt
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool

from campus_events.main import app
from campus_events.core.config import get_settings
from campus_events.db.base import Base
from campus_events.db.session import get_db
from campus_events.models.user import User
from campus_events.models.event import Event, EventStatus, ReviewStatus

settings = get_settings()


def make_token(user_id: int) -> str:
    """Token as the identity service would issue it."""
    return jwt.encode({"sub": str(user_id)}, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def auth_headers_for(user: User) -> dict:
    return {"Authorization": f"Bearer {make_token(user.id)}"}


@pytest_asyncio.fixture
async def engine(tmp_path):
    test_engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        poolclass=NullPool,
        connect_args={"timeout": 30},
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client; every request gets a fresh session on the test database."""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


async def create_user(db: AsyncSession, username: str, role: str = "student", **fields) -> User:
    user = User(username=username, name=fields.pop("name", username), role=role, **fields)
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


async def create_event(db: AsyncSession, creator: User, **fields) -> Event:
    values = {
        "title": "Spring Hackathon",
        "description": "24h coding",
        "place": "Library Hall",
        "start_time": datetime(2030, 4, 1, 9, 0, 0),
        "end_time": datetime(2030, 4, 2, 9, 0, 0),
        "limit": 100,
        "status": EventStatus.PUBLISHED.value,
        "review_status": ReviewStatus.APPROVED.value,
        "allowed_colleges": [],
        "allowed_grades": [],
    }
    values.update(fields)
    event = Event(creator_id=creator.id, **values)
    db.add(event)
    await db.commit()
    await db.refresh(event)
    return event


@pytest_asyncio.fixture
async def student(db_session: AsyncSession) -> User:
    return await create_user(db_session, "student_cs", college="计算机学院", student_id="20220134")


@pytest_asyncio.fixture
async def other_student(db_session: AsyncSession) -> User:
    return await create_user(db_session, "student_math", college="数学学院", student_id="20230099")


@pytest_asyncio.fixture
async def organizer(db_session: AsyncSession) -> User:
    return await create_user(db_session, "organizer_a", role="organizer", college="计算机学院")


@pytest_asyncio.fixture
async def other_organizer(db_session: AsyncSession) -> User:
    return await create_user(db_session, "organizer_b", role="organizer")


@pytest_asyncio.fixture
async def reviewer(db_session: AsyncSession) -> User:
    return await create_user(db_session, "reviewer", role="reviewer")


@pytest_asyncio.fixture
async def admin(db_session: AsyncSession) -> User:
    return await create_user(db_session, "admin", role="admin")


@pytest_asyncio.fixture
async def test_event(db_session: AsyncSession, organizer: User) -> Event:
    """Approved, published event with 100 slots."""
    return await create_event(db_session, organizer)


@pytest_asyncio.fixture
async def small_event(db_session: AsyncSession, organizer: User) -> Event:
    """Approved, published event with 2 slots."""
    return await create_event(db_session, organizer, title="Tea Ceremony", limit=2)


@pytest.fixture
def future_date() -> str:
    return (datetime.now() + timedelta(days=30)).strftime("%Y-%m-%d")


@pytest.fixture
def make_user(db_session: AsyncSession):
    async def _make(username: str, role: str = "student", **fields) -> User:
        return await create_user(db_session, username, role=role, **fields)
    return _make


@pytest.fixture
def make_event(db_session: AsyncSession):
    async def _make(creator: User, **fields) -> Event:
        return await create_event(db_session, creator, **fields)
    return _make


@pytest.fixture
def headers_for():
    return auth_headers_for
