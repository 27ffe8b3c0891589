# tests/conftest.py
from datetime import datetime, timezone

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from levelgate.access.store import AccessStore
from levelgate.db.engine import get_session
from levelgate.db.models import AccessRequest, AccessStatus, Base, Level
from levelgate.main import create_app
from levelgate.security.auth import get_current_user
from levelgate.security.models import AuthenticatedUser


LEVELS = [
    ("L1", "Beginner", 1),
    ("L-movers", "Movers", 2),
    ("L2", "Flyers", 3),
    ("L-pet", "PET", 5),
]


@pytest.fixture()
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        future=True,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
async def test_session(test_engine):
    async_session_factory = async_sessionmaker(
        bind=test_engine,
        expire_on_commit=False,
        autoflush=False,
        class_=AsyncSession,
    )
    async with async_session_factory() as session:
        session.add_all(
            [
                Level(id=level_id, name=name, difficulty_level=difficulty)
                for level_id, name, difficulty in LEVELS
            ]
        )
        await session.commit()
        yield session


@pytest.fixture
def store(test_session) -> AccessStore:
    return AccessStore(test_session)


@pytest.fixture
def add_request(test_session):
    """Insert an access request row directly, bypassing the service."""

    async def _add(student_id, level_id, status=AccessStatus.PENDING, request_id=None):
        row = AccessRequest(
            id=request_id or f"{student_id}-{level_id}-{status.value}",
            student_id=student_id,
            level_id=level_id,
            status=status.value,
            requested_at=datetime.now(timezone.utc),
        )
        test_session.add(row)
        await test_session.commit()
        return row

    return _add


@pytest.fixture
def current_user() -> dict:
    return {"sub": "u1", "username": "student-one", "roles": []}


@pytest.fixture
def app(test_session, current_user):
    async def override_get_session():
        try:
            yield test_session
        finally:
            if test_session.in_transaction():
                await test_session.rollback()

    async def override_get_current_user():
        return AuthenticatedUser(**current_user)

    app = create_app(use_lifespan=False)
    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_current_user] = override_get_current_user

    yield app

    app.dependency_overrides.clear()


@pytest.fixture
async def client(app):
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as c:
        yield c
