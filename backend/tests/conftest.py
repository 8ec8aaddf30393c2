"""
Pytest fixtures for test database, client, and authentication.

Each test gets a fresh SQLite database (aiosqlite) with all tables
created up front and dropped afterwards. Redis is disabled so the
listing cache degrades to a no-op.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./nestery_app_test.db")
os.environ["REDIS_ENABLED"] = "false"
os.environ.setdefault("ENVIRONMENT", "test")

from datetime import date
from decimal import Decimal
from typing import AsyncGenerator

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from nestery.core.security import create_access_token
from nestery.db.base import Base
from nestery.db.session import get_db
from nestery.main import app
from nestery.models.booking import Booking, BookingStatus
from nestery.models.property import Property
from nestery.models.user import User

TEST_DATABASE_URL = "sqlite+aiosqlite:///./nestery_test.db"


@pytest_asyncio.fixture(scope="function")
async def session_factory() -> AsyncGenerator[async_sessionmaker, None]:
    """Create tables, yield a session factory, then drop tables for isolation."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory: async_sessionmaker) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client that overrides the DB dependency with the test session."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


async def _add(db_session: AsyncSession, obj):
    db_session.add(obj)
    await db_session.commit()
    await db_session.refresh(obj)
    return obj


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> User:
    """Regular user holding 5000 loyalty points."""
    return await _add(db_session, User(
        email="guest@example.com",
        name="Regular Guest",
        role="user",
        is_premium=False,
        loyalty_points=5000,
    ))


@pytest_asyncio.fixture
async def premium_user(db_session: AsyncSession) -> User:
    """Premium user holding 3000 loyalty points."""
    return await _add(db_session, User(
        email="premium@example.com",
        name="Premium Guest",
        role="user",
        is_premium=True,
        loyalty_points=3000,
    ))


@pytest_asyncio.fixture
async def other_user(db_session: AsyncSession) -> User:
    return await _add(db_session, User(
        email="other@example.com",
        name="Other Guest",
        role="user",
        loyalty_points=0,
    ))


@pytest_asyncio.fixture
async def admin_user(db_session: AsyncSession) -> User:
    return await _add(db_session, User(
        email="admin@example.com",
        name="Admin",
        role="admin",
        loyalty_points=0,
    ))


@pytest_asyncio.fixture
async def test_property(db_session: AsyncSession) -> Property:
    """Property at 100.00 USD per night."""
    return await _add(db_session, Property(
        name="Seaside Villa",
        base_price=Decimal("100.00"),
        currency="USD",
    ))


@pytest_asyncio.fixture
async def other_property(db_session: AsyncSession) -> Property:
    return await _add(db_session, Property(
        name="Mountain Cabin",
        base_price=Decimal("80.00"),
        currency="EUR",
    ))


@pytest_asyncio.fixture
async def make_booking(db_session: AsyncSession):
    """Factory inserting a booking row directly, bypassing the engine."""

    async def _make(
        user: User,
        prop: Property,
        check_in: date,
        check_out: date,
        status: str = BookingStatus.CONFIRMED.value,
        **overrides,
    ) -> Booking:
        fields = dict(
            user_id=user.id,
            property_id=prop.id,
            check_in_date=check_in,
            check_out_date=check_out,
            number_of_guests=2,
            total_price=Decimal("100.00"),
            currency=prop.currency,
            status=status,
            confirmation_code="NST-000000-0000",
        )
        fields.update(overrides)
        return await _add(db_session, Booking(**fields))

    return _make


def _headers_for(user: User) -> dict:
    token = create_access_token(data={"sub": str(user.id), "role": user.role})
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def auth_headers(test_user: User) -> dict:
    """Authorization headers with Bearer token for the regular user."""
    return _headers_for(test_user)


@pytest_asyncio.fixture
async def premium_headers(premium_user: User) -> dict:
    return _headers_for(premium_user)


@pytest_asyncio.fixture
async def other_headers(other_user: User) -> dict:
    return _headers_for(other_user)


@pytest_asyncio.fixture
async def admin_headers(admin_user: User) -> dict:
    return _headers_for(admin_user)
