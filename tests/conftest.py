"""Pytest configuration and shared fixtures.

This module provides:
- An in-memory SQLite database (aiosqlite) shared through a StaticPool
- Async session, session factory and unit of work fixtures
- A small catalog of categories and products
"""

from collections.abc import AsyncGenerator
from datetime import date

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from datacore.core.config import clear_settings_cache
from datacore.services.common.unit_of_work import UnitOfWork
from tests.models import Base, Category, Product

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture(autouse=True)
def fresh_settings():
    """Re-read settings for every test so env patches do not leak."""
    clear_settings_cache()
    yield
    clear_settings_cache()


# =============================================================================
# Database
# =============================================================================


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Fresh in-memory database with all test tables created."""
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as db_session:
        yield db_session


@pytest_asyncio.fixture
async def uow(session: AsyncSession) -> UnitOfWork:
    """Unit of work over the test session, committing only on request."""
    return UnitOfWork.from_session(session)


# =============================================================================
# Sample data
# =============================================================================


@pytest_asyncio.fixture
async def categories(session: AsyncSession) -> dict[str, Category]:
    books = Category(id=1, name="Books")
    games = Category(id=2, name="Games")
    session.add_all([books, games])
    await session.commit()
    return {"books": books, "games": games}


@pytest_asyncio.fixture
async def products(session: AsyncSession, categories) -> list[Product]:
    """Five products; ids follow insertion order and "Go board" is inactive."""
    items = [
        Product(id=1, name="Atlas", price=12.5, created_at=date(2024, 1, 5), category_id=1),
        Product(id=2, name="Chess", price=30.0, created_at=date(2024, 2, 10), category_id=2),
        Product(id=3, name="Dune", price=9.99, created_at=date(2024, 3, 15), category_id=1),
        Product(
            id=4,
            name="Go board",
            price=45.0,
            is_active=False,
            created_at=date(2024, 4, 20),
            category_id=2,
        ),
        Product(id=5, name="Notebook", price=3.5, created_at=date(2024, 5, 25)),
    ]
    session.add_all(items)
    await session.commit()
    return items
