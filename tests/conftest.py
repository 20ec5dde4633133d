"""Pytest configuration and fixtures for geocell tests."""

import os
from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool, StaticPool

from geocell.config import Settings
from geocell.geometry import GeoLocation
from geocell.storage import Base


# SQLite in memory locally; a real database when TEST_DATABASE_URL is set
TEST_DATABASE_URL = os.environ.get("TEST_DATABASE_URL", "sqlite+aiosqlite:///:memory:")

SAN_FRANCISCO = GeoLocation.of(37.7749, -122.4194)


@pytest.fixture
def sf_center() -> GeoLocation:
    """San Francisco city center."""
    return SAN_FRANCISCO


@pytest.fixture
def fast_settings() -> Settings:
    """Settings with short timeouts and small batches."""
    return Settings(read_timeout_seconds=0.5, read_batch_size=25, max_concurrent_reads=4)


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Fresh database with the spatial tables created."""
    if TEST_DATABASE_URL.startswith("sqlite"):
        # SQLite in-memory requires StaticPool to keep connection alive
        test_engine = create_async_engine(
            TEST_DATABASE_URL,
            echo=False,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        test_engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=NullPool)

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine."""
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
