"""
Shared pytest fixtures for database sessions, settings and the repository registry.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from pathlib import Path

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from common_api.api.registry import RepositoryRegistry
from common_api.config import DatabaseSettings, LoggingSettings, Settings
from tests.dto import MockBase


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    """File-backed SQLite database, fresh for every test."""
    return f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"


@pytest.fixture
async def db_engine(database_url: str) -> AsyncIterator[AsyncEngine]:
    """Provide an async SQLite engine with the test schema created."""
    engine = create_async_engine(database_url)
    async with engine.begin() as connection:
        await connection.run_sync(MockBase.metadata.create_all)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory configured like the production one."""
    return async_sessionmaker(db_engine, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncSession]:
    """Session used by the repository under test."""
    async with session_factory() as session:
        yield session


@pytest.fixture
async def other_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncSession]:
    """Independent session for checking what actually reached the database."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def test_settings(database_url: str, tmp_path: Path) -> Settings:
    """Settings pointing at the per-test database and log directory."""
    return Settings(
        _env_file=None,
        database=DatabaseSettings(url=database_url),
        logging=LoggingSettings(directory=tmp_path / "logs", level="DEBUG"),
    )


@pytest.fixture
def registry() -> RepositoryRegistry:
    return RepositoryRegistry()
