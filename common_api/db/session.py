"""
Engine and session factory shared by every repository.
"""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from ..config import Settings

LOGGER = logging.getLogger(__name__)

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def _engine_options(settings: Settings) -> dict[str, object]:
    options: dict[str, object] = {"echo": settings.database.echo}
    # SQLite pools do not accept a size.
    if not settings.database.url.startswith("sqlite"):
        options["pool_size"] = settings.database.pool_size
        options["pool_pre_ping"] = True
    return options


def get_engine(settings: Settings) -> AsyncEngine:
    """Create or return the cached async engine."""
    global _engine
    if _engine is None:
        _engine = create_async_engine(settings.database.url, **_engine_options(settings))
        LOGGER.debug("Created async engine for %s", _engine.url.render_as_string())
    return _engine


def create_session_factory(
    engine: AsyncEngine, settings: Settings
) -> async_sessionmaker[AsyncSession]:
    """Build a session factory honoring the configured commit and flush behavior."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=settings.database.expire_on_commit,
        autoflush=settings.database.autoflush,
    )


def get_session_factory(settings: Settings) -> async_sessionmaker[AsyncSession]:
    """Create or return the cached session factory."""
    global _session_factory
    if _session_factory is None:
        _session_factory = create_session_factory(get_engine(settings), settings)
    return _session_factory


async def dispose_engine() -> None:
    """Close pooled connections and forget the cached engine and factory."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
        LOGGER.debug("Disposed async engine")
    _engine = None
    _session_factory = None


__all__ = [
    "create_session_factory",
    "dispose_engine",
    "get_engine",
    "get_session_factory",
]
