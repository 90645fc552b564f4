"""
FastAPI dependency injection providers.
"""

from __future__ import annotations

import logging
import time
from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import Settings, get_settings
from ..db.session import get_session_factory

LOGGER = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# Type Aliases for Dependency Injection
# -----------------------------------------------------------------------------

SettingsDep = Annotated[Settings, Depends(get_settings)]


# -----------------------------------------------------------------------------
# Database Session Management
# -----------------------------------------------------------------------------


async def get_db(
    settings: SettingsDep,
) -> AsyncGenerator[AsyncSession, None]:
    """
    Provide one database session per request.

    Nothing is committed here: repositories write only when ``save_changes``
    is called. Staged work left at the end of the request is discarded, and
    the session is rolled back when the request fails.
    """
    factory = get_session_factory(settings)
    async with factory() as session:
        try:
            yield session
        except Exception:
            LOGGER.debug("Rolling back session after request failure")
            await session.rollback()
            raise


DbSessionDep = Annotated[AsyncSession, Depends(get_db)]


# -----------------------------------------------------------------------------
# Health Checks
# -----------------------------------------------------------------------------


async def check_database_health(settings: Settings) -> tuple[bool, float]:
    """Check database connectivity and return (healthy, latency_ms)."""
    factory = get_session_factory(settings)
    start = time.perf_counter()
    try:
        async with factory() as session:
            await session.execute(text("SELECT 1"))
        latency = (time.perf_counter() - start) * 1000
        return True, latency
    except Exception as exc:
        LOGGER.error("Database health check failed: %s", exc)
        latency = (time.perf_counter() - start) * 1000
        return False, latency
