"""
Base repository class with shared session handling.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession


class BaseRepository:
    """
    Base class for all repositories.

    Holds the shared ``AsyncSession``; the session owns every transaction,
    the repository owns none.
    """

    def __init__(self, session: AsyncSession) -> None:
        if session is None:
            raise ValueError("session must be provided")
        self._session = session

    @property
    def session(self) -> AsyncSession:
        """Expose the underlying session for transaction management."""
        return self._session


__all__ = ["BaseRepository"]
