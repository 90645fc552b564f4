"""
Exception hierarchy for the repository layer.

Errors raised by SQLAlchemy itself are never wrapped; these types only cover
argument problems detected before a statement reaches the database.
"""

from __future__ import annotations

from typing import Any


class CommonAPIError(Exception):
    """Base exception for repository and registration errors."""

    def __init__(self, message: str, *, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.context = context or {}


class UnknownPropertyError(CommonAPIError, ValueError):
    """Raised when a key does not name a mapped column of the entity."""

    def __init__(self, key: str, entity_type: type) -> None:
        super().__init__(
            f"Key '{key}' not found in entity '{entity_type.__name__}'",
            context={"key": key, "entity": entity_type.__name__},
        )
        self.key = key
        self.entity_type = entity_type


class RepositoryNotRegisteredError(CommonAPIError, LookupError):
    """Raised when a repository is requested for a type nobody registered."""

    def __init__(self, entity_type: Any) -> None:
        name = getattr(entity_type, "__name__", repr(entity_type))
        super().__init__(
            f"No repository registered for entity '{name}'",
            context={"entity": name},
        )
        self.entity_type = entity_type


__all__ = ["CommonAPIError", "RepositoryNotRegisteredError", "UnknownPropertyError"]
