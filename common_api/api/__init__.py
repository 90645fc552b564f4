"""
FastAPI integration: request-scoped sessions, repository registry and app factory.
"""

from .dependencies import DbSessionDep, SettingsDep, get_db
from .registry import (
    Registration,
    RepositoryRegistry,
    RepositoryScope,
    add_common_api_services,
    get_registry,
)
from .main import create_app

__all__ = [
    "DbSessionDep",
    "Registration",
    "RepositoryRegistry",
    "RepositoryScope",
    "SettingsDep",
    "add_common_api_services",
    "create_app",
    "get_db",
    "get_registry",
]
