"""
Database toolkit exposing the generic repository, key predicates and session helpers.
"""

from .predicates import build_key_predicate, resolve_property
from .repositories import BaseRepository, CommonAPI, CommonAPIProtocol
from .session import dispose_engine, get_engine, get_session_factory

__all__ = [
    "BaseRepository",
    "CommonAPI",
    "CommonAPIProtocol",
    "build_key_predicate",
    "dispose_engine",
    "get_engine",
    "get_session_factory",
    "resolve_property",
]
