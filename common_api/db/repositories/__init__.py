"""
Repository classes for database access.

- BaseRepository: shared session handling
- CommonAPI: generic CRUD and query repository bound to one mapped class
"""

from .base import BaseRepository
from .common import CommonAPI, CommonAPIProtocol

__all__ = ["BaseRepository", "CommonAPI", "CommonAPIProtocol"]
