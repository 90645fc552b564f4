"""
Generic async repository over SQLAlchemy with namespace-based registration.
"""

from .api import RepositoryRegistry, RepositoryScope, add_common_api_services
from .db import CommonAPI, CommonAPIProtocol, build_key_predicate
from .exceptions import CommonAPIError, RepositoryNotRegisteredError, UnknownPropertyError

__version__ = "0.1.0"

__all__ = [
    "CommonAPI",
    "CommonAPIError",
    "CommonAPIProtocol",
    "RepositoryNotRegisteredError",
    "RepositoryRegistry",
    "RepositoryScope",
    "UnknownPropertyError",
    "add_common_api_services",
    "build_key_predicate",
]
