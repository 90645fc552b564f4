"""
Per-entity repository registrations and their FastAPI dependencies.

The registry maps each entity class to a ``Registration``: the repository
contract bound to the class, the implementation bound to the class and a
factory that builds the implementation around a session. Repositories are
scoped: FastAPI builds at most one per request (dependency caching), and
``RepositoryScope`` does the same for code running outside a request.

Usage:
    registry = RepositoryRegistry()
    registry.discover("app.dto")

    ProductRepo = registry.annotated(Product)

    @router.get("/products/{product_id}")
    async def read_product(product_id: int, repo: ProductRepo) -> dict:
        ...
"""

from __future__ import annotations

import logging
import typing
from collections.abc import AsyncIterator, Callable, Iterable, Iterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Annotated, Any

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..db.predicates import entity_mapper
from ..db.repositories import CommonAPI, CommonAPIProtocol
from ..discovery import find_entity_types, scan_packages
from ..exceptions import RepositoryNotRegisteredError
from .dependencies import DbSessionDep

LOGGER = logging.getLogger(__name__)

RepositoryFactory = Callable[[AsyncSession], CommonAPI[Any]]


@dataclass(frozen=True)
class Registration:
    """One registered repository: contract, implementation and factory for an entity."""

    entity_type: type
    contract: Any
    implementation: Any
    factory: RepositoryFactory

    def build(self, session: AsyncSession) -> CommonAPI[Any]:
        """Construct the implementation around ``session``."""
        return self.factory(session)


class RepositoryScope:
    """
    Repositories sharing one session, built on first use.

    Asking twice for the same entity returns the same repository.
    """

    def __init__(self, registry: RepositoryRegistry, session: AsyncSession) -> None:
        self._registry = registry
        self._session = session
        self._instances: dict[type, CommonAPI[Any]] = {}

    @property
    def session(self) -> AsyncSession:
        return self._session

    def get(self, key: Any) -> CommonAPI[Any]:
        """Return the repository for an entity class or a bound contract."""
        registration = self._registry.get(key)
        repository = self._instances.get(registration.entity_type)
        if repository is None:
            repository = registration.build(self._session)
            self._instances[registration.entity_type] = repository
        return repository


def _entity_of(key: Any) -> type:
    """Unwrap ``CommonAPIProtocol[T]`` / ``CommonAPI[T]`` to ``T``; classes pass through."""
    origin = typing.get_origin(key)
    if origin is CommonAPIProtocol or (isinstance(origin, type) and issubclass(origin, CommonAPI)):
        (entity_type,) = typing.get_args(key)
        return entity_type
    return key


def _bind(implementation: type[CommonAPI[Any]], entity_type: type) -> Any:
    """Subscript generic implementations with the entity; concrete subclasses stay as they are."""
    if getattr(implementation, "__parameters__", ()):
        return implementation[entity_type]  # type: ignore[index]
    return implementation


def _provider_for(registration: Registration) -> Callable[..., Any]:
    async def provide_repository(session: DbSessionDep) -> CommonAPI[Any]:
        return registration.build(session)

    provide_repository.__name__ = f"get_{registration.entity_type.__name__.lower()}_repository"
    return provide_repository


class RepositoryRegistry:
    """Registrations keyed by entity class; re-registering a class replaces the earlier entry."""

    def __init__(self) -> None:
        self._registrations: dict[type, Registration] = {}
        self._dependencies: dict[type, Callable[..., Any]] = {}

    def __contains__(self, key: object) -> bool:
        return _entity_of(key) in self._registrations

    def __iter__(self) -> Iterator[Registration]:
        return iter(list(self._registrations.values()))

    def __len__(self) -> int:
        return len(self._registrations)

    @property
    def entity_types(self) -> list[type]:
        return list(self._registrations)

    def register(
        self,
        entity_type: type,
        *,
        implementation: type[CommonAPI[Any]] = CommonAPI,
    ) -> Registration:
        """
        Register a repository for ``entity_type``.

        ``implementation`` may be any ``CommonAPI`` subclass taking
        ``(session, entity_type)``.

        Raises:
            TypeError: ``entity_type`` is not a mapped class.
        """
        entity_mapper(entity_type)

        def factory(session: AsyncSession) -> CommonAPI[Any]:
            return implementation(session, entity_type)

        registration = Registration(
            entity_type=entity_type,
            contract=CommonAPIProtocol[entity_type],  # type: ignore[valid-type]
            implementation=_bind(implementation, entity_type),
            factory=factory,
        )
        if entity_type in self._registrations:
            LOGGER.debug("Replacing repository registration for %s", entity_type.__name__)
        self._registrations[entity_type] = registration
        self._dependencies.pop(entity_type, None)

        LOGGER.info(
            "Registered %s for %s.%s",
            implementation.__name__,
            entity_type.__module__,
            entity_type.__name__,
        )
        return registration

    def discover(self, namespace: str, *, packages: Iterable[str] = ()) -> list[Registration]:
        """
        Register every entity class defined in the module named ``namespace``.

        ``packages`` are imported first (see ``scan_package``), so their
        modules take part in the match. The namespace is compared without
        regard to case.

        Raises:
            ValueError: ``namespace`` is empty or blank.
        """
        if not namespace or not namespace.strip():
            raise ValueError("namespace must be provided")

        scan_packages(packages)
        entity_types = find_entity_types(namespace)
        if not entity_types:
            LOGGER.warning("No entity types found in namespace %r", namespace)
        return [self.register(entity_type) for entity_type in entity_types]

    def get(self, key: Any) -> Registration:
        """
        Look up a registration by entity class or bound contract.

        Raises:
            RepositoryNotRegisteredError: nothing is registered for the entity.
        """
        entity_type = _entity_of(key)
        try:
            return self._registrations[entity_type]
        except KeyError:
            raise RepositoryNotRegisteredError(entity_type) from None

    def resolve(self, key: Any, session: AsyncSession) -> CommonAPI[Any]:
        """Build a new repository for ``key`` around ``session``."""
        return self.get(key).build(session)

    def dependency(self, key: Any) -> Callable[..., Any]:
        """
        Return the FastAPI dependency providing the repository for ``key``.

        The same callable is returned on every call, so FastAPI reuses one
        repository per request however many times it is injected.
        """
        registration = self.get(key)
        provider = self._dependencies.get(registration.entity_type)
        if provider is None:
            provider = _provider_for(registration)
            self._dependencies[registration.entity_type] = provider
        return provider

    def annotated(self, key: Any) -> Any:
        """``Annotated`` alias injecting the repository for ``key`` into a route."""
        registration = self.get(key)
        return Annotated[registration.implementation, Depends(self.dependency(key))]

    @asynccontextmanager
    async def scope(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> AsyncIterator[RepositoryScope]:
        """
        Open a session and yield a ``RepositoryScope`` over it.

        Nothing is committed on exit; call ``save_changes`` on a repository.
        """
        async with session_factory() as session:
            yield RepositoryScope(self, session)


def add_common_api_services(
    namespace: str,
    *,
    packages: Iterable[str] = (),
    registry: RepositoryRegistry | None = None,
) -> RepositoryRegistry:
    """Discover entity classes in ``namespace`` and register a repository for each."""
    target = registry if registry is not None else RepositoryRegistry()
    target.discover(namespace, packages=packages)
    return target


def get_registry(request: Request) -> RepositoryRegistry:
    """Return the registry the application was created with."""
    return request.app.state.registry


__all__ = [
    "Registration",
    "RepositoryRegistry",
    "RepositoryScope",
    "add_common_api_services",
    "get_registry",
]
