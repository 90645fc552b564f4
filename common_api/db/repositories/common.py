"""
Generic repository forwarding CRUD and query operations to an ``AsyncSession``.

``CommonAPI`` is bound to one mapped entity type. Every call is a single
delegation to the session: nothing is cached, retried or wrapped, and writes
stay staged in the session until ``save_changes`` commits them.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, Generic, Protocol, TypeVar

from sqlalchemy import ColumnElement, Integer, event, func, inspect, select, true
from sqlalchemy.exc import NoResultFound
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session, SessionTransaction, UOWTransaction

from ..predicates import KeyMap, build_key_predicate, entity_mapper, resolve_property
from .base import BaseRepository

EntityT = TypeVar("EntityT")
ResultT = TypeVar("ResultT")

Predicate = ColumnElement[bool]


class CommonAPIProtocol(Protocol[EntityT]):
    """Contract of the generic repository, one instance per entity type."""

    async def get_by_id(self, entity_id: Any) -> EntityT | None: ...

    async def get_by_keys(self, keys: KeyMap) -> EntityT | None: ...

    async def get_all(self, keys: KeyMap | None = None) -> list[EntityT]: ...

    async def find(self, predicate: Predicate) -> list[EntityT]: ...

    async def any(self, predicate: Predicate) -> bool: ...

    async def count(self, predicate: Predicate) -> int: ...

    async def single_or_default(self, predicate: Predicate) -> EntityT | None: ...

    async def first_or_default(self, predicate: Predicate) -> EntityT | None: ...

    async def add(self, entity: EntityT) -> None: ...

    async def add_range(self, entities: Iterable[EntityT]) -> None: ...

    async def insert(self, entity: EntityT) -> None: ...

    async def insert_range(self, entities: Iterable[EntityT]) -> None: ...

    async def update(self, entity: EntityT) -> EntityT: ...

    async def update_range(self, entities: Iterable[EntityT]) -> list[EntityT]: ...

    async def remove(self, entity: EntityT) -> None: ...

    async def remove_range(self, entities: Iterable[EntityT]) -> None: ...

    async def save_changes(self) -> int: ...

    async def save(self) -> int: ...

    async def set_new_values_from_entity(self, entity: EntityT, new_values: Any) -> EntityT: ...

    async def max(self, predicate: Predicate, selector: ColumnElement[ResultT]) -> ResultT: ...

    async def get_max_id(self, id_property_name: str) -> int: ...


def _read_value(source: Any, name: str) -> Any:
    """Read ``name`` from a mapping key or an object attribute, ``None`` when absent."""
    if isinstance(source, Mapping):
        return source.get(name)
    return getattr(source, name, None)


_STAGED_WRITES = "common_api.staged_writes"


def _count_flushed(session: Session, flush_context: UOWTransaction, instances: Any) -> None:
    modified = sum(1 for instance in session.dirty if session.is_modified(instance))
    staged = len(session.new) + modified + len(session.deleted)
    session.info[_STAGED_WRITES] = session.info.get(_STAGED_WRITES, 0) + staged


def _reset_count(session: Session, transaction: SessionTransaction) -> None:
    if transaction.parent is None:
        session.info.pop(_STAGED_WRITES, None)


def track_staged_writes(session: AsyncSession) -> None:
    """
    Count the entries each flush of ``session`` writes.

    The total lives in ``session.info`` and is cleared when the outermost
    transaction ends, by commit, rollback or close. Repositories sharing a
    session install the listeners once.
    """
    sync_session = session.sync_session
    if not event.contains(sync_session, "before_flush", _count_flushed):
        event.listen(sync_session, "before_flush", _count_flushed)
        event.listen(sync_session, "after_transaction_end", _reset_count)


def staged_write_count(session: AsyncSession) -> int:
    """Entries flushed since the current transaction began."""
    return session.info.get(_STAGED_WRITES, 0)


class CommonAPI(BaseRepository, Generic[EntityT]):
    """
    Data access helpers for any mapped entity type.

    Usage:
        repo = CommonAPI(session, Product)
        await repo.add(Product(name="bolt"))
        await repo.save_changes()
        bolts = await repo.get_all({"name": "bolt"})
    """

    def __init__(self, session: AsyncSession, entity_type: type[EntityT]) -> None:
        super().__init__(session)
        if entity_type is None:
            raise ValueError("entity_type must be provided")
        entity_mapper(entity_type)
        self._entity_type = entity_type
        track_staged_writes(session)

    @property
    def entity_type(self) -> type[EntityT]:
        """The mapped class this repository is bound to."""
        return self._entity_type

    def __repr__(self) -> str:
        return f"{type(self).__name__}[{self._entity_type.__name__}]"

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_by_id(self, entity_id: Any) -> EntityT | None:
        """Primary-key lookup; returns ``None`` when no row has that key."""
        return await self._session.get(self._entity_type, entity_id)

    async def get_by_keys(self, keys: KeyMap) -> EntityT | None:
        """Return the first entity whose columns equal every value in ``keys``."""
        stmt = select(self._entity_type).where(build_key_predicate(self._entity_type, keys))
        return await self._session.scalar(stmt.limit(1))

    async def get_all(self, keys: KeyMap | None = None) -> list[EntityT]:
        """
        Return every entity, or those whose columns equal every value in ``keys``.

        ``None`` values in ``keys`` match NULL columns.
        """
        stmt = select(self._entity_type)
        if keys is not None:
            stmt = stmt.where(build_key_predicate(self._entity_type, keys))
        result = await self._session.scalars(stmt)
        return list(result)

    async def find(self, predicate: Predicate) -> list[EntityT]:
        result = await self._session.scalars(select(self._entity_type).where(predicate))
        return list(result)

    async def any(self, predicate: Predicate) -> bool:
        stmt = select(select(self._entity_type).where(predicate).exists())
        return bool(await self._session.scalar(stmt))

    async def count(self, predicate: Predicate) -> int:
        stmt = select(func.count()).select_from(self._entity_type).where(predicate)
        return (await self._session.execute(stmt)).scalar_one()

    async def single_or_default(self, predicate: Predicate) -> EntityT | None:
        """
        Return the only match or ``None``.

        Raises:
            MultipleResultsFound: more than one row matches.
        """
        result = await self._session.scalars(select(self._entity_type).where(predicate))
        return result.one_or_none()

    async def first_or_default(self, predicate: Predicate) -> EntityT | None:
        stmt = select(self._entity_type).where(predicate).limit(1)
        return await self._session.scalar(stmt)

    async def max(self, predicate: Predicate, selector: ColumnElement[ResultT]) -> ResultT:
        """
        Return the largest ``selector`` value among rows matching ``predicate``.

        Raises:
            NoResultFound: no row matches.
        """
        stmt = (
            select(func.max(selector), func.count())
            .select_from(self._entity_type)
            .where(predicate)
        )
        maximum, matched = (await self._session.execute(stmt)).one()
        if not matched:
            raise NoResultFound(
                f"No '{self._entity_type.__name__}' rows match the predicate; max is undefined"
            )
        return maximum

    async def get_max_id(self, id_property_name: str) -> int:
        """
        Return the largest value of the named integer column across all rows.

        Raises:
            ValueError: the name is blank or names a non-integer column.
            UnknownPropertyError: the name is not a column of the entity.
            NoResultFound: the table is empty.
        """
        if not id_property_name or not id_property_name.strip():
            raise ValueError("ID property name must be provided.")
        column = resolve_property(self._entity_type, id_property_name)
        if not isinstance(column.type, Integer):
            raise ValueError(
                f"ID property '{id_property_name}' of '{self._entity_type.__name__}' "
                "is not an integer column."
            )
        return await self.max(true(), column)

    # ------------------------------------------------------------------
    # Staged writes
    # ------------------------------------------------------------------

    async def add(self, entity: EntityT) -> None:
        self._session.add(entity)

    async def add_range(self, entities: Iterable[EntityT]) -> None:
        self._session.add_all(list(entities))

    async def insert(self, entity: EntityT) -> None:
        """Alias of ``add``."""
        await self.add(entity)

    async def insert_range(self, entities: Iterable[EntityT]) -> None:
        """Alias of ``add_range``."""
        await self.add_range(entities)

    async def update(self, entity: EntityT) -> EntityT:
        """
        Mark ``entity`` for update on the next save.

        Instances already tracked by the session are returned unchanged; a
        detached instance is merged and the tracked copy is returned.
        """
        if entity in self._session:
            return entity
        return await self._session.merge(entity)

    async def update_range(self, entities: Iterable[EntityT]) -> list[EntityT]:
        return [await self.update(entity) for entity in entities]

    async def remove(self, entity: EntityT) -> None:
        await self._session.delete(entity)

    async def remove_range(self, entities: Iterable[EntityT]) -> None:
        for entity in list(entities):
            await self._session.delete(entity)

    async def save_changes(self) -> int:
        """
        Commit the session and return how many staged entries were written.

        The count covers every pending insert, modification and deletion in
        the session since the last commit or rollback, not just those of this
        repository's entity type, including entries an earlier flush already
        sent to the database. Database errors propagate unchanged.
        """
        await self._session.flush()
        written = staged_write_count(self._session)
        await self._session.commit()
        return written

    async def save(self) -> int:
        """Alias of ``save_changes``."""
        return await self.save_changes()

    async def set_new_values_from_entity(self, entity: EntityT, new_values: Any) -> EntityT:
        """
        Copy every non-``None`` column value of ``new_values`` onto ``entity`` and commit.

        ``new_values`` may be any object with same-named attributes or a
        mapping. A ``None`` source value keeps the current value, so a field
        can never be reset to NULL through this call.
        """
        if entity is None:
            raise ValueError("entity must be provided")
        if new_values is None:
            raise ValueError("new_values must be provided")

        if entity not in self._session:
            entity = await self._session.merge(entity)

        for attribute in inspect(entity).mapper.column_attrs:
            value = _read_value(new_values, attribute.key)
            if value is not None:
                setattr(entity, attribute.key, value)

        await self._session.commit()
        return entity


__all__ = [
    "CommonAPI",
    "CommonAPIProtocol",
    "EntityT",
    "Predicate",
    "staged_write_count",
    "track_staged_writes",
]
