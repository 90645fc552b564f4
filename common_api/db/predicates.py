"""
Build SQLAlchemy filter clauses from key maps.

A key map pairs a column of the entity (by attribute name or as the typed
attribute itself) with the value that column must hold. The clauses built
here are rendered into the ``WHERE`` of the query; no rows are loaded.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Union

from sqlalchemy import ColumnElement, and_, inspect, true
from sqlalchemy.orm import Mapper, QueryableAttribute

from ..exceptions import UnknownPropertyError

KeyMap = Mapping[Union[str, QueryableAttribute[Any]], Any]


def entity_mapper(entity_type: type) -> Mapper[Any]:
    """Return the mapper of ``entity_type`` or raise ``TypeError`` for unmapped classes."""
    mapper = inspect(entity_type, raiseerr=False)
    if not isinstance(mapper, Mapper):
        raise TypeError(f"'{getattr(entity_type, '__name__', entity_type)}' is not a mapped class")
    return mapper


def resolve_property(
    entity_type: type, key: str | QueryableAttribute[Any]
) -> QueryableAttribute[Any]:
    """
    Return the column attribute of ``entity_type`` named by ``key``.

    Raises:
        UnknownPropertyError: the key names no mapped column of the entity, or
            is a typed attribute of an unrelated class.
    """
    mapper = entity_mapper(entity_type)

    if isinstance(key, QueryableAttribute):
        name = key.key
        if not issubclass(entity_type, key.class_):
            raise UnknownPropertyError(name, entity_type)
    else:
        name = key

    if name not in mapper.column_attrs:
        raise UnknownPropertyError(name, entity_type)
    return getattr(entity_type, name)


def equals(column: QueryableAttribute[Any], value: Any) -> ColumnElement[bool]:
    """Equality test that compares ``None`` with ``IS NULL``."""
    if value is None:
        return column.is_(None)
    return column == value


def build_key_predicate(entity_type: type, keys: KeyMap | None) -> ColumnElement[bool]:
    """
    AND together one equality test per key map entry, in map order.

    An empty or missing map yields ``true()``, so the filter keeps every row.
    """
    clauses = [
        equals(resolve_property(entity_type, key), value) for key, value in (keys or {}).items()
    ]
    return and_(true(), *clauses)


__all__ = ["KeyMap", "build_key_predicate", "entity_mapper", "equals", "resolve_property"]
