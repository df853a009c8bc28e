"""Row selectors accepted by ``Repository.update``.

A caller-supplied value is resolved once, at the call boundary, into one
of four variants. Everything downstream works on the variant only.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Union

from ...errors import InvalidArgumentError

if TYPE_CHECKING:
    from ..entities.entity import Entity

_SCALARS = (int, str, bytes, float)


@dataclass(frozen=True)
class ById:
    """Primary key value (scalar, or tuple for composite keys)."""

    value: Any


@dataclass(frozen=True)
class ByReference:
    entity: "Entity"


@dataclass(frozen=True)
class ByReferenceList:
    entities: tuple["Entity", ...]


@dataclass(frozen=True)
class ByConditions:
    conditions: Mapping[str, Any]


RowSelector = Union[ById, ByReference, ByReferenceList, ByConditions]


def resolve_selector(row: Any) -> RowSelector:
    """Turn a polymorphic ``row`` argument into a :data:`RowSelector`.

    Raises :class:`InvalidArgumentError` for empty, mixed or unsupported
    inputs before any statement is built.
    """
    from ..entities.entity import Entity

    if isinstance(row, (ById, ByReference, ByReferenceList, ByConditions)):
        return row
    if isinstance(row, bool):
        raise InvalidArgumentError("A boolean is not a valid row selector")
    if isinstance(row, _SCALARS) or isinstance(row, tuple):
        if isinstance(row, tuple) and not row:
            raise InvalidArgumentError("Empty primary key tuple")
        return ById(row)
    if isinstance(row, Entity):
        return ByReference(row)
    if isinstance(row, Mapping):
        if not row:
            raise InvalidArgumentError("Empty condition mapping would match every row")
        return ByConditions(dict(row))
    if isinstance(row, list):
        if not row:
            raise InvalidArgumentError("Empty entity list")
        if not all(isinstance(item, Entity) for item in row):
            raise InvalidArgumentError("Row list must contain only entities")
        return ByReferenceList(tuple(row))
    raise InvalidArgumentError(f"Invalid row to update: {type(row).__name__}")
