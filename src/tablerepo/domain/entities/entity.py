from __future__ import annotations

from typing import TYPE_CHECKING, Any, Iterable, Mapping, Optional

from ...errors import RepositoryLogicError

if TYPE_CHECKING:
    from ...repositories.query import Query
    from ...repositories.repository import Repository


class Entity:
    """One table row with change tracking.

    Columns are reachable as attributes and as items. Every assignment after
    load is recorded in :meth:`diff` until the entity is saved; assigning a
    column back to its persisted value drops it from the diff again.

    >>> e = Entity({"id": 1, "name": "a"})
    >>> e._mark_persisted()
    >>> e.name = "b"
    >>> e.diff()
    {'name': 'b'}
    >>> e.name = "a"
    >>> e.diff()
    {}
    """

    def __init__(
        self, row: Optional[Mapping[str, Any]] = None, query: Optional["Query"] = None
    ) -> None:
        data = dict(row or {})
        object.__setattr__(self, "_data", data)
        object.__setattr__(self, "_original", {})
        object.__setattr__(self, "_modified", dict(data))
        object.__setattr__(self, "_query", query)
        object.__setattr__(self, "_persisted", False)

    # ------------------------------------------------------------------
    # Column access
    # ------------------------------------------------------------------
    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self._data[name]
        except KeyError:
            raise AttributeError(f"{type(self).__name__} has no column {name!r}") from None

    def __setattr__(self, name: str, value: Any) -> None:
        if name.startswith("_"):
            object.__setattr__(self, name, value)
            return
        self[name] = value

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self._data[key] = value
        if self._persisted and key in self._original and self._original[key] == value:
            self._modified.pop(key, None)
        else:
            self._modified[key] = value

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def keys(self) -> Iterable[str]:
        return self._data.keys()

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def to_dict(self) -> dict[str, Any]:
        return dict(self._data)

    def diff(self) -> dict[str, Any]:
        """Changed column -> new value since load or last save."""
        return dict(self._modified)

    @property
    def is_persisted(self) -> bool:
        return self._persisted

    # ------------------------------------------------------------------
    # Repository link
    # ------------------------------------------------------------------
    @property
    def query(self) -> Optional["Query"]:
        return self._query

    @property
    def repository(self) -> "Repository":
        if self._query is None:
            raise RepositoryLogicError(f"{type(self).__name__} is not bound to a repository")
        return self._query.repository

    def primary(self) -> Any:
        """Primary key value: a scalar, or a tuple for composite keys.

        For a persisted entity this is the key of the stored row, even when
        a key column was assigned a new value that is not saved yet.
        """
        columns = self.repository.primary_key()
        key = self._stored_key(columns)
        if len(columns) == 1:
            return key[columns[0]]
        return tuple(key[c] for c in columns)

    def _stored_key(self, columns: Iterable[str]) -> dict[str, Any]:
        """Key columns identifying the row this entity was loaded from or saved to."""
        source = self._original if self._persisted else self._data
        return {c: source.get(c) for c in columns}

    def save(self) -> "Entity":
        """Insert a new entity or write the pending diff of a loaded one."""
        repository = self.repository
        if not self._persisted:
            repository.insert(self)
        elif self._modified:
            repository.update_entities(self)
        return self

    def update(self, values: Mapping[str, Any]) -> "Entity":
        for key, value in values.items():
            self[key] = value
        return self.save()

    def delete(self) -> int:
        return self.repository.delete(self)

    # ------------------------------------------------------------------
    # Internal state transitions used by Query and behaviors
    # ------------------------------------------------------------------
    def _hydrate(self, key: str, value: Any) -> None:
        """Set a column as persisted state, without recording a change."""
        self._data[key] = value
        if self._persisted:
            self._original[key] = value
            self._modified.pop(key, None)
        elif key in self._modified:
            self._modified[key] = value

    def _mark_persisted(self) -> None:
        object.__setattr__(self, "_persisted", True)
        object.__setattr__(self, "_original", dict(self._data))
        self._modified.clear()

    def _bind(self, query: "Query") -> None:
        object.__setattr__(self, "_query", query)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._data!r})"
