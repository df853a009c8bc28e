"""Chainable query builder bound to one repository.

The builder compiles parameterised SQL for :class:`tablerepo.db.Database`.
Executing it never touches the caller's builder: every execution works on a
private clone, fires the matching event on that clone and lets subscribers
narrow it before the statement is compiled.
"""

from __future__ import annotations

import copy
import re
from typing import TYPE_CHECKING, Any, Callable, Iterable, Iterator, Mapping, Optional, Union

from ..config.settings import settings
from ..domain.entities.entity import Entity
from ..domain.value_objects.scope import FullScope, RawScope, Scope
from ..errors import InvalidArgumentError, RepositoryLogicError
from ..events.event import DeleteQueryEvent, InsertQueryEvent, SelectQueryEvent, UpdateQueryEvent

if TYPE_CHECKING:
    from ..db.connection import Database
    from .behaviors import RepositoryBehaviors
    from .repository import Repository

Fragment = tuple[str, list[Any]]

_IDENT = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_CONDITION_KEY = re.compile(
    r"^\s*(?P<column>[A-Za-z_][\w.]*)\s*"
    r"(?P<op>=|!=|<>|<=|>=|<|>|NOT\s+LIKE|LIKE|NOT\s+IN|IN)?\s*$",
    re.IGNORECASE,
)


def quote(name: str) -> str:
    """Quote a plain identifier; anything else (expressions, ``t.col``) is kept as is."""
    if _IDENT.match(name):
        return f'"{name}"'
    return name


def compile_condition(key: str, value: Any) -> Fragment:
    """Compile one ``{key: value}`` item of a where mapping.

    >>> compile_condition("age >=", 18)
    ('"age" >= ?', [18])
    >>> compile_condition("deleted_at", None)
    ('"deleted_at" IS NULL', [])
    >>> compile_condition("id", [1, 2])
    ('"id" IN (?, ?)', [1, 2])
    """
    match = _CONDITION_KEY.match(key)
    if match is None:
        raise InvalidArgumentError(f"Invalid condition key: {key!r}")
    column = quote(match.group("column"))
    op = re.sub(r"\s+", " ", (match.group("op") or "=").upper())
    negate = op in {"!=", "<>", "NOT IN"}

    if isinstance(value, (list, tuple, set, frozenset)):
        values = list(value)
        if op not in {"=", "!=", "<>", "IN", "NOT IN"}:
            raise InvalidArgumentError(f"Operator {op} does not accept a list")
        if not values:
            return ("1 = 1", []) if negate else ("0 = 1", [])
        marks = ", ".join("?" for _ in values)
        return f"{column} {'NOT IN' if negate else 'IN'} ({marks})", values
    if value is None:
        if op not in {"=", "!=", "<>"}:
            raise InvalidArgumentError(f"Operator {op} cannot compare with NULL")
        return f"{column} IS {'NOT NULL' if negate else 'NULL'}", []
    if op in {"IN", "NOT IN"}:
        return f"{column} {op} (?)", [value]
    return f"{column} {op} ?", [value]


class Query:
    """Mutable builder for one statement against the repository's table."""

    def __init__(
        self, repository: "Repository", behaviors: Optional["RepositoryBehaviors"] = None
    ) -> None:
        self._repository = repository
        self._behaviors = behaviors if behaviors is not None else repository.behaviors()
        self._wheres: list[Fragment] = []
        self._columns: list[str] = []
        self._orders: list[str] = []
        self._limit: Optional[int] = None
        self._offset = 0

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------
    @property
    def repository(self) -> "Repository":
        return self._repository

    @property
    def behaviors(self) -> "RepositoryBehaviors":
        return self._behaviors

    @property
    def scope(self) -> Scope:
        return self._behaviors.scope

    @property
    def table(self) -> str:
        return self._repository.table_name

    @property
    def database(self) -> "Database":
        return self._repository.database

    @property
    def has_where(self) -> bool:
        return bool(self._wheres)

    @property
    def has_order(self) -> bool:
        return bool(self._orders)

    # ------------------------------------------------------------------
    # Scope
    # ------------------------------------------------------------------
    def set_scope(self, scope: Scope) -> "Query":
        """Change the scope of this query only."""
        self._behaviors = self._behaviors.clone()
        self._behaviors.set_scope(scope)
        return self

    def scope_raw(self) -> "Query":
        return self.set_scope(RawScope())

    def scope_full(self) -> "Query":
        return self.set_scope(FullScope())

    # ------------------------------------------------------------------
    # Composition
    # ------------------------------------------------------------------
    def where(self, condition: Union[Mapping[str, Any], str], *params: Any) -> "Query":
        if isinstance(condition, Mapping):
            for key, value in condition.items():
                self._wheres.append(compile_condition(key, value))
        elif isinstance(condition, str):
            self._wheres.append((condition, list(params)))
        else:
            raise InvalidArgumentError(f"Invalid where condition: {type(condition).__name__}")
        return self

    def where_or(self, *conditions: Mapping[str, Any]) -> "Query":
        """OR together several condition mappings, each AND-ed internally."""
        groups: list[Fragment] = []
        for mapping in conditions:
            parts = [compile_condition(k, v) for k, v in mapping.items()]
            if not parts:
                continue
            groups.append(
                (" AND ".join(p[0] for p in parts), [v for p in parts for v in p[1]])
            )
        if not groups:
            raise InvalidArgumentError("where_or needs at least one non-empty mapping")
        sql = " OR ".join(f"({g[0]})" for g in groups)
        self._wheres.append((sql, [v for g in groups for v in g[1]]))
        return self

    def where_primary(self, key: Any) -> "Query":
        return self.where(self._primary_conditions(key))

    def where_rows(self, *rows: Any) -> "Query":
        """Narrow to the given rows: entities, key values or key mappings."""
        if not rows:
            raise InvalidArgumentError("where_rows needs at least one row")
        columns = self._repository.primary_key()
        if len(columns) == 1:
            values = [self._primary_conditions(row)[columns[0]] for row in rows]
            return self.where({columns[0]: values})
        return self.where_or(*(self._primary_conditions(row) for row in rows))

    def search(self, columns: Iterable[str], term: str) -> "Query":
        cols = list(columns)
        if not cols:
            raise InvalidArgumentError("search needs at least one column")
        sql = " OR ".join(f"{quote(c)} LIKE ?" for c in cols)
        self._wheres.append((sql, [f"%{term}%"] * len(cols)))
        return self

    def select(self, *columns: str) -> "Query":
        self._columns.extend(columns)
        return self

    def order(self, *columns: str) -> "Query":
        self._orders.extend(columns)
        return self

    def limit(self, limit: Optional[int], offset: int = 0) -> "Query":
        if limit is not None and limit < 0:
            raise InvalidArgumentError("limit must not be negative")
        if offset < 0:
            raise InvalidArgumentError("offset must not be negative")
        self._limit = limit
        self._offset = offset
        return self

    def _primary_conditions(self, key: Any) -> dict[str, Any]:
        columns = self._repository.primary_key()
        if isinstance(key, Entity):
            key = key._stored_key(columns)
        if isinstance(key, Mapping):
            missing = [c for c in columns if c not in key]
            if missing:
                raise InvalidArgumentError(f"Primary key columns missing: {missing}")
            return {c: key[c] for c in columns}
        if isinstance(key, tuple):
            if len(key) != len(columns):
                raise InvalidArgumentError(
                    f"Expected {len(columns)} primary key values, got {len(key)}"
                )
            return dict(zip(columns, key))
        if len(columns) != 1:
            raise InvalidArgumentError(
                f"Table {self.table!r} has a composite primary key; pass a tuple or mapping"
            )
        return {columns[0]: key}

    # ------------------------------------------------------------------
    # Compilation
    # ------------------------------------------------------------------
    def _where_sql(self) -> Fragment:
        if not self._wheres:
            return "", []
        sql = " WHERE " + " AND ".join(f"({fragment})" for fragment, _ in self._wheres)
        return sql, [p for _, params in self._wheres for p in params]

    def _tail_sql(self) -> Fragment:
        sql = ""
        params: list[Any] = []
        if self._orders:
            sql += " ORDER BY " + ", ".join(quote(c) for c in self._orders)
        if self._limit is not None:
            sql += " LIMIT ? OFFSET ?"
            params = [self._limit, self._offset]
        elif self._offset:
            sql += " LIMIT -1 OFFSET ?"
            params = [self._offset]
        return sql, params

    def to_sql(self) -> Fragment:
        """The SELECT this builder compiles to, before any behavior runs."""
        columns = ", ".join(quote(c) for c in self._columns) if self._columns else "*"
        where, where_params = self._where_sql()
        tail, tail_params = self._tail_sql()
        return f"SELECT {columns} FROM {quote(self.table)}{where}{tail}", where_params + tail_params

    def _aggregate_sql(self, function: str, column: str) -> Fragment:
        expression = f"{function}({column if column == '*' else quote(column)})"
        if self._limit is not None or self._offset:
            inner, params = self.to_sql()
            return f"SELECT {expression} FROM ({inner}) AS limited", params
        where, params = self._where_sql()
        return f"SELECT {expression} FROM {quote(self.table)}{where}", params

    def _fork(self) -> "Query":
        twin = copy.copy(self)
        twin._wheres = list(self._wheres)
        twin._columns = list(self._columns)
        twin._orders = list(self._orders)
        return twin

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------
    def _run_select(self, compiler: Callable[["Query"], Fragment]) -> list[dict[str, Any]]:
        event = SelectQueryEvent(self._fork(), _fetch_rows, compiler)
        return self._repository.events.fire(event)

    def fetch_all(self) -> list[Entity]:
        rows = self._run_select(Query.to_sql)
        return [self._repository._load(row, self) for row in rows]

    def first(self) -> Optional[Entity]:
        twin = self._fork()
        twin._limit = 1
        found = twin.fetch_all()
        return found[0] if found else None

    def fetch_pairs(
        self, key: Optional[str] = None, value: Optional[str] = None
    ) -> dict[Any, Any]:
        """Map ``key`` column (primary key by default) to ``value`` column (entity by default)."""
        pairs: dict[Any, Any] = {}
        for entity in self.fetch_all():
            k = entity.primary() if key is None else entity[key]
            pairs[k] = entity if value is None else entity[value]
        return pairs

    def _aggregate(self, function: str, column: str) -> Any:
        rows = self._run_select(lambda q: q._aggregate_sql(function, column))
        if not rows:
            return None
        return next(iter(rows[0].values()))

    def count(self, column: str = "*") -> int:
        return int(self._aggregate("COUNT", column) or 0)

    def sum(self, column: str) -> Any:
        return self._aggregate("SUM", column)

    def min(self, column: str) -> Any:
        return self._aggregate("MIN", column)

    def max(self, column: str) -> Any:
        return self._aggregate("MAX", column)

    def chunks(self, size: Optional[int] = None) -> Iterator[list[Entity]]:
        """Yield lists of at most ``size`` entities.

        Pages are ordered by primary key unless an order was set. A limit set
        on the query caps the total number of rows yielded.
        """
        size = size or settings.chunk_size
        if size <= 0:
            raise InvalidArgumentError("chunk size must be positive")
        base = self._fork()
        if not base._orders:
            base._orders = list(self._repository.primary_key())
        remaining = self._limit
        offset = self._offset
        while remaining is None or remaining > 0:
            page = base._fork()
            page._limit = size if remaining is None else min(size, remaining)
            page._offset = offset
            entities = page.fetch_all()
            if not entities:
                return
            yield entities
            if len(entities) < page._limit:
                return
            offset += len(entities)
            if remaining is not None:
                remaining -= len(entities)

    def __iter__(self) -> Iterator[Entity]:
        return iter(self.fetch_all())

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------
    def insert(
        self, rows: Union[Mapping[str, Any], Entity, Iterable[Union[Mapping[str, Any], Entity]]]
    ) -> Union[Entity, int]:
        """Insert rows.

        A single row returns the persisted entity (the one passed in, or a
        new one built from the mapping); several rows return their count.
        """
        items = [rows] if isinstance(rows, (Mapping, Entity)) else list(rows)
        if not items:
            return 0
        data: list[dict[str, Any]] = []
        entities: list[Optional[Entity]] = []
        for item in items:
            if isinstance(item, Entity):
                data.append(item.to_dict())
                entities.append(item)
            elif isinstance(item, Mapping):
                data.append(dict(item))
                entities.append(None)
            else:
                raise InvalidArgumentError(f"Cannot insert {type(item).__name__}")
        event = InsertQueryEvent(self._fork(), _insert_rows, data, entities)
        return self._repository.events.fire(event)

    def update(self, data: Mapping[str, Any], entities: Iterable[Entity] = ()) -> int:
        """Update every matching row; returns the affected row count.

        ``entities`` are the in-memory rows being written, so behaviors can
        copy values they add to the statement back into them.
        """
        if not self._wheres:
            raise RepositoryLogicError(f"Refusing to UPDATE {self.table!r} without a condition")
        if not data:
            return 0
        event = UpdateQueryEvent(self._fork(), _update_rows, data, tuple(entities))
        return self._repository.events.fire(event)

    def delete(self, entities: Iterable[Entity] = ()) -> int:
        """Delete matching rows, or exactly ``entities`` when given."""
        targets = tuple(entities)
        query = self._fork()
        if targets:
            query.where_rows(*targets)
        if not query._wheres:
            raise RepositoryLogicError(
                f"Refusing to DELETE from {self.table!r} without a condition"
            )
        event = DeleteQueryEvent(query, _delete_rows, targets)
        return self._repository.events.fire(event)

    def __repr__(self) -> str:
        sql, params = self.to_sql()
        return f"Query({sql!r}, {params!r})"


# ----------------------------------------------------------------------
# Terminal steps (run once every subscriber has delegated)
# ----------------------------------------------------------------------
def _fetch_rows(event: SelectQueryEvent) -> list[dict[str, Any]]:
    sql, params = event.statement()
    return event.query.database.fetch_all(sql, params)


def _insert_rows(event: InsertQueryEvent) -> Union[Entity, int]:
    query = event.query
    repository = query.repository
    primary = repository.primary_key()
    single = len(event.rows) == 1
    result: Union[Entity, int] = len(event.rows)
    for row, entity in zip(event.rows, event.entities):
        if row:
            columns = ", ".join(quote(c) for c in row)
            marks = ", ".join("?" for _ in row)
            sql = f"INSERT INTO {quote(query.table)} ({columns}) VALUES ({marks})"
        else:
            sql = f"INSERT INTO {quote(query.table)} DEFAULT VALUES"
        cursor = query.database.execute(sql, list(row.values()))
        if len(primary) == 1 and row.get(primary[0]) is None and cursor.lastrowid is not None:
            row[primary[0]] = cursor.lastrowid
        if entity is None and not single:
            continue
        stored = _stored_row(query, primary, row)
        if entity is None:
            result = repository._load(stored, query)
            continue
        if entity.query is None:
            entity._bind(query)
        entity._mark_persisted()
        for column, value in stored.items():
            if column not in entity or (column in primary and entity[column] is None):
                entity._hydrate(column, value)
        if single:
            result = entity
    return result


def _stored_row(query: Query, primary: list[str], row: dict[str, Any]) -> dict[str, Any]:
    """Re-read an inserted row so database defaults become visible."""
    if any(row.get(c) is None for c in primary):
        return dict(row)
    where = " AND ".join(f"{quote(c)} = ?" for c in primary)
    found = query.database.fetch_all(
        f"SELECT * FROM {quote(query.table)} WHERE {where}", [row[c] for c in primary]
    )
    return {**row, **found[0]} if found else dict(row)


def _update_rows(event: UpdateQueryEvent) -> int:
    query = event.query
    if not event.data:
        return 0
    assignments = ", ".join(f"{quote(c)} = ?" for c in event.data)
    where, params = query._where_sql()
    sql = f"UPDATE {quote(query.table)} SET {assignments}{where}"
    return query.database.execute(sql, [*event.data.values(), *params]).rowcount


def _delete_rows(event: DeleteQueryEvent) -> int:
    query = event.query
    where, params = query._where_sql()
    return query.database.execute(f"DELETE FROM {quote(query.table)}{where}", params).rowcount
