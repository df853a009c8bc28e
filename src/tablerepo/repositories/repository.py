from __future__ import annotations

import copy
import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Callable, ClassVar, Generic, Mapping, Optional, TypeVar

from ..config.settings import settings
from ..domain.entities.entity import Entity
from ..domain.value_objects.scope import FullScope, RawScope, Scope
from ..domain.value_objects.selectors import (
    ByConditions,
    ById,
    ByReference,
    ByReferenceList,
    resolve_selector,
)
from ..errors import EntityNotFoundError, InvalidArgumentError, RepositoryLogicError
from ..events.event import LoadEvent
from .behaviors import RepositoryBehaviors
from .query import Query

if TYPE_CHECKING:
    from ..db.connection import Database
    from ..events.dispatcher import RepositoryEvents
    from .manager import RepositoryDependencies, RepositoryManager

logger = logging.getLogger(__name__)

E = TypeVar("E", bound=Entity)
T = TypeVar("T")


class Repository(ABC, Generic[E]):
    """Typed facade over one table.

    Subclasses name their table, optionally their entity and query classes,
    and register behaviors in :meth:`setup`:

    >>> class UserRepository(Repository[Entity]):  # doctest: +SKIP
    ...     table_name = "users"
    ...     def setup(self, behaviors):
    ...         behaviors.add("soft_delete", SoftDeleteBehavior())

    Lookups return ``None`` or an empty result when nothing matches; only
    :meth:`find_or_fail` raises.
    """

    table_name: ClassVar[str]
    entity_class: ClassVar[type[Entity]] = Entity
    query_class: ClassVar[type[Query]] = Query
    find_or_fail_message: ClassVar[str] = "Entity not found"

    def __init__(self, deps: "RepositoryDependencies") -> None:
        if not getattr(type(self), "table_name", None):
            raise RepositoryLogicError(f"{type(self).__name__} does not define table_name")
        if not issubclass(self.entity_class, Entity):
            raise RepositoryLogicError(f"{self.entity_class!r} is not an Entity subclass")
        if not issubclass(self.query_class, Query):
            raise RepositoryLogicError(f"{self.query_class!r} is not a Query subclass")
        self._deps = deps
        self._database = deps.database
        self._events = deps.events
        self._behaviors = RepositoryBehaviors(deps.scopes)
        self.setup(self._behaviors)

    @abstractmethod
    def setup(self, behaviors: RepositoryBehaviors) -> None:
        """Register behaviors with ``behaviors.add(name, behavior)``."""

    # ------------------------------------------------------------------
    # Scope
    # ------------------------------------------------------------------
    def set_scope(self, scope: Scope) -> "Repository[E]":
        """Return a copy of this repository using ``scope``; ``self`` is untouched."""
        clone = copy.copy(self)
        clone._behaviors = self._behaviors.clone()
        clone._behaviors.set_scope(scope)
        return clone

    def scope_raw(self) -> "Repository[E]":
        return self.set_scope(RawScope())

    def scope_full(self) -> "Repository[E]":
        return self.set_scope(FullScope())

    # ------------------------------------------------------------------
    # Fetching entities
    # ------------------------------------------------------------------
    def find(self, key: Any) -> Optional[E]:
        """Entity with primary key ``key`` (scalar, tuple, mapping or entity) or None."""
        return self.query().where_primary(key).first()  # type: ignore[return-value]

    def find_one_by(self, conditions: Optional[Mapping[str, Any]] = None) -> Optional[E]:
        return self.find_by(conditions or {}).first()  # type: ignore[return-value]

    def find_by(self, conditions: Mapping[str, Any]) -> Query:
        return self.query().where(conditions)

    def count_by(self, conditions: Mapping[str, Any]) -> int:
        return self.find_by(conditions).count("*")

    def sum_by(self, column: str, conditions: Optional[Mapping[str, Any]] = None) -> Any:
        return self.find_by(conditions or {}).sum(column)

    def search(self, columns: list[str], term: str) -> Query:
        return self.query().search(columns, term)

    def find_or_fail(self, key: Any) -> E:
        entity = self.find(key)
        if entity is not None:
            return entity
        raise EntityNotFoundError(self.find_or_fail_message, table=self.table_name, key=key)

    def find_or_insert(
        self, conditions: Mapping[str, Any], new_values: Optional[Mapping[str, Any]] = None
    ) -> E:
        """First entity matching ``conditions``, or a newly inserted one.

        Not atomic: a concurrent writer may insert between the read and the
        write. ``conditions`` win over ``new_values`` for the inserted row.
        """
        entity = self.find_one_by(conditions)
        if entity is not None:
            return entity
        entity = self.create({**(new_values or {}), **conditions})
        return entity.save()  # type: ignore[return-value]

    def find_or_new(
        self, conditions: Mapping[str, Any], new_values: Optional[Mapping[str, Any]] = None
    ) -> E:
        entity = self.find_one_by(conditions)
        if entity is not None:
            return entity
        return self.create({**(new_values or {}), **conditions})

    # ------------------------------------------------------------------
    # Database modifications
    # ------------------------------------------------------------------
    def insert(self, *rows: Any) -> Any:
        """Insert entities or mappings.

        One row returns the persisted entity, several rows their count.
        """
        if not rows:
            return 0
        return self.query().insert(list(rows))

    def update(self, row: Any, data: Mapping[str, Any]) -> int:
        """Update rows picked by ``row``; returns the affected row count.

        ``row`` is a primary key value, an entity, a list of entities or a
        mapping of where conditions.
        """
        query = self.query()
        match resolve_selector(row):
            case ById(value):
                query.where_primary(value)
            case ByReference(entity):
                query.where_primary(entity)
            case ByReferenceList(entities):
                query.where_rows(*entities)
            case ByConditions(conditions):
                query.where(conditions)
        return query.update(data)

    def update_or_create(
        self, where: Mapping[str, Any], new_values: Optional[Mapping[str, Any]] = None
    ) -> E:
        """Update the first entity matching ``where`` or insert a new one. Not atomic."""
        entity = self.find_one_by(where)
        if entity is not None:
            entity.update(new_values or {})
            return entity
        return self.create({**(new_values or {}), **where}).save()  # type: ignore[return-value]

    def update_entities(self, *entities: Entity) -> int:
        """Write the pending diffs of ``entities`` with as few UPDATEs as possible.

        Entities sharing an identical diff are written by one statement
        narrowed to their primary keys. Entities without changes are skipped.
        Returns the number of affected rows.
        """
        groups: list[tuple[dict[str, Any], list[Entity]]] = []
        for entity in entities:
            if not isinstance(entity, Entity):
                raise InvalidArgumentError(
                    f"update_entities expects entities, got {type(entity).__name__}"
                )
            if not entity.is_persisted:
                raise InvalidArgumentError("update_entities got an entity that was never saved")
            diff = dict(sorted(entity.diff().items()))
            if not diff:
                continue
            for group_diff, members in groups:
                if group_diff == diff:
                    members.append(entity)
                    break
            else:
                groups.append((diff, [entity]))

        count = 0
        for diff, members in groups:
            count += self.query().where_rows(*members).update(diff, members)
            for member in members:
                member._mark_persisted()
        return count

    def delete(self, *rows: Any) -> int:
        """Delete entities, or rows selected by key values or key mappings.

        Entity-aware deletion (behaviors see the entities) applies only when
        every argument is an entity; any other argument turns the whole call
        into a delete by primary key.
        """
        if not rows:
            return 0
        if all(isinstance(row, Entity) for row in rows):
            return self.query().delete(rows)
        return self.query().where_rows(*rows).delete()

    # ------------------------------------------------------------------
    # Getters
    # ------------------------------------------------------------------
    def query(self) -> Query:
        return self.query_class(self)

    def raw_query(self) -> Query:
        return self.query().scope_raw()

    def fetch_all(self) -> list[E]:
        return self.query().fetch_all()  # type: ignore[return-value]

    def fetch_pairs(
        self,
        key: Optional[str] = None,
        value: Optional[str] = None,
        order: Optional[str] = None,
        where: Optional[Mapping[str, Any]] = None,
    ) -> dict[Any, Any]:
        query = self.query().where(where or {})
        if order is not None:
            query.order(order)
        return query.fetch_pairs(key, value)

    def behaviors(self) -> RepositoryBehaviors:
        return self._behaviors

    @property
    def scope(self) -> Scope:
        return self._behaviors.scope

    @property
    def database(self) -> "Database":
        return self._database

    @property
    def events(self) -> "RepositoryEvents":
        return self._events

    @property
    def manager(self) -> "RepositoryManager":
        return self._deps.manager

    def primary_key(self) -> list[str]:
        return self._database.primary_key(self.table_name)

    def create(self, row: Optional[Mapping[str, Any]] = None, query: Optional[Query] = None) -> E:
        """Build an entity without persisting it.

        Load subscribers run exactly as they do for fetched rows.
        """
        query = query if query is not None else self.query()
        entity = self.entity_class(row or {}, query)
        return self._fire_load(entity, query)

    def _load(self, row: Mapping[str, Any], query: Query) -> E:
        entity = self.entity_class(row, query)
        entity._mark_persisted()
        return self._fire_load(entity, query)

    def _fire_load(self, entity: Entity, query: Query) -> E:
        return self._events.fire(LoadEvent(query, _loaded_entity, entity))

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------
    def transaction(self, callback: Callable[[], T]) -> T:
        """Run ``callback`` in a transaction, joining one already in progress.

        Only the call that began the transaction commits it or rolls it back.
        A failure inside a transaction begun by an outer caller propagates
        without rollback.
        """
        db = self._database
        started = not db.in_transaction
        if started:
            db.begin()
        try:
            result = callback()
            if started:
                db.commit()
            return result
        except Exception as exc:
            if started and db.in_transaction:
                logger.warning(
                    "Rolling back transaction",
                    extra={"table": self.table_name, "error": type(exc).__name__},
                )
                db.rollback()
            raise

    def ensure(
        self,
        callback: Callable[["Repository[E]"], T],
        retry_times: Optional[int] = None,
        reconnect: bool = True,
    ) -> T:
        """Call ``callback(self)`` up to ``retry_times`` times in total.

        Between failed attempts the connection is re-opened when ``reconnect``
        is set. The last failure propagates. The callback must be safe to run
        more than once.
        """
        attempts = settings.ensure_retries if retry_times is None else retry_times
        if attempts < 1:
            raise InvalidArgumentError("retry_times must be at least 1")
        for attempt in range(1, attempts + 1):
            try:
                return callback(self)
            except Exception as exc:
                if attempt == attempts:
                    raise
                logger.warning(
                    "Repository %s attempt failed: %s. Retrying (attempt %d/%d)",
                    self.table_name,
                    type(exc).__name__,
                    attempt,
                    attempts,
                )
                if reconnect:
                    self._database.reconnect()
        raise RepositoryLogicError("Unreachable")

    def __repr__(self) -> str:
        return f"{type(self).__name__}(table={self.table_name!r}, scope={self.scope.name!r})"


def _loaded_entity(event: LoadEvent) -> Entity:
    return event.entity
