"""Events fired around query execution.

An event carries the query being executed, the behaviors active for it and
a continuation. :meth:`RepositoryEvent.handle` hands the event to the next
supporting subscriber, or runs the terminal step (the actual statement)
once every subscriber has had its turn. A subscriber either delegates by
returning ``event.handle()`` or short-circuits by returning its own value.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Callable, ClassVar, Iterator, Mapping, Sequence

from ..domain.value_objects.enums import Capability, EventKind
from ..errors import RepositoryLogicError

if TYPE_CHECKING:
    from ..domain.entities.entity import Entity
    from ..repositories.behaviors import RepositoryBehaviors
    from ..repositories.query import Query
    from ..repositories.repository import Repository
    from .subscriber import EventSubscriber


class RepositoryEvent(ABC):
    kind: ClassVar[EventKind]

    def __init__(self, query: "Query", terminal: Callable[[Any], Any]) -> None:
        self._query = query
        self._terminal = terminal
        self._pending: Iterator["EventSubscriber"] | None = None
        self._finished = False

    @property
    def query(self) -> "Query":
        return self._query

    @property
    def repository(self) -> "Repository":
        return self._query.repository

    @property
    def behaviors(self) -> "RepositoryBehaviors":
        return self._query.behaviors

    def has_capability(self, capability: Capability) -> bool:
        return self.behaviors.has_capability(capability)

    def start(self, subscribers: Sequence["EventSubscriber"]) -> Any:
        if self._pending is not None:
            raise RepositoryLogicError(f"{type(self).__name__} was already fired")
        self._pending = iter(tuple(subscribers))
        return self.handle()

    def handle(self) -> Any:
        """Run the rest of the pipeline and return its result."""
        if self._pending is None:
            raise RepositoryLogicError(f"{type(self).__name__} was not fired")
        if self._finished:
            raise RepositoryLogicError(f"{type(self).__name__} was already handled")
        for subscriber in self._pending:
            if subscriber.supports(self):
                return self._dispatch(subscriber)
        self._finished = True
        return self._terminal(self)

    @abstractmethod
    def _dispatch(self, subscriber: "EventSubscriber") -> Any: ...


class SelectQueryEvent(RepositoryEvent):
    """Read from the table.

    ``compiler`` turns the (possibly narrowed) query into the statement the
    terminal step runs: a plain SELECT or an aggregate.
    """

    kind = EventKind.SELECT

    def __init__(
        self,
        query: "Query",
        terminal: Callable[[Any], Any],
        compiler: Callable[["Query"], tuple[str, list[Any]]],
    ) -> None:
        super().__init__(query, terminal)
        self._compiler = compiler

    def statement(self) -> tuple[str, list[Any]]:
        return self._compiler(self.query)

    def _dispatch(self, subscriber: "EventSubscriber") -> Any:
        return subscriber.on_select(self)


class InsertQueryEvent(RepositoryEvent):
    """Insert of one or more rows.

    ``rows`` are plain dicts behaviors may edit in place; ``entities`` lines
    up with ``rows`` and holds the source entity or ``None``.
    """

    kind = EventKind.INSERT

    def __init__(
        self,
        query: "Query",
        terminal: Callable[[Any], Any],
        rows: list[dict[str, Any]],
        entities: Sequence["Entity | None"] = (),
    ) -> None:
        super().__init__(query, terminal)
        self.rows = rows
        self.entities: list["Entity | None"] = list(entities) or [None] * len(rows)

    def _dispatch(self, subscriber: "EventSubscriber") -> Any:
        return subscriber.on_insert(self)


class UpdateQueryEvent(RepositoryEvent):
    """Update; ``entities`` holds the entities whose pending diff is being written."""

    kind = EventKind.UPDATE

    def __init__(
        self,
        query: "Query",
        terminal: Callable[[Any], Any],
        data: Mapping[str, Any],
        entities: Sequence["Entity"] = (),
    ) -> None:
        super().__init__(query, terminal)
        self.data: dict[str, Any] = dict(data)
        self.entities: tuple["Entity", ...] = tuple(entities)

    def _dispatch(self, subscriber: "EventSubscriber") -> Any:
        return subscriber.on_update(self)


class DeleteQueryEvent(RepositoryEvent):
    """Delete; ``entities`` is empty when rows were selected by key or condition."""

    kind = EventKind.DELETE

    def __init__(
        self,
        query: "Query",
        terminal: Callable[[Any], Any],
        entities: Sequence["Entity"] = (),
    ) -> None:
        super().__init__(query, terminal)
        self.entities: tuple["Entity", ...] = tuple(entities)

    def _dispatch(self, subscriber: "EventSubscriber") -> Any:
        return subscriber.on_delete(self)


class LoadEvent(RepositoryEvent):
    """Fired for every entity built by a repository, fetched or freshly created."""

    kind = EventKind.LOAD

    def __init__(self, query: "Query", terminal: Callable[[Any], Any], entity: "Entity") -> None:
        super().__init__(query, terminal)
        self.entity = entity

    def _dispatch(self, subscriber: "EventSubscriber") -> Any:
        return subscriber.on_load(self)
