from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Iterable, Optional, TypeVar

from ..db.connection import Database
from ..domain.value_objects.scope import Scope, ScopeContainer
from ..errors import RepositoryLogicError
from ..events.dispatcher import RepositoryEvents
from ..events.subscriber import EventSubscriber

if TYPE_CHECKING:
    from ..config.settings import Settings
    from ..domain.entities.entity import Entity
    from .repository import Repository

logger = logging.getLogger(__name__)

R = TypeVar("R", bound="Repository")


class RepositoryDependencies:
    """Services shared by every repository: driver, event bus and scopes.

    Build order is explicit: the database and the event bus first, then
    the manager, created on first access.
    """

    def __init__(
        self,
        database: Database,
        events: Optional[RepositoryEvents] = None,
        scopes: Optional[ScopeContainer] = None,
    ) -> None:
        self.database = database
        self.events = events if events is not None else RepositoryEvents()
        self.scopes = scopes if scopes is not None else ScopeContainer()
        self._manager: Optional[RepositoryManager] = None
        self._lock = threading.Lock()

    @classmethod
    def from_settings(
        cls,
        config: Optional["Settings"] = None,
        subscribers: Iterable[EventSubscriber] = (),
    ) -> "RepositoryDependencies":
        """Wire a database from settings and the bundled behavior subscribers."""
        from ..behaviors import default_subscribers

        if config is None:
            from ..config.settings import settings as config
        database = Database(config.database, log_queries=config.log_queries)
        events = RepositoryEvents([*default_subscribers(), *subscribers])
        return cls(database, events)

    @property
    def manager(self) -> "RepositoryManager":
        if self._manager is None:
            with self._lock:
                if self._manager is None:
                    self._manager = RepositoryManager(self)
        return self._manager


class RepositoryManager:
    """Lazily populated registry of repository instances.

    One instance per repository class and scope. Registration and first
    construction are guarded by a lock; lookups of existing instances are
    lock-free.
    """

    def __init__(self, deps: RepositoryDependencies) -> None:
        self._deps = deps
        self._classes: dict[type["Repository"], None] = {}
        self._instances: dict[tuple[type["Repository"], Optional[Scope]], "Repository"] = {}
        self._lock = threading.RLock()

    def register(self, *classes: type["Repository"]) -> None:
        with self._lock:
            for repository_class in classes:
                if repository_class not in self._classes:
                    self._classes[repository_class] = None
                    logger.debug(
                        "Repository registered",
                        extra={
                            "repository": repository_class.__name__,
                            "table": getattr(repository_class, "table_name", None),
                        },
                    )

    def get(self, repository_class: type[R], scope: Optional[Scope] = None) -> R:
        """Shared instance of ``repository_class``.

        Without ``scope`` the instance follows the container default, so it is
        kept apart from an instance pinned to an explicit scope.
        """
        key = (repository_class, scope)
        instance = self._instances.get(key)
        if instance is not None:
            return instance  # type: ignore[return-value]
        with self._lock:
            instance = self._instances.get(key)
            if instance is None:
                self.register(repository_class)
                base = self._instances.get((repository_class, None))
                if base is None:
                    base = repository_class(self._deps)
                    self._instances[(repository_class, None)] = base
                instance = base if scope is None else base.set_scope(scope)
                self._instances[key] = instance
        return instance  # type: ignore[return-value]

    def by_table(self, table_name: str, scope: Optional[Scope] = None) -> "Repository":
        for repository_class in list(self._classes):
            if repository_class.table_name == table_name:
                return self.get(repository_class, scope)
        raise RepositoryLogicError(f"No repository registered for table {table_name!r}")

    def by_entity(
        self, entity_class: type["Entity"], scope: Optional[Scope] = None
    ) -> "Repository":
        for repository_class in list(self._classes):
            if repository_class.entity_class is entity_class:
                return self.get(repository_class, scope)
        raise RepositoryLogicError(f"No repository registered for {entity_class.__name__}")

    def __contains__(self, repository_class: object) -> bool:
        return repository_class in self._classes

    def __len__(self) -> int:
        return len(self._classes)
