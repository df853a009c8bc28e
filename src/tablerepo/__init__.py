"""Table repositories over SQLite with a pluggable behavior pipeline."""

from .db import Database
from .domain.entities import Entity
from .domain.value_objects.scope import DefaultScope, FullScope, RawScope, Scope, ScopeContainer
from .errors import (
    EntityNotFoundError,
    InvalidArgumentError,
    RepositoryError,
    RepositoryLogicError,
)
from .events import EventSubscriber, RepositoryEvents
from .repositories import (
    Query,
    Repository,
    RepositoryBehaviors,
    RepositoryDependencies,
    RepositoryManager,
)

__all__ = [
    "Database",
    "Entity",
    "Query",
    "Repository",
    "RepositoryBehaviors",
    "RepositoryDependencies",
    "RepositoryManager",
    "RepositoryEvents",
    "EventSubscriber",
    "Scope",
    "DefaultScope",
    "RawScope",
    "FullScope",
    "ScopeContainer",
    "RepositoryError",
    "EntityNotFoundError",
    "InvalidArgumentError",
    "RepositoryLogicError",
]
