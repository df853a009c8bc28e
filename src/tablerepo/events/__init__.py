"""Event pipeline letting behaviors take part in query execution."""

from .dispatcher import RepositoryEvents
from .event import (
    DeleteQueryEvent,
    InsertQueryEvent,
    LoadEvent,
    RepositoryEvent,
    SelectQueryEvent,
    UpdateQueryEvent,
)
from .subscriber import EventSubscriber

__all__ = [
    "RepositoryEvents",
    "RepositoryEvent",
    "SelectQueryEvent",
    "InsertQueryEvent",
    "UpdateQueryEvent",
    "DeleteQueryEvent",
    "LoadEvent",
    "EventSubscriber",
]
