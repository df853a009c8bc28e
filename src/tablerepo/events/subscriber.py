from __future__ import annotations

from typing import TYPE_CHECKING, Any, ClassVar

from ..domain.value_objects.enums import Capability

if TYPE_CHECKING:
    from .event import (
        DeleteQueryEvent,
        InsertQueryEvent,
        LoadEvent,
        RepositoryEvent,
        SelectQueryEvent,
        UpdateQueryEvent,
    )


class EventSubscriber:
    """Base class for pipeline participants.

    A subscriber names the capability it serves; it takes part in an event
    only when at least one active behavior declares that capability. Every
    handler defaults to plain delegation, so subclasses override only the
    event kinds they care about.
    """

    capability: ClassVar[Capability | None] = None

    def supports(self, event: "RepositoryEvent") -> bool:
        return self.capability is not None and event.has_capability(self.capability)

    def on_select(self, event: "SelectQueryEvent") -> Any:
        return event.handle()

    def on_insert(self, event: "InsertQueryEvent") -> Any:
        return event.handle()

    def on_update(self, event: "UpdateQueryEvent") -> Any:
        return event.handle()

    def on_delete(self, event: "DeleteQueryEvent") -> Any:
        return event.handle()

    def on_load(self, event: "LoadEvent") -> Any:
        return event.handle()
