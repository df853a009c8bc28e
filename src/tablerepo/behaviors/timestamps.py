from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, ClassVar, Optional

from ..domain.interfaces.behavior import Behavior
from ..domain.value_objects.enums import Capability
from ..events.subscriber import EventSubscriber

if TYPE_CHECKING:
    from ..events.event import InsertQueryEvent, UpdateQueryEvent


def utc_now() -> str:
    """Current UTC time as stored in timestamp columns."""
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


class TimestampsBehavior(Behavior):
    """Maintain creation and modification time columns.

    Pass ``None`` for a column the table does not have.
    """

    capabilities: ClassVar[frozenset[Capability]] = frozenset({Capability.TIMESTAMPS})

    def __init__(
        self, created: Optional[str] = "created_at", updated: Optional[str] = "updated_at"
    ) -> None:
        self.created = created
        self.updated = updated


class TimestampsEventSubscriber(EventSubscriber):
    """Fill timestamp columns the caller left empty."""

    capability = Capability.TIMESTAMPS

    def on_insert(self, event: "InsertQueryEvent") -> Any:
        now = utc_now()
        for behavior in event.behaviors.of_type(TimestampsBehavior):
            for row in event.rows:
                for column in (behavior.created, behavior.updated):
                    if column and row.get(column) is None:
                        row[column] = now
        return event.handle()

    def on_update(self, event: "UpdateQueryEvent") -> Any:
        now = utc_now()
        stamped: dict[str, Any] = {}
        for behavior in event.behaviors.of_type(TimestampsBehavior):
            if behavior.updated and behavior.updated not in event.data:
                event.data[behavior.updated] = now
                stamped[behavior.updated] = now
        result = event.handle()
        for entity in event.entities:
            for column, value in stamped.items():
                entity._hydrate(column, value)
        return result
