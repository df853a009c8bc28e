from __future__ import annotations

from typing import TYPE_CHECKING, Any, ClassVar

from ..domain.interfaces.behavior import Behavior
from ..domain.value_objects.enums import Capability
from ..errors import InvalidArgumentError
from ..events.subscriber import EventSubscriber

if TYPE_CHECKING:
    from ..events.event import SelectQueryEvent


class SortingBehavior(Behavior):
    """Default ORDER BY columns, e.g. ``SortingBehavior("name", "id DESC")``."""

    capabilities: ClassVar[frozenset[Capability]] = frozenset({Capability.SORTING})

    def __init__(self, *columns: str) -> None:
        if not columns:
            raise InvalidArgumentError("SortingBehavior needs at least one column")
        self.columns = columns


class SortingEventSubscriber(EventSubscriber):
    capability = Capability.SORTING

    def on_select(self, event: "SelectQueryEvent") -> Any:
        query = event.query
        if not query.has_order:
            for behavior in event.behaviors.of_type(SortingBehavior):
                query.order(*behavior.columns)
        return event.handle()
