from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, Mapping, Union

from ..domain.interfaces.behavior import Filtering
from ..domain.value_objects.enums import Capability
from ..errors import InvalidArgumentError
from ..events.subscriber import EventSubscriber

if TYPE_CHECKING:
    from ..events.event import SelectQueryEvent
    from ..repositories.query import Query

FilterSource = Union[Mapping[str, Any], Callable[["Query"], None]]


class FilterBehavior(Filtering):
    """Narrow every select with fixed conditions or a callable.

    >>> FilterBehavior({"active": True}).conditions
    {'active': True}
    """

    def __init__(self, conditions: FilterSource, skip_in_full_scope: bool = False) -> None:
        if not callable(conditions) and not isinstance(conditions, Mapping):
            raise InvalidArgumentError("FilterBehavior needs a mapping or a callable")
        self.conditions = conditions
        self.skip_in_full_scope = skip_in_full_scope

    def apply_filter(self, query: "Query") -> None:
        if self.skip_in_full_scope and query.scope.is_full:
            return
        if callable(self.conditions):
            self.conditions(query)
        elif self.conditions:
            query.where(self.conditions)

    def __repr__(self) -> str:
        return f"FilterBehavior({self.conditions!r})"


class FilterEventSubscriber(EventSubscriber):
    """Let every filter-capable behavior narrow the select, in registration order."""

    capability = Capability.FILTER

    def on_select(self, event: "SelectQueryEvent") -> Any:
        for behavior in event.behaviors.with_capability(Capability.FILTER):
            if isinstance(behavior, Filtering):
                behavior.apply_filter(event.query)
        return event.handle()
