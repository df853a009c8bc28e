from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, ClassVar

from ..domain.interfaces.behavior import Filtering
from ..domain.value_objects.enums import Capability
from ..events.subscriber import EventSubscriber
from .timestamps import utc_now

if TYPE_CHECKING:
    from ..events.event import DeleteQueryEvent
    from ..repositories.query import Query

logger = logging.getLogger(__name__)


class SoftDeleteBehavior(Filtering):
    """Mark rows as deleted instead of removing them.

    Selects only see rows whose ``column`` is NULL unless the query runs in
    the full scope. The raw scope disables the behavior entirely, so a raw
    delete removes the row for real.
    """

    capabilities: ClassVar[frozenset[Capability]] = frozenset(
        {Capability.FILTER, Capability.SOFT_DELETE}
    )

    def __init__(self, column: str = "deleted_at") -> None:
        self.column = column

    def apply_filter(self, query: "Query") -> None:
        if query.scope.is_full:
            return
        query.where({self.column: None})


class SoftDeleteEventSubscriber(EventSubscriber):
    capability = Capability.SOFT_DELETE

    def on_delete(self, event: "DeleteQueryEvent") -> Any:
        behavior = next(event.behaviors.of_type(SoftDeleteBehavior), None)
        if behavior is None:
            return event.handle()
        now = utc_now()
        query = event.query
        query.where({behavior.column: None})
        count = query.update({behavior.column: now})
        for entity in event.entities:
            entity._hydrate(behavior.column, now)
        logger.debug(
            "Soft delete",
            extra={"table": query.table, "column": behavior.column, "rows": count},
        )
        return count
