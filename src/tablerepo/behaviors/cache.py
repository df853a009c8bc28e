from __future__ import annotations

import copy
import logging
from typing import TYPE_CHECKING, Any, ClassVar, Optional

from ..domain.interfaces.behavior import Behavior
from ..domain.value_objects.enums import Capability
from ..events.subscriber import EventSubscriber
from ..infrastructure.ttl_cache import TTLCache

if TYPE_CHECKING:
    from ..events.event import (
        DeleteQueryEvent,
        InsertQueryEvent,
        RepositoryEvent,
        SelectQueryEvent,
        UpdateQueryEvent,
    )

logger = logging.getLogger(__name__)

CacheKey = tuple[str, tuple[Any, ...]]


class CacheBehavior(Behavior):
    """Cache select results of one repository for ``ttl_seconds``.

    Re-scoped copies of the repository share the same cache: the key is the
    compiled statement, which already differs between scopes.
    """

    capabilities: ClassVar[frozenset[Capability]] = frozenset({Capability.CACHE})

    def __init__(self, ttl_seconds: float = 60.0, cache: Optional[TTLCache] = None) -> None:
        self.cache: TTLCache[CacheKey, list[dict[str, Any]]] = (
            cache if cache is not None else TTLCache(ttl_seconds)
        )

    def __deepcopy__(self, memo: dict[int, Any]) -> "CacheBehavior":
        return CacheBehavior(cache=self.cache)


class CacheEventSubscriber(EventSubscriber):
    """Serve repeated selects from the cache; writes clear it."""

    capability = Capability.CACHE

    def on_select(self, event: "SelectQueryEvent") -> Any:
        behavior = next(event.behaviors.of_type(CacheBehavior), None)
        if behavior is None:
            return event.handle()
        sql, params = event.statement()
        key: CacheKey = (sql, tuple(params))
        cached = behavior.cache.get(key)
        if cached is not None:
            logger.debug("Cache hit", extra={"table": event.query.table})
            return copy.deepcopy(cached)
        rows = event.handle()
        behavior.cache.set(key, copy.deepcopy(rows))
        return rows

    def on_insert(self, event: "InsertQueryEvent") -> Any:
        return self._write(event)

    def on_update(self, event: "UpdateQueryEvent") -> Any:
        return self._write(event)

    def on_delete(self, event: "DeleteQueryEvent") -> Any:
        return self._write(event)

    def _write(self, event: "RepositoryEvent") -> Any:
        try:
            return event.handle()
        finally:
            for behavior in event.behaviors.of_type(CacheBehavior):
                behavior.cache.clear()
