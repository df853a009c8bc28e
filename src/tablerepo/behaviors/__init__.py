"""Behaviors bundled with tablerepo and the subscribers that run them."""

from ..events.subscriber import EventSubscriber
from .cache import CacheBehavior, CacheEventSubscriber
from .casts import CastBehavior, CastEventSubscriber
from .filter import FilterBehavior, FilterEventSubscriber
from .soft_delete import SoftDeleteBehavior, SoftDeleteEventSubscriber
from .sorting import SortingBehavior, SortingEventSubscriber
from .timestamps import TimestampsBehavior, TimestampsEventSubscriber


def default_subscribers() -> list[EventSubscriber]:
    """Fresh subscribers for every bundled behavior, in pipeline order.

    Filters run first so that the cache, last in line, keys on the final
    statement.
    """
    return [
        FilterEventSubscriber(),
        SortingEventSubscriber(),
        SoftDeleteEventSubscriber(),
        TimestampsEventSubscriber(),
        CastEventSubscriber(),
        CacheEventSubscriber(),
    ]


__all__ = [
    "default_subscribers",
    "CacheBehavior",
    "CacheEventSubscriber",
    "CastBehavior",
    "CastEventSubscriber",
    "FilterBehavior",
    "FilterEventSubscriber",
    "SoftDeleteBehavior",
    "SoftDeleteEventSubscriber",
    "SortingBehavior",
    "SortingEventSubscriber",
    "TimestampsBehavior",
    "TimestampsEventSubscriber",
]
