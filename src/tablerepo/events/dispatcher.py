from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Iterable, Iterator

from ..errors import RepositoryLogicError
from .subscriber import EventSubscriber

if TYPE_CHECKING:
    from .event import RepositoryEvent

logger = logging.getLogger(__name__)


class RepositoryEvents:
    """Ordered set of subscribers shared by every repository.

    Subscribers run in registration order. Exceptions raised by a
    subscriber are not caught: one failing subscriber aborts the operation.
    """

    def __init__(self, subscribers: Iterable[EventSubscriber] = ()) -> None:
        self._subscribers: list[EventSubscriber] = []
        for subscriber in subscribers:
            self.subscribe(subscriber)

    def subscribe(self, subscriber: EventSubscriber) -> None:
        if not isinstance(subscriber, EventSubscriber):
            raise RepositoryLogicError(
                f"{type(subscriber).__name__} is not an EventSubscriber"
            )
        self._subscribers.append(subscriber)
        logger.debug("Subscriber registered", extra={"subscriber": type(subscriber).__name__})

    def fire(self, event: "RepositoryEvent") -> Any:
        """Run ``event`` through every subscriber, then its terminal step."""
        return event.start(self._subscribers)

    def __iter__(self) -> Iterator[EventSubscriber]:
        return iter(tuple(self._subscribers))

    def __len__(self) -> int:
        return len(self._subscribers)
