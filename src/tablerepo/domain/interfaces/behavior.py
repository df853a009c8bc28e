from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, ClassVar

from ..value_objects.enums import Capability

if TYPE_CHECKING:
    from ...repositories.query import Query


class Behavior(ABC):
    """A unit of cross-cutting logic registered on a repository.

    Behaviors carry no reference to the repository they are registered on;
    they are copied whenever a repository is re-scoped. Dispatch only
    looks at :attr:`capabilities`.
    """

    capabilities: ClassVar[frozenset[Capability]] = frozenset()

    def supports(self, capability: Capability) -> bool:
        return capability in self.capabilities


class Filtering(Behavior):
    """Behavior able to narrow a select query."""

    capabilities: ClassVar[frozenset[Capability]] = frozenset({Capability.FILTER})

    @abstractmethod
    def apply_filter(self, query: "Query") -> None:
        """Mutate ``query`` in place, typically by adding where clauses."""
