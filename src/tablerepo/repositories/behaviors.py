from __future__ import annotations

import copy
from typing import Iterator, Optional, TypeVar

from ..domain.interfaces.behavior import Behavior
from ..domain.value_objects.enums import Capability
from ..domain.value_objects.scope import Scope, ScopeContainer
from ..errors import RepositoryLogicError


B = TypeVar("B", bound=Behavior)


class RepositoryBehaviors:
    """Behaviors registered on one repository, plus its scope.

    Each repository owns exactly one instance. Deriving a repository with a
    different scope goes through :meth:`clone`, so the original and the
    derived repository never share this state.

    >>> from tablerepo.behaviors import SortingBehavior
    >>> from tablerepo.domain.value_objects.scope import RawScope
    >>> behaviors = RepositoryBehaviors(ScopeContainer())
    >>> behaviors.add("sort", SortingBehavior("name"))
    >>> [name for name in behaviors.all()]
    ['sort']
    >>> behaviors.set_scope(RawScope())
    >>> list(behaviors.all())
    []
    """

    def __init__(self, scopes: ScopeContainer, scope: Optional[Scope] = None) -> None:
        self._scopes = scopes
        self._scope = scope
        self._behaviors: dict[str, Behavior] = {}

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------
    def add(self, name: str, behavior: Behavior) -> None:
        if not isinstance(behavior, Behavior):
            raise RepositoryLogicError(f"{type(behavior).__name__} is not a Behavior")
        if name in self._behaviors:
            raise RepositoryLogicError(f"Behavior {name!r} is already registered")
        self._behaviors[name] = behavior

    def remove(self, name: str) -> Behavior:
        try:
            return self._behaviors.pop(name)
        except KeyError:
            raise RepositoryLogicError(f"Behavior {name!r} is not registered") from None

    def get(self, name: str) -> Behavior:
        try:
            return self._behaviors[name]
        except KeyError:
            raise RepositoryLogicError(f"Behavior {name!r} is not registered") from None

    def has(self, name: str) -> bool:
        return name in self._behaviors

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------
    def all(self) -> dict[str, Behavior]:
        """Active behaviors, in registration order, after the scope is applied."""
        return self.scope.apply(self._behaviors)

    def all_registered(self) -> dict[str, Behavior]:
        return dict(self._behaviors)

    def with_capability(self, capability: Capability) -> Iterator[Behavior]:
        for behavior in self.all().values():
            if behavior.supports(capability):
                yield behavior

    def of_type(self, kind: type[B]) -> Iterator[B]:
        for behavior in self.all().values():
            if isinstance(behavior, kind):
                yield behavior

    def has_capability(self, capability: Capability) -> bool:
        return any(capability in b.capabilities for b in self.all().values())

    # ------------------------------------------------------------------
    # Scope
    # ------------------------------------------------------------------
    @property
    def scope(self) -> Scope:
        return self._scope if self._scope is not None else self._scopes.default

    @property
    def scopes(self) -> ScopeContainer:
        return self._scopes

    def set_scope(self, scope: Scope) -> None:
        self._scope = scope

    def clone(self) -> "RepositoryBehaviors":
        """Independent copy; behaviors are deep-copied, the scope container is shared."""
        twin = RepositoryBehaviors(self._scopes, self._scope)
        twin._behaviors = copy.deepcopy(self._behaviors)
        return twin

    def __len__(self) -> int:
        return len(self._behaviors)

    def __repr__(self) -> str:
        return f"RepositoryBehaviors({list(self._behaviors)!r}, scope={self.scope.name!r})"
