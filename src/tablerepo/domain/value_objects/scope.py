from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Mapping

from pydantic import BaseModel, ConfigDict

if TYPE_CHECKING:
    from ..interfaces.behavior import Behavior


class Scope(BaseModel):
    """Row visibility policy attached to every query a repository builds.

    Subclasses decide which registered behaviors stay active by overriding
    :meth:`apply`.

    >>> RawScope().apply({"x": object()})
    {}
    """

    name: str = "default"

    model_config = ConfigDict(frozen=True)

    @property
    def is_raw(self) -> bool:
        return False

    @property
    def is_full(self) -> bool:
        return False

    def apply(self, behaviors: Mapping[str, "Behavior"]) -> dict[str, "Behavior"]:
        return dict(behaviors)


class DefaultScope(Scope):
    name: str = "default"


class RawScope(Scope):
    """Bypass every behavior: queries run exactly as written."""

    name: str = "raw"

    @property
    def is_raw(self) -> bool:
        return True

    def apply(self, behaviors: Mapping[str, "Behavior"]) -> dict[str, "Behavior"]:
        return {}


class FullScope(Scope):
    """Keep all behaviors but signal that every row should be visible.

    Visibility filters (soft delete for instance) check :attr:`is_full`
    and skip themselves; other behaviors keep running.
    """

    name: str = "full"

    @property
    def is_full(self) -> bool:
        return True


class ScopeContainer:
    """Holds the scope used by repositories without an explicit one."""

    def __init__(self, default: Scope | None = None) -> None:
        self._default: Scope = default or DefaultScope()

    @property
    def default(self) -> Scope:
        return self._default

    def set_default(self, scope: Scope) -> None:
        self._default = scope

    @staticmethod
    def raw() -> Scope:
        return RawScope()

    @staticmethod
    def full() -> Scope:
        return FullScope()

    @contextmanager
    def using(self, scope: Scope) -> Iterator[Scope]:
        """Temporarily switch the default scope.

        >>> container = ScopeContainer()
        >>> with container.using(RawScope()):
        ...     container.default.name
        'raw'
        >>> container.default.name
        'default'
        """
        previous = self._default
        self._default = scope
        try:
            yield scope
        finally:
            self._default = previous

    def __repr__(self) -> str:  # pragma: no cover - debugging aid
        return f"ScopeContainer(default={self._default!r})"
