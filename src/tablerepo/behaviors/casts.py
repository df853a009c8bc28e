"""Column type conversion between stored and Python values."""

from __future__ import annotations

import json
from datetime import datetime
from typing import TYPE_CHECKING, Any, Callable, ClassVar, Mapping

from ..domain.interfaces.behavior import Behavior
from ..domain.value_objects.enums import Capability
from ..errors import InvalidArgumentError
from ..events.subscriber import EventSubscriber

if TYPE_CHECKING:
    from ..events.event import InsertQueryEvent, LoadEvent, UpdateQueryEvent


def _load_datetime(value: Any) -> datetime:
    return value if isinstance(value, datetime) else datetime.fromisoformat(str(value))


def _dump_datetime(value: Any) -> Any:
    return value.isoformat() if isinstance(value, datetime) else value


def _load_json(value: Any) -> Any:
    return json.loads(value) if isinstance(value, (str, bytes)) else value


def _dump_json(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False)


# kind -> (stored -> python, python -> stored)
_CONVERTERS: dict[str, tuple[Callable[[Any], Any], Callable[[Any], Any]]] = {
    "bool": (bool, int),
    "int": (int, int),
    "float": (float, float),
    "json": (_load_json, _dump_json),
    "datetime": (_load_datetime, _dump_datetime),
}


class CastBehavior(Behavior):
    """Convert columns on load and back on write.

    >>> CastBehavior({"active": "bool"}).load({"active": 1, "name": "x"})
    {'active': True}
    >>> CastBehavior({"tags": "json"}).dump({"tags": ["a"]})
    {'tags': '["a"]'}
    """

    capabilities: ClassVar[frozenset[Capability]] = frozenset({Capability.CAST})

    def __init__(self, casts: Mapping[str, str]) -> None:
        unknown = {kind for kind in casts.values() if kind not in _CONVERTERS}
        if unknown:
            raise InvalidArgumentError(f"Unknown cast types: {sorted(unknown)}")
        self.casts = dict(casts)

    def load(self, row: Mapping[str, Any]) -> dict[str, Any]:
        """Python values for the cast columns present (and not NULL) in ``row``."""
        return {
            column: _CONVERTERS[kind][0](row[column])
            for column, kind in self.casts.items()
            if row.get(column) is not None
        }

    def dump(self, row: Mapping[str, Any]) -> dict[str, Any]:
        return {
            column: _CONVERTERS[kind][1](row[column])
            for column, kind in self.casts.items()
            if row.get(column) is not None
        }


class CastEventSubscriber(EventSubscriber):
    capability = Capability.CAST

    def on_load(self, event: "LoadEvent") -> Any:
        entity = event.entity
        for behavior in event.behaviors.of_type(CastBehavior):
            for column, value in behavior.load(entity.to_dict()).items():
                entity._hydrate(column, value)
        return event.handle()

    def on_insert(self, event: "InsertQueryEvent") -> Any:
        for behavior in event.behaviors.of_type(CastBehavior):
            for row in event.rows:
                row.update(behavior.dump(row))
        return event.handle()

    def on_update(self, event: "UpdateQueryEvent") -> Any:
        for behavior in event.behaviors.of_type(CastBehavior):
            event.data.update(behavior.dump(event.data))
        return event.handle()
