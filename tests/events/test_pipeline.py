# mypy: ignore-errors

from __future__ import annotations

import pytest

from conftest import SCHEMA, UserRepository
from tablerepo.db import Database
from tablerepo.domain.interfaces import Behavior, Filtering
from tablerepo.domain.value_objects.enums import Capability
from tablerepo.errors import RepositoryLogicError
from tablerepo.events import EventSubscriber, RepositoryEvents, SelectQueryEvent
from tablerepo.behaviors import FilterEventSubscriber
from tablerepo.repositories import RepositoryDependencies


class RecordingFilter(Filtering):
    def __init__(self, label: str, calls: list[str]) -> None:
        self.label = label
        self.calls = calls

    def apply_filter(self, query) -> None:
        self.calls.append(self.label)
        query.where("? = ?", self.label, self.label)


class Marker(Behavior):
    capabilities = frozenset({Capability.CACHE})


class ShortCircuit(EventSubscriber):
    capability = Capability.CACHE

    def on_select(self, event):
        return [{"id": 99, "name": "canned"}]


class Exploding(EventSubscriber):
    capability = Capability.CACHE

    def on_select(self, event):
        raise RuntimeError("subscriber failed")


class Spy(EventSubscriber):
    capability = Capability.FILTER

    def __init__(self) -> None:
        self.seen: list[str] = []

    def on_select(self, event):
        self.seen.append("select")
        return event.handle()

    def on_insert(self, event):
        self.seen.append("insert")
        return event.handle()

    def on_load(self, event):
        self.seen.append("load")
        return event.handle()


@pytest.fixture
def build(db: Database):
    def _build(subscribers, setup):
        class Repo(UserRepository):
            def setup(self, behaviors) -> None:
                setup(behaviors)

        deps = RepositoryDependencies(db, RepositoryEvents(subscribers))
        return deps.manager.get(Repo)

    return _build


def test_filters_run_once_each_in_registration_order(build) -> None:
    calls: list[str] = []

    def setup(behaviors) -> None:
        for label in ("a", "b", "c"):
            behaviors.add(label, RecordingFilter(label, calls))

    repo = build([FilterEventSubscriber()], setup)
    repo.insert({"name": "x"})
    assert calls == []

    assert len(repo.fetch_all()) == 1
    assert calls == ["a", "b", "c"]

    calls.clear()
    assert repo.query().count() == 1
    assert calls == ["a", "b", "c"]


def test_short_circuit_skips_terminal(build, db) -> None:
    repo = build([ShortCircuit()], lambda b: b.add("marker", Marker()))
    db.stats.reset()
    found = repo.fetch_all()
    assert [u.name for u in found] == ["canned"]
    assert db.stats.total == 0


def test_subscriber_exception_aborts_operation(build, db) -> None:
    repo = build([Exploding()], lambda b: b.add("marker", Marker()))
    db.stats.reset()
    with pytest.raises(RuntimeError, match="subscriber failed"):
        repo.fetch_all()
    assert db.stats.total == 0


def test_subscribers_without_matching_capability_are_skipped(build) -> None:
    spy = Spy()
    repo = build([spy, ShortCircuit()], lambda b: None)
    repo.insert({"name": "x"})
    assert [u.name for u in repo.fetch_all()] == ["x"]
    assert spy.seen == []


def test_supporting_subscriber_sees_every_event_kind(build) -> None:
    calls: list[str] = []
    spy = Spy()
    repo = build([spy], lambda b: b.add("f", RecordingFilter("f", calls)))
    repo.insert({"name": "x"})
    repo.fetch_all()
    assert spy.seen == ["insert", "load", "select", "load"]


def test_raw_scope_disables_pipeline(build) -> None:
    repo = build([ShortCircuit()], lambda b: b.add("marker", Marker()))
    repo.insert({"name": "real"})
    assert [u.name for u in repo.scope_raw().fetch_all()] == ["real"]


def test_handle_guards_misuse(users) -> None:
    event = SelectQueryEvent(users.query(), lambda e: [], lambda q: q.to_sql())
    with pytest.raises(RepositoryLogicError):
        event.handle()
    assert event.start([]) == []
    with pytest.raises(RepositoryLogicError):
        event.handle()
    with pytest.raises(RepositoryLogicError):
        event.start([])


def test_subscriber_without_capability_never_runs() -> None:
    class Idle(EventSubscriber):
        pass

    db = Database(":memory:")
    db.connection.executescript(SCHEMA)
    deps = RepositoryDependencies(db, RepositoryEvents([Idle()]))
    repo = deps.manager.get(UserRepository)
    assert not Idle().supports(SelectQueryEvent(repo.query(), lambda e: [], lambda q: q))
    db.close()


def test_dispatcher_rejects_non_subscribers() -> None:
    events = RepositoryEvents()
    with pytest.raises(RepositoryLogicError):
        events.subscribe(object())
    events.subscribe(Spy())
    assert len(events) == 1
