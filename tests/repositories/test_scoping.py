# mypy: ignore-errors

from __future__ import annotations

from conftest import UserRepository
from tablerepo.behaviors import FilterBehavior, SoftDeleteBehavior
from tablerepo.domain.value_objects.scope import FullScope, RawScope


class ActiveUserRepository(UserRepository):
    def setup(self, behaviors) -> None:
        behaviors.add("active", FilterBehavior({"active": 1}))
        behaviors.add("soft_delete", SoftDeleteBehavior())


def _repo(deps) -> ActiveUserRepository:
    repo = deps.manager.get(ActiveUserRepository)
    repo.insert({"name": "visible"})
    repo.insert({"name": "inactive", "active": 0})
    repo.insert({"name": "deleted", "deleted_at": "2024-01-01T00:00:00+00:00"})
    return repo


def _names(query) -> list[str]:
    return sorted(u.name for u in query)


def test_scope_raw_returns_independent_copy(deps) -> None:
    repo = _repo(deps)
    raw = repo.scope_raw()

    assert raw is not repo
    assert raw.behaviors() is not repo.behaviors()
    assert raw.scope.is_raw
    assert repo.scope.name == "default"
    assert _names(raw.query()) == ["deleted", "inactive", "visible"]
    assert _names(repo.query()) == ["visible"]


def test_mutating_clone_behaviors_leaves_origin_alone(deps) -> None:
    repo = _repo(deps)
    full = repo.scope_full()
    full.behaviors().remove("active")

    assert repo.behaviors().has("active")
    assert _names(repo.query()) == ["visible"]
    assert _names(full.query()) == ["deleted", "inactive", "visible"]


def test_full_scope_keeps_non_visibility_filters(deps) -> None:
    repo = _repo(deps)
    assert _names(repo.scope_full().query()) == ["deleted", "visible"]
    assert repo.set_scope(FullScope()).count_by({}) == 2


def test_query_scope_only_affects_that_query(deps) -> None:
    repo = _repo(deps)
    query = repo.query().scope_raw()
    assert _names(query) == ["deleted", "inactive", "visible"]
    assert _names(repo.query()) == ["visible"]
    assert repo.raw_query().count() == 3


def test_scope_container_default(deps) -> None:
    repo = _repo(deps)
    with deps.scopes.using(RawScope()):
        assert repo.query().count() == 3
    assert repo.query().count() == 1
