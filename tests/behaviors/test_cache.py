# mypy: ignore-errors

from __future__ import annotations

import copy

import pytest

from conftest import UserRepository, seed_users
from tablerepo.behaviors import CacheBehavior, SoftDeleteBehavior
from tablerepo.infrastructure.ttl_cache import TTLCache


class CachedUserRepository(UserRepository):
    def setup(self, behaviors) -> None:
        behaviors.add("soft_delete", SoftDeleteBehavior())
        behaviors.add("cache", CacheBehavior(ttl_seconds=60))


@pytest.fixture
def repo(deps) -> CachedUserRepository:
    return deps.manager.get(CachedUserRepository)


def test_repeated_select_is_served_from_cache(repo, db) -> None:
    seed_users(repo, "a", "b")
    repo.fetch_all()
    selects = db.stats.count("SELECT")

    again = repo.fetch_all()

    assert db.stats.count("SELECT") == selects
    assert sorted(u.name for u in again) == ["a", "b"]


def test_cached_rows_are_not_shared_with_callers(repo) -> None:
    seed_users(repo, "a")
    first = repo.query().first()
    first.name = "mutated"
    assert repo.query().first().name == "a"


def test_writes_clear_the_cache(repo, db) -> None:
    (a,) = seed_users(repo, "a")
    assert repo.query().count() == 1
    repo.insert({"name": "b"})
    assert repo.query().count() == 2
    repo.update(a.id, {"name": "z"})
    assert sorted(u.name for u in repo.fetch_all()) == ["b", "z"]
    repo.delete(a)
    assert repo.query().count() == 1


def test_scoped_copies_share_the_cache(repo) -> None:
    seed_users(repo, "a")
    full = repo.scope_full()
    assert full.behaviors().get("cache").cache is repo.behaviors().get("cache").cache
    assert full.query().count() == 1
    repo.insert({"name": "b"})
    assert full.query().count() == 2


def test_deepcopy_keeps_cache_instance() -> None:
    cache: TTLCache = TTLCache(5)
    behavior = CacheBehavior(cache=cache)
    assert copy.deepcopy(behavior).cache is cache
