# mypy: ignore-errors

from __future__ import annotations

import sqlite3

import pytest

from conftest import seed_users
from tablerepo.errors import InvalidArgumentError


def test_identical_diffs_share_one_statement(users, db) -> None:
    a, b, c = seed_users(users, "a", "b", "c")
    a.score = 1
    b.score = 1
    c.score = 2
    db.stats.reset()

    assert users.update_entities(a, b, c) == 3

    assert db.stats.count("UPDATE") == 2
    assert users.fetch_pairs("name", "score") == {"a": 1, "b": 1, "c": 2}


def test_diff_grouping_ignores_assignment_order(users, db) -> None:
    a, b = seed_users(users, "a", "b")
    a.score = 5
    a.active = 0
    b.active = 0
    b.score = 5
    db.stats.reset()

    assert users.update_entities(a, b) == 2
    assert db.stats.count("UPDATE") == 1


def test_unchanged_entities_are_skipped(users, db) -> None:
    a, b = seed_users(users, "a", "b")
    a.name = "a"  # same value, no diff
    db.stats.reset()

    assert users.update_entities(a, b) == 0
    assert db.stats.total == 0


def test_diff_cleared_after_update(users) -> None:
    (a,) = seed_users(users, "a")
    a.email = "new@example.com"
    users.update_entities(a)
    assert a.diff() == {}
    a.email = "new@example.com"
    assert a.diff() == {}


def test_rejects_non_entities_and_new_entities(users) -> None:
    with pytest.raises(InvalidArgumentError):
        users.update_entities({"id": 1})
    with pytest.raises(InvalidArgumentError):
        users.update_entities(users.create({"name": "fresh"}))


def test_empty_call_runs_nothing(users, db) -> None:
    db.stats.reset()
    assert users.update_entities() == 0
    assert db.stats.total == 0


def test_changed_key_targets_the_stored_row(users) -> None:
    a, b = seed_users(users, "a", "b")
    stored_id = a.id
    a.name = "renamed"
    a.id = 99

    assert users.update_entities(a) == 1

    assert a.diff() == {}
    assert a.primary() == 99
    assert users.find(stored_id) is None
    assert users.find(99).name == "renamed"
    assert users.find(b.id).name == "b"


def test_changed_key_never_overwrites_another_row(users) -> None:
    a, b = seed_users(users, "a", "b")
    a.name = "from_a"
    a.id = b.id

    with pytest.raises(sqlite3.IntegrityError):
        a.save()

    assert a.diff() == {"name": "from_a", "id": b.id}
    assert users.raw_query().order("id").fetch_pairs("id", "name") == {1: "a", 2: "b"}


def test_primary_reports_stored_key_until_saved(users) -> None:
    (a,) = seed_users(users, "a")
    a.id = 42
    assert a.primary() == 1
    assert users.delete(a) == 1
    assert users.count_by({}) == 0
