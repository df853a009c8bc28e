# mypy: ignore-errors

from __future__ import annotations

import logging

import pytest

from conftest import UserRepository
from tablerepo.behaviors import SoftDeleteBehavior


class SoftUserRepository(UserRepository):
    def setup(self, behaviors) -> None:
        behaviors.add("soft_delete", SoftDeleteBehavior())


@pytest.fixture
def soft(deps) -> SoftUserRepository:
    return deps.manager.get(SoftUserRepository)


def test_delete_marks_row_instead_of_removing(soft, db, caplog) -> None:
    user = soft.insert({"name": "a"})
    caplog.set_level(logging.DEBUG, logger="tablerepo.behaviors.soft_delete")
    db.stats.reset()

    assert soft.delete(user) == 1

    assert db.stats.count("DELETE") == 0
    assert user.deleted_at is not None
    assert user.diff() == {}
    assert soft.find(user.id) is None
    assert soft.scope_raw().find(user.id).deleted_at == user.deleted_at
    assert any(r.getMessage() == "Soft delete" for r in caplog.records)


def test_full_scope_sees_deleted_rows(soft) -> None:
    a = soft.insert({"name": "a"})
    soft.insert({"name": "b"})
    soft.delete(a)
    assert soft.query().count() == 1
    assert soft.scope_full().query().count() == 2


def test_delete_by_key_and_condition(soft) -> None:
    a = soft.insert({"name": "a"})
    soft.insert({"name": "b"})
    assert soft.delete(a.id) == 1
    assert soft.query().where({"name": "b"}).delete() == 1
    assert soft.query().count() == 0
    assert soft.raw_query().count() == 2


def test_deleting_twice_keeps_first_timestamp(soft) -> None:
    a = soft.insert({"name": "a"})
    soft.delete(a)
    stamp = soft.scope_raw().find(a.id).deleted_at
    assert soft.delete(a.id) == 0
    assert soft.scope_raw().find(a.id).deleted_at == stamp


def test_raw_scope_deletes_for_real(soft, db) -> None:
    a = soft.insert({"name": "a"})
    assert soft.scope_raw().delete(a) == 1
    assert db.fetch_value("SELECT COUNT(*) FROM users") == 0


def test_custom_column() -> None:
    behavior = SoftDeleteBehavior("removed_on")
    assert behavior.column == "removed_on"
