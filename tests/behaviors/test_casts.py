# mypy: ignore-errors

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from conftest import UserRepository
from tablerepo.behaviors import CastBehavior
from tablerepo.errors import InvalidArgumentError


class CastUserRepository(UserRepository):
    def setup(self, behaviors) -> None:
        behaviors.add(
            "casts",
            CastBehavior(
                {"active": "bool", "meta": "json", "created_at": "datetime", "score": "int"}
            ),
        )


@pytest.fixture
def repo(deps) -> CastUserRepository:
    return deps.manager.get(CastUserRepository)


def test_values_are_converted_on_load(repo, db) -> None:
    db.execute(
        "INSERT INTO users (name, active, meta, created_at) VALUES (?, ?, ?, ?)",
        ("a", 0, '{"tags": ["x"]}', "2024-05-01T10:00:00+00:00"),
    )
    user = repo.find_one_by({"name": "a"})
    assert user.active is False
    assert user.meta == {"tags": ["x"]}
    assert user.created_at == datetime(2024, 5, 1, 10, tzinfo=timezone.utc)
    assert user.diff() == {}


def test_values_are_serialised_on_insert(repo, db) -> None:
    stamp = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    user = repo.insert({"name": "a", "active": True, "meta": {"k": 1}, "created_at": stamp})
    stored = db.fetch_all("SELECT active, meta, created_at FROM users WHERE id = ?", [user.id])
    assert stored == [{"active": 1, "meta": '{"k": 1}', "created_at": stamp.isoformat()}]
    assert user.meta == {"k": 1}
    assert user.created_at == stamp


def test_entity_save_serialises_changes(repo, db) -> None:
    user = repo.create({"name": "a", "meta": ["x"]}).save()
    assert user.meta == ["x"]
    user.meta = {"changed": True}
    user.save()
    raw = db.fetch_value("SELECT meta FROM users WHERE id = ?", [user.id])
    assert raw == '{"changed": true}'
    assert repo.find(user.id).meta == {"changed": True}


def test_nulls_are_left_alone(repo) -> None:
    user = repo.insert({"name": "a"})
    assert user.meta is None
    assert user.active is True


def test_load_and_dump_helpers() -> None:
    behavior = CastBehavior({"n": "float", "flag": "bool"})
    assert behavior.load({"n": "1.5", "flag": 1}) == {"n": 1.5, "flag": True}
    assert behavior.dump({"n": 2, "flag": False}) == {"n": 2.0, "flag": 0}
    assert behavior.load({"n": None}) == {}


def test_unknown_cast_type() -> None:
    with pytest.raises(InvalidArgumentError):
        CastBehavior({"x": "decimal"})
