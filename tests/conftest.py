# mypy: ignore-errors

from __future__ import annotations

from collections.abc import Generator

import pytest

from tablerepo.behaviors import default_subscribers
from tablerepo.db import Database
from tablerepo.domain.entities import Entity
from tablerepo.events import RepositoryEvents
from tablerepo.repositories import Repository, RepositoryDependencies

SCHEMA = """
CREATE TABLE users (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL,
    email TEXT,
    active INTEGER NOT NULL DEFAULT 1,
    score INTEGER NOT NULL DEFAULT 0,
    meta TEXT,
    created_at TEXT,
    updated_at TEXT,
    deleted_at TEXT
);
CREATE TABLE tags (
    user_id INTEGER NOT NULL,
    label TEXT NOT NULL,
    weight INTEGER NOT NULL DEFAULT 0,
    PRIMARY KEY (user_id, label)
);
"""


class User(Entity):
    pass


class UserRepository(Repository[User]):
    table_name = "users"
    entity_class = User
    find_or_fail_message = "User not found"

    def setup(self, behaviors) -> None:
        pass


class TagRepository(Repository[Entity]):
    table_name = "tags"

    def setup(self, behaviors) -> None:
        pass


@pytest.fixture
def db() -> Generator[Database, None, None]:
    database = Database(":memory:")
    database.connection.executescript(SCHEMA)
    yield database
    database.close()


@pytest.fixture
def deps(db: Database) -> RepositoryDependencies:
    return RepositoryDependencies(db, RepositoryEvents(default_subscribers()))


@pytest.fixture
def users(deps: RepositoryDependencies) -> UserRepository:
    return deps.manager.get(UserRepository)


@pytest.fixture
def tags(deps: RepositoryDependencies) -> TagRepository:
    return deps.manager.get(TagRepository)


def seed_users(repo: Repository, *names: str) -> list[Entity]:
    return [repo.insert({"name": name, "email": f"{name}@example.com"}) for name in names]
