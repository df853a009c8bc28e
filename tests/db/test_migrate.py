# mypy: ignore-errors

from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from tablerepo.db import Database
from tablerepo.db.migrate import applied_versions, available_migrations, main, run_migrations


def _write(directory: Path, name: str, sql: str) -> None:
    (directory / name).write_text(sql, encoding="utf-8")


def test_available_migrations_sorted_numerically(tmp_path: Path) -> None:
    _write(tmp_path, "V10__late.sql", "SELECT 1;")
    _write(tmp_path, "V2__second.sql", "SELECT 1;")
    _write(tmp_path, "V1__first.sql", "SELECT 1;")
    _write(tmp_path, "notes.sql", "SELECT 1;")
    assert [v for v, _ in available_migrations(tmp_path)] == ["1", "2", "10"]


def test_run_migrations_applies_pending_once(tmp_path: Path) -> None:
    _write(tmp_path, "V1__users.sql", "CREATE TABLE users (id INTEGER PRIMARY KEY, name TEXT);")
    _write(
        tmp_path,
        "V2__seed.sql",
        "INSERT INTO users (name) VALUES ('a');\nINSERT INTO users (name) VALUES ('b');\n",
    )
    db = Database()
    assert run_migrations(db, tmp_path) == ["1", "2"]
    assert run_migrations(db, tmp_path) == []
    assert applied_versions(db) == {"1", "2"}
    assert db.fetch_value("SELECT COUNT(*) FROM users") == 2
    db.close()


def test_failed_migration_rolls_back(tmp_path: Path) -> None:
    _write(tmp_path, "V1__ok.sql", "CREATE TABLE t (id INTEGER PRIMARY KEY);")
    _write(tmp_path, "V2__bad.sql", "INSERT INTO t DEFAULT VALUES; INSERT INTO missing VALUES (1);")
    db = Database()
    with pytest.raises(sqlite3.OperationalError):
        run_migrations(db, tmp_path)
    assert applied_versions(db) == {"1"}
    assert db.fetch_value("SELECT COUNT(*) FROM t") == 0
    assert not db.in_transaction
    db.close()


def test_main_applies_to_file(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    migrations = tmp_path / "migrations"
    migrations.mkdir()
    _write(migrations, "V1__t.sql", "CREATE TABLE t (id INTEGER PRIMARY KEY);")
    db_path = tmp_path / "app.db"
    assert main([str(migrations), "--db", str(db_path)]) == 0
    assert "Applied 1 migration(s)" in capsys.readouterr().out
    db = Database(str(db_path))
    assert applied_versions(db) == {"1"}
    db.close()
