"""Simple SQLite migration runner."""

from __future__ import annotations

import argparse
import logging
import re
from pathlib import Path
from typing import Iterable, Sequence

from .connection import Database

logger = logging.getLogger(__name__)

_PATTERN = re.compile(r"V(\d+)__.+\.sql$")


def applied_versions(db: Database) -> set[str]:
    db.execute("CREATE TABLE IF NOT EXISTS schema_migrations (version TEXT PRIMARY KEY)")
    rows = db.fetch_all("SELECT version FROM schema_migrations")
    return {row["version"] for row in rows}


def available_migrations(directory: Path) -> Iterable[tuple[str, Path]]:
    found: list[tuple[int, str, Path]] = []
    for path in directory.glob("V*__*.sql"):
        match = _PATTERN.match(path.name)
        if match:
            found.append((int(match.group(1)), match.group(1), path))
    for _, version, path in sorted(found):
        yield version, path


def run_migrations(db: Database, directory: Path) -> list[str]:
    """Apply every pending migration in ``directory`` and return their versions."""
    done = applied_versions(db)
    applied: list[str] = []
    for version, path in available_migrations(directory):
        if version in done:
            continue
        statements = [s.strip() for s in path.read_text().split(";") if s.strip()]
        db.begin()
        try:
            for statement in statements:
                db.execute(statement)
            db.execute("INSERT INTO schema_migrations (version) VALUES (?)", (version,))
        except Exception:
            db.rollback()
            raise
        db.commit()
        logger.info("Applied migration", extra={"version": version, "file": path.name})
        applied.append(version)
    return applied


def main(argv: Sequence[str] | None = None) -> int:
    from ..config.settings import settings

    p = argparse.ArgumentParser(description="Apply pending SQL migrations")
    p.add_argument("directory", type=Path, help="Directory holding V<n>__name.sql files")
    p.add_argument("--db", default=settings.database, help="Path to SQLite database")
    args = p.parse_args(argv)

    db = Database(args.db)
    try:
        applied = run_migrations(db, args.directory)
    finally:
        db.close()
    print(f"Applied {len(applied)} migration(s)")
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
