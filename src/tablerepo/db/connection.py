from __future__ import annotations

import logging
import sqlite3
from typing import Any, Optional, Sequence

from ..logging_config import QueryStats

logger = logging.getLogger(__name__)


class Database:
    """Thin wrapper around :class:`sqlite3.Connection`.

    - The connection runs in autocommit mode; transactions are opened
      explicitly with :meth:`begin`, so :attr:`in_transaction` reliably
      reports whether one is active.
    - :meth:`reconnect` throws away the current connection and opens a
      fresh one against the same path.
    - Primary key conventions are read from ``PRAGMA table_info``.

    Example:
        >>> db = Database(":memory:")
        >>> _ = db.execute("CREATE TABLE t (id INTEGER PRIMARY KEY, name TEXT)")
        >>> db.primary_key("t")
        ['id']
    """

    def __init__(self, path: str = ":memory:", *, log_queries: bool = False) -> None:
        self.path = path
        self.log_queries = log_queries
        self.stats = QueryStats()
        self._primary_cache: dict[str, list[str]] = {}
        self._conn = self._connect()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.path, isolation_level=None)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON;")
        return conn

    @property
    def connection(self) -> sqlite3.Connection:
        return self._conn

    # ------------------------------------------------------------------
    # Statements
    # ------------------------------------------------------------------
    def execute(self, sql: str, params: Sequence[Any] = ()) -> sqlite3.Cursor:
        self.stats.record(sql)
        if self.log_queries:
            logger.debug("SQL", extra={"sql": sql, "params": list(params)})
        return self._conn.execute(sql, tuple(params))

    def fetch_all(self, sql: str, params: Sequence[Any] = ()) -> list[dict[str, Any]]:
        cur = self.execute(sql, params)
        return [dict(row) for row in cur.fetchall()]

    def fetch_value(self, sql: str, params: Sequence[Any] = ()) -> Any:
        row = self.execute(sql, params).fetchone()
        if row is None:
            return None
        return row[0]

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------
    @property
    def in_transaction(self) -> bool:
        return self._conn.in_transaction

    def begin(self) -> None:
        logger.debug("BEGIN", extra={"database": self.path})
        self.execute("BEGIN")

    def commit(self) -> None:
        logger.debug("COMMIT", extra={"database": self.path})
        self.execute("COMMIT")

    def rollback(self) -> None:
        logger.debug("ROLLBACK", extra={"database": self.path})
        self.execute("ROLLBACK")

    def reconnect(self) -> None:
        """Close the current connection and open a new one."""
        logger.info("Reconnecting", extra={"database": self.path})
        try:
            self._conn.close()
        except sqlite3.Error as exc:
            logger.warning("Closing stale connection failed: %s", type(exc).__name__)
        self._conn = self._connect()

    def close(self) -> None:
        self._conn.close()

    # ------------------------------------------------------------------
    # Conventions
    # ------------------------------------------------------------------
    def columns(self, table: str) -> list[str]:
        rows = self._conn.execute(f'PRAGMA table_info("{table}")').fetchall()
        return [row["name"] for row in rows]

    def primary_key(self, table: str) -> list[str]:
        """Return the primary key columns of ``table`` in key order.

        Tables without a declared primary key fall back to ``["id"]``.
        """
        cached: Optional[list[str]] = self._primary_cache.get(table)
        if cached is not None:
            return list(cached)
        rows = self._conn.execute(f'PRAGMA table_info("{table}")').fetchall()
        keyed = sorted((row["pk"], row["name"]) for row in rows if row["pk"])
        primary = [name for _, name in keyed] or ["id"]
        self._primary_cache[table] = primary
        return list(primary)
