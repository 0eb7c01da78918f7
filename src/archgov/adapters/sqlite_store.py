"""SQLite implementation of GovernanceStore.

Each operation opens its own connection.  Writes run under
``BEGIN IMMEDIATE`` so that one writer at a time holds the database lock;
the busy ``timeout`` bounds how long a writer waits for it.
Application code should depend on the ports, not on this module directly.
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

from archgov.adapters._core_mixin import EventStoreMixin, RiskPolicyMixin
from archgov.adapters._decision_mixin import DecisionStoreMixin, LinkStoreMixin
from archgov.adapters._signal_mixin import ComponentStoreMixin, SignalSourceMixin
from archgov.adapters._store_dialect import SCHEMA, _StoreDialect
from archgov.defaults import STORE_TIMEOUT_SECONDS
from archgov.errors import StorageError, StorageTimeoutError

log = logging.getLogger("archgov.adapters.sqlite")


class SqliteStore(
    DecisionStoreMixin,
    LinkStoreMixin,
    ComponentStoreMixin,
    SignalSourceMixin,
    EventStoreMixin,
    RiskPolicyMixin,
    _StoreDialect,
):
    """GovernanceStore backed by a single SQLite file."""

    def __init__(
        self,
        db_path: str | Path,
        *,
        timeout: float = STORE_TIMEOUT_SECONDS,
    ) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._timeout = timeout
        with self._connection() as conn:
            conn.execute("PRAGMA journal_mode=WAL")
            conn.executescript(SCHEMA)

    @property
    def db_path(self) -> Path:
        return self._db_path

    def close(self) -> None:
        pass  # connections are per-operation

    # ------------------------------------------------------------------
    # Dialect
    # ------------------------------------------------------------------

    @property
    def _ph(self) -> str:
        return "?"

    @property
    def _excluded_prefix(self) -> str:
        return "excluded"

    def _insert_or_ignore_sql(
        self, table: str, columns: list[str], ph_str: str,
    ) -> str:
        return f"INSERT OR IGNORE INTO {table} ({', '.join(columns)}) VALUES ({ph_str})"

    def _translate_error(self, exc: Exception) -> StorageError:
        msg = str(exc)
        if isinstance(exc, sqlite3.OperationalError) and (
            "locked" in msg or "busy" in msg
        ):
            return StorageTimeoutError(f"SQLite lock wait exceeded: {msg}")
        return StorageError(f"SQLite error: {msg}")

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(
            str(self._db_path),
            timeout=self._timeout,
            isolation_level=None,
        )
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = self._connect()
        except sqlite3.Error as exc:
            raise self._translate_error(exc) from exc
        try:
            yield conn
        except sqlite3.Error as exc:
            raise self._translate_error(exc) from exc
        finally:
            conn.close()

    @contextmanager
    def _write_transaction(self) -> Iterator[sqlite3.Connection]:
        with self._connection() as conn:
            try:
                conn.execute("BEGIN IMMEDIATE")
            except sqlite3.Error as exc:
                log.warning("write lock not acquired on %s: %s", self._db_path, exc)
                raise
            try:
                yield conn
            except BaseException:
                conn.rollback()
                raise
            conn.commit()

    def _acquire_lock(self, conn: Any, key: str) -> None:
        """No-op: ``BEGIN IMMEDIATE`` already holds the database write lock."""
