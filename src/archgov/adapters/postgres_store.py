"""PostgreSQL implementation of GovernanceStore.

Uses psycopg 3 (sync mode) with psycopg_pool.ConnectionPool for
connection management.  Schema is identical to SQLite (TEXT columns
with JSON serialisation, not JSONB) for migration simplicity.

Writers on the same project are serialized with a transaction-scoped
advisory lock; ``statement_timeout`` bounds both queries and lock waits.
"""

from __future__ import annotations

import hashlib
import logging
import struct
from contextlib import contextmanager
from typing import Any, Iterator

import psycopg
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool, PoolTimeout

from archgov.adapters._core_mixin import EventStoreMixin, RiskPolicyMixin
from archgov.adapters._decision_mixin import DecisionStoreMixin, LinkStoreMixin
from archgov.adapters._signal_mixin import ComponentStoreMixin, SignalSourceMixin
from archgov.adapters._store_dialect import SCHEMA, _StoreDialect
from archgov.defaults import STORE_TIMEOUT_SECONDS
from archgov.errors import StorageError, StorageTimeoutError

log = logging.getLogger("archgov.adapters.postgres")


def _lock_id(lock_name: str) -> int:
    """Convert lock name to bigint for pg_advisory_xact_lock."""
    h = hashlib.md5(lock_name.encode()).digest()
    return struct.unpack(">q", h[:8])[0]


class PostgresStore(
    DecisionStoreMixin,
    LinkStoreMixin,
    ComponentStoreMixin,
    SignalSourceMixin,
    EventStoreMixin,
    RiskPolicyMixin,
    _StoreDialect,
):
    """GovernanceStore backed by PostgreSQL via psycopg 3 + connection pool."""

    def __init__(
        self,
        dsn: str,
        *,
        min_size: int = 2,
        max_size: int = 10,
        timeout: float = STORE_TIMEOUT_SECONDS,
        run_schema: bool = True,
    ) -> None:
        self._dsn = dsn
        self._timeout = timeout
        self._pool = ConnectionPool(
            dsn,
            min_size=min_size,
            max_size=max_size,
            timeout=timeout,
            kwargs={
                "row_factory": dict_row,
                "options": f"-c statement_timeout={int(timeout * 1000)}",
            },
        )
        if run_schema:
            self._apply_schema()

    def _apply_schema(self) -> None:
        """Create tables and indexes if they don't exist."""
        with self._write_transaction() as conn:
            conn.execute(SCHEMA)

    @property
    def dsn(self) -> str:
        return self._dsn

    def close(self) -> None:
        self._pool.close()

    # ------------------------------------------------------------------
    # Dialect
    # ------------------------------------------------------------------

    @property
    def _ph(self) -> str:
        return "%s"

    @property
    def _excluded_prefix(self) -> str:
        return "EXCLUDED"

    def _insert_or_ignore_sql(
        self, table: str, columns: list[str], ph_str: str,
    ) -> str:
        return (
            f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({ph_str}) "
            f"ON CONFLICT DO NOTHING"
        )

    def _translate_error(self, exc: Exception) -> StorageError:
        if isinstance(exc, (PoolTimeout, psycopg.errors.QueryCanceled)):
            return StorageTimeoutError(f"PostgreSQL timeout: {exc}")
        return StorageError(f"PostgreSQL error: {exc}")

    @contextmanager
    def _connection(self) -> Iterator[psycopg.Connection]:
        try:
            with self._pool.connection(timeout=self._timeout) as conn:
                yield conn
        except (PoolTimeout, psycopg.Error) as exc:
            raise self._translate_error(exc) from exc

    @contextmanager
    def _write_transaction(self) -> Iterator[psycopg.Connection]:
        with self._connection() as conn:
            with conn.transaction():
                yield conn

    def _acquire_lock(self, conn: Any, key: str) -> None:
        conn.execute("SELECT pg_advisory_xact_lock(%s)", (_lock_id(key),))
