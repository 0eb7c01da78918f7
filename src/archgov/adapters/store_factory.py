"""Factory for creating the appropriate GovernanceStore backend.

Reads ``ARCHGOV_DB_BACKEND`` (default: ``sqlite``) and returns the
corresponding store implementation.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from archgov.defaults import DEFAULT_DB_PATH, STORE_TIMEOUT_SECONDS
from archgov.ports import GovernanceStore


def create_store(
    *,
    backend: str | None = None,
    db_path: str | Path | None = None,
    dsn: str | None = None,
    **kwargs: Any,
) -> GovernanceStore:
    """Create and return a ``GovernanceStore`` for the requested backend.

    Parameters
    ----------
    backend:
        ``"sqlite"`` or ``"postgres"``.  Falls back to the
        ``ARCHGOV_DB_BACKEND`` env var (default ``"sqlite"``).
    db_path:
        Path to the SQLite file.  Falls back to ``ARCHGOV_DB_PATH``.
    dsn:
        PostgreSQL connection string.  Required when *backend* is ``"postgres"``.
        Falls back to ``ARCHGOV_PG_DSN``.
    **kwargs:
        Extra keyword arguments forwarded to the store constructor
        (e.g. ``min_size``, ``max_size`` for the Postgres pool).  ``timeout``
        defaults to ``ARCHGOV_STORE_TIMEOUT`` seconds.
    """
    backend = (backend or os.environ.get("ARCHGOV_DB_BACKEND", "sqlite")).lower()
    kwargs.setdefault(
        "timeout",
        float(os.environ.get("ARCHGOV_STORE_TIMEOUT", STORE_TIMEOUT_SECONDS)),
    )

    if backend == "sqlite":
        from archgov.adapters.sqlite_store import SqliteStore

        path = db_path or os.environ.get("ARCHGOV_DB_PATH", DEFAULT_DB_PATH)
        return SqliteStore(path, timeout=kwargs["timeout"])

    if backend == "postgres":
        from archgov.adapters.postgres_store import PostgresStore

        pg_dsn = dsn or os.environ.get("ARCHGOV_PG_DSN")
        if not pg_dsn:
            raise ValueError(
                "PostgreSQL backend requires a DSN.  Set ARCHGOV_PG_DSN or pass dsn=."
            )
        return PostgresStore(pg_dsn, **kwargs)

    raise ValueError(f"Unknown backend: {backend!r}  (expected 'sqlite' or 'postgres')")
