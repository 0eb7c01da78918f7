"""Activity log facade backed by a GovernanceStore singleton.

Every decision mutation is recorded as an immutable event in the same
transaction as the write itself (see the store mixins).  This module is
the read side plus the process-wide store lifecycle: the store is
initialised once at startup via ``init()`` or ``configure()`` and then
accessed through a global singleton.
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Any

from archgov.defaults import QUERY_LIMIT_SMALL
from archgov.models import Event, new_id
from archgov.ports import GovernanceStore

# ---------------------------------------------------------------------------
# Store singleton (thread-safe)
# ---------------------------------------------------------------------------

_store: GovernanceStore | None = None
_store_lock = threading.Lock()


def configure(store: GovernanceStore) -> None:
    """Set the global store instance (useful for tests and startup).

    Closes the previous store (if any) to avoid leaked connections/pools.
    """
    global _store
    with _store_lock:
        if _store is not None and _store is not store:
            _store.close()
        _store = store


def get_store() -> GovernanceStore | None:
    """Return the current store (may be None if not configured)."""
    return _store


def close() -> None:
    """Close and release the global store instance.

    Safe to call multiple times or when no store is configured.
    """
    global _store
    with _store_lock:
        if _store is not None:
            _store.close()
            _store = None


def _get_store() -> GovernanceStore:
    """Return the configured store. Raises if not initialised."""
    if _store is None:
        raise RuntimeError(
            "Store not configured. Call event_log.init() or "
            "event_log.configure() first."
        )
    return _store


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------

def init(
    db_path: str | Path | None = None,
    *,
    backend: str | None = None,
    dsn: str | None = None,
) -> GovernanceStore:
    """Initialise (or re-initialise) the store.

    When *backend* is ``None`` the factory reads ``ARCHGOV_DB_BACKEND``
    (default ``"sqlite"``).
    """
    from archgov.adapters.store_factory import create_store
    store = create_store(backend=backend, db_path=db_path, dsn=dsn)
    configure(store)
    return store


# ---------------------------------------------------------------------------
# Event operations
# ---------------------------------------------------------------------------

def append(event: Event) -> Event:
    if not event.id:
        event.id = new_id()
    return _get_store().append(event)


def query(
    *,
    event_type: str | None = None,
    project_id: str | None = None,
    entity_id: str | None = None,
    since: str | None = None,
    limit: int = QUERY_LIMIT_SMALL,
) -> list[dict[str, Any]]:
    return _get_store().query(
        event_type=event_type, project_id=project_id,
        entity_id=entity_id, since=since, limit=limit,
    )


def count(**filters: Any) -> int:
    return _get_store().count(**filters)
