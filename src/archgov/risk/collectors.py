"""Read-only signal collectors and their concurrent runner.

Each collector snapshots what it needs from the store for one project and
delegates to the pure functions in ``archgov.risk.signals``.  Collectors are
independent, so ``collect_signals`` runs them side by side.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from datetime import datetime, timezone
from typing import Callable, Protocol

from archgov.defaults import (
    CHURN_WINDOW_DAYS,
    SIGNAL_COLLECTION_TIMEOUT,
    SIGNAL_COMMIT_CHURN,
    SIGNAL_DECISION_VOLATILITY,
    SIGNAL_DISCUSSION_VOLUME,
)
from archgov.errors import StorageTimeoutError
from archgov.models import DiscussionStatus
from archgov.ports import GovernanceStore
from archgov.risk.signals import commit_churn, decision_volatility, discussion_volume

log = logging.getLogger("archgov.risk.collectors")

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SignalCollector(Protocol):
    name: str

    def collect(self, project_id: str) -> dict[str, float]: ...


class CommitTagCollector:
    name = SIGNAL_COMMIT_CHURN

    def __init__(
        self,
        store: GovernanceStore,
        *,
        clock: Clock = utc_now,
        window_days: float = CHURN_WINDOW_DAYS,
    ) -> None:
        self._store = store
        self._clock = clock
        self._window_days = window_days

    def collect(self, project_id: str) -> dict[str, float]:
        tags = self._store.list_commit_tags(project_id)
        return commit_churn(tags, self._clock(), self._window_days)


class DecisionVolatilityCollector:
    name = SIGNAL_DECISION_VOLATILITY

    def __init__(self, store: GovernanceStore) -> None:
        self._store = store

    def collect(self, project_id: str) -> dict[str, float]:
        links = self._store.list_links_for_project(project_id)
        statuses = {d.id: d.status for d in self._store.snapshot_decisions(project_id)}
        return decision_volatility(links, statuses)


class DiscussionVolumeCollector:
    name = SIGNAL_DISCUSSION_VOLUME

    def __init__(self, store: GovernanceStore) -> None:
        self._store = store

    def collect(self, project_id: str) -> dict[str, float]:
        discussions = self._store.list_discussions(
            project_id, status=DiscussionStatus.OPEN.value,
        )
        links = self._store.list_links_for_project(project_id)
        return discussion_volume(discussions, links)


def default_collectors(
    store: GovernanceStore, *, clock: Clock = utc_now,
) -> list[SignalCollector]:
    return [
        CommitTagCollector(store, clock=clock),
        DecisionVolatilityCollector(store),
        DiscussionVolumeCollector(store),
    ]


def collect_signals(
    collectors: list[SignalCollector],
    project_id: str,
    *,
    timeout: float | None = SIGNAL_COLLECTION_TIMEOUT,
) -> dict[str, dict[str, float]]:
    """Run every collector concurrently for *project_id*.

    Returns ``{signal_name: {component_id: raw_value}}``.  The first
    collector error propagates unchanged; missing the deadline raises
    StorageTimeoutError.
    """
    started = time.monotonic()
    pool = ThreadPoolExecutor(
        max_workers=max(1, len(collectors)),
        thread_name_prefix="archgov-signal",
    )
    try:
        futures = {pool.submit(c.collect, project_id): c.name for c in collectors}
        done, pending = wait(futures, timeout=timeout, return_when=FIRST_EXCEPTION)
        for fut in done:
            exc = fut.exception()
            if exc is not None:
                raise exc
        if pending:
            names = sorted(futures[f] for f in pending)
            raise StorageTimeoutError(
                f"Signal collection for {project_id} exceeded {timeout}s "
                f"(pending: {', '.join(names)})",
                entity_id=project_id,
            )
        results = {futures[f]: f.result() for f in done}
    finally:
        pool.shutdown(wait=False, cancel_futures=True)
    log.debug(
        "signals collected for %s in %.1fms",
        project_id, (time.monotonic() - started) * 1000,
    )
    return results
