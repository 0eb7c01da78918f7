"""Abstract base class capturing SQL dialect differences between backends.

Subclasses implement the abstract members: ``_connection``,
``_write_transaction``, ``_acquire_lock``, ``_ph``, ``_excluded_prefix``,
``_insert_or_ignore_sql``, ``_translate_error`` and ``close``.  Concrete helpers that are purely
dialect-aware also live here so that mixin classes can call them via MRO.

Mixins never call ``commit()`` themselves: every write goes through
``_write_transaction``, which commits on success and rolls back on any
exception.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from typing import Any

from archgov.errors import StorageError
from archgov.models import (
    AnchorType,
    CommitTag,
    Component,
    ComponentDecisionLink,
    ComponentKind,
    DecisionRecord,
    DecisionStatus,
    Discussion,
    DiscussionStatus,
)


# ---------------------------------------------------------------------------
# Schema (shared between all backends)
# ---------------------------------------------------------------------------

SCHEMA = """
CREATE TABLE IF NOT EXISTS decisions (
    id            TEXT PRIMARY KEY,
    project_id    TEXT NOT NULL,
    title         TEXT NOT NULL,
    context       TEXT NOT NULL,
    decision      TEXT NOT NULL,
    rationale     TEXT NOT NULL,
    consequences  TEXT NOT NULL,
    status        TEXT NOT NULL,
    supersedes    TEXT UNIQUE,
    superseded_by TEXT UNIQUE,
    tags          TEXT NOT NULL DEFAULT '[]',
    created_by    TEXT NOT NULL DEFAULT 'system',
    created_at    TEXT NOT NULL,
    updated_at    TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_decisions_project ON decisions(project_id);
CREATE INDEX IF NOT EXISTS idx_decisions_status  ON decisions(project_id, status);

CREATE TABLE IF NOT EXISTS components (
    id          TEXT PRIMARY KEY,
    project_id  TEXT NOT NULL,
    name        TEXT NOT NULL,
    kind        TEXT NOT NULL DEFAULT 'service',
    created_at  TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_components_project ON components(project_id);

CREATE TABLE IF NOT EXISTS component_decisions (
    component_id TEXT NOT NULL,
    decision_id  TEXT NOT NULL,
    linked_at    TEXT NOT NULL,
    inferred     INTEGER NOT NULL DEFAULT 0,
    PRIMARY KEY (component_id, decision_id)
);
CREATE INDEX IF NOT EXISTS idx_links_decision ON component_decisions(decision_id);

CREATE TABLE IF NOT EXISTS commits (
    sha          TEXT PRIMARY KEY,
    project_id   TEXT NOT NULL,
    message      TEXT NOT NULL DEFAULT '',
    author       TEXT NOT NULL DEFAULT '',
    committed_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_commits_project ON commits(project_id);

CREATE TABLE IF NOT EXISTS component_commits (
    component_id  TEXT NOT NULL,
    commit_sha    TEXT NOT NULL,
    tagged_at     TEXT NOT NULL,
    auto_detected INTEGER NOT NULL DEFAULT 0,
    PRIMARY KEY (component_id, commit_sha)
);

CREATE TABLE IF NOT EXISTS discussions (
    id          TEXT PRIMARY KEY,
    project_id  TEXT NOT NULL,
    anchor_type TEXT NOT NULL,
    anchor_id   TEXT NOT NULL,
    title       TEXT NOT NULL DEFAULT '',
    status      TEXT NOT NULL DEFAULT 'open',
    created_at  TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_discussions_project ON discussions(project_id, status);

CREATE TABLE IF NOT EXISTS events (
    id          TEXT PRIMARY KEY,
    event_type  TEXT NOT NULL,
    project_id  TEXT,
    entity_id   TEXT,
    actor       TEXT NOT NULL DEFAULT 'system',
    timestamp   TEXT NOT NULL,
    payload     TEXT NOT NULL DEFAULT '{}'
);
CREATE INDEX IF NOT EXISTS idx_events_type    ON events(event_type);
CREATE INDEX IF NOT EXISTS idx_events_project ON events(project_id);
CREATE INDEX IF NOT EXISTS idx_events_time    ON events(timestamp);

CREATE TABLE IF NOT EXISTS risk_policies (
    project_id  TEXT PRIMARY KEY,
    data        TEXT NOT NULL,
    version     INTEGER NOT NULL DEFAULT 1,
    updated_at  TEXT NOT NULL
);
"""

DECISION_COLUMNS = [
    "id", "project_id", "title", "context", "decision", "rationale",
    "consequences", "status", "supersedes", "superseded_by", "tags",
    "created_by", "created_at", "updated_at",
]

_IN_BATCH = 500


class _StoreDialect(ABC):
    """Abstract SQL-dialect base.

    Provides the abstract members that vary per backend, plus concrete
    helpers (row mapping, bulk reads inside a transaction) used by the
    mixin classes.
    """

    # ------------------------------------------------------------------
    # Abstract template methods (what varies per backend)
    # ------------------------------------------------------------------

    @abstractmethod
    def _connection(self):
        """Context manager yielding an open connection for reads.

        Driver exceptions raised inside the block are translated into
        ``StorageError`` / ``StorageTimeoutError``.
        """

    @abstractmethod
    def _write_transaction(self):
        """Context manager yielding a connection inside a write transaction.

        Commits on clean exit, rolls back on any exception.
        """

    @abstractmethod
    def _acquire_lock(self, conn: Any, key: str) -> None:
        """Serialize writers on *key* until the current transaction ends.

        SQLite already holds the database write lock (``BEGIN IMMEDIATE``);
        PostgreSQL takes a transaction-scoped advisory lock.
        """

    @property
    @abstractmethod
    def _ph(self) -> str:
        """SQL parameter placeholder: ``'?'`` for SQLite, ``'%s'`` for PostgreSQL."""

    @property
    @abstractmethod
    def _excluded_prefix(self) -> str:
        """Upsert EXCLUDED reference: ``'excluded'`` or ``'EXCLUDED'``."""

    @abstractmethod
    def _insert_or_ignore_sql(
        self, table: str, columns: list[str], ph_str: str,
    ) -> str:
        """Build INSERT-or-ignore SQL for the backend dialect."""

    @abstractmethod
    def _translate_error(self, exc: Exception) -> StorageError:
        """Map a driver exception to the storage error taxonomy."""

    @abstractmethod
    def close(self) -> None: ...

    # ------------------------------------------------------------------
    # Concrete helpers
    # ------------------------------------------------------------------

    def _placeholders(self, n: int) -> str:
        """Return *n* comma-separated parameter placeholders."""
        return ", ".join([self._ph] * n)

    def _build_where(
        self, filters: dict[str, object],
    ) -> tuple[str, list]:
        """Build a WHERE clause from a {column: value} dict.

        Skips entries where value is None.  Returns (clause_str, params_list).
        clause_str is empty string when no filters match.
        """
        ph = self._ph
        clauses: list[str] = []
        params: list = []
        for col, val in filters.items():
            if val is not None:
                clauses.append(f"{col} = {ph}")
                params.append(val)
        where = (" WHERE " + " AND ".join(clauses)) if clauses else ""
        return where, params

    # ------------------------------------------------------------------
    # Row mapping
    # ------------------------------------------------------------------

    @staticmethod
    def _row_to_decision(row: Any) -> DecisionRecord:
        d = dict(row)
        tags = d.get("tags") or "[]"
        return DecisionRecord(
            id=d["id"],
            project_id=d["project_id"],
            title=d["title"],
            context=d["context"],
            decision=d["decision"],
            rationale=d["rationale"],
            consequences=d["consequences"],
            status=DecisionStatus(d["status"]),
            supersedes=d.get("supersedes"),
            superseded_by=d.get("superseded_by"),
            tags=json.loads(tags) if isinstance(tags, str) else list(tags),
            created_by=d["created_by"],
            created_at=d["created_at"],
            updated_at=d["updated_at"],
        )

    @staticmethod
    def _row_to_component(row: Any) -> Component:
        d = dict(row)
        return Component(
            id=d["id"],
            project_id=d["project_id"],
            name=d["name"],
            kind=ComponentKind(d["kind"]),
            created_at=d["created_at"],
        )

    @staticmethod
    def _row_to_link(row: Any) -> ComponentDecisionLink:
        d = dict(row)
        return ComponentDecisionLink(
            component_id=d["component_id"],
            decision_id=d["decision_id"],
            linked_at=d["linked_at"],
            inferred=bool(d["inferred"]),
        )

    @staticmethod
    def _row_to_commit_tag(row: Any) -> CommitTag:
        d = dict(row)
        return CommitTag(
            component_id=d["component_id"],
            commit_sha=d["commit_sha"],
            committed_at=d["committed_at"],
            tagged_at=d["tagged_at"],
            auto_detected=bool(d["auto_detected"]),
        )

    @staticmethod
    def _row_to_discussion(row: Any) -> Discussion:
        d = dict(row)
        return Discussion(
            id=d["id"],
            project_id=d["project_id"],
            anchor_type=AnchorType(d["anchor_type"]),
            anchor_id=d["anchor_id"],
            title=d["title"],
            status=DiscussionStatus(d["status"]),
            created_at=d["created_at"],
        )

    @staticmethod
    def _row_to_event_dict(row: Any) -> dict[str, Any]:
        d = dict(row)
        payload = d["payload"]
        d["payload"] = json.loads(payload) if isinstance(payload, str) else payload
        return d

    # ------------------------------------------------------------------
    # Reads usable inside an open connection / transaction
    # ------------------------------------------------------------------

    def _fetch_decisions(
        self, conn: Any, decision_ids: list[str],
    ) -> dict[str, DecisionRecord]:
        ids = [i for i in dict.fromkeys(decision_ids) if i]
        if not ids:
            return {}
        rows = conn.execute(
            f"SELECT * FROM decisions WHERE id IN ({self._placeholders(len(ids))})",
            tuple(ids),
        ).fetchall()
        records = {r["id"]: self._row_to_decision(r) for r in rows}
        self._attach_links(conn, list(records.values()))
        return records

    def _fetch_decision(self, conn: Any, decision_id: str) -> DecisionRecord | None:
        return self._fetch_decisions(conn, [decision_id]).get(decision_id)

    def _lock_projects_of(self, conn: Any, decision_ids: list[str]) -> None:
        """Take the project write lock for every project owning *decision_ids*.

        ``project_id`` never changes after insert, so reading it before the
        lock is taken is safe.  Locks are taken in sorted order.
        """
        ids = [i for i in dict.fromkeys(decision_ids) if i]
        if not ids:
            return
        rows = conn.execute(
            f"SELECT DISTINCT project_id FROM decisions "
            f"WHERE id IN ({self._placeholders(len(ids))})",
            tuple(ids),
        ).fetchall()
        for project_id in sorted(r["project_id"] for r in rows):
            self._acquire_lock(conn, f"project:{project_id}")

    def _fetch_project_decisions(
        self, conn: Any, project_id: str,
    ) -> list[DecisionRecord]:
        rows = conn.execute(
            f"SELECT * FROM decisions WHERE project_id = {self._ph}",
            (project_id,),
        ).fetchall()
        return [self._row_to_decision(r) for r in rows]

    def _fetch_components(
        self, conn: Any, component_ids: list[str],
    ) -> dict[str, Component]:
        ids = [i for i in dict.fromkeys(component_ids) if i]
        if not ids:
            return {}
        rows = conn.execute(
            f"SELECT * FROM components WHERE id IN ({self._placeholders(len(ids))})",
            tuple(ids),
        ).fetchall()
        return {r["id"]: self._row_to_component(r) for r in rows}

    def _attach_links(self, conn: Any, records: list[DecisionRecord]) -> None:
        """Populate ``linked_component_ids`` (sorted) on *records* in place."""
        if not records:
            return
        by_id = {r.id: r for r in records}
        for r in records:
            r.linked_component_ids = []
        ids = list(by_id)
        # batched to stay under the bound-parameter cap
        for i in range(0, len(ids), _IN_BATCH):
            batch = ids[i:i + _IN_BATCH]
            rows = conn.execute(
                f"SELECT component_id, decision_id FROM component_decisions "
                f"WHERE decision_id IN ({self._placeholders(len(batch))})",
                tuple(batch),
            ).fetchall()
            for row in rows:
                by_id[row["decision_id"]].linked_component_ids.append(row["component_id"])
        for r in records:
            r.linked_component_ids.sort()

    def _append_event(self, conn: Any, event: Any) -> None:
        if event is None:
            return
        conn.execute(
            f"INSERT INTO events (id, event_type, project_id, entity_id, actor, "
            f"timestamp, payload) VALUES ({self._placeholders(7)})",
            (
                event.id,
                event.event_type,
                event.project_id,
                event.entity_id,
                event.actor,
                event.timestamp,
                json.dumps(event.payload, default=str),
            ),
        )
