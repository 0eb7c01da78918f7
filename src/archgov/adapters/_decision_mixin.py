"""Decision store mixins: decision records and component links.

These mixin classes provide the business methods for DecisionStorePort
and LinkStorePort.  They rely on ``_StoreDialect`` methods
(``_connection``, ``_write_transaction``, ``_ph``, ``_placeholders``, etc.)
being available via MRO.

Every mutation runs inside ``_write_transaction`` with the owning
project's lock held; the caller's guard sees rows re-read under that lock.
"""

from __future__ import annotations

import json
from typing import Any

from archgov.errors import InvalidStateError
from archgov.models import (
    ComponentDecisionLink,
    DecisionRecord,
    DecisionStatus,
    Event,
    now_iso,
)
from archgov.adapters._store_dialect import DECISION_COLUMNS

_SUPERSEDED = DecisionStatus.SUPERSEDED.value


# ---------------------------------------------------------------------------
# DecisionStoreMixin
# ---------------------------------------------------------------------------

class DecisionStoreMixin:
    """Mixin providing DecisionStorePort methods."""

    def get_decision(self, decision_id: str) -> DecisionRecord | None:
        with self._connection() as conn:
            return self._fetch_decision(conn, decision_id)

    def get_decisions(self, decision_ids: list[str]) -> dict[str, DecisionRecord]:
        with self._connection() as conn:
            return self._fetch_decisions(conn, list(decision_ids))

    def list_decisions(
        self,
        project_id: str,
        *,
        status: str | None = None,
        limit: int | None = None,
    ) -> list[DecisionRecord]:
        where, params = self._build_where({"project_id": project_id, "status": status})
        sql = f"SELECT * FROM decisions{where} ORDER BY created_at DESC, id DESC"
        if limit is not None:
            sql += f" LIMIT {self._ph}"
            params.append(limit)
        with self._connection() as conn:
            rows = conn.execute(sql, params).fetchall()
            records = [self._row_to_decision(r) for r in rows]
            self._attach_links(conn, records)
        return records

    def snapshot_decisions(self, project_id: str) -> list[DecisionRecord]:
        """Every decision in the project, unordered and without links."""
        with self._connection() as conn:
            return self._fetch_project_decisions(conn, project_id)

    def insert_decision(
        self,
        record: DecisionRecord,
        component_ids: list[str] | None = None,
        *,
        guard: Any = None,
        inferred: bool = False,
        event: Event | None = None,
    ) -> DecisionRecord:
        component_ids = sorted(set(component_ids or []))
        with self._write_transaction() as conn:
            self._acquire_lock(conn, f"project:{record.project_id}")
            if self._fetch_decision(conn, record.id) is not None:
                raise InvalidStateError(
                    f"Decision {record.id} already exists",
                    entity_id=record.id,
                )
            if guard is not None:
                found = self._fetch_components(conn, component_ids)
                guard({cid: found.get(cid) for cid in component_ids})
            conn.execute(
                f"INSERT INTO decisions ({', '.join(DECISION_COLUMNS)}) "
                f"VALUES ({self._placeholders(len(DECISION_COLUMNS))})",
                (
                    record.id,
                    record.project_id,
                    record.title,
                    record.context,
                    record.decision,
                    record.rationale,
                    record.consequences,
                    record.status.value,
                    record.supersedes,
                    record.superseded_by,
                    json.dumps(record.tags),
                    record.created_by,
                    record.created_at,
                    record.updated_at,
                ),
            )
            link_sql = self._insert_or_ignore_sql(
                "component_decisions",
                ["component_id", "decision_id", "linked_at", "inferred"],
                self._placeholders(4),
            )
            for cid in component_ids:
                conn.execute(link_sql, (cid, record.id, record.created_at, int(inferred)))
            self._append_event(conn, event)
            return self._fetch_decision(conn, record.id)

    def update_decision(
        self,
        decision_id: str,
        guard: Any,
        *,
        event: Event | None = None,
    ) -> DecisionRecord:
        with self._write_transaction() as conn:
            self._lock_projects_of(conn, [decision_id])
            current = self._fetch_decision(conn, decision_id)
            updates = guard(current)
            if not updates:
                return current
            updates = dict(updates)
            if "tags" in updates:
                updates["tags"] = json.dumps(updates["tags"])
            if "status" in updates:
                updates["status"] = DecisionStatus(updates["status"]).value
            updates["updated_at"] = now_iso()
            ph = self._ph
            set_str = ", ".join(f"{col} = {ph}" for col in updates)
            cur = conn.execute(
                f"UPDATE decisions SET {set_str} WHERE id = {ph} AND status = {ph}",
                (*updates.values(), decision_id, current.status.value),
            )
            if cur.rowcount != 1:
                raise InvalidStateError(
                    f"Decision {decision_id} changed concurrently",
                    entity_id=decision_id,
                )
            self._append_event(conn, event)
            return self._fetch_decision(conn, decision_id)

    def apply_supersession(
        self,
        old_id: str,
        new_id: str,
        guard: Any,
        *,
        event: Event | None = None,
    ) -> tuple[DecisionRecord, DecisionRecord]:
        ph = self._ph
        with self._write_transaction() as conn:
            self._lock_projects_of(conn, [old_id, new_id])
            found = self._fetch_decisions(conn, [old_id, new_id])
            old, new = found.get(old_id), found.get(new_id)
            snapshot = (
                self._fetch_project_decisions(conn, old.project_id) if old else []
            )
            guard(old, new, snapshot)
            ts = now_iso()
            cur = conn.execute(
                f"UPDATE decisions SET status = {ph}, superseded_by = {ph}, "
                f"updated_at = {ph} WHERE id = {ph} AND status <> {ph} "
                f"AND superseded_by IS NULL",
                (_SUPERSEDED, new_id, ts, old_id, _SUPERSEDED),
            )
            if cur.rowcount != 1:
                raise InvalidStateError(
                    f"Decision {old_id} is already superseded",
                    entity_id=old_id,
                    status=_SUPERSEDED,
                )
            cur = conn.execute(
                f"UPDATE decisions SET supersedes = {ph}, updated_at = {ph} "
                f"WHERE id = {ph} AND status <> {ph} AND supersedes IS NULL",
                (old_id, ts, new_id, _SUPERSEDED),
            )
            if cur.rowcount != 1:
                raise InvalidStateError(
                    f"Decision {new_id} cannot take over {old_id}",
                    entity_id=new_id,
                )
            self._append_event(conn, event)
            result = self._fetch_decisions(conn, [old_id, new_id])
        return result[old_id], result[new_id]

    def revert_supersession(
        self,
        old_id: str,
        guard: Any,
        *,
        event: Event | None = None,
    ) -> tuple[DecisionRecord, DecisionRecord | None]:
        ph = self._ph
        with self._write_transaction() as conn:
            self._lock_projects_of(conn, [old_id])
            old = self._fetch_decision(conn, old_id)
            new_id = old.superseded_by if old else None
            new = self._fetch_decision(conn, new_id) if new_id else None
            snapshot = (
                self._fetch_project_decisions(conn, old.project_id) if old else []
            )
            guard(old, new, snapshot)
            ts = now_iso()
            conn.execute(
                f"UPDATE decisions SET status = {ph}, superseded_by = NULL, "
                f"updated_at = {ph} WHERE id = {ph}",
                (DecisionStatus.ACCEPTED.value, ts, old_id),
            )
            if new is not None:
                conn.execute(
                    f"UPDATE decisions SET supersedes = NULL, updated_at = {ph} "
                    f"WHERE id = {ph} AND supersedes = {ph}",
                    (ts, new.id, old_id),
                )
            self._append_event(conn, event)
            result = self._fetch_decisions(conn, [old_id, new_id])
        return result[old_id], result.get(new_id) if new_id else None

    def delete_decision(
        self,
        decision_id: str,
        guard: Any,
        *,
        event: Event | None = None,
    ) -> None:
        ph = self._ph
        with self._write_transaction() as conn:
            self._lock_projects_of(conn, [decision_id])
            current = self._fetch_decision(conn, decision_id)
            rows = conn.execute(
                f"SELECT * FROM decisions WHERE supersedes = {ph} OR superseded_by = {ph}",
                (decision_id, decision_id),
            ).fetchall()
            guard(current, [self._row_to_decision(r) for r in rows])
            conn.execute(
                f"DELETE FROM component_decisions WHERE decision_id = {ph}",
                (decision_id,),
            )
            conn.execute(f"DELETE FROM decisions WHERE id = {ph}", (decision_id,))
            self._append_event(conn, event)


# ---------------------------------------------------------------------------
# LinkStoreMixin
# ---------------------------------------------------------------------------

class LinkStoreMixin:
    """Mixin providing LinkStorePort methods."""

    def link(
        self,
        decision_id: str,
        component_id: str,
        *,
        guard: Any = None,
        inferred: bool = False,
        event: Event | None = None,
    ) -> bool:
        with self._write_transaction() as conn:
            self._lock_projects_of(conn, [decision_id])
            if guard is not None:
                decision = self._fetch_decision(conn, decision_id)
                component = self._fetch_components(conn, [component_id]).get(component_id)
                guard(decision, component)
            cur = conn.execute(
                self._insert_or_ignore_sql(
                    "component_decisions",
                    ["component_id", "decision_id", "linked_at", "inferred"],
                    self._placeholders(4),
                ),
                (component_id, decision_id, now_iso(), int(inferred)),
            )
            created = cur.rowcount == 1
            if created:
                self._append_event(conn, event)
        return created

    def unlink(
        self,
        decision_id: str,
        component_id: str,
        *,
        event: Event | None = None,
    ) -> bool:
        ph = self._ph
        with self._write_transaction() as conn:
            self._lock_projects_of(conn, [decision_id])
            cur = conn.execute(
                f"DELETE FROM component_decisions "
                f"WHERE decision_id = {ph} AND component_id = {ph}",
                (decision_id, component_id),
            )
            removed = cur.rowcount > 0
            if removed:
                self._append_event(conn, event)
        return removed

    def list_links(
        self,
        *,
        decision_id: str | None = None,
        component_id: str | None = None,
    ) -> list[ComponentDecisionLink]:
        where, params = self._build_where(
            {"decision_id": decision_id, "component_id": component_id},
        )
        with self._connection() as conn:
            rows = conn.execute(
                f"SELECT * FROM component_decisions{where} "
                f"ORDER BY component_id ASC, decision_id ASC",
                params,
            ).fetchall()
        return [self._row_to_link(r) for r in rows]

    def list_links_for_project(self, project_id: str) -> list[ComponentDecisionLink]:
        with self._connection() as conn:
            rows = conn.execute(
                f"SELECT l.component_id, l.decision_id, l.linked_at, l.inferred "
                f"FROM component_decisions l "
                f"JOIN decisions d ON d.id = l.decision_id "
                f"WHERE d.project_id = {self._ph} "
                f"ORDER BY l.component_id ASC, l.decision_id ASC",
                (project_id,),
            ).fetchall()
        return [self._row_to_link(r) for r in rows]
