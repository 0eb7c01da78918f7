"""Core store mixins: activity events and risk policies.

These mixin classes provide the business methods for EventStorePort and
RiskPolicyPort.  They rely on ``_StoreDialect`` methods being available
via MRO.
"""

from __future__ import annotations

import json
from typing import Any

from archgov.defaults import QUERY_LIMIT_SMALL
from archgov.models import Event, now_iso

_ALLOWED_FILTER_COLS = {"event_type", "project_id", "entity_id", "actor"}


# ---------------------------------------------------------------------------
# EventStoreMixin
# ---------------------------------------------------------------------------

class EventStoreMixin:
    """Mixin providing EventStorePort methods."""

    def append(self, event: Event) -> Event:
        with self._write_transaction() as conn:
            self._append_event(conn, event)
        return event

    def query(
        self,
        *,
        event_type: str | None = None,
        project_id: str | None = None,
        entity_id: str | None = None,
        since: str | None = None,
        limit: int = QUERY_LIMIT_SMALL,
    ) -> list[dict[str, Any]]:
        ph = self._ph
        where, params = self._build_where({
            "event_type": event_type,
            "project_id": project_id,
            "entity_id": entity_id,
        })
        if since:
            where += (" AND " if where else " WHERE ") + f"timestamp >= {ph}"
            params.append(since)
        params.append(limit)
        sql = f"SELECT * FROM events{where} ORDER BY timestamp DESC, id DESC LIMIT {ph}"
        with self._connection() as conn:
            rows = conn.execute(sql, params).fetchall()
        return [self._row_to_event_dict(r) for r in rows]

    def count(self, **filters: Any) -> int:
        for k in filters:
            if k not in _ALLOWED_FILTER_COLS:
                raise ValueError(f"Invalid filter column: {k}")
        where, params = self._build_where(filters)
        sql = f"SELECT COUNT(*) AS cnt FROM events{where}"
        with self._connection() as conn:
            return conn.execute(sql, params).fetchone()["cnt"]


# ---------------------------------------------------------------------------
# RiskPolicyMixin
# ---------------------------------------------------------------------------

class RiskPolicyMixin:
    """Mixin providing RiskPolicyPort methods.

    Policies are versioned: every upsert bumps ``version`` by one.
    """

    def upsert_risk_policy(
        self,
        project_id: str,
        data: dict[str, Any],
        *,
        event: Event | None = None,
    ) -> int:
        ph = self._ph
        ex = self._excluded_prefix
        with self._write_transaction() as conn:
            self._acquire_lock(conn, f"project:{project_id}")
            row = conn.execute(
                f"SELECT version FROM risk_policies WHERE project_id = {ph}",
                (project_id,),
            ).fetchone()
            version = (row["version"] + 1) if row else 1
            conn.execute(
                f"INSERT INTO risk_policies (project_id, data, version, updated_at) "
                f"VALUES ({self._placeholders(4)}) "
                f"ON CONFLICT(project_id) DO UPDATE SET "
                f"data={ex}.data, version={ex}.version, "
                f"updated_at={ex}.updated_at",
                (project_id, json.dumps(data), version, now_iso()),
            )
            if event is not None:
                event.payload["version"] = version
            self._append_event(conn, event)
        return version

    def get_risk_policy(self, project_id: str) -> dict[str, Any] | None:
        with self._connection() as conn:
            row = conn.execute(
                f"SELECT data, version FROM risk_policies WHERE project_id = {self._ph}",
                (project_id,),
            ).fetchone()
        if row is None:
            return None
        d = json.loads(row["data"])
        d["version"] = row["version"]
        return d
