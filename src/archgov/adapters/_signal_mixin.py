"""Architecture-map and signal-source mixins: components, commits, discussions.

These tables are owned by neighbouring subsystems (architecture map, git
integration, discussions); the store exposes just enough to read risk
signals from them and to seed them in tests and demos.
"""

from __future__ import annotations

from typing import Any

from archgov.errors import NotFoundError, ValidationError
from archgov.models import (
    CommitTag,
    Component,
    Discussion,
    DiscussionStatus,
    now_iso,
)


# ---------------------------------------------------------------------------
# ComponentStoreMixin
# ---------------------------------------------------------------------------

class ComponentStoreMixin:
    """Mixin providing ComponentStorePort methods."""

    def upsert_component(self, component: Component) -> None:
        ex = self._excluded_prefix
        with self._write_transaction() as conn:
            conn.execute(
                f"INSERT INTO components (id, project_id, name, kind, created_at) "
                f"VALUES ({self._placeholders(5)}) "
                f"ON CONFLICT(id) DO UPDATE SET "
                f"name={ex}.name, kind={ex}.kind",
                (
                    component.id,
                    component.project_id,
                    component.name,
                    component.kind.value,
                    component.created_at,
                ),
            )

    def get_component(self, component_id: str) -> Component | None:
        with self._connection() as conn:
            return self._fetch_components(conn, [component_id]).get(component_id)

    def list_components(self, project_id: str) -> list[Component]:
        with self._connection() as conn:
            rows = conn.execute(
                f"SELECT * FROM components WHERE project_id = {self._ph} "
                "ORDER BY id ASC",
                (project_id,),
            ).fetchall()
        return [self._row_to_component(r) for r in rows]

    def delete_component(self, component_id: str) -> bool:
        ph = self._ph
        with self._write_transaction() as conn:
            conn.execute(
                f"DELETE FROM component_decisions WHERE component_id = {ph}",
                (component_id,),
            )
            conn.execute(
                f"DELETE FROM component_commits WHERE component_id = {ph}",
                (component_id,),
            )
            cur = conn.execute(f"DELETE FROM components WHERE id = {ph}", (component_id,))
            return cur.rowcount > 0


# ---------------------------------------------------------------------------
# SignalSourceMixin
# ---------------------------------------------------------------------------

class SignalSourceMixin:
    """Mixin providing SignalSourcePort methods (commits and discussions)."""

    def record_commit(
        self,
        project_id: str,
        sha: str,
        committed_at: str,
        *,
        message: str = "",
        author: str = "",
    ) -> None:
        ex = self._excluded_prefix
        with self._write_transaction() as conn:
            conn.execute(
                f"INSERT INTO commits (sha, project_id, message, author, committed_at) "
                f"VALUES ({self._placeholders(5)}) "
                f"ON CONFLICT(sha) DO UPDATE SET "
                f"message={ex}.message, author={ex}.author, "
                f"committed_at={ex}.committed_at",
                (sha, project_id, message, author, committed_at),
            )

    def tag_commit(
        self, component_id: str, sha: str, *, auto_detected: bool = False,
    ) -> None:
        """Attribute a commit to a component of the same project."""
        ph = self._ph
        with self._write_transaction() as conn:
            component = self._fetch_components(conn, [component_id]).get(component_id)
            if component is None:
                raise NotFoundError("Component", component_id)
            row = conn.execute(
                f"SELECT project_id FROM commits WHERE sha = {ph}", (sha,),
            ).fetchone()
            if row is None:
                raise NotFoundError("Commit", sha)
            if row["project_id"] != component.project_id:
                raise ValidationError(
                    f"Commit {sha} and component {component_id} belong to different projects",
                    entity_id=component_id,
                )
            conn.execute(
                self._insert_or_ignore_sql(
                    "component_commits",
                    ["component_id", "commit_sha", "tagged_at", "auto_detected"],
                    self._placeholders(4),
                ),
                (component_id, sha, now_iso(), int(auto_detected)),
            )

    def list_commit_tags(self, project_id: str) -> list[CommitTag]:
        with self._connection() as conn:
            rows = conn.execute(
                f"SELECT t.component_id, t.commit_sha, t.tagged_at, t.auto_detected, "
                f"c.committed_at "
                f"FROM component_commits t "
                f"JOIN commits c ON c.sha = t.commit_sha "
                f"JOIN components p ON p.id = t.component_id "
                f"WHERE p.project_id = {self._ph} "
                f"ORDER BY t.component_id ASC, c.committed_at ASC",
                (project_id,),
            ).fetchall()
        return [self._row_to_commit_tag(r) for r in rows]

    def add_discussion(self, discussion: Discussion) -> None:
        with self._write_transaction() as conn:
            conn.execute(
                f"INSERT INTO discussions (id, project_id, anchor_type, anchor_id, "
                f"title, status, created_at) VALUES ({self._placeholders(7)})",
                (
                    discussion.id,
                    discussion.project_id,
                    discussion.anchor_type.value,
                    discussion.anchor_id,
                    discussion.title,
                    discussion.status.value,
                    discussion.created_at,
                ),
            )

    def set_discussion_status(self, discussion_id: str, status: str) -> bool:
        ph = self._ph
        with self._write_transaction() as conn:
            cur = conn.execute(
                f"UPDATE discussions SET status = {ph} WHERE id = {ph}",
                (DiscussionStatus(status).value, discussion_id),
            )
            return cur.rowcount > 0

    def list_discussions(
        self, project_id: str, *, status: str | None = None,
    ) -> list[Discussion]:
        where, params = self._build_where({"project_id": project_id, "status": status})
        with self._connection() as conn:
            rows: list[Any] = conn.execute(
                f"SELECT * FROM discussions{where} ORDER BY created_at ASC, id ASC",
                params,
            ).fetchall()
        return [self._row_to_discussion(r) for r in rows]
