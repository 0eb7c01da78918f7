"""Supersession chain manager: validated mutations of the decision graph.

Every mutation hands the store a guard.  The store runs it inside the write
transaction against freshly re-read rows, so checks like "old is not yet
superseded" or "this edge keeps the graph acyclic" cannot go stale between
check and write.
"""

from __future__ import annotations

import logging
from typing import Any

from archgov.decisions.graph import SupersessionGraph
from archgov.decisions.validation import (
    diff_patch,
    parse_status,
    validate_create,
    validate_patch,
)
from archgov.errors import (
    CycleError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from archgov.models import (
    Component,
    DecisionRecord,
    DecisionStatus,
    Event,
    EventType,
    new_id,
    now_iso,
)
from archgov.ports import GovernanceStore

log = logging.getLogger("archgov.decisions")


class SupersessionChainManager:
    """Create, edit, supersede and delete decision records."""

    def __init__(self, store: GovernanceStore) -> None:
        self._store = store

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, decision_id: str) -> DecisionRecord:
        record = self._store.get_decision(decision_id)
        if record is None:
            raise NotFoundError("Decision", decision_id)
        return record

    def list_by_project(
        self, project_id: str, status: str | DecisionStatus | None = None,
    ) -> list[DecisionRecord]:
        """Project decisions, newest first, optionally filtered by status."""
        status_value = None
        if status is not None:
            status_value = parse_status(status).value
        return self._store.list_decisions(project_id, status=status_value)

    def get_supersession_chain(self, decision_id: str) -> list[DecisionRecord]:
        """Full chain through *decision_id*, oldest -> newest.

        The walk runs over a snapshot of the project.  A revisited node
        raises CycleError; a pointer to a missing record ends the walk on
        that side.
        """
        record = self.get(decision_id)
        snapshot = self._store.snapshot_decisions(record.project_id)
        by_id = {r.id: r for r in snapshot}
        by_id[record.id] = record
        ids = SupersessionGraph.from_records(by_id.values()).chain(decision_id)

        pos = ids.index(decision_id)
        start, end = pos, pos
        while start > 0 and ids[start - 1] in by_id:
            start -= 1
        while end < len(ids) - 1 and ids[end + 1] in by_id:
            end += 1
        if start > 0 or end < len(ids) - 1:
            log.warning(
                "dangling supersession pointer in chain of %s: %s",
                decision_id,
                [i for i in ids if i not in by_id],
            )
        return [by_id[i] for i in ids[start:end + 1]]

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create(self, data: dict[str, Any], *, actor: str | None = None) -> DecisionRecord:
        cleaned = validate_create(data)
        project_id = cleaned["project_id"]
        component_ids = cleaned["linked_component_ids"]
        ts = now_iso()
        record = DecisionRecord(
            id=cleaned.get("id") or new_id(),
            project_id=project_id,
            title=cleaned["title"],
            context=cleaned["context"],
            decision=cleaned["decision"],
            rationale=cleaned["rationale"],
            consequences=cleaned["consequences"],
            status=cleaned["status"],
            tags=cleaned["tags"],
            created_by=cleaned["created_by"],
            created_at=ts,
            updated_at=ts,
        )

        def guard(components: dict[str, Component | None]) -> None:
            missing = sorted(cid for cid, c in components.items() if c is None)
            if missing:
                raise NotFoundError("Component", ", ".join(missing))
            foreign = sorted(
                cid for cid, c in components.items() if c.project_id != project_id
            )
            if foreign:
                raise ValidationError(
                    f"Components belong to another project: {', '.join(foreign)}",
                    errors=[
                        {"field": "linked_component_ids", "message": f"{cid} is not in {project_id}"}
                        for cid in foreign
                    ],
                )

        event = Event(
            event_type=EventType.DECISION_CREATED,
            project_id=project_id,
            entity_id=record.id,
            actor=actor or record.created_by,
            payload={
                "title": record.title,
                "status": record.status.value,
                "linked_component_ids": component_ids,
            },
        )
        created = self._store.insert_decision(
            record, component_ids, guard=guard, event=event,
        )
        log.info("decision created: %s in %s", created.id, project_id)
        return created

    def update(
        self, decision_id: str, patch: dict[str, Any], *, actor: str = "system",
    ) -> DecisionRecord:
        cleaned = validate_patch(patch)
        event = Event(
            event_type=EventType.DECISION_UPDATED,
            entity_id=decision_id,
            actor=actor,
        )

        def guard(current: DecisionRecord | None) -> dict[str, Any]:
            if current is None:
                raise NotFoundError("Decision", decision_id)
            updates = diff_patch(current, cleaned)
            event.project_id = current.project_id
            event.payload = {
                "fields": sorted(updates),
                "from_status": current.status.value,
            }
            return updates

        updated = self._store.update_decision(decision_id, guard, event=event)
        log.info("decision updated: %s fields=%s", decision_id, event.payload.get("fields"))
        return updated

    def supersede(
        self, old_id: str, new_id: str, *, actor: str = "system",
    ) -> tuple[DecisionRecord, DecisionRecord]:
        """Mark *old_id* as superseded by *new_id* in one transaction."""
        event = Event(
            event_type=EventType.DECISION_SUPERSEDED,
            entity_id=old_id,
            actor=actor,
            payload={"superseded_by": new_id},
        )

        def guard(
            old: DecisionRecord | None,
            new: DecisionRecord | None,
            snapshot: list[DecisionRecord],
        ) -> None:
            if old is None:
                raise NotFoundError("Decision", old_id)
            if new is None:
                raise NotFoundError("Decision", new_id)
            if old_id == new_id:
                raise InvalidStateError(
                    f"Decision {old_id} cannot supersede itself",
                    entity_id=old_id,
                    status=old.status.value,
                )
            if old.status == DecisionStatus.SUPERSEDED or old.superseded_by:
                raise InvalidStateError(
                    f"Decision {old_id} is already superseded by {old.superseded_by}",
                    entity_id=old_id,
                    status=old.status.value,
                )
            if old.project_id != new.project_id:
                raise ValidationError(
                    f"Decisions {old_id} and {new_id} belong to different projects",
                    entity_id=old_id,
                )
            graph = SupersessionGraph.from_records(snapshot)
            if graph.would_create_cycle(old_id, new_id):
                raise CycleError(
                    f"Decision {new_id} already precedes {old_id}; "
                    f"superseding would create a cycle",
                    entity_id=new_id,
                    status=new.status.value,
                )
            if new.status == DecisionStatus.SUPERSEDED:
                raise InvalidStateError(
                    f"Decision {new_id} is itself superseded",
                    entity_id=new_id,
                    status=new.status.value,
                )
            if new.supersedes:
                raise InvalidStateError(
                    f"Decision {new_id} already supersedes {new.supersedes}",
                    entity_id=new_id,
                    status=new.status.value,
                )
            event.project_id = old.project_id
            event.payload["previous_status"] = old.status.value

        old, new = self._store.apply_supersession(old_id, new_id, guard, event=event)
        log.info("decision superseded: %s -> %s", old_id, new_id)
        return old, new

    def revert_supersession(
        self, old_id: str, *, actor: str = "system",
    ) -> tuple[DecisionRecord, DecisionRecord | None]:
        """Undo ``supersede(old_id, ...)``: clear both pointers, old -> ACCEPTED."""
        event = Event(
            event_type=EventType.DECISION_SUPERSESSION_REVERTED,
            entity_id=old_id,
            actor=actor,
        )

        def guard(
            old: DecisionRecord | None,
            new: DecisionRecord | None,
            snapshot: list[DecisionRecord],
        ) -> None:
            if old is None:
                raise NotFoundError("Decision", old_id)
            if old.status != DecisionStatus.SUPERSEDED:
                raise InvalidStateError(
                    f"Decision {old_id} is not superseded",
                    entity_id=old_id,
                    status=old.status.value,
                )
            if new is None:
                log.warning(
                    "reverting %s with dangling superseded_by=%s",
                    old_id, old.superseded_by,
                )
            event.project_id = old.project_id
            event.payload = {"superseded_by": old.superseded_by}

        old, new = self._store.revert_supersession(old_id, guard, event=event)
        log.info("supersession reverted: %s", old_id)
        return old, new

    def delete(self, decision_id: str, *, actor: str = "system") -> None:
        event = Event(
            event_type=EventType.DECISION_DELETED,
            entity_id=decision_id,
            actor=actor,
        )

        def guard(
            current: DecisionRecord | None, referencing: list[DecisionRecord],
        ) -> None:
            if current is None:
                raise NotFoundError("Decision", decision_id)
            others = sorted(r.id for r in referencing if r.id != decision_id)
            if others or current.supersedes or current.superseded_by:
                refs = others or [i for i in (current.supersedes, current.superseded_by) if i]
                raise InvalidStateError(
                    f"Decision {decision_id} is part of a supersession chain "
                    f"({', '.join(refs)}); revert the supersession first",
                    entity_id=decision_id,
                    status=current.status.value,
                )
            event.project_id = current.project_id
            event.payload = {
                "title": current.title,
                "linked_component_ids": list(current.linked_component_ids),
            }

        self._store.delete_decision(decision_id, guard, event=event)
        log.info("decision deleted: %s", decision_id)
