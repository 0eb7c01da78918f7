"""Many-to-many registry between decisions and architecture components."""

from __future__ import annotations

import logging

from archgov.errors import NotFoundError, ValidationError
from archgov.models import (
    Component,
    DecisionRecord,
    Event,
    EventType,
)
from archgov.ports import GovernanceStore

log = logging.getLogger("archgov.decisions.links")


class ComponentLinkRegistry:
    """Link, unlink and look up decision <-> component associations."""

    def __init__(self, store: GovernanceStore) -> None:
        self._store = store

    def link_to_component(
        self,
        decision_id: str,
        component_id: str,
        *,
        inferred: bool = False,
        actor: str = "system",
    ) -> bool:
        """Link the pair; returns False when it was already linked."""
        event = Event(
            event_type=EventType.DECISION_LINKED,
            entity_id=decision_id,
            actor=actor,
            payload={"component_id": component_id, "inferred": inferred},
        )

        def guard(decision: DecisionRecord | None, component: Component | None) -> None:
            if decision is None:
                raise NotFoundError("Decision", decision_id)
            if component is None:
                raise NotFoundError("Component", component_id)
            if component.project_id != decision.project_id:
                raise ValidationError(
                    f"Component {component_id} is not in project {decision.project_id}",
                    entity_id=component_id,
                )
            event.project_id = decision.project_id

        created = self._store.link(
            decision_id, component_id, guard=guard, inferred=inferred, event=event,
        )
        if created:
            log.info("decision %s linked to component %s", decision_id, component_id)
        return created

    def unlink_from_component(
        self, decision_id: str, component_id: str, *, actor: str = "system",
    ) -> bool:
        """Remove the link; a missing link is a no-op returning False."""
        decision = self._store.get_decision(decision_id)
        event = Event(
            event_type=EventType.DECISION_UNLINKED,
            project_id=decision.project_id if decision else None,
            entity_id=decision_id,
            actor=actor,
            payload={"component_id": component_id},
        )
        removed = self._store.unlink(decision_id, component_id, event=event)
        if removed:
            log.info("decision %s unlinked from component %s", decision_id, component_id)
        return removed

    def get_decisions_by_component(self, component_id: str) -> list[DecisionRecord]:
        """Linked decisions, newest first (ties broken by id descending)."""
        if self._store.get_component(component_id) is None:
            raise NotFoundError("Component", component_id)
        links = self._store.list_links(component_id=component_id)
        records = self._store.get_decisions([link.decision_id for link in links])
        return sorted(
            records.values(),
            key=lambda r: (r.created_at, r.id),
            reverse=True,
        )

    def get_components_for_decision(self, decision_id: str) -> list[Component]:
        if self._store.get_decision(decision_id) is None:
            raise NotFoundError("Decision", decision_id)
        links = self._store.list_links(decision_id=decision_id)
        components = [self._store.get_component(link.component_id) for link in links]
        return [c for c in components if c is not None]
