"""Query façade: the operations callers (HTTP, CLI, other services) invoke.

The façade is stateless between calls.  It composes the chain manager, the
link registry and the risk aggregator over one store, and resolves the risk
configuration per project on every risk query.
"""

from __future__ import annotations

import logging
from typing import Any

from archgov import event_log
from archgov.decisions import ComponentLinkRegistry, SupersessionChainManager
from archgov.defaults import SIGNAL_COLLECTION_TIMEOUT
from archgov.models import (
    ComponentRiskMetrics,
    DecisionRecord,
    Event,
    EventType,
    Severity,
)
from archgov.ports import GovernanceStore
from archgov.risk.aggregator import RiskAggregator
from archgov.risk.collectors import Clock, default_collectors, utc_now
from archgov.risk.config import RiskConfig

log = logging.getLogger("archgov.service")


class GovernanceService:
    """Decision governance and component risk operations."""

    def __init__(
        self,
        store: GovernanceStore | None = None,
        *,
        risk_config: RiskConfig | None = None,
        clock: Clock = utc_now,
        timeout: float | None = SIGNAL_COLLECTION_TIMEOUT,
    ) -> None:
        self._store = store if store is not None else event_log._get_store()
        self._risk_config = risk_config
        self._chains = SupersessionChainManager(self._store)
        self._links = ComponentLinkRegistry(self._store)
        self._risk = RiskAggregator(
            self._store,
            default_collectors(self._store, clock=clock),
            config_for=self.effective_risk_config,
            timeout=timeout,
        )

    @property
    def store(self) -> GovernanceStore:
        return self._store

    # ------------------------------------------------------------------
    # Decisions
    # ------------------------------------------------------------------

    def create_decision(
        self, data: dict[str, Any], *, actor: str | None = None,
    ) -> DecisionRecord:
        return self._chains.create(data, actor=actor)

    def update_decision(
        self, decision_id: str, patch: dict[str, Any], *, actor: str = "system",
    ) -> DecisionRecord:
        return self._chains.update(decision_id, patch, actor=actor)

    def delete_decision(self, decision_id: str, *, actor: str = "system") -> None:
        self._chains.delete(decision_id, actor=actor)

    def supersede(
        self, old_id: str, new_id: str, *, actor: str = "system",
    ) -> tuple[DecisionRecord, DecisionRecord]:
        return self._chains.supersede(old_id, new_id, actor=actor)

    def revert_supersession(
        self, old_id: str, *, actor: str = "system",
    ) -> tuple[DecisionRecord, DecisionRecord | None]:
        return self._chains.revert_supersession(old_id, actor=actor)

    def get_decision_by_id(self, decision_id: str) -> DecisionRecord:
        return self._chains.get(decision_id)

    def get_supersession_chain(self, decision_id: str) -> list[DecisionRecord]:
        return self._chains.get_supersession_chain(decision_id)

    def get_decisions_by_project(
        self, project_id: str, status: str | None = None,
    ) -> list[DecisionRecord]:
        return self._chains.list_by_project(project_id, status)

    def get_decisions_by_component(self, component_id: str) -> list[DecisionRecord]:
        return self._links.get_decisions_by_component(component_id)

    def link_to_component(
        self, decision_id: str, component_id: str, *, actor: str = "system",
    ) -> bool:
        return self._links.link_to_component(decision_id, component_id, actor=actor)

    def unlink_from_component(
        self, decision_id: str, component_id: str, *, actor: str = "system",
    ) -> bool:
        return self._links.unlink_from_component(decision_id, component_id, actor=actor)

    # ------------------------------------------------------------------
    # Risk
    # ------------------------------------------------------------------

    def effective_risk_config(self, project_id: str) -> RiskConfig:
        """Explicit config > stored project policy > environment > defaults."""
        if self._risk_config is not None:
            return self._risk_config
        base = RiskConfig.from_env()
        policy = self._store.get_risk_policy(project_id)
        if policy:
            return RiskConfig.from_dict(policy, base=base)
        return base

    def calculate_component_risk(self, component_id: str) -> ComponentRiskMetrics:
        return self._risk.calculate_component_risk(component_id)

    def calculate_project_risks(self, project_id: str) -> list[ComponentRiskMetrics]:
        return self._risk.calculate_project_risks(project_id)

    def get_high_risk_components(
        self, project_id: str, min_severity: str | Severity = Severity.MEDIUM,
    ) -> list[ComponentRiskMetrics]:
        return self._risk.get_high_risk_components(project_id, min_severity)

    def get_project_risk_summary(self, project_id: str) -> dict[str, Any]:
        return self._risk.summarize_project(project_id)

    def set_risk_policy(
        self, project_id: str, data: dict[str, Any], *, actor: str = "system",
    ) -> dict[str, Any]:
        """Validate and store a per-project weight/threshold policy."""
        config = RiskConfig.from_dict(data)
        stored = config.to_dict()
        event = Event(
            event_type=EventType.RISK_POLICY_UPDATED,
            project_id=project_id,
            entity_id=project_id,
            actor=actor,
            payload=dict(stored),
        )
        version = self._store.upsert_risk_policy(project_id, stored, event=event)
        log.info("risk policy updated: %s v%d", project_id, version)
        return {**stored, "project_id": project_id, "version": version}

    def get_risk_policy(self, project_id: str) -> dict[str, Any]:
        """Stored policy, or the effective defaults with ``version: 0``."""
        policy = self._store.get_risk_policy(project_id)
        if policy is None:
            return {
                **self.effective_risk_config(project_id).to_dict(),
                "project_id": project_id,
                "version": 0,
            }
        return {**policy, "project_id": project_id}
