"""Weighted aggregation of risk signals into scores, tiers and rankings."""

from __future__ import annotations

import logging
import math
from typing import Any, Callable

from archgov import defaults
from archgov.errors import NotFoundError, ValidationError
from archgov.models import Component, ComponentRiskMetrics, RiskFactor, Severity
from archgov.ports import GovernanceStore
from archgov.risk.collectors import SignalCollector, collect_signals
from archgov.risk.config import RiskConfig
from archgov.risk.signals import normalize

log = logging.getLogger("archgov.risk")

SIGNAL_SCALES = {
    defaults.SIGNAL_COMMIT_CHURN: defaults.CHURN_SCALE,
    defaults.SIGNAL_DECISION_VOLATILITY: defaults.VOLATILITY_SCALE,
    defaults.SIGNAL_DISCUSSION_VOLUME: defaults.DISCUSSION_SCALE,
}

_DESCRIPTIONS = {
    defaults.SIGNAL_COMMIT_CHURN: "recency-weighted commits tagged to the component",
    defaults.SIGNAL_DECISION_VOLATILITY: "share of linked decisions that are superseded",
    defaults.SIGNAL_DISCUSSION_VOLUME: "open discussion threads on the component or its decisions",
}

_SCORE_MAX = 100


def score(normalized: dict[str, float], config: RiskConfig) -> int:
    """``round_half_up(100 * sum(weight * signal))`` clamped to 0..100."""
    total = sum(w * normalized.get(name, 0.0) for name, w in config.weights.items())
    return max(0, min(_SCORE_MAX, math.floor(100 * total + 0.5)))


def classify_severity(
    risk_score: float,
    thresholds: tuple[float, float, float] = defaults.SEVERITY_THRESHOLDS,
) -> Severity:
    """Classify a score against (medium, high, critical) lower bounds."""
    medium, high, critical = thresholds
    if risk_score >= critical:
        return Severity.CRITICAL
    if risk_score >= high:
        return Severity.HIGH
    if risk_score >= medium:
        return Severity.MEDIUM
    return Severity.LOW


def build_risk_factors(raw: dict[str, float], config: RiskConfig) -> list[RiskFactor]:
    """One factor per signal, by contribution descending then name."""
    factors = []
    for name, weight in config.weights.items():
        value = raw.get(name, 0.0)
        norm = normalize(value, SIGNAL_SCALES[name])
        factors.append(RiskFactor(
            name=name,
            raw_value=round(value, 4),
            normalized=round(norm, 4),
            weight=weight,
            contribution=round(weight * norm, 4),
            description=_DESCRIPTIONS[name],
        ))
    factors.sort(key=lambda f: (-f.contribution, f.name))
    return factors


def parse_min_severity(value: str | Severity) -> Severity:
    try:
        return Severity.parse(value)
    except ValueError:
        allowed = ", ".join(s.value for s in Severity)
        raise ValidationError(
            f"Invalid severity {value!r}; expected one of {allowed}",
            errors=[{"field": "min_severity", "message": f"must be one of {allowed}"}],
        ) from None


class RiskAggregator:
    """Compute ComponentRiskMetrics from current store state.

    Nothing is cached: every call collects fresh signals.
    """

    def __init__(
        self,
        store: GovernanceStore,
        collectors: list[SignalCollector],
        *,
        config_for: Callable[[str], RiskConfig] | None = None,
        timeout: float | None = defaults.SIGNAL_COLLECTION_TIMEOUT,
    ) -> None:
        self._store = store
        self._collectors = collectors
        self._config_for = config_for or (lambda project_id: RiskConfig())
        self._timeout = timeout

    def _metrics(
        self,
        component: Component,
        signals: dict[str, dict[str, float]],
        config: RiskConfig,
    ) -> ComponentRiskMetrics:
        raw = {name: values.get(component.id, 0.0) for name, values in signals.items()}
        factors = build_risk_factors(raw, config)
        normalized = {f.name: f.normalized for f in factors}
        # score from unrounded values so factor rounding never moves a tier
        exact = {
            name: normalize(raw.get(name, 0.0), SIGNAL_SCALES[name])
            for name in config.weights
        }
        risk_score = score(exact, config)
        log.debug(
            "risk %s: score=%d normalized=%s", component.id, risk_score, normalized,
        )
        return ComponentRiskMetrics(
            component_id=component.id,
            risk_score=risk_score,
            overall_severity=classify_severity(risk_score, config.thresholds),
            risk_factors=factors,
            component_name=component.name,
            project_id=component.project_id,
        )

    def _collect(self, project_id: str) -> dict[str, dict[str, float]]:
        return collect_signals(self._collectors, project_id, timeout=self._timeout)

    def calculate_component_risk(self, component_id: str) -> ComponentRiskMetrics:
        component = self._store.get_component(component_id)
        if component is None:
            raise NotFoundError("Component", component_id)
        config = self._config_for(component.project_id)
        signals = self._collect(component.project_id)
        return self._metrics(component, signals, config)

    def calculate_project_risks(self, project_id: str) -> list[ComponentRiskMetrics]:
        """Metrics for every component, ``component_id`` ascending.

        Collectors run once for the whole project.
        """
        return self._project_metrics(project_id, self._config_for(project_id))

    def _project_metrics(
        self, project_id: str, config: RiskConfig,
    ) -> list[ComponentRiskMetrics]:
        components = sorted(self._store.list_components(project_id), key=lambda c: c.id)
        if not components:
            return []
        signals = self._collect(project_id)
        return [self._metrics(c, signals, config) for c in components]

    def get_high_risk_components(
        self, project_id: str, min_severity: str | Severity = Severity.MEDIUM,
    ) -> list[ComponentRiskMetrics]:
        floor_ = parse_min_severity(min_severity)
        return [
            m for m in self.calculate_project_risks(project_id)
            if m.overall_severity.rank >= floor_.rank
        ]

    def summarize_project(self, project_id: str, *, top: int = 5) -> dict[str, Any]:
        config = self._config_for(project_id)
        metrics = self._project_metrics(project_id, config)
        by_severity = {s.value: 0 for s in Severity}
        for m in metrics:
            by_severity[m.overall_severity.value] += 1
        ranked = sorted(metrics, key=lambda m: (-m.risk_score, m.component_id))
        scores = [m.risk_score for m in metrics]
        return {
            "project_id": project_id,
            "component_count": len(metrics),
            "average_score": round(sum(scores) / len(scores), 1) if scores else 0.0,
            "max_score": max(scores) if scores else 0,
            "by_severity": by_severity,
            "top_components": [m.to_dict() for m in ranked[:top]],
            "config": config.to_dict(),
        }
