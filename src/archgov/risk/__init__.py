"""Risk scoring: three independent signals per component, weighted into a tier.

  - commit_churn:        recency-weighted commits tagged to the component
  - decision_volatility: share of linked decisions that were superseded
  - discussion_volume:   open threads on the component or its decisions

Signals are pure functions over snapshots (``signals``), fed by read-only
collectors (``collectors``) and combined by the ``aggregator``.
"""

from archgov.risk.aggregator import (
    RiskAggregator,
    build_risk_factors,
    classify_severity,
    score,
)
from archgov.risk.collectors import collect_signals, default_collectors
from archgov.risk.config import RiskConfig
from archgov.risk.signals import (
    commit_churn,
    decision_volatility,
    discussion_volume,
    normalize,
)

__all__ = [
    "RiskAggregator",
    "RiskConfig",
    "build_risk_factors",
    "classify_severity",
    "collect_signals",
    "commit_churn",
    "decision_volatility",
    "default_collectors",
    "discussion_volume",
    "normalize",
    "score",
]
