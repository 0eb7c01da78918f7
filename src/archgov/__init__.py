"""archgov: decision record governance and component risk scoring.

Two subsystems with real invariants:
  - decisions: immutable Decision Records, supersession chains (acyclic,
    one predecessor / one successor) and component links
  - risk:      three independent signals per component (commit churn,
    decision volatility, discussion volume) aggregated into a ranked score

``archgov.service.GovernanceService`` is the entry point for callers.
"""

__version__ = "0.1.0"
