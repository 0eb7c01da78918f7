"""Single source of truth for shared constants and configuration defaults.

Every threshold, scale, or default that appears in more than one module is
defined here.  The risk constants are tunable policy, not fixed behaviour:
a project can override weights and thresholds through its stored risk
policy (see ``archgov.risk.config``).
"""

from __future__ import annotations


# ---------------------------------------------------------------------------
# Query limits
# ---------------------------------------------------------------------------

QUERY_LIMIT_SMALL = 200         # default for paginated list endpoints

# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------

DEFAULT_DB_PATH = ".archgov/state.db"
STORE_TIMEOUT_SECONDS = 5.0

# ---------------------------------------------------------------------------
# Risk weights (must sum to 1.0)
# ---------------------------------------------------------------------------

COMMIT_WEIGHT = 0.40
VOLATILITY_WEIGHT = 0.35
DISCUSSION_WEIGHT = 0.25

# ---------------------------------------------------------------------------
# Severity thresholds: score >= threshold enters the tier
# (medium, high, critical); anything below the first is low.
# ---------------------------------------------------------------------------

SEVERITY_THRESHOLDS: tuple[float, float, float] = (25.0, 50.0, 75.0)

# ---------------------------------------------------------------------------
# Signal normalization (fixed scales, not adaptive)
# ---------------------------------------------------------------------------

CHURN_WINDOW_DAYS = 90          # linear decay window for commit recency
CHURN_SCALE = 10.0              # decay-weighted commits that saturate the signal
VOLATILITY_SCALE = 1.0          # ratio is already in [0, 1]
DISCUSSION_SCALE = 10.0         # open threads that saturate the signal

# Signal names (also the tie-break order for risk factors)
SIGNAL_COMMIT_CHURN = "commit_churn"
SIGNAL_DECISION_VOLATILITY = "decision_volatility"
SIGNAL_DISCUSSION_VOLUME = "discussion_volume"

# ---------------------------------------------------------------------------
# Risk query deadline (seconds) for the concurrent signal collection
# ---------------------------------------------------------------------------

SIGNAL_COLLECTION_TIMEOUT = 30.0
