"""Risk weights and severity thresholds as injectable configuration."""

from __future__ import annotations

import math
import os
from dataclasses import dataclass
from typing import Any

from archgov import defaults
from archgov.errors import ValidationError

_WEIGHT_SUM_TOLERANCE = 1e-6

# accepted spellings -> attribute
_KEY_ALIASES = {
    "commitWeight": "commit_weight",
    "commit_weight": "commit_weight",
    "volatilityWeight": "volatility_weight",
    "volatility_weight": "volatility_weight",
    "discussionWeight": "discussion_weight",
    "discussion_weight": "discussion_weight",
    "thresholds": "thresholds",
}

_ENV_KEYS = {
    "ARCHGOV_RISK_COMMIT_WEIGHT": "commit_weight",
    "ARCHGOV_RISK_VOLATILITY_WEIGHT": "volatility_weight",
    "ARCHGOV_RISK_DISCUSSION_WEIGHT": "discussion_weight",
    "ARCHGOV_RISK_THRESHOLDS": "thresholds",
}


@dataclass(frozen=True)
class RiskConfig:
    commit_weight: float = defaults.COMMIT_WEIGHT
    volatility_weight: float = defaults.VOLATILITY_WEIGHT
    discussion_weight: float = defaults.DISCUSSION_WEIGHT
    thresholds: tuple[float, float, float] = defaults.SEVERITY_THRESHOLDS

    def __post_init__(self) -> None:
        errors: list[dict[str, str]] = []
        for name in ("commit_weight", "volatility_weight", "discussion_weight"):
            w = getattr(self, name)
            if not isinstance(w, (int, float)) or math.isnan(w) or w < 0:
                errors.append({"field": name, "message": "must be a number >= 0"})
        if not errors:
            total = self.commit_weight + self.volatility_weight + self.discussion_weight
            if abs(total - 1.0) > _WEIGHT_SUM_TOLERANCE:
                errors.append({
                    "field": "weights",
                    "message": f"must sum to 1.0 (got {total:.4f})",
                })
        t = self.thresholds
        if (
            len(t) != 3
            or any(not isinstance(x, (int, float)) for x in t)
            or not (0 < t[0] < t[1] < t[2] <= 100)
        ):
            errors.append({
                "field": "thresholds",
                "message": "must be three strictly increasing values in (0, 100]",
            })
        if errors:
            raise ValidationError(
                "Invalid risk config: " + ", ".join(e["field"] for e in errors),
                errors=errors,
            )

    @property
    def weights(self) -> dict[str, float]:
        return {
            defaults.SIGNAL_COMMIT_CHURN: self.commit_weight,
            defaults.SIGNAL_DECISION_VOLATILITY: self.volatility_weight,
            defaults.SIGNAL_DISCUSSION_VOLUME: self.discussion_weight,
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "commitWeight": self.commit_weight,
            "volatilityWeight": self.volatility_weight,
            "discussionWeight": self.discussion_weight,
            "thresholds": list(self.thresholds),
        }

    @classmethod
    def from_dict(
        cls, data: dict[str, Any], *, base: RiskConfig | None = None,
    ) -> RiskConfig:
        """Build a config from camelCase or snake_case keys.

        Missing keys fall back to *base* (or the defaults).  Unknown keys are
        rejected; a stored ``version`` key is ignored.
        """
        base = base or cls()
        values: dict[str, Any] = {
            "commit_weight": base.commit_weight,
            "volatility_weight": base.volatility_weight,
            "discussion_weight": base.discussion_weight,
            "thresholds": base.thresholds,
        }
        unknown = sorted(k for k in data if k not in _KEY_ALIASES and k != "version")
        if unknown:
            raise ValidationError(
                f"Unknown risk config options: {', '.join(unknown)}",
                errors=[{"field": k, "message": "unknown option"} for k in unknown],
            )
        for key, value in data.items():
            attr = _KEY_ALIASES.get(key)
            if attr is None:
                continue
            values[attr] = _coerce(attr, value)
        return cls(**values)

    @classmethod
    def from_env(cls, *, base: RiskConfig | None = None) -> RiskConfig:
        """Overlay ``ARCHGOV_RISK_*`` variables on *base* (or the defaults).

        ``ARCHGOV_RISK_THRESHOLDS`` is a comma-separated list, e.g. ``25,50,75``.
        """
        data: dict[str, Any] = {}
        for env_key, attr in _ENV_KEYS.items():
            raw = os.environ.get(env_key)
            if raw:
                data[attr] = raw.split(",") if attr == "thresholds" else raw
        if not data:
            return base or cls()
        return cls.from_dict(data, base=base)


def _coerce(attr: str, value: Any) -> Any:
    try:
        if attr == "thresholds":
            if isinstance(value, str):
                value = value.split(",")
            return tuple(float(v) for v in value)
        return float(value)
    except (TypeError, ValueError):
        raise ValidationError(
            f"Invalid value for {attr}: {value!r}",
            errors=[{"field": attr, "message": "must be numeric"}],
        ) from None
