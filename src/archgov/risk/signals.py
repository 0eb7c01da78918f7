"""Three independent risk signals as pure functions over snapshots.

Each function maps component ids to a raw value.  Nothing here touches
storage; the collectors take the snapshots and hand them in.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Mapping

from archgov.defaults import CHURN_WINDOW_DAYS
from archgov.models import (
    AnchorType,
    CommitTag,
    ComponentDecisionLink,
    DecisionStatus,
    Discussion,
    DiscussionStatus,
    parse_iso,
)

_SECONDS_PER_DAY = 86_400.0


def recency_weight(
    committed_at: str | datetime, now: datetime, window_days: float = CHURN_WINDOW_DAYS,
) -> float:
    """Linear decay: 1.0 for a commit made now, 0.0 at *window_days* and beyond.

    Commits dated in the future weigh 1.0.
    """
    age_days = (now - parse_iso(committed_at)).total_seconds() / _SECONDS_PER_DAY
    if age_days <= 0:
        return 1.0
    return max(0.0, 1.0 - age_days / window_days)


def commit_churn(
    tags: Iterable[CommitTag],
    now: datetime,
    window_days: float = CHURN_WINDOW_DAYS,
) -> dict[str, float]:
    """Recency-weighted count of distinct commits per component."""
    seen: set[tuple[str, str]] = set()
    out: dict[str, float] = {}
    for tag in tags:
        key = (tag.component_id, tag.commit_sha)
        if key in seen:
            continue
        seen.add(key)
        out[tag.component_id] = out.get(tag.component_id, 0.0) + recency_weight(
            tag.committed_at, now, window_days,
        )
    return out


def decision_volatility(
    links: Iterable[ComponentDecisionLink],
    statuses: Mapping[str, DecisionStatus | str],
) -> dict[str, float]:
    """Share of each component's linked decisions that are SUPERSEDED.

    Links to decisions missing from *statuses* are ignored.
    """
    total: dict[str, int] = {}
    superseded: dict[str, int] = {}
    for link in links:
        status = statuses.get(link.decision_id)
        if status is None:
            continue
        total[link.component_id] = total.get(link.component_id, 0) + 1
        if DecisionStatus(status) == DecisionStatus.SUPERSEDED:
            superseded[link.component_id] = superseded.get(link.component_id, 0) + 1
    return {cid: superseded.get(cid, 0) / n for cid, n in total.items()}


def discussion_volume(
    discussions: Iterable[Discussion],
    links: Iterable[ComponentDecisionLink],
) -> dict[str, float]:
    """Open threads anchored to a component or to a decision linked to it.

    A thread is counted once per component even if it reaches the component
    through several paths.
    """
    components_by_decision: dict[str, set[str]] = {}
    for link in links:
        components_by_decision.setdefault(link.decision_id, set()).add(link.component_id)

    threads: dict[str, set[str]] = {}
    for d in discussions:
        if d.status != DiscussionStatus.OPEN:
            continue
        if d.anchor_type == AnchorType.COMPONENT:
            targets = {d.anchor_id}
        elif d.anchor_type == AnchorType.DECISION:
            targets = components_by_decision.get(d.anchor_id, set())
        else:
            continue
        for cid in targets:
            threads.setdefault(cid, set()).add(d.id)
    return {cid: float(len(ids)) for cid, ids in threads.items()}


def normalize(raw: float, scale: float) -> float:
    """Map a raw value onto [0, 1] with a fixed saturation scale."""
    if scale <= 0:
        raise ValueError(f"scale must be positive, got {scale}")
    return min(1.0, max(0.0, raw / scale))
