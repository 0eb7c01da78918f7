"""Core data types for archgov."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def new_id() -> str:
    return uuid.uuid4().hex[:12]


def parse_iso(value: str | datetime) -> datetime:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    dt = value if isinstance(value, datetime) else datetime.fromisoformat(
        value.replace("Z", "+00:00"),
    )
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def normalize_tags(tags: Any) -> list[str]:
    """Tags are a set: strip, drop empties, dedupe, sort."""
    if not tags:
        return []
    return sorted({str(t).strip() for t in tags if str(t).strip()})


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class DecisionStatus(str, Enum):
    PROPOSED = "PROPOSED"
    ACCEPTED = "ACCEPTED"
    DEPRECATED = "DEPRECATED"
    SUPERSEDED = "SUPERSEDED"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]

    @classmethod
    def parse(cls, value: str | Severity) -> Severity:
        if isinstance(value, Severity):
            return value
        return cls(str(value).strip().lower())


_SEVERITY_RANK = {
    Severity.LOW: 0,
    Severity.MEDIUM: 1,
    Severity.HIGH: 2,
    Severity.CRITICAL: 3,
}


class ComponentKind(str, Enum):
    SERVICE = "service"
    DATABASE = "database"
    UI = "ui"
    EXTERNAL = "external"
    LIBRARY = "library"


class AnchorType(str, Enum):
    COMPONENT = "component"
    DECISION = "decision"
    COMMIT = "commit"


class DiscussionStatus(str, Enum):
    OPEN = "open"
    RESOLVED = "resolved"


# ---------------------------------------------------------------------------
# Event type registry (activity log)
# ---------------------------------------------------------------------------

class EventType:
    DECISION_CREATED = "decision.created"
    DECISION_UPDATED = "decision.updated"
    DECISION_SUPERSEDED = "decision.superseded"
    DECISION_SUPERSESSION_REVERTED = "decision.supersession_reverted"
    DECISION_DELETED = "decision.deleted"
    DECISION_LINKED = "decision.linked"
    DECISION_UNLINKED = "decision.unlinked"
    RISK_POLICY_UPDATED = "risk.policy_updated"


# ---------------------------------------------------------------------------
# Decision records
# ---------------------------------------------------------------------------

CONTENT_FIELDS = ("context", "decision", "rationale", "consequences")
REQUIRED_TEXT_FIELDS = ("title",) + CONTENT_FIELDS


@dataclass
class DecisionRecord:
    id: str
    project_id: str
    title: str
    context: str
    decision: str
    rationale: str
    consequences: str
    status: DecisionStatus = DecisionStatus.PROPOSED
    supersedes: str | None = None
    superseded_by: str | None = None
    tags: list[str] = field(default_factory=list)
    created_by: str = "system"
    created_at: str = field(default_factory=now_iso)
    updated_at: str = field(default_factory=now_iso)
    linked_component_ids: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "title": self.title,
            "context": self.context,
            "decision": self.decision,
            "rationale": self.rationale,
            "consequences": self.consequences,
            "status": self.status.value,
            "supersedes": self.supersedes,
            "superseded_by": self.superseded_by,
            "tags": list(self.tags),
            "created_by": self.created_by,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "linked_component_ids": list(self.linked_component_ids),
        }


@dataclass
class ComponentDecisionLink:
    component_id: str
    decision_id: str
    linked_at: str = field(default_factory=now_iso)
    inferred: bool = False


# ---------------------------------------------------------------------------
# Collaborator rows (architecture map, git, discussions)
# ---------------------------------------------------------------------------

@dataclass
class Component:
    id: str
    project_id: str
    name: str
    kind: ComponentKind = ComponentKind.SERVICE
    created_at: str = field(default_factory=now_iso)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "name": self.name,
            "kind": self.kind.value,
            "created_at": self.created_at,
        }


@dataclass
class CommitTag:
    component_id: str
    commit_sha: str
    committed_at: str
    tagged_at: str = field(default_factory=now_iso)
    auto_detected: bool = False


@dataclass
class Discussion:
    id: str
    project_id: str
    anchor_type: AnchorType
    anchor_id: str
    title: str = ""
    status: DiscussionStatus = DiscussionStatus.OPEN
    created_at: str = field(default_factory=now_iso)


# ---------------------------------------------------------------------------
# Risk (derived, request-scoped)
# ---------------------------------------------------------------------------

@dataclass
class RiskFactor:
    name: str
    raw_value: float
    normalized: float
    weight: float
    contribution: float
    description: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "raw_value": self.raw_value,
            "normalized": self.normalized,
            "weight": self.weight,
            "contribution": self.contribution,
            "description": self.description,
        }


@dataclass
class ComponentRiskMetrics:
    component_id: str
    risk_score: int
    overall_severity: Severity
    risk_factors: list[RiskFactor] = field(default_factory=list)
    component_name: str = ""
    project_id: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "component_id": self.component_id,
            "component_name": self.component_name,
            "project_id": self.project_id,
            "risk_score": self.risk_score,
            "overall_severity": self.overall_severity.value,
            "risk_factors": [f.to_dict() for f in self.risk_factors],
        }


# ---------------------------------------------------------------------------
# Activity event
# ---------------------------------------------------------------------------

@dataclass
class Event:
    event_type: str
    project_id: str | None = None
    entity_id: str | None = None
    actor: str = "system"
    payload: dict[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=new_id)
    timestamp: str = field(default_factory=now_iso)
