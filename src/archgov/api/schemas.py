"""Pydantic request models for strict input validation.

Shape only; domain rules (non-blank text, status transitions, weight sums)
are enforced by the core and surface as ValidationError.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Decisions
# ---------------------------------------------------------------------------

class DecisionCreateBody(BaseModel):
    project_id: str = Field(..., min_length=1)
    title: str
    context: str
    decision: str
    rationale: str
    consequences: str
    status: str | None = None
    tags: list[str] = Field(default_factory=list)
    linked_component_ids: list[str] = Field(default_factory=list)
    created_by: str | None = None

    model_config = {"extra": "forbid"}


class DecisionPatchBody(BaseModel):
    title: str | None = None
    context: str | None = None
    decision: str | None = None
    rationale: str | None = None
    consequences: str | None = None
    status: str | None = None
    tags: list[str] | None = None

    model_config = {"extra": "forbid"}


class SupersedeBody(BaseModel):
    new_id: str = Field(..., min_length=1, description="Decision that replaces this one")


class LinkBody(BaseModel):
    component_id: str = Field(..., min_length=1)


# ---------------------------------------------------------------------------
# Risk
# ---------------------------------------------------------------------------

class RiskPolicyBody(BaseModel):
    commitWeight: float | None = Field(default=None, ge=0.0, le=1.0)
    volatilityWeight: float | None = Field(default=None, ge=0.0, le=1.0)
    discussionWeight: float | None = Field(default=None, ge=0.0, le=1.0)
    thresholds: list[float] | None = Field(default=None, min_length=3, max_length=3)

    model_config = {"extra": "forbid"}
