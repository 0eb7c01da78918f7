"""Component risk, project risk ranking and risk policy endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from archgov.api.access import require_editor, require_viewer
from archgov.api.schemas import RiskPolicyBody
from archgov.service import GovernanceService

router = APIRouter(tags=["risk"])


def _service(request: Request) -> GovernanceService:
    return request.app.state.service


@router.get("/components/{component_id}/risk")
def component_risk(
    request: Request,
    component_id: str,
    member: dict = Depends(require_viewer),
):
    return _service(request).calculate_component_risk(component_id).to_dict()


@router.get("/projects/{project_id}/risks")
def project_risks(
    request: Request,
    project_id: str,
    member: dict = Depends(require_viewer),
):
    return [m.to_dict() for m in _service(request).calculate_project_risks(project_id)]


@router.get("/projects/{project_id}/risks/high")
def project_high_risks(
    request: Request,
    project_id: str,
    min_severity: str = "medium",
    member: dict = Depends(require_viewer),
):
    metrics = _service(request).get_high_risk_components(project_id, min_severity)
    return [m.to_dict() for m in metrics]


@router.get("/projects/{project_id}/risks/summary")
def project_risk_summary(
    request: Request,
    project_id: str,
    member: dict = Depends(require_viewer),
):
    return _service(request).get_project_risk_summary(project_id)


@router.get("/projects/{project_id}/risk-policy")
def risk_policy_get(
    request: Request,
    project_id: str,
    member: dict = Depends(require_viewer),
):
    return _service(request).get_risk_policy(project_id)


@router.put("/projects/{project_id}/risk-policy")
def risk_policy_set(
    request: Request,
    project_id: str,
    body: RiskPolicyBody,
    member: dict = Depends(require_editor),
):
    return _service(request).set_risk_policy(
        project_id, body.model_dump(exclude_none=True), actor=member["actor"],
    )
