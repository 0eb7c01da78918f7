"""Decision record, supersession chain and component link endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from archgov import event_log
from archgov.api.access import require_editor, require_viewer
from archgov.api.schemas import (
    DecisionCreateBody,
    DecisionPatchBody,
    LinkBody,
    SupersedeBody,
)
from archgov.defaults import QUERY_LIMIT_SMALL
from archgov.service import GovernanceService

router = APIRouter(tags=["decisions"])


def _service(request: Request) -> GovernanceService:
    return request.app.state.service


@router.post("/decisions", status_code=201)
def decision_create(
    request: Request,
    body: DecisionCreateBody,
    member: dict = Depends(require_editor),
):
    data = body.model_dump(exclude_none=True)
    data.setdefault("created_by", member["actor"])
    record = _service(request).create_decision(data, actor=member["actor"])
    return record.to_dict()


@router.get("/decisions/{decision_id}")
def decision_get(
    request: Request,
    decision_id: str,
    member: dict = Depends(require_viewer),
):
    return _service(request).get_decision_by_id(decision_id).to_dict()


@router.patch("/decisions/{decision_id}")
def decision_update(
    request: Request,
    decision_id: str,
    body: DecisionPatchBody,
    member: dict = Depends(require_editor),
):
    patch = body.model_dump(exclude_unset=True)
    record = _service(request).update_decision(decision_id, patch, actor=member["actor"])
    return record.to_dict()


@router.delete("/decisions/{decision_id}")
def decision_delete(
    request: Request,
    decision_id: str,
    member: dict = Depends(require_editor),
):
    _service(request).delete_decision(decision_id, actor=member["actor"])
    return {"deleted": decision_id}


@router.post("/decisions/{decision_id}/supersede")
def decision_supersede(
    request: Request,
    decision_id: str,
    body: SupersedeBody,
    member: dict = Depends(require_editor),
):
    old, new = _service(request).supersede(decision_id, body.new_id, actor=member["actor"])
    return {"old": old.to_dict(), "new": new.to_dict()}


@router.post("/decisions/{decision_id}/revert-supersession")
def decision_revert_supersession(
    request: Request,
    decision_id: str,
    member: dict = Depends(require_editor),
):
    old, new = _service(request).revert_supersession(decision_id, actor=member["actor"])
    return {"old": old.to_dict(), "new": new.to_dict() if new else None}


@router.get("/decisions/{decision_id}/chain")
def decision_chain(
    request: Request,
    decision_id: str,
    member: dict = Depends(require_viewer),
):
    chain = _service(request).get_supersession_chain(decision_id)
    return {"decision_id": decision_id, "chain": [r.to_dict() for r in chain]}


@router.post("/decisions/{decision_id}/link")
def decision_link(
    request: Request,
    decision_id: str,
    body: LinkBody,
    member: dict = Depends(require_editor),
):
    created = _service(request).link_to_component(
        decision_id, body.component_id, actor=member["actor"],
    )
    return {"decision_id": decision_id, "component_id": body.component_id, "created": created}


@router.delete("/decisions/{decision_id}/link/{component_id}")
def decision_unlink(
    request: Request,
    decision_id: str,
    component_id: str,
    member: dict = Depends(require_editor),
):
    removed = _service(request).unlink_from_component(
        decision_id, component_id, actor=member["actor"],
    )
    return {"decision_id": decision_id, "component_id": component_id, "removed": removed}


@router.get("/projects/{project_id}/decisions")
def project_decisions(
    request: Request,
    project_id: str,
    status: str | None = None,
    member: dict = Depends(require_viewer),
):
    records = _service(request).get_decisions_by_project(project_id, status)
    return [r.to_dict() for r in records]


@router.get("/components/{component_id}/decisions")
def component_decisions(
    request: Request,
    component_id: str,
    member: dict = Depends(require_viewer),
):
    records = _service(request).get_decisions_by_component(component_id)
    return [r.to_dict() for r in records]


@router.get("/projects/{project_id}/activity")
def project_activity(
    project_id: str,
    event_type: str | None = None,
    entity_id: str | None = None,
    since: str | None = None,
    limit: int = QUERY_LIMIT_SMALL,
    member: dict = Depends(require_viewer),
):
    return event_log.query(
        event_type=event_type, project_id=project_id,
        entity_id=entity_id, since=since, limit=limit,
    )
