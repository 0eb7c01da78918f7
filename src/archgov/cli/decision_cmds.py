"""CLI commands: decision records, supersession, links, components."""

from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Any

from archgov.cli._helpers import _csv, _out, _run

_TEXT_FIELDS = ("title", "context", "decision", "rationale", "consequences")


def _service():
    from archgov.service import GovernanceService
    return GovernanceService()


def _text_fields(args: argparse.Namespace) -> dict[str, Any]:
    return {f: getattr(args, f) for f in _TEXT_FIELDS if getattr(args, f) is not None}


def cmd_decision_create(args: argparse.Namespace) -> int:
    data: dict[str, Any] = {}
    if args.file:
        try:
            data = json.loads(Path(args.file).read_text())
        except (OSError, json.JSONDecodeError) as e:
            return _out({"error": f"Cannot read {args.file}: {e}"})
        if not isinstance(data, dict):
            return _out({"error": f"{args.file} must contain a JSON object"})
    data.update(_text_fields(args))
    if args.project_id:
        data["project_id"] = args.project_id
    if args.status:
        data["status"] = args.status
    if args.tags is not None:
        data["tags"] = _csv(args.tags)
    if args.components is not None:
        data["linked_component_ids"] = _csv(args.components)
    data.setdefault("created_by", args.actor)
    return _run(lambda: _service().create_decision(data, actor=args.actor).to_dict())


def cmd_decision_update(args: argparse.Namespace) -> int:
    patch = _text_fields(args)
    if args.status:
        patch["status"] = args.status
    if args.tags is not None:
        patch["tags"] = _csv(args.tags)
    return _run(
        lambda: _service().update_decision(args.decision_id, patch, actor=args.actor).to_dict()
    )


def cmd_decision_show(args: argparse.Namespace) -> int:
    return _run(lambda: _service().get_decision_by_id(args.decision_id).to_dict())


def cmd_decision_list(args: argparse.Namespace) -> int:
    def _list() -> list[dict[str, Any]]:
        svc = _service()
        if args.component_id:
            records = svc.get_decisions_by_component(args.component_id)
            records = [
                r for r in records
                if r.project_id == args.project_id
                and (args.status is None or r.status.value == args.status)
            ]
        else:
            records = svc.get_decisions_by_project(args.project_id, args.status)
        return [r.to_dict() for r in records]
    return _run(_list)


def cmd_decision_supersede(args: argparse.Namespace) -> int:
    def _supersede() -> dict[str, Any]:
        old, new = _service().supersede(args.old_id, args.new_id, actor=args.actor)
        return {"old": old.to_dict(), "new": new.to_dict()}
    return _run(_supersede)


def cmd_decision_revert(args: argparse.Namespace) -> int:
    def _revert() -> dict[str, Any]:
        old, new = _service().revert_supersession(args.decision_id, actor=args.actor)
        return {"old": old.to_dict(), "new": new.to_dict() if new else None}
    return _run(_revert)


def cmd_decision_chain(args: argparse.Namespace) -> int:
    def _chain() -> dict[str, Any]:
        chain = _service().get_supersession_chain(args.decision_id)
        return {"decision_id": args.decision_id, "chain": [r.to_dict() for r in chain]}
    return _run(_chain)


def cmd_decision_delete(args: argparse.Namespace) -> int:
    def _delete() -> dict[str, Any]:
        _service().delete_decision(args.decision_id, actor=args.actor)
        return {"deleted": args.decision_id}
    return _run(_delete)


def cmd_decision_link(args: argparse.Namespace) -> int:
    def _link() -> dict[str, Any]:
        created = _service().link_to_component(
            args.decision_id, args.component_id, actor=args.actor,
        )
        return {"decision_id": args.decision_id, "component_id": args.component_id,
                "created": created}
    return _run(_link)


def cmd_decision_unlink(args: argparse.Namespace) -> int:
    def _unlink() -> dict[str, Any]:
        removed = _service().unlink_from_component(
            args.decision_id, args.component_id, actor=args.actor,
        )
        return {"decision_id": args.decision_id, "component_id": args.component_id,
                "removed": removed}
    return _run(_unlink)


def cmd_decision_activity(args: argparse.Namespace) -> int:
    from archgov import event_log
    return _run(lambda: event_log.query(
        project_id=args.project_id, entity_id=args.entity_id, limit=args.limit,
    ))


def cmd_component_add(args: argparse.Namespace) -> int:
    from archgov import event_log
    from archgov.errors import ValidationError
    from archgov.models import Component, ComponentKind

    def _add() -> dict[str, Any]:
        store = event_log._get_store()
        existing = store.get_component(args.component_id)
        if existing is not None and existing.project_id != args.project_id:
            raise ValidationError(
                f"Component {args.component_id} belongs to project {existing.project_id}",
                entity_id=args.component_id,
            )
        store.upsert_component(Component(
            id=args.component_id,
            project_id=args.project_id,
            name=args.name,
            kind=ComponentKind(args.kind),
        ))
        return store.get_component(args.component_id).to_dict()
    return _run(_add)


def cmd_component_list(args: argparse.Namespace) -> int:
    from archgov import event_log

    def _list() -> list[dict[str, Any]]:
        store = event_log._get_store()
        return [c.to_dict() for c in store.list_components(args.project_id)]
    return _run(_list)
