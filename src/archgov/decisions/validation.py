"""Input validation and status-transition rules for decision records."""

from __future__ import annotations

from typing import Any

from archgov.errors import InvalidStateError, ValidationError
from archgov.models import (
    CONTENT_FIELDS,
    REQUIRED_TEXT_FIELDS,
    DecisionRecord,
    DecisionStatus,
    normalize_tags,
)

# Fields a patch may carry.  Everything else (ids, pointers, timestamps) is
# owned by the chain manager.
PATCHABLE_FIELDS = frozenset(REQUIRED_TEXT_FIELDS + ("status", "tags"))

# Allowed explicit transitions.  SUPERSEDED is only reachable via supersede().
ALLOWED_TRANSITIONS: dict[DecisionStatus, frozenset[DecisionStatus]] = {
    DecisionStatus.PROPOSED: frozenset({DecisionStatus.ACCEPTED, DecisionStatus.DEPRECATED}),
    DecisionStatus.ACCEPTED: frozenset({DecisionStatus.DEPRECATED}),
    DecisionStatus.DEPRECATED: frozenset(),
    DecisionStatus.SUPERSEDED: frozenset(),
}


def _field_error(field: str, message: str) -> dict[str, str]:
    return {"field": field, "message": message}


def parse_status(value: Any, *, field: str = "status") -> DecisionStatus:
    if isinstance(value, DecisionStatus):
        return value
    try:
        return DecisionStatus(str(value).strip().upper())
    except ValueError:
        allowed = ", ".join(s.value for s in DecisionStatus)
        raise ValidationError(
            f"Invalid status {value!r}; expected one of {allowed}",
            errors=[_field_error(field, f"must be one of {allowed}")],
        ) from None


def validate_create(data: dict[str, Any]) -> dict[str, Any]:
    """Validate creation input and return the cleaned fields.

    Every failing field is reported at once in ``ValidationError.errors``.
    """
    errors: list[dict[str, str]] = []
    cleaned: dict[str, Any] = {}
    decision_id = data.get("id")
    if decision_id is not None:
        if not isinstance(decision_id, str) or not decision_id.strip():
            errors.append(_field_error("id", "must be a non-empty string"))
        else:
            cleaned["id"] = decision_id.strip()
    for name in ("project_id",) + REQUIRED_TEXT_FIELDS:
        value = data.get(name)
        if not isinstance(value, str) or not value.strip():
            errors.append(_field_error(name, "is required"))
        else:
            cleaned[name] = value.strip() if name in ("project_id", "title") else value
    created_by = data.get("created_by") or "system"
    if not isinstance(created_by, str) or not created_by.strip():
        errors.append(_field_error("created_by", "must be a non-empty string"))
    else:
        cleaned["created_by"] = created_by.strip()

    status = data.get("status")
    if status is None:
        cleaned["status"] = DecisionStatus.PROPOSED
    else:
        try:
            cleaned["status"] = parse_status(status)
        except ValidationError as exc:
            errors.extend(exc.errors)
        else:
            if cleaned["status"] == DecisionStatus.SUPERSEDED:
                errors.append(_field_error(
                    "status", "SUPERSEDED can only be set by supersede()",
                ))

    tags = data.get("tags")
    if tags is not None and not isinstance(tags, (list, tuple, set)):
        errors.append(_field_error("tags", "must be a list of strings"))
    else:
        cleaned["tags"] = normalize_tags(tags)

    component_ids = data.get("linked_component_ids") or []
    if not isinstance(component_ids, (list, tuple, set)):
        errors.append(_field_error("linked_component_ids", "must be a list of ids"))
    else:
        cleaned["linked_component_ids"] = sorted({str(c) for c in component_ids if c})

    if errors:
        raise ValidationError(
            "Invalid decision: " + ", ".join(e["field"] for e in errors),
            errors=errors,
        )
    return cleaned


def validate_patch(patch: dict[str, Any]) -> dict[str, Any]:
    """Shape-check a patch independent of the current record."""
    unknown = sorted(set(patch) - PATCHABLE_FIELDS)
    if unknown:
        raise ValidationError(
            f"Unknown or read-only fields: {', '.join(unknown)}",
            errors=[_field_error(k, "cannot be updated") for k in unknown],
        )
    errors: list[dict[str, str]] = []
    cleaned: dict[str, Any] = {}
    for name in REQUIRED_TEXT_FIELDS:
        if name not in patch:
            continue
        value = patch[name]
        if not isinstance(value, str) or not value.strip():
            errors.append(_field_error(name, "must be a non-empty string"))
        else:
            cleaned[name] = value.strip() if name == "title" else value
    if "tags" in patch:
        tags = patch["tags"]
        if tags is not None and not isinstance(tags, (list, tuple, set)):
            errors.append(_field_error("tags", "must be a list of strings"))
        else:
            cleaned["tags"] = normalize_tags(tags)
    if "status" in patch:
        try:
            cleaned["status"] = parse_status(patch["status"])
        except ValidationError as exc:
            errors.extend(exc.errors)
    if errors:
        raise ValidationError(
            "Invalid patch: " + ", ".join(e["field"] for e in errors),
            errors=errors,
        )
    return cleaned


def check_transition(record: DecisionRecord, target: DecisionStatus) -> None:
    """Raise InvalidStateError unless *record* may move to *target*."""
    if target == record.status:
        return
    if target == DecisionStatus.SUPERSEDED:
        raise InvalidStateError(
            f"Decision {record.id} can only become SUPERSEDED via supersede()",
            entity_id=record.id,
            status=record.status.value,
        )
    if target not in ALLOWED_TRANSITIONS[record.status]:
        raise InvalidStateError(
            f"Decision {record.id} cannot move from {record.status.value} "
            f"to {target.value}",
            entity_id=record.id,
            status=record.status.value,
        )


def diff_patch(record: DecisionRecord, patch: dict[str, Any]) -> dict[str, Any]:
    """Return the column updates *patch* implies for *record*.

    Raises InvalidStateError when a superseded record's content would change
    or the status transition is illegal.  Unchanged values are dropped, so an
    empty result means the update is a no-op.
    """
    updates: dict[str, Any] = {}
    for name, value in patch.items():
        if name == "status":
            continue
        if getattr(record, name) != value:
            updates[name] = value

    if record.status == DecisionStatus.SUPERSEDED:
        frozen = sorted(f for f in CONTENT_FIELDS if f in updates)
        if frozen:
            raise InvalidStateError(
                f"Decision {record.id} is SUPERSEDED; content fields are frozen: "
                f"{', '.join(frozen)}",
                entity_id=record.id,
                status=record.status.value,
            )

    if "status" in patch:
        target = patch["status"]
        check_transition(record, target)
        if target != record.status:
            updates["status"] = target
    return updates
