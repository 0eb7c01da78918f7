"""Error taxonomy shared by the decision and risk subsystems.

Domain errors (Validation, NotFound, InvalidState, Cycle) are the caller's
problem and are never retried.  Storage errors come from the persistence
collaborator; callers may retry them with backoff, the core does not.
"""

from __future__ import annotations

from typing import Any


class GovernanceError(Exception):
    """Base class for every error raised by archgov."""

    code = "governance_error"

    def __init__(
        self,
        message: str,
        *,
        entity_id: str | None = None,
        status: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.entity_id = entity_id
        self.status = status

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"error": self.message, "code": self.code}
        if self.entity_id is not None:
            d["entity_id"] = self.entity_id
        if self.status is not None:
            d["status"] = self.status
        return d


class ValidationError(GovernanceError):
    code = "validation_error"

    def __init__(
        self,
        message: str,
        *,
        errors: list[dict[str, str]] | None = None,
        entity_id: str | None = None,
    ) -> None:
        super().__init__(message, entity_id=entity_id)
        self.errors = errors or []

    def to_dict(self) -> dict[str, Any]:
        d = super().to_dict()
        if self.errors:
            d["errors"] = self.errors
        return d


class NotFoundError(GovernanceError):
    code = "not_found"

    def __init__(self, entity: str, entity_id: str) -> None:
        super().__init__(f"{entity} not found: {entity_id}", entity_id=entity_id)
        self.entity = entity


class InvalidStateError(GovernanceError):
    code = "invalid_state"


class CycleError(GovernanceError):
    code = "cycle"


class StorageError(GovernanceError):
    code = "storage_error"


class StorageTimeoutError(StorageError):
    code = "storage_timeout"
