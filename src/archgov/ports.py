"""Storage port interfaces for archgov.

Defines Protocol classes that any persistence backend must implement.
The composite ``GovernanceStore`` is what application code depends on.

Mutating decision operations take a ``guard`` callable.  The store calls it
inside the write transaction, after the write lock is held and the touched
rows have been re-read, so validation and write are one atomic step.  Any
exception raised by the guard rolls the transaction back and propagates
unchanged.
"""

from __future__ import annotations

from typing import Any, Callable, Protocol, runtime_checkable

from archgov.models import (
    CommitTag,
    Component,
    ComponentDecisionLink,
    DecisionRecord,
    Discussion,
    Event,
)

# guard(old, new, project_snapshot)
SupersessionGuard = Callable[
    [DecisionRecord | None, DecisionRecord | None, list[DecisionRecord]], None,
]
# guard(current) -> column updates
UpdateGuard = Callable[[DecisionRecord | None], dict[str, Any]]
# guard(current, referencing_records)
DeleteGuard = Callable[[DecisionRecord | None, list[DecisionRecord]], None]
# guard(components_by_id) -- missing ids map to None
CreateGuard = Callable[[dict[str, Component | None]], None]
# guard(decision, component)
LinkGuard = Callable[[DecisionRecord | None, Component | None], None]


# ---------------------------------------------------------------------------
# Individual ports
# ---------------------------------------------------------------------------

@runtime_checkable
class DecisionStorePort(Protocol):
    def get_decision(self, decision_id: str) -> DecisionRecord | None: ...
    def get_decisions(self, decision_ids: list[str]) -> dict[str, DecisionRecord]: ...
    def list_decisions(
        self,
        project_id: str,
        *,
        status: str | None = None,
        limit: int | None = None,
    ) -> list[DecisionRecord]: ...
    def snapshot_decisions(self, project_id: str) -> list[DecisionRecord]: ...
    def insert_decision(
        self,
        record: DecisionRecord,
        component_ids: list[str] | None = None,
        *,
        guard: CreateGuard | None = None,
        inferred: bool = False,
        event: Event | None = None,
    ) -> DecisionRecord: ...
    def update_decision(
        self,
        decision_id: str,
        guard: UpdateGuard,
        *,
        event: Event | None = None,
    ) -> DecisionRecord: ...
    def apply_supersession(
        self,
        old_id: str,
        new_id: str,
        guard: SupersessionGuard,
        *,
        event: Event | None = None,
    ) -> tuple[DecisionRecord, DecisionRecord]: ...
    def revert_supersession(
        self,
        old_id: str,
        guard: SupersessionGuard,
        *,
        event: Event | None = None,
    ) -> tuple[DecisionRecord, DecisionRecord | None]: ...
    def delete_decision(
        self,
        decision_id: str,
        guard: DeleteGuard,
        *,
        event: Event | None = None,
    ) -> None: ...


@runtime_checkable
class LinkStorePort(Protocol):
    def link(
        self,
        decision_id: str,
        component_id: str,
        *,
        guard: LinkGuard | None = None,
        inferred: bool = False,
        event: Event | None = None,
    ) -> bool: ...
    def unlink(
        self,
        decision_id: str,
        component_id: str,
        *,
        event: Event | None = None,
    ) -> bool: ...
    def list_links(
        self,
        *,
        decision_id: str | None = None,
        component_id: str | None = None,
    ) -> list[ComponentDecisionLink]: ...
    def list_links_for_project(self, project_id: str) -> list[ComponentDecisionLink]: ...


@runtime_checkable
class ComponentStorePort(Protocol):
    def upsert_component(self, component: Component) -> None: ...
    def get_component(self, component_id: str) -> Component | None: ...
    def list_components(self, project_id: str) -> list[Component]: ...
    def delete_component(self, component_id: str) -> bool: ...


@runtime_checkable
class SignalSourcePort(Protocol):
    def record_commit(
        self,
        project_id: str,
        sha: str,
        committed_at: str,
        *,
        message: str = "",
        author: str = "",
    ) -> None: ...
    def tag_commit(
        self, component_id: str, sha: str, *, auto_detected: bool = False,
    ) -> None: ...
    def list_commit_tags(self, project_id: str) -> list[CommitTag]: ...
    def add_discussion(self, discussion: Discussion) -> None: ...
    def set_discussion_status(self, discussion_id: str, status: str) -> bool: ...
    def list_discussions(
        self, project_id: str, *, status: str | None = None,
    ) -> list[Discussion]: ...


@runtime_checkable
class EventStorePort(Protocol):
    def append(self, event: Event) -> Event: ...
    def query(
        self,
        *,
        event_type: str | None = None,
        project_id: str | None = None,
        entity_id: str | None = None,
        since: str | None = None,
        limit: int = 200,
    ) -> list[dict[str, Any]]: ...
    def count(self, **filters: Any) -> int: ...


@runtime_checkable
class RiskPolicyPort(Protocol):
    def upsert_risk_policy(
        self, project_id: str, data: dict[str, Any], *, event: Event | None = None,
    ) -> int: ...
    def get_risk_policy(self, project_id: str) -> dict[str, Any] | None: ...


# ---------------------------------------------------------------------------
# Composite store
# ---------------------------------------------------------------------------

@runtime_checkable
class GovernanceStore(
    DecisionStorePort,
    LinkStorePort,
    ComponentStorePort,
    SignalSourcePort,
    EventStorePort,
    RiskPolicyPort,
    Protocol,
):
    def close(self) -> None: ...
