"""Contract tests for GovernanceStore implementations.

Every storage backend must pass these tests.  The ``contract_store`` fixture
is parametrised so that adding a new backend only requires extending the
params list.  Postgres tests require ``ARCHGOV_TEST_PG_DSN`` to be set;
they are skipped otherwise.
"""

from __future__ import annotations

import os

import pytest

from archgov.adapters.sqlite_store import SqliteStore
from archgov.adapters.store_factory import create_store
from archgov.errors import InvalidStateError, NotFoundError, ValidationError
from archgov.models import (
    AnchorType,
    DecisionRecord,
    DecisionStatus,
    Discussion,
    DiscussionStatus,
    Event,
    EventType,
    new_id,
)
from archgov.ports import (
    ComponentStorePort,
    DecisionStorePort,
    EventStorePort,
    GovernanceStore,
    LinkStorePort,
    RiskPolicyPort,
    SignalSourcePort,
)

from conftest import NOW, make_component


# ---------------------------------------------------------------------------
# Parametrised fixture: extend params for new backends
# ---------------------------------------------------------------------------

def _pg_available() -> bool:
    return bool(os.environ.get("ARCHGOV_TEST_PG_DSN"))


_backends = ["sqlite"]
if _pg_available():
    _backends.append("postgres")

_TABLES = (
    "component_decisions", "component_commits", "commits", "discussions",
    "decisions", "components", "events", "risk_policies",
)


@pytest.fixture(params=_backends)
def contract_store(request, tmp_path):
    if request.param == "sqlite":
        store = SqliteStore(tmp_path / "contract.db")
        yield store
        store.close()
    elif request.param == "postgres":
        from archgov.adapters.postgres_store import PostgresStore

        dsn = os.environ["ARCHGOV_TEST_PG_DSN"]
        store = PostgresStore(dsn, min_size=1, max_size=4)
        # Clean tables before each test for isolation
        import psycopg
        with psycopg.connect(dsn) as conn:
            for table in _TABLES:
                conn.execute(f"DELETE FROM {table}")
            conn.commit()
        yield store
        store.close()


def _record(id=None, project_id="p1", **kw) -> DecisionRecord:
    return DecisionRecord(
        id=id or new_id(), project_id=project_id, title="T", context="c",
        decision="d", rationale="r", consequences="x", **kw,
    )


# ---------------------------------------------------------------------------
# Protocol conformance
# ---------------------------------------------------------------------------

class TestProtocolConformance:
    def test_is_governance_store(self, contract_store):
        assert isinstance(contract_store, GovernanceStore)

    @pytest.mark.parametrize("port", [
        DecisionStorePort, LinkStorePort, ComponentStorePort,
        SignalSourcePort, EventStorePort, RiskPolicyPort,
    ])
    def test_implements_port(self, contract_store, port):
        assert isinstance(contract_store, port)


# ---------------------------------------------------------------------------
# Decisions
# ---------------------------------------------------------------------------

class TestDecisionStore:
    def test_insert_and_get(self, contract_store):
        make_component(contract_store, "api")
        rec = _record("d1", tags=["b", "a"])
        saved = contract_store.insert_decision(rec, ["api"])
        assert saved.id == "d1"
        assert saved.tags == ["b", "a"]
        assert saved.linked_component_ids == ["api"]
        assert contract_store.get_decision("d1") == saved

    def test_get_missing(self, contract_store):
        assert contract_store.get_decision("nope") is None
        assert contract_store.get_decisions(["nope"]) == {}

    def test_guard_failure_rolls_back(self, contract_store):
        event = Event(event_type=EventType.DECISION_CREATED, project_id="p1")

        def guard(components):
            raise ValidationError("rejected")

        with pytest.raises(ValidationError):
            contract_store.insert_decision(_record("d1"), guard=guard, event=event)
        assert contract_store.get_decision("d1") is None
        assert contract_store.count() == 0

    def test_list_filters_and_orders(self, contract_store):
        contract_store.insert_decision(_record("a", created_at="2026-01-01T00:00:00+00:00"))
        contract_store.insert_decision(_record(
            "b", created_at="2026-01-02T00:00:00+00:00", status=DecisionStatus.ACCEPTED,
        ))
        contract_store.insert_decision(_record("c", project_id="p2"))
        assert [r.id for r in contract_store.list_decisions("p1")] == ["b", "a"]
        assert [r.id for r in contract_store.list_decisions("p1", status="ACCEPTED")] == ["b"]
        assert [r.id for r in contract_store.list_decisions("p1", limit=1)] == ["b"]

    def test_snapshot_is_whole_project(self, contract_store):
        make_component(contract_store, "api")
        contract_store.insert_decision(_record("a"), ["api"])
        contract_store.insert_decision(_record("b"))
        contract_store.insert_decision(_record("c", project_id="p2"))
        snapshot = contract_store.snapshot_decisions("p1")
        assert sorted(r.id for r in snapshot) == ["a", "b"]

    def test_duplicate_id_rejected_in_transaction(self, contract_store):
        event = Event(event_type=EventType.DECISION_CREATED, project_id="p1")
        contract_store.insert_decision(_record("d1"))
        with pytest.raises(InvalidStateError):
            contract_store.insert_decision(_record("d1"), event=event)
        assert contract_store.count() == 0

    def test_update_applies_guard_result(self, contract_store):
        contract_store.insert_decision(_record("d1"))
        updated = contract_store.update_decision(
            "d1", lambda current: {"title": "New", "status": DecisionStatus.ACCEPTED},
        )
        assert updated.title == "New"
        assert updated.status == DecisionStatus.ACCEPTED

    def test_update_guard_sees_none_for_missing(self, contract_store):
        def guard(current):
            if current is None:
                raise NotFoundError("Decision", "ghost")
            return {}

        with pytest.raises(NotFoundError):
            contract_store.update_decision("ghost", guard)

    def test_supersession_round_trip(self, contract_store):
        contract_store.insert_decision(_record("old"))
        contract_store.insert_decision(_record("new"))
        seen = {}

        def guard(old, new, snapshot):
            seen["snapshot"] = sorted(r.id for r in snapshot)

        old, new = contract_store.apply_supersession("old", "new", guard)
        assert seen["snapshot"] == ["new", "old"]
        assert old.status == DecisionStatus.SUPERSEDED and old.superseded_by == "new"
        assert new.supersedes == "old"

        old, new = contract_store.revert_supersession("old", lambda *a: None)
        assert old.status == DecisionStatus.ACCEPTED
        assert old.superseded_by is None and new.supersedes is None

    def test_conditional_update_blocks_double_supersede(self, contract_store):
        for i in ("a", "b", "c"):
            contract_store.insert_decision(_record(i))
        contract_store.apply_supersession("a", "b", lambda *a: None)
        # a guard that checks nothing still cannot overwrite the pointer
        with pytest.raises(InvalidStateError):
            contract_store.apply_supersession("a", "c", lambda *a: None)
        assert contract_store.get_decision("a").superseded_by == "b"
        assert contract_store.get_decision("c").supersedes is None

    def test_delete_removes_links(self, contract_store):
        make_component(contract_store, "api")
        contract_store.insert_decision(_record("d1"), ["api"])
        contract_store.delete_decision("d1", lambda current, refs: None)
        assert contract_store.get_decision("d1") is None
        assert contract_store.list_links(component_id="api") == []


# ---------------------------------------------------------------------------
# Links, components, signal sources
# ---------------------------------------------------------------------------

class TestLinksAndSignals:
    def test_link_idempotent(self, contract_store):
        make_component(contract_store, "api")
        contract_store.insert_decision(_record("d1"))
        assert contract_store.link("d1", "api") is True
        assert contract_store.link("d1", "api") is False
        assert len(contract_store.list_links(decision_id="d1")) == 1
        assert contract_store.unlink("d1", "api") is True
        assert contract_store.unlink("d1", "api") is False

    def test_links_for_project(self, contract_store):
        make_component(contract_store, "api")
        make_component(contract_store, "other", project_id="p2")
        contract_store.insert_decision(_record("d1"), ["api"])
        contract_store.insert_decision(_record("d2", project_id="p2"), ["other"])
        links = contract_store.list_links_for_project("p1")
        assert [(lk.component_id, lk.decision_id) for lk in links] == [("api", "d1")]

    def test_component_upsert_and_delete(self, contract_store):
        make_component(contract_store, "api", name="API")
        make_component(contract_store, "api", name="Public API")
        assert contract_store.get_component("api").name == "Public API"
        assert [c.id for c in contract_store.list_components("p1")] == ["api"]
        assert contract_store.delete_component("api") is True
        assert contract_store.delete_component("api") is False

    def test_components_listed_by_id(self, contract_store):
        make_component(contract_store, "web", name="Alpha")
        make_component(contract_store, "api", name="Zulu")
        assert [c.id for c in contract_store.list_components("p1")] == ["api", "web"]

    def test_commit_tags(self, contract_store):
        make_component(contract_store, "api")
        contract_store.record_commit("p1", "abc", NOW.isoformat())
        contract_store.tag_commit("api", "abc")
        contract_store.tag_commit("api", "abc")
        tags = contract_store.list_commit_tags("p1")
        assert [(t.component_id, t.commit_sha) for t in tags] == [("api", "abc")]

    def test_tag_commit_checks(self, contract_store):
        make_component(contract_store, "api")
        contract_store.record_commit("p2", "abc", NOW.isoformat())
        with pytest.raises(NotFoundError):
            contract_store.tag_commit("ghost", "abc")
        with pytest.raises(NotFoundError):
            contract_store.tag_commit("api", "nope")
        with pytest.raises(ValidationError):
            contract_store.tag_commit("api", "abc")

    def test_discussions(self, contract_store):
        contract_store.add_discussion(Discussion(
            id="t1", project_id="p1", anchor_type=AnchorType.COMPONENT, anchor_id="api",
        ))
        assert contract_store.set_discussion_status("t1", "resolved") is True
        assert contract_store.set_discussion_status("ghost", "resolved") is False
        assert contract_store.list_discussions("p1", status="open") == []
        (d,) = contract_store.list_discussions("p1")
        assert d.status == DiscussionStatus.RESOLVED


# ---------------------------------------------------------------------------
# Events and policies
# ---------------------------------------------------------------------------

class TestEventsAndPolicies:
    def test_append_query_count(self, contract_store):
        contract_store.append(Event(event_type="x", project_id="p1", entity_id="d1",
                                    timestamp="2026-01-01T00:00:00+00:00"))
        contract_store.append(Event(event_type="y", project_id="p1", entity_id="d2",
                                    payload={"k": 1}, timestamp="2026-01-02T00:00:00+00:00"))
        events = contract_store.query(project_id="p1")
        assert [e["event_type"] for e in events] == ["y", "x"]
        assert events[0]["payload"] == {"k": 1}
        assert contract_store.query(since="2026-01-02T00:00:00+00:00")[0]["event_type"] == "y"
        assert contract_store.count(event_type="x") == 1
        assert contract_store.count() == 2

    def test_count_rejects_unknown_column(self, contract_store):
        with pytest.raises(ValueError):
            contract_store.count(payload="x")

    def test_risk_policy_versions(self, contract_store):
        assert contract_store.get_risk_policy("p1") is None
        assert contract_store.upsert_risk_policy("p1", {"thresholds": [1, 2, 3]}) == 1
        assert contract_store.upsert_risk_policy("p1", {"thresholds": [2, 3, 4]}) == 2
        assert contract_store.get_risk_policy("p1") == {"thresholds": [2, 3, 4], "version": 2}


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

class TestFactory:
    def test_sqlite_default(self, tmp_path, monkeypatch):
        monkeypatch.delenv("ARCHGOV_DB_BACKEND", raising=False)
        store = create_store(db_path=tmp_path / "f.db")
        assert isinstance(store, SqliteStore)

    def test_postgres_requires_dsn(self, monkeypatch):
        monkeypatch.delenv("ARCHGOV_PG_DSN", raising=False)
        with pytest.raises(ValueError):
            create_store(backend="postgres")

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            create_store(backend="oracle")
