"""Tests for decision lifecycle: create, update, supersede, revert, delete."""

import sqlite3

import pytest

from archgov.errors import (
    CycleError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from archgov.models import DecisionStatus, EventType

from conftest import decision_data, make_component


def _create(svc, title, project_id="p1", **kw):
    return svc.create_decision(decision_data(project_id, title=title, **kw))


def _pointer_invariant_holds(svc, project_id="p1"):
    for r in svc.get_decisions_by_project(project_id):
        assert (r.status == DecisionStatus.SUPERSEDED) == (r.superseded_by is not None)


# ---------------------------------------------------------------------------
# Create
# ---------------------------------------------------------------------------

class TestCreate:
    def test_defaults(self, svc):
        d = svc.create_decision(decision_data())
        assert d.status == DecisionStatus.PROPOSED
        assert d.supersedes is None and d.superseded_by is None
        assert d.created_by == "system"
        assert d.created_at == d.updated_at

    def test_tags_normalized(self, svc):
        d = svc.create_decision(decision_data(tags=[" db ", "db", "", "infra"]))
        assert d.tags == ["db", "infra"]

    def test_links_components(self, svc, store):
        make_component(store, "api")
        make_component(store, "db")
        d = svc.create_decision(decision_data(linked_component_ids=["db", "api", "db"]))
        assert d.linked_component_ids == ["api", "db"]

    def test_all_missing_fields_reported(self, svc):
        with pytest.raises(ValidationError) as exc:
            svc.create_decision({"project_id": "p1", "title": "  "})
        fields = {e["field"] for e in exc.value.errors}
        assert fields == {"title", "context", "decision", "rationale", "consequences"}

    def test_cannot_create_superseded(self, svc):
        with pytest.raises(ValidationError):
            svc.create_decision(decision_data(status="SUPERSEDED"))

    def test_unknown_status(self, svc):
        with pytest.raises(ValidationError):
            svc.create_decision(decision_data(status="MAYBE"))

    def test_missing_component_rolls_back(self, svc, store):
        make_component(store, "api")
        with pytest.raises(NotFoundError):
            svc.create_decision(decision_data(linked_component_ids=["api", "ghost"]))
        assert svc.get_decisions_by_project("p1") == []
        assert store.count(event_type=EventType.DECISION_CREATED) == 0

    def test_foreign_component_rejected(self, svc, store):
        make_component(store, "other", project_id="p2")
        with pytest.raises(ValidationError):
            svc.create_decision(decision_data(linked_component_ids=["other"]))
        assert svc.get_decisions_by_project("p1") == []

    def test_duplicate_id_is_a_conflict(self, svc, store):
        svc.create_decision(decision_data(id="adr-1"))
        with pytest.raises(InvalidStateError, match="already exists"):
            svc.create_decision(decision_data(id="adr-1", title="Other"))
        assert svc.get_decision_by_id("adr-1").title == "Use PostgreSQL"
        assert store.count(event_type=EventType.DECISION_CREATED) == 1

    @pytest.mark.parametrize("bad_id", [42, "  ", ["x"]])
    def test_bad_id_rejected(self, svc, bad_id):
        with pytest.raises(ValidationError) as exc:
            svc.create_decision(decision_data(id=bad_id))
        assert [e["field"] for e in exc.value.errors] == ["id"]

    def test_create_records_event(self, svc, store):
        d = svc.create_decision(decision_data(), actor="alice")
        events = store.query(entity_id=d.id)
        assert [e["event_type"] for e in events] == [EventType.DECISION_CREATED]
        assert events[0]["actor"] == "alice"
        assert events[0]["project_id"] == "p1"


# ---------------------------------------------------------------------------
# Update
# ---------------------------------------------------------------------------

class TestUpdate:
    def test_patch_text_and_status(self, svc):
        d = _create(svc, "A")
        updated = svc.update_decision(d.id, {"title": "A2", "status": "ACCEPTED"})
        assert updated.title == "A2"
        assert updated.status == DecisionStatus.ACCEPTED
        assert updated.created_at == d.created_at

    def test_noop_patch_writes_nothing(self, svc, store):
        d = _create(svc, "A")
        same = svc.update_decision(d.id, {"title": "A"})
        assert same.updated_at == d.updated_at
        assert store.count(event_type=EventType.DECISION_UPDATED) == 0

    def test_unknown_field_rejected(self, svc):
        d = _create(svc, "A")
        with pytest.raises(ValidationError):
            svc.update_decision(d.id, {"superseded_by": "x"})

    def test_illegal_transition(self, svc):
        d = _create(svc, "A", status="ACCEPTED")
        with pytest.raises(InvalidStateError):
            svc.update_decision(d.id, {"status": "PROPOSED"})

    def test_status_superseded_only_via_supersede(self, svc):
        d = _create(svc, "A")
        with pytest.raises(InvalidStateError):
            svc.update_decision(d.id, {"status": "SUPERSEDED"})

    def test_superseded_content_is_frozen(self, svc):
        a = _create(svc, "A", status="ACCEPTED")
        b = _create(svc, "B")
        svc.supersede(a.id, b.id)
        with pytest.raises(InvalidStateError):
            svc.update_decision(a.id, {"rationale": "rewritten"})
        # tags and title stay editable
        tagged = svc.update_decision(a.id, {"tags": ["history"]})
        assert tagged.tags == ["history"]
        assert tagged.status == DecisionStatus.SUPERSEDED

    def test_missing_decision(self, svc):
        with pytest.raises(NotFoundError):
            svc.update_decision("nope", {"title": "x"})


# ---------------------------------------------------------------------------
# Supersede
# ---------------------------------------------------------------------------

class TestSupersede:
    def test_sets_both_pointers(self, svc):
        a = _create(svc, "A", status="ACCEPTED")
        b = _create(svc, "B")
        old, new = svc.supersede(a.id, b.id)
        assert old.status == DecisionStatus.SUPERSEDED
        assert old.superseded_by == b.id
        assert new.supersedes == a.id
        assert new.status == DecisionStatus.PROPOSED
        _pointer_invariant_holds(svc)

    def test_reverse_supersede_is_cycle(self, svc):
        a = _create(svc, "A")
        b = _create(svc, "B")
        svc.supersede(a.id, b.id)
        with pytest.raises(CycleError):
            svc.supersede(b.id, a.id)
        assert svc.get_decision_by_id(b.id).status == DecisionStatus.PROPOSED

    def test_longer_cycle_rejected(self, svc):
        a, b, c = (_create(svc, t) for t in "ABC")
        svc.supersede(a.id, b.id)
        svc.supersede(b.id, c.id)
        with pytest.raises(CycleError):
            svc.supersede(c.id, a.id)

    def test_already_superseded_leaves_state_unchanged(self, svc, store):
        d1, d2, d3 = (_create(svc, t) for t in ("d1", "d2", "d3"))
        svc.supersede(d1.id, d2.id)
        before = {r.id: r.to_dict() for r in svc.get_decisions_by_project("p1")}
        events_before = store.count()
        with pytest.raises(InvalidStateError):
            svc.supersede(d1.id, d3.id)
        after = {r.id: r.to_dict() for r in svc.get_decisions_by_project("p1")}
        assert after == before
        assert store.count() == events_before

    def test_self_supersede(self, svc):
        a = _create(svc, "A")
        with pytest.raises(InvalidStateError):
            svc.supersede(a.id, a.id)

    def test_new_already_supersedes_something(self, svc):
        a, b, c = (_create(svc, t) for t in "ABC")
        svc.supersede(a.id, c.id)
        with pytest.raises(InvalidStateError):
            svc.supersede(b.id, c.id)

    def test_cross_project_rejected(self, svc):
        a = _create(svc, "A")
        b = _create(svc, "B", project_id="p2")
        with pytest.raises(ValidationError):
            svc.supersede(a.id, b.id)

    def test_missing_ids(self, svc):
        a = _create(svc, "A")
        with pytest.raises(NotFoundError):
            svc.supersede("ghost", a.id)
        with pytest.raises(NotFoundError):
            svc.supersede(a.id, "ghost")

    def test_chain_same_from_any_member(self, svc):
        a, b, c = (_create(svc, t) for t in "ABC")
        svc.supersede(a.id, b.id)
        svc.supersede(b.id, c.id)
        chains = [[r.id for r in svc.get_supersession_chain(x.id)] for x in (a, b, c)]
        assert chains[0] == [a.id, b.id, c.id]
        assert chains[0] == chains[1] == chains[2]

    def test_following_supersedes_terminates(self, svc):
        ids = [_create(svc, f"D{i}").id for i in range(5)]
        for old, new in zip(ids, ids[1:]):
            svc.supersede(old, new)
        seen = []
        current = svc.get_decision_by_id(ids[-1])
        while current.supersedes:
            seen.append(current.id)
            assert len(seen) <= len(ids)
            current = svc.get_decision_by_id(current.supersedes)
        assert current.id == ids[0]
        _pointer_invariant_holds(svc)


# ---------------------------------------------------------------------------
# Chains over corrupted storage
# ---------------------------------------------------------------------------

def _raw_sql(store, *statements):
    conn = sqlite3.connect(store.db_path)
    try:
        with conn:
            for sql, params in statements:
                conn.execute(sql, params)
    finally:
        conn.close()


class TestCorruptedChains:
    """Chain reads over pointers written behind the manager's back."""

    def test_two_node_loop_raises_cycle(self, svc, store):
        a, b = _create(svc, "A"), _create(svc, "B")
        loop = (
            "UPDATE decisions SET status = 'SUPERSEDED', supersedes = ?, superseded_by = ? "
            "WHERE id = ?"
        )
        _raw_sql(store, (loop, (b.id, b.id, a.id)), (loop, (a.id, a.id, b.id)))
        with pytest.raises(CycleError):
            svc.get_supersession_chain(a.id)
        with pytest.raises(CycleError):
            svc.get_supersession_chain(b.id)

    def test_dangling_pointer_trims_chain(self, svc, store):
        a, b, c = (_create(svc, t) for t in "ABC")
        svc.supersede(a.id, b.id)
        svc.supersede(b.id, c.id)
        _raw_sql(store, ("DELETE FROM decisions WHERE id = ?", (c.id,)))
        assert [r.id for r in svc.get_supersession_chain(a.id)] == [a.id, b.id]
        assert [r.id for r in svc.get_supersession_chain(b.id)] == [a.id, b.id]

    def test_dangling_predecessor(self, svc, store):
        a, b = _create(svc, "A"), _create(svc, "B")
        svc.supersede(a.id, b.id)
        _raw_sql(store, ("DELETE FROM decisions WHERE id = ?", (a.id,)))
        assert [r.id for r in svc.get_supersession_chain(b.id)] == [b.id]


# ---------------------------------------------------------------------------
# Revert and delete
# ---------------------------------------------------------------------------

class TestRevertAndDelete:
    def test_revert_clears_both_pointers(self, svc):
        a = _create(svc, "A", status="ACCEPTED")
        b = _create(svc, "B")
        svc.supersede(a.id, b.id)
        old, new = svc.revert_supersession(a.id)
        assert old.status == DecisionStatus.ACCEPTED
        assert old.superseded_by is None
        assert new.supersedes is None
        _pointer_invariant_holds(svc)

    def test_revert_requires_superseded(self, svc):
        a = _create(svc, "A")
        with pytest.raises(InvalidStateError):
            svc.revert_supersession(a.id)

    def test_delete_blocked_while_in_chain(self, svc, store):
        make_component(store, "api")
        d1 = _create(svc, "d1", linked_component_ids=["api"])
        d2 = _create(svc, "d2")
        svc.supersede(d1.id, d2.id)
        with pytest.raises(InvalidStateError):
            svc.delete_decision(d1.id)
        with pytest.raises(InvalidStateError):
            svc.delete_decision(d2.id)

        svc.revert_supersession(d1.id)
        svc.delete_decision(d1.id)
        with pytest.raises(NotFoundError):
            svc.get_decision_by_id(d1.id)
        assert store.list_links(decision_id=d1.id) == []
        assert svc.get_decisions_by_component("api") == []

    def test_delete_missing(self, svc):
        with pytest.raises(NotFoundError):
            svc.delete_decision("ghost")

    def test_activity_trail(self, svc, store):
        a = _create(svc, "A")
        b = _create(svc, "B")
        svc.supersede(a.id, b.id, actor="bob")
        svc.revert_supersession(a.id, actor="bob")
        svc.delete_decision(a.id, actor="bob")
        types = [e["event_type"] for e in store.query(entity_id=a.id)]
        assert set(types) == {
            EventType.DECISION_CREATED,
            EventType.DECISION_SUPERSEDED,
            EventType.DECISION_SUPERSESSION_REVERTED,
            EventType.DECISION_DELETED,
        }


class TestListing:
    def test_project_list_newest_first_and_status_filter(self, svc):
        a = _create(svc, "A", status="ACCEPTED")
        b = _create(svc, "B")
        ids = [r.id for r in svc.get_decisions_by_project("p1")]
        assert set(ids) == {a.id, b.id}
        accepted = svc.get_decisions_by_project("p1", "accepted")
        assert [r.id for r in accepted] == [a.id]

    def test_bad_status_filter(self, svc):
        with pytest.raises(ValidationError):
            svc.get_decisions_by_project("p1", "nope")
