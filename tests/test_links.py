"""Tests for the decision <-> component link registry."""

import pytest

from archgov.decisions import ComponentLinkRegistry
from archgov.errors import NotFoundError, ValidationError
from archgov.models import EventType

from conftest import decision_data, make_component


@pytest.fixture
def registry(store):
    return ComponentLinkRegistry(store)


class TestLink:
    def test_link_is_idempotent(self, svc, store):
        make_component(store, "api")
        d = svc.create_decision(decision_data())
        assert svc.link_to_component(d.id, "api") is True
        assert svc.link_to_component(d.id, "api") is False
        assert len(store.list_links(decision_id=d.id, component_id="api")) == 1
        assert store.count(event_type=EventType.DECISION_LINKED) == 1

    def test_link_shows_on_both_sides(self, svc, store, registry):
        make_component(store, "api")
        d = svc.create_decision(decision_data())
        svc.link_to_component(d.id, "api")
        assert svc.get_decision_by_id(d.id).linked_component_ids == ["api"]
        assert [r.id for r in svc.get_decisions_by_component("api")] == [d.id]
        assert [c.id for c in registry.get_components_for_decision(d.id)] == ["api"]

    def test_inferred_flag_stored(self, svc, store, registry):
        make_component(store, "api")
        d = svc.create_decision(decision_data())
        registry.link_to_component(d.id, "api", inferred=True)
        (link,) = store.list_links(decision_id=d.id)
        assert link.inferred is True

    def test_missing_sides(self, svc, store):
        make_component(store, "api")
        d = svc.create_decision(decision_data())
        with pytest.raises(NotFoundError):
            svc.link_to_component("ghost", "api")
        with pytest.raises(NotFoundError):
            svc.link_to_component(d.id, "ghost")

    def test_cross_project_rejected(self, svc, store):
        make_component(store, "other", project_id="p2")
        d = svc.create_decision(decision_data())
        with pytest.raises(ValidationError):
            svc.link_to_component(d.id, "other")
        assert store.list_links(decision_id=d.id) == []


class TestUnlink:
    def test_unlink_removes(self, svc, store):
        make_component(store, "api")
        d = svc.create_decision(decision_data(linked_component_ids=["api"]))
        assert svc.unlink_from_component(d.id, "api") is True
        assert svc.get_decision_by_id(d.id).linked_component_ids == []
        assert store.count(event_type=EventType.DECISION_UNLINKED) == 1

    def test_unlink_missing_is_noop(self, svc, store):
        d = svc.create_decision(decision_data())
        assert svc.unlink_from_component(d.id, "api") is False
        assert store.count(event_type=EventType.DECISION_UNLINKED) == 0


class TestLookup:
    def test_decisions_by_component_newest_first(self, svc, store):
        make_component(store, "api")
        ids = [
            svc.create_decision(decision_data(title=f"D{i}", linked_component_ids=["api"])).id
            for i in range(3)
        ]
        records = svc.get_decisions_by_component("api")
        assert {r.id for r in records} == set(ids)
        keys = [(r.created_at, r.id) for r in records]
        assert keys == sorted(keys, reverse=True)

    def test_unknown_component(self, svc):
        with pytest.raises(NotFoundError):
            svc.get_decisions_by_component("ghost")

    def test_component_without_links(self, svc, store):
        make_component(store, "api")
        assert svc.get_decisions_by_component("api") == []

    def test_components_for_missing_decision(self, registry):
        with pytest.raises(NotFoundError):
            registry.get_components_for_decision("ghost")
