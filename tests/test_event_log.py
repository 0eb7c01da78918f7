"""Tests for the event_log facade and store lifecycle."""

import pytest

from archgov import event_log
from archgov.adapters.sqlite_store import SqliteStore
from archgov.models import Event


class TestLifecycle:
    def test_unconfigured_store_raises(self):
        event_log._store = None
        with pytest.raises(RuntimeError):
            event_log.count()

    def test_init_creates_sqlite_file(self, tmp_path, monkeypatch):
        monkeypatch.delenv("ARCHGOV_DB_BACKEND", raising=False)
        path = tmp_path / "nested" / "state.db"
        store = event_log.init(path)
        assert isinstance(store, SqliteStore)
        assert path.exists()
        assert event_log.get_store() is store

    def test_close_is_idempotent(self, db_path):
        event_log.close()
        event_log.close()
        assert event_log.get_store() is None


class TestFacade:
    def test_append_query_count(self, db_path):
        event_log.append(Event(event_type="decision.created", project_id="p1", entity_id="d1"))
        event_log.append(Event(event_type="decision.updated", project_id="p1", entity_id="d1"))
        event_log.append(Event(event_type="decision.created", project_id="p2", entity_id="d2"))
        assert event_log.count() == 3
        assert event_log.count(project_id="p1") == 2
        rows = event_log.query(event_type="decision.created", project_id="p1")
        assert [r["entity_id"] for r in rows] == ["d1"]

    def test_query_limit(self, db_path):
        for i in range(5):
            event_log.append(Event(event_type="x", entity_id=f"e{i}"))
        assert len(event_log.query(limit=2)) == 2
