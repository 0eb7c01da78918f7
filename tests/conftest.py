"""Shared fixtures for archgov tests."""

from datetime import datetime, timedelta, timezone

import pytest

from archgov import event_log
from archgov.adapters.sqlite_store import SqliteStore
from archgov.models import AnchorType, Component, ComponentKind, Discussion
from archgov.observability import reset_metrics
from archgov.service import GovernanceService

# Fixed "now" for every risk calculation in the suite
NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Auto-use fixtures: cleanup global state between tests
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _reset_store():
    """Reset global singletons after every test."""
    yield
    event_log._store = None
    reset_metrics()


# ---------------------------------------------------------------------------
# Stores and services
# ---------------------------------------------------------------------------

@pytest.fixture
def db_path(tmp_path):
    """Fresh SQLite database wired to the event_log facade."""
    path = tmp_path / "test_state.db"
    event_log.configure(SqliteStore(path))
    return path


@pytest.fixture
def store(tmp_path):
    """Return a fresh SqliteStore (not wired to the event_log facade)."""
    return SqliteStore(tmp_path / "contract_state.db")


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def svc(store, clock):
    return GovernanceService(store, clock=clock)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def make_component(store, component_id, project_id="p1", **kw):
    """Shared test helper: persist a Component and return it.

    Usage::

        from conftest import make_component
        make_component(store, "api", kind=ComponentKind.SERVICE)
    """
    component = Component(
        id=component_id,
        project_id=project_id,
        name=kw.pop("name", component_id.title()),
        kind=kw.pop("kind", ComponentKind.SERVICE),
        **kw,
    )
    store.upsert_component(component)
    return component


def decision_data(project_id="p1", **kw):
    """Valid creation payload; keyword arguments override fields."""
    data = {
        "project_id": project_id,
        "title": "Use PostgreSQL",
        "context": "We need a relational store.",
        "decision": "Adopt PostgreSQL 16.",
        "rationale": "Team experience and tooling.",
        "consequences": "Operate a managed cluster.",
    }
    data.update(kw)
    return data


def add_commit(store, component_id, sha, days_ago, project_id="p1"):
    """Record a commit *days_ago* before NOW and tag it to *component_id*."""
    committed = (NOW - timedelta(days=days_ago)).isoformat()
    store.record_commit(project_id, sha, committed)
    store.tag_commit(component_id, sha)


def add_discussion(store, discussion_id, anchor_id, *, anchor_type=AnchorType.COMPONENT,
                   project_id="p1"):
    store.add_discussion(Discussion(
        id=discussion_id,
        project_id=project_id,
        anchor_type=anchor_type,
        anchor_id=anchor_id,
        title=f"Thread {discussion_id}",
    ))


# ---------------------------------------------------------------------------
# Marker registration
# ---------------------------------------------------------------------------

def pytest_configure(config):
    config.addinivalue_line("markers", "postgres: needs ARCHGOV_TEST_PG_DSN")
