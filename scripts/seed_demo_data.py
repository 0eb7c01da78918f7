#!/usr/bin/env python3
"""Seed an archgov database with realistic demo data.

Usage:
    PYTHONPATH=src python3 scripts/seed_demo_data.py [--db-path .archgov/state.db]

Inserts an architecture map, tagged commits, open discussions and a small
history of decision records (including one supersession) through the
store and the GovernanceService, so the activity log is populated too.
"""

from __future__ import annotations

import argparse
from datetime import datetime, timedelta, timezone

from archgov import event_log as el
from archgov.defaults import DEFAULT_DB_PATH
from archgov.models import AnchorType, Component, ComponentKind, Discussion
from archgov.service import GovernanceService


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _iso(days_ago: float, hours: float = 0) -> str:
    """Return an ISO timestamp *days_ago* days in the past."""
    dt = datetime.now(timezone.utc) - timedelta(days=days_ago, hours=hours)
    return dt.isoformat()


PROJECT = "demo"


# ---------------------------------------------------------------------------
# Architecture map
# ---------------------------------------------------------------------------

COMPONENTS: list[dict] = [
    dict(id="cmp-api",      name="Public API",       kind=ComponentKind.SERVICE),
    dict(id="cmp-billing",  name="Billing",          kind=ComponentKind.SERVICE),
    dict(id="cmp-orders",   name="Orders DB",        kind=ComponentKind.DATABASE),
    dict(id="cmp-web",      name="Web frontend",     kind=ComponentKind.UI),
    dict(id="cmp-payments", name="Payment provider", kind=ComponentKind.EXTERNAL),
]


def _seed_components(store) -> None:
    for row in COMPONENTS:
        store.upsert_component(Component(
            id=row["id"], project_id=PROJECT, name=row["name"], kind=row["kind"],
            created_at=_iso(120),
        ))


# ---------------------------------------------------------------------------
# Commits (sha, days ago, tagged components)
# ---------------------------------------------------------------------------

COMMITS: list[tuple[str, float, list[str]]] = [
    ("a1f3c9e", 1,  ["cmp-billing", "cmp-orders"]),
    ("b7d2e40", 2,  ["cmp-billing"]),
    ("c0e9a11", 3,  ["cmp-billing", "cmp-payments"]),
    ("d44f8b2", 5,  ["cmp-billing"]),
    ("e918c3d", 8,  ["cmp-api"]),
    ("f2b6a07", 13, ["cmp-api", "cmp-web"]),
    ("0c5e1d9", 21, ["cmp-orders"]),
    ("1a7b3f4", 34, ["cmp-web"]),
    ("2d8c6e0", 55, ["cmp-api"]),
    ("3e9f0a1", 89, ["cmp-orders"]),
]


def _seed_commits(store) -> int:
    tags = 0
    for sha, days, components in COMMITS:
        store.record_commit(PROJECT, sha, _iso(days), message=f"demo commit {sha}", author="demo")
        for cid in components:
            store.tag_commit(cid, sha, auto_detected=len(components) > 1)
            tags += 1
    return tags


# ---------------------------------------------------------------------------
# Discussions
# ---------------------------------------------------------------------------

DISCUSSIONS: list[dict] = [
    dict(id="disc-001", anchor="cmp-billing",  title="Retry semantics for failed charges"),
    dict(id="disc-002", anchor="cmp-billing",  title="Currency rounding"),
    dict(id="disc-003", anchor="cmp-billing",  title="Idempotency keys"),
    dict(id="disc-004", anchor="cmp-orders",   title="Partitioning by tenant"),
    dict(id="disc-005", anchor="cmp-web",      title="SSR vs SPA"),
]


def _seed_discussions(store) -> None:
    for row in DISCUSSIONS:
        store.add_discussion(Discussion(
            id=row["id"], project_id=PROJECT, anchor_type=AnchorType.COMPONENT,
            anchor_id=row["anchor"], title=row["title"], created_at=_iso(4),
        ))
    # one resolved thread, ignored by the discussion signal
    store.set_discussion_status("disc-005", "resolved")


# ---------------------------------------------------------------------------
# Decisions
# ---------------------------------------------------------------------------

def _decision(title: str, components: list[str], status: str = "ACCEPTED") -> dict:
    return {
        "project_id": PROJECT,
        "title": title,
        "context": f"Context for: {title}",
        "decision": f"We will {title.lower()}.",
        "rationale": "Agreed in architecture review.",
        "consequences": "Teams owning the linked components must follow it.",
        "status": status,
        "tags": ["demo"],
        "linked_component_ids": components,
        "created_by": "demo",
    }


def _seed_decisions(svc: GovernanceService) -> int:
    sync = svc.create_decision(_decision("Call the payment provider synchronously",
                                         ["cmp-billing", "cmp-payments"]), actor="demo")
    queue = svc.create_decision(_decision("Charge through a durable job queue",
                                          ["cmp-billing", "cmp-payments"]), actor="demo")
    svc.supersede(sync.id, queue.id, actor="demo")
    svc.create_decision(_decision("Store orders in PostgreSQL", ["cmp-orders"]), actor="demo")
    svc.create_decision(_decision("Version the public API in the path", ["cmp-api"]),
                        actor="demo")
    svc.create_decision(_decision("Render the storefront server-side", ["cmp-web"],
                                  status="PROPOSED"), actor="demo")
    return 5


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main() -> None:
    parser = argparse.ArgumentParser(description="Seed archgov demo data")
    parser.add_argument(
        "--db-path",
        default=DEFAULT_DB_PATH,
        help=f"Path to SQLite database (default: {DEFAULT_DB_PATH})",
    )
    args = parser.parse_args()

    store = el.init(args.db_path)
    svc = GovernanceService(store)

    print(f"Seeding database: {args.db_path}")
    _seed_components(store)
    print(f"  {len(COMPONENTS)} components inserted")
    tags = _seed_commits(store)
    print(f"  {len(COMMITS)} commits inserted ({tags} component tags)")
    _seed_discussions(store)
    print(f"  {len(DISCUSSIONS)} discussions inserted")
    n = _seed_decisions(svc)
    print(f"  {n} decisions inserted (1 superseded)")

    el.close()
    print("Done.")


if __name__ == "__main__":
    main()
