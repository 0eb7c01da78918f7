"""Concurrent writers racing on the same decisions.

Each thread uses its own connection; the store's write lock plus the
in-transaction guard must let exactly one writer win.
"""

from __future__ import annotations

import threading

import pytest

from archgov.errors import InvalidStateError
from archgov.models import DecisionStatus

from conftest import decision_data, make_component


def _race(n, fn):
    """Run fn(i) on n threads released together; return (results, errors)."""
    barrier = threading.Barrier(n)
    results: list = [None] * n
    errors: list = [None] * n

    def worker(i):
        barrier.wait()
        try:
            results[i] = fn(i)
        except Exception as e:  # collected for assertions
            errors[i] = e

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(n)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)
    return results, errors


class TestSupersedeRace:
    def test_one_winner(self, svc):
        old = svc.create_decision(decision_data(title="old", status="ACCEPTED"))
        candidates = [svc.create_decision(decision_data(title=f"new{i}")) for i in range(4)]

        results, errors = _race(4, lambda i: svc.supersede(old.id, candidates[i].id))

        winners = [r for r in results if r is not None]
        assert len(winners) == 1
        assert all(isinstance(e, InvalidStateError) for e in errors if e is not None)
        assert sum(e is not None for e in errors) == 3

        _, winning_new = winners[0]
        current = svc.get_decision_by_id(old.id)
        assert current.status == DecisionStatus.SUPERSEDED
        assert current.superseded_by == winning_new.id
        takers = [c for c in candidates if svc.get_decision_by_id(c.id).supersedes]
        assert [c.id for c in takers] == [winning_new.id]

    def test_opposite_directions_never_both_succeed(self, svc):
        a = svc.create_decision(decision_data(title="A"))
        b = svc.create_decision(decision_data(title="B"))
        pairs = [(a.id, b.id), (b.id, a.id)]

        results, errors = _race(2, lambda i: svc.supersede(*pairs[i]))

        assert sum(r is not None for r in results) == 1
        assert sum(e is not None for e in errors) == 1
        takers = [r for r in svc.get_decisions_by_project("p1") if r.supersedes]
        assert len(takers) == 1


class TestLinkRace:
    @pytest.mark.parametrize("n", [2, 6])
    def test_single_link_created(self, svc, store, n):
        make_component(store, "api")
        d = svc.create_decision(decision_data())

        results, errors = _race(n, lambda i: svc.link_to_component(d.id, "api"))

        assert errors == [None] * n
        assert results.count(True) == 1
        assert len(store.list_links(decision_id=d.id)) == 1
