"""Supersession graph: explicit adjacency over decision ids.

Edges run old -> new (``old.superseded_by == new`` / ``new.supersedes == old``).
A well-formed graph is a forest of simple paths: every node has in-degree
and out-degree at most one and there are no cycles.
"""

from __future__ import annotations

import logging
from typing import Iterable

import networkx as nx

from archgov.errors import CycleError
from archgov.models import DecisionRecord

log = logging.getLogger("archgov.decisions.graph")


class SupersessionGraph:
    """Directed supersession graph for one project snapshot."""

    def __init__(self) -> None:
        self.G = nx.DiGraph()

    @classmethod
    def from_records(cls, records: Iterable[DecisionRecord]) -> SupersessionGraph:
        """Build the graph from both pointer directions.

        Pointers to ids outside the snapshot are kept as bare nodes so that
        a dangling reference is visible to the chain walk.
        """
        graph = cls()
        for r in records:
            graph.G.add_node(r.id, status=r.status.value)
        for r in records:
            if r.superseded_by:
                graph.G.add_edge(r.id, r.superseded_by)
            if r.supersedes:
                graph.G.add_edge(r.supersedes, r.id)
        return graph

    def __contains__(self, decision_id: str) -> bool:
        return decision_id in self.G

    def would_create_cycle(self, old_id: str, new_id: str) -> bool:
        """True when adding old -> new closes a loop.

        That happens exactly when *old_id* is already reachable from
        *new_id*, i.e. *new_id* is an ancestor of *old_id*.
        """
        if old_id == new_id:
            return True
        if old_id not in self.G or new_id not in self.G:
            return False
        return nx.has_path(self.G, new_id, old_id)

    def add_supersession(self, old_id: str, new_id: str) -> None:
        if self.would_create_cycle(old_id, new_id):
            raise CycleError(
                f"Superseding {old_id} with {new_id} would create a cycle",
                entity_id=old_id,
            )
        self.G.add_edge(old_id, new_id)

    def is_acyclic(self) -> bool:
        return nx.is_directed_acyclic_graph(self.G)

    def predecessors_chain(self, decision_id: str) -> list[str]:
        """Ids reached by walking ``supersedes`` from *decision_id*, nearest first."""
        return list(self._walk(decision_id, backward=True))

    def successors_chain(self, decision_id: str) -> list[str]:
        """Ids reached by walking ``superseded_by`` from *decision_id*, nearest first."""
        return list(self._walk(decision_id, backward=False))

    def chain(self, decision_id: str) -> list[str]:
        """Full chain through *decision_id*, oldest -> newest.

        Raises CycleError if the walk revisits a node in either direction.
        """
        back = self.predecessors_chain(decision_id)
        fwd = self.successors_chain(decision_id)
        ids = list(reversed(back)) + [decision_id] + fwd
        if len(set(ids)) != len(ids):
            raise CycleError(
                f"Supersession chain through {decision_id} loops",
                entity_id=decision_id,
            )
        return ids

    def roots(self) -> list[str]:
        """Chain heads on the old end: nodes nothing supersedes from."""
        return sorted(n for n in self.G if self.G.in_degree(n) == 0)

    def heads(self) -> list[str]:
        """Current decisions: nodes not superseded by anything."""
        return sorted(n for n in self.G if self.G.out_degree(n) == 0)

    def _walk(self, start: str, *, backward: bool) -> Iterable[str]:
        if start not in self.G:
            return
        neighbours = self.G.predecessors if backward else self.G.successors
        visited = {start}
        current = start
        while True:
            nxt = list(neighbours(current))
            if not nxt:
                return
            if len(nxt) > 1:
                log.warning(
                    "decision %s has %d %s; following %s",
                    current, len(nxt),
                    "predecessors" if backward else "successors", sorted(nxt)[0],
                )
            current = sorted(nxt)[0]
            if current in visited:
                raise CycleError(
                    f"Supersession chain revisits {current}",
                    entity_id=current,
                )
            visited.add(current)
            yield current
