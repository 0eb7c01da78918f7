"""Decision records: supersession chains and component links.

  - graph:      explicit supersession adjacency (networkx) with acyclicity checks
  - validation: input shape and status-transition rules
  - chain:      validated, transactional mutations of decision records
  - links:      decision <-> component association registry
"""

from archgov.decisions.chain import SupersessionChainManager
from archgov.decisions.graph import SupersessionGraph
from archgov.decisions.links import ComponentLinkRegistry

__all__ = [
    "ComponentLinkRegistry",
    "SupersessionChainManager",
    "SupersessionGraph",
]
