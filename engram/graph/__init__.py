"""
Memory Graph - Structural ranking over stored memory entries

WHAT: Reference/similarity graph, PageRank centrality, label-propagation communities
WHERE: engram/graph/ - sits beside the runtime memory subsystem
WHO: Retrieval callers re-ranking vector search results
TIME: Rebuilds are explicit; ranking reuses cached PageRank until the graph changes

Operations:
- MemoryGraph.build_from_backend(backend): load entries and reference edges
- MemoryGraph.add_similarity_edges(backend, id): link by embedding similarity
- MemoryGraph.rank_with_graph(results, alpha): blend vector score and centrality
"""

from .backend import InMemoryBackend, MemoryBackend  # noqa: F401
from .memory_graph import MemoryGraph  # noqa: F401
from .models import (  # noqa: F401
    GraphEdge,
    GraphNode,
    GraphStats,
    MemoryEntry,
    MemoryQuery,
    RankedResult,
    SearchOptions,
    SearchResult,
    TopNode,
)

__all__ = [
    "GraphEdge",
    "GraphNode",
    "GraphStats",
    "InMemoryBackend",
    "MemoryBackend",
    "MemoryEntry",
    "MemoryGraph",
    "MemoryQuery",
    "RankedResult",
    "SearchOptions",
    "SearchResult",
    "TopNode",
]
