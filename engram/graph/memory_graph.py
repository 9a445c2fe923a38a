"""
Memory Graph - Structural index with PageRank and community detection

WHAT: Directed weighted graph over memory entries; centrality-aware reranking
WHERE: engram/graph/memory_graph.py - graph-augmented retrieval layer
WHO: Callers blending vector search results with structural importance
TIME: PageRank O(iterations · (N + E)), label propagation O(iterations · E)

Graph contents:
- nodes: entry id, optional metadata category, optional embedding
- edges: (source, target, type, weight); one edge per ordered pair, and
  re-adding keeps the maximum weight
- reverse index: target -> sources, for incoming lookups and removal

PageRank values and community labels are derived caches. Any mutation
(add_node / remove_node / add_edge) marks PageRank dirty and drops the
community labels. PageRank is rebuilt by compute_page_rank(), which
rank_with_graph() and get_top_nodes() call when the cache is dirty;
community labels are only rebuilt by an explicit detect_communities().

Constants:
- damping 0.85, max 50 iterations, L1 convergence tolerance 1e-6
- label propagation: at most 20 sweeps, ties go to the lowest label

Single-writer: no internal locking. Serialise mutations and computations
per instance (one task or an external lock).
"""

from __future__ import annotations

import logging
from collections import Counter, deque
from typing import Callable, Dict, Iterable, List, Optional, Set

import numpy as np

from engram.config.settings import MemoryGraphConfig
from engram.runtime.memory.telemetry import EventDispatcher, EventListener

from .backend import MemoryBackend
from .models import (
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

logger = logging.getLogger(__name__)


class MemoryGraph:
    """Knowledge graph over memory entries."""

    def __init__(
        self,
        config: MemoryGraphConfig | None = None,
        *,
        events: EventDispatcher | None = None,
    ) -> None:
        self.config = config or MemoryGraphConfig()
        self._events = events or EventDispatcher()
        self._nodes: Dict[str, GraphNode] = {}
        self._edges: Dict[str, Dict[str, GraphEdge]] = {}
        self._reverse: Dict[str, Set[str]] = {}
        self._page_ranks: Dict[str, float] = {}
        self._communities: Dict[str, int] = {}
        self._dirty = True

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    @property
    def events(self) -> EventDispatcher:
        return self._events

    def on(self, event_type: str, handler: Callable[[Dict[str, object]], None]) -> EventListener:
        return self._events.on(event_type, handler)

    # ------------------ mutation ------------------
    def add_node(self, entry: MemoryEntry) -> bool:
        """Add or refresh a node; False when a new id is dropped at capacity."""
        if entry.id not in self._nodes and len(self._nodes) >= self.config.max_nodes:
            logger.warning(f"Graph at capacity ({self.config.max_nodes}); skipped node {entry.id}")
            return False
        self._nodes[entry.id] = GraphNode(
            id=entry.id,
            category=entry.category,
            embedding=list(entry.embedding) if entry.embedding else None,
        )
        self._edges.setdefault(entry.id, {})
        self._reverse.setdefault(entry.id, set())
        self._invalidate()
        return True

    def remove_node(self, node_id: str) -> bool:
        if node_id not in self._nodes:
            return False
        for target in self._edges.pop(node_id, {}):
            self._reverse.get(target, set()).discard(node_id)
        for source in self._reverse.pop(node_id, set()):
            self._edges.get(source, {}).pop(node_id, None)
        del self._nodes[node_id]
        self._page_ranks.pop(node_id, None)
        self._invalidate()
        return True

    def add_edge(self, source: str, target: str, edge_type: str = "reference", weight: float = 1.0) -> bool:
        """
        Add a directed edge between two existing nodes.

        Returns True only when a new edge was created. Re-adding an existing
        pair raises its weight to the maximum of old and new; weights are
        capped at 1.0 and non-positive weights are ignored.
        """
        if source not in self._nodes or target not in self._nodes:
            return False
        if weight <= 0.0:
            return False
        weight = min(float(weight), 1.0)

        existing = self._edges[source].get(target)
        self._invalidate()
        if existing is not None:
            existing.weight = max(existing.weight, weight)
            return False
        self._edges[source][target] = GraphEdge(source=source, target=target, type=edge_type, weight=weight)
        self._reverse[target].add(source)
        return True

    def get_edge(self, source: str, target: str) -> Optional[GraphEdge]:
        return self._edges.get(source, {}).get(target)

    def _invalidate(self) -> None:
        self._dirty = True
        self._communities = {}

    # ------------------ backend -------------------
    async def build_from_backend(self, backend: MemoryBackend, query: MemoryQuery | None = None) -> int:
        """
        Load up to ``max_nodes`` entries and link their declared references.

        References to entries outside the loaded set are skipped.
        Returns the resulting node count.
        """
        entries = await backend.query(query or MemoryQuery(limit=self.config.max_nodes))
        for entry in entries:
            self.add_node(entry)

        edges_added = 0
        for entry in entries:
            if entry.id not in self._nodes:
                continue
            for ref in entry.references:
                if ref != entry.id and ref in self._nodes and self.add_edge(entry.id, ref, "reference", 1.0):
                    edges_added += 1

        logger.info(f"Memory graph built: {len(self._nodes)} nodes, {edges_added} reference edges")
        self._events.emit("graph:built", nodeCount=len(self._nodes))
        return len(self._nodes)

    async def add_similarity_edges(self, backend: MemoryBackend, node_id: str) -> int:
        """Link a node to sufficiently similar nodes found by backend search."""
        node = self._nodes.get(node_id)
        if node is None or not node.embedding:
            return 0

        threshold = self.config.similarity_threshold
        try:
            results: List[SearchResult] = await backend.search(
                node.embedding,
                SearchOptions(k=self.config.similarity_search_k, threshold=threshold),
            )
        except Exception as e:
            logger.warning(f"Similarity search failed for {node_id}: {e}")
            return 0

        added = 0
        for result in results:
            target = result.entry.id
            if target == node_id or result.score < threshold:
                continue
            if self.add_edge(node_id, target, "similar", result.score):
                added += 1
        return added

    # ------------------ algorithms ----------------
    def compute_page_rank(self) -> Dict[str, float]:
        """Power-iteration PageRank with uniform dangling-mass redistribution."""
        ids = list(self._nodes)
        n = len(ids)
        if n == 0:
            self._page_ranks = {}
            self._dirty = False
            self._events.emit("pagerank:computed", iterations=0, nodeCount=0)
            return {}

        damping = self.config.page_rank_damping
        index = {node_id: i for i, node_id in enumerate(ids)}
        out_degree = np.array([len(self._edges[node_id]) for node_id in ids], dtype=np.float64)
        src = np.array([index[e.source] for node_id in ids for e in self._edges[node_id].values()], dtype=np.int64)
        dst = np.array([index[e.target] for node_id in ids for e in self._edges[node_id].values()], dtype=np.int64)
        dangling = out_degree == 0

        rank = np.full(n, 1.0 / n)
        iterations = 0
        for iterations in range(1, self.config.max_iterations + 1):
            dangling_mass = float(rank[dangling].sum())
            updated = np.full(n, (1.0 - damping) / n + damping * dangling_mass / n)
            if src.size:
                np.add.at(updated, dst, damping * rank[src] / out_degree[src])
            delta = float(np.abs(updated - rank).sum())
            rank = updated
            if delta < self.config.convergence_threshold:
                break

        self._page_ranks = {node_id: float(rank[i]) for i, node_id in enumerate(ids)}
        self._dirty = False
        logger.info(f"PageRank converged in {iterations} iterations over {n} nodes")
        self._events.emit("pagerank:computed", iterations=iterations, nodeCount=n)
        return dict(self._page_ranks)

    def detect_communities(self) -> Dict[str, int]:
        """Label propagation over the undirected view of the graph."""
        ids = list(self._nodes)
        neighbors: Dict[str, Set[str]] = {
            node_id: (set(self._edges[node_id]) | self._reverse[node_id]) - {node_id} for node_id in ids
        }
        labels = {node_id: i for i, node_id in enumerate(ids)}

        for _ in range(self.config.community_max_iterations):
            changed = False
            for node_id in ids:
                if not neighbors[node_id]:
                    continue
                counts = Counter(labels[nb] for nb in neighbors[node_id])
                top = max(counts.values())
                best = min(label for label, count in counts.items() if count == top)
                if best != labels[node_id]:
                    labels[node_id] = best
                    changed = True
            if not changed:
                break

        compact: Dict[int, int] = {}
        for node_id in ids:
            compact.setdefault(labels[node_id], len(compact))
        self._communities = {node_id: compact[labels[node_id]] for node_id in ids}

        self._events.emit("communities:detected", communityCount=len(compact))
        return dict(self._communities)

    # ------------------ queries -------------------
    def rank_with_graph(self, search_results: Iterable[SearchResult], alpha: float | None = None) -> List[RankedResult]:
        """combined = alpha · vector score + (1 − alpha) · PageRank / max PageRank."""
        if self._dirty:
            self.compute_page_rank()
        weight = self.config.default_alpha if alpha is None else alpha
        max_rank = max(self._page_ranks.values(), default=0.0)

        ranked: List[RankedResult] = []
        for result in search_results:
            page_rank = self._page_ranks.get(result.entry.id, 0.0)
            normalized = page_rank / max_rank if max_rank > 0 else 0.0
            ranked.append(
                RankedResult(
                    entry=result.entry,
                    score=result.score,
                    page_rank=page_rank,
                    combined_score=weight * result.score + (1.0 - weight) * normalized,
                    community=self._communities.get(result.entry.id),
                )
            )
        ranked.sort(key=lambda r: r.combined_score, reverse=True)
        return ranked

    def get_top_nodes(self, n: int) -> List[TopNode]:
        if n <= 0 or not self._nodes:
            return []
        if self._dirty:
            self.compute_page_rank()
        ordered = sorted(self._nodes, key=lambda node_id: self._page_ranks.get(node_id, 0.0), reverse=True)
        return [
            TopNode(
                id=node_id,
                page_rank=self._page_ranks.get(node_id, 0.0),
                community=self._communities.get(node_id),
                category=self._nodes[node_id].category,
            )
            for node_id in ordered[:n]
        ]

    def get_neighbors(self, node_id: str, depth: int = 1) -> Set[str]:
        """Ids reachable over outgoing edges within ``depth`` hops."""
        if node_id not in self._nodes or depth <= 0:
            return set()
        seen: Set[str] = {node_id}
        frontier = deque([(node_id, 0)])
        while frontier:
            current, hops = frontier.popleft()
            if hops >= depth:
                continue
            for target in self._edges.get(current, {}):
                if target not in seen:
                    seen.add(target)
                    frontier.append((target, hops + 1))
        seen.discard(node_id)
        return seen

    def get_stats(self) -> GraphStats:
        node_count = len(self._nodes)
        edge_count = sum(len(out) for out in self._edges.values())
        computed = not self._dirty
        ranks = list(self._page_ranks.values()) if computed else []
        return GraphStats(
            node_count=node_count,
            edge_count=edge_count,
            avg_degree=edge_count / node_count if node_count else 0.0,
            community_count=len(set(self._communities.values())),
            page_rank_computed=computed,
            max_page_rank=max(ranks, default=0.0),
            min_page_rank=min(ranks, default=0.0),
        )


__all__ = ["MemoryGraph"]
