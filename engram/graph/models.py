"""
Graph Models - Entries exchanged with backends and results of graph ranking

Public models are pydantic (validated at the backend seam); the graph's
internal node and edge records are slotted dataclasses.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class MemoryEntry(BaseModel):
    """
    Arbitrary memory entry as stored by a backend.

    Examples:
    - id="auth-fix", references=["mutex-note"], metadata={"category": "security"}
    - id="deploy-runbook", embedding=[...], tags=["ops"]
    """

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    key: str = ""
    content: str = ""
    namespace: str = "default"
    embedding: Optional[List[float]] = None
    references: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def category(self) -> Optional[str]:
        value = self.metadata.get("category")
        return str(value) if value is not None else None


class SearchOptions(BaseModel):
    k: int = Field(default=10, ge=1)
    threshold: Optional[float] = None
    namespace: Optional[str] = None


class SearchResult(BaseModel):
    entry: MemoryEntry
    score: float
    distance: float = 0.0


class MemoryQuery(BaseModel):
    """Filter for ``MemoryBackend.query``; unset fields do not filter."""

    namespace: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    ids: Optional[List[str]] = None
    limit: Optional[int] = Field(default=None, ge=0)

    def matches(self, entry: MemoryEntry) -> bool:
        if self.namespace is not None and entry.namespace != self.namespace:
            return False
        if self.ids is not None and entry.id not in self.ids:
            return False
        return all(tag in entry.tags for tag in self.tags)


class RankedResult(BaseModel):
    """Search result re-scored with graph centrality."""

    entry: MemoryEntry
    score: float
    page_rank: float
    combined_score: float
    community: Optional[int] = None


class TopNode(BaseModel):
    id: str
    page_rank: float
    community: Optional[int] = None
    category: Optional[str] = None


class GraphStats(BaseModel):
    node_count: int = 0
    edge_count: int = 0
    avg_degree: float = 0.0
    community_count: int = 0
    page_rank_computed: bool = False
    max_page_rank: float = 0.0
    min_page_rank: float = 0.0


@dataclass(slots=True)
class GraphNode:
    id: str
    category: Optional[str] = None
    embedding: Optional[List[float]] = None


@dataclass(slots=True)
class GraphEdge:
    source: str
    target: str
    type: str = "reference"
    weight: float = 1.0


__all__ = [
    "GraphEdge",
    "GraphNode",
    "GraphStats",
    "MemoryEntry",
    "MemoryQuery",
    "RankedResult",
    "SearchOptions",
    "SearchResult",
    "TopNode",
]
