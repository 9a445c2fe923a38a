"""
Memory Backend - Storage contract consumed by the memory graph

WHAT: Async backend protocol (store/query/search + bulk variants) and an in-process implementation
WHERE: engram/graph/backend.py - persistence seam
WHO: MemoryGraph.build_from_backend / add_similarity_edges; callers importing corpora
TIME: InMemoryBackend search O(n·d) per query

Any store (vector database, on-disk index, remote service) can back the
graph as long as ``query``/``search`` return MemoryEntry objects carrying
an id, optional embedding, optional references and a metadata map.
All methods are awaitable because real backends suspend on I/O.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Protocol

from engram.runtime.memory.vector_math import Vector, cosine_similarity

from .models import MemoryEntry, MemoryQuery, SearchOptions, SearchResult

logger = logging.getLogger(__name__)


class MemoryBackend(Protocol):
    """Abstract interface for memory-entry persistence."""

    async def store(self, entry: MemoryEntry) -> None:
        """Insert or replace a single entry."""

    async def get(self, entry_id: str) -> Optional[MemoryEntry]:
        """Return the entry or None."""

    async def delete(self, entry_id: str) -> bool:
        """Remove an entry; False if absent."""

    async def query(self, query: MemoryQuery) -> List[MemoryEntry]:
        """Entries matching the filter, in storage order."""

    async def search(self, embedding: Vector, options: SearchOptions) -> List[SearchResult]:
        """Entries ranked by similarity to ``embedding``, best first."""

    async def bulk_insert(self, entries: Iterable[MemoryEntry]) -> int:
        """Insert many entries; returns the number written."""

    async def bulk_delete(self, entry_ids: Iterable[str]) -> int:
        """Delete many entries; returns the number removed."""

    async def count(self, namespace: Optional[str] = None) -> int:
        """Number of stored entries, optionally within a namespace."""


@dataclass(slots=True)
class InMemoryBackend(MemoryBackend):
    """Dict-backed MemoryBackend with brute-force cosine search."""

    _entries: Dict[str, MemoryEntry] = field(default_factory=dict)

    @classmethod
    def from_entries(cls, entries: Iterable[MemoryEntry]) -> "InMemoryBackend":
        backend = cls()
        for entry in entries:
            backend._entries[entry.id] = entry
        return backend

    # ------------------ writes ------------------
    async def store(self, entry: MemoryEntry) -> None:
        self._entries[entry.id] = entry

    async def delete(self, entry_id: str) -> bool:
        return self._entries.pop(entry_id, None) is not None

    async def bulk_insert(self, entries: Iterable[MemoryEntry]) -> int:
        written = 0
        for entry in entries:
            self._entries[entry.id] = entry
            written += 1
        return written

    async def bulk_delete(self, entry_ids: Iterable[str]) -> int:
        return sum(1 for entry_id in list(entry_ids) if self._entries.pop(entry_id, None) is not None)

    # ------------------ reads -------------------
    async def get(self, entry_id: str) -> Optional[MemoryEntry]:
        return self._entries.get(entry_id)

    async def query(self, query: MemoryQuery) -> List[MemoryEntry]:
        rows = [e for e in self._entries.values() if query.matches(e)]
        if query.limit is not None:
            rows = rows[: query.limit]
        return rows

    async def search(self, embedding: Vector, options: SearchOptions) -> List[SearchResult]:
        scored: List[SearchResult] = []
        for entry in self._entries.values():
            if not entry.embedding:
                continue
            if options.namespace is not None and entry.namespace != options.namespace:
                continue
            score = cosine_similarity(embedding, entry.embedding)
            if options.threshold is not None and score < options.threshold:
                continue
            scored.append(SearchResult(entry=entry, score=score, distance=1.0 - score))
        scored.sort(key=lambda r: r.score, reverse=True)
        return scored[: options.k]

    async def count(self, namespace: Optional[str] = None) -> int:
        if namespace is None:
            return len(self._entries)
        return sum(1 for e in self._entries.values() if e.namespace == namespace)


__all__ = [
    "InMemoryBackend",
    "MemoryBackend",
]
