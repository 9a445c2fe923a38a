"""
Memory Store - Bounded map of distilled memories

WHAT: Storage interface for distilled memories plus an in-process implementation
WHERE: engram/runtime/memory/memory_store.py - semantic layer
WHO: Distiller (writes), Retriever (reads), Consolidator (deletes/flags)
TIME: All operations O(1) except listing

Provides a minimal MemoryStore protocol so vector databases or on-disk
stores can back the pipeline, and LocalMemoryStore, the default dict-backed
implementation. Iteration order is insertion order, which retrieval and
consolidation rely on for deterministic tie-breaks.

Capacity: once ``max_memories`` entries are held, inserting a new id is a
silent no-op (``insert`` returns False). Replacing an existing id always
succeeds.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Protocol

from .models import DistilledMemory, utc_now

logger = logging.getLogger(__name__)


class MemoryStore(Protocol):
    """Abstract interface for distilled-memory persistence."""

    def insert(self, memory: DistilledMemory) -> bool:
        """Store or replace a memory; False when dropped for capacity."""

    def get(self, memory_id: str) -> Optional[DistilledMemory]:
        """Return the memory or None."""

    def remove(self, memory_id: str) -> bool:
        """Delete a memory; False if it was absent."""

    def all(self) -> List[DistilledMemory]:
        """All memories in insertion order, consolidated ones included."""

    def active(self) -> List[DistilledMemory]:
        """Memories eligible for retrieval, in insertion order."""

    def mark_consolidated(self, memory_id: str) -> bool:
        """Soft-exclude a memory from retrieval without deleting it."""

    def __len__(self) -> int:
        ...


@dataclass(slots=True)
class LocalMemoryStore(MemoryStore):
    """Dict-backed MemoryStore."""

    max_memories: int = 10000
    _memories: Dict[str, DistilledMemory] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self._memories)

    def __contains__(self, memory_id: object) -> bool:
        return memory_id in self._memories

    # ------------------ writes ------------------
    def insert(self, memory: DistilledMemory) -> bool:
        if memory.memory_id not in self._memories and len(self._memories) >= self.max_memories:
            logger.warning(f"Memory store at capacity ({self.max_memories}); dropped {memory.memory_id}")
            return False
        self._memories[memory.memory_id] = memory
        return True

    def remove(self, memory_id: str) -> bool:
        return self._memories.pop(memory_id, None) is not None

    def mark_consolidated(self, memory_id: str) -> bool:
        memory = self._memories.get(memory_id)
        if memory is None:
            return False
        memory.consolidated = True
        return True

    def record_usage(self, memory_id: str, *, now: Optional[datetime] = None) -> Optional[DistilledMemory]:
        """Increment usage for a reused memory; None if it is gone."""
        memory = self._memories.get(memory_id)
        if memory is None:
            return None
        memory.usage_count += 1
        memory.last_used = now or utc_now()
        return memory

    # ------------------ reads -------------------
    def get(self, memory_id: str) -> Optional[DistilledMemory]:
        return self._memories.get(memory_id)

    def all(self) -> List[DistilledMemory]:
        return list(self._memories.values())

    def active(self) -> List[DistilledMemory]:
        """Memories eligible for retrieval (not soft-excluded)."""
        return [m for m in self._memories.values() if not m.consolidated]

    def consolidated_count(self) -> int:
        return sum(1 for m in self._memories.values() if m.consolidated)


__all__ = [
    "LocalMemoryStore",
    "MemoryStore",
]
