"""
Memory Consolidation Engine - Keep the memory corpus bounded and coherent

WHAT: Maintenance pass that dedups memories, flags contradictions, prunes and merges patterns
WHERE: engram/runtime/memory/consolidation.py - maintenance layer
WHO: Schedulers or agents triggering periodic maintenance
TIME: O(n²) pairwise scans; fine for thousands of memories

Steps, in order:
1. Dedup: memory pairs with similarity > dedup_threshold; the higher-quality
   one survives (equal quality keeps the earlier-inserted one).
2. Contradictions (optional): pairs with similarity > 0.8 and quality gap
   > 0.4; the lower-quality memory is soft-excluded (``consolidated``),
   never deleted.
3. Prune: patterns idle for more than max_pattern_age_days with fewer than
   5 uses are deleted.
4. Merge: same-domain patterns with similarity > 0.9 fold into the one
   with the higher success rate.

The pass never raises for data-quality reasons and emits
``memory:consolidated`` with the final memory count.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional, Set

from .memory_store import MemoryStore
from .models import ConsolidationResult, Pattern, PatternEvolution, utc_now
from .patterns import PatternRegistry
from .telemetry import EventDispatcher
from .vector_math import as_array, cosine_similarity

logger = logging.getLogger(__name__)


@dataclass
class ConsolidationConfig:
    """Thresholds for a consolidation pass."""

    dedup_threshold: float = 0.95
    enable_contradiction_detection: bool = True
    contradiction_similarity: float = 0.8
    contradiction_quality_gap: float = 0.4
    max_pattern_age_days: float = 30
    prune_min_usage: int = 5
    merge_similarity: float = 0.9


class ConsolidationEngine:
    """
    Runs maintenance over a MemoryStore and a PatternRegistry.

    Each step can also be invoked on its own; ``consolidate`` runs all of
    them in order and reports the counts.
    """

    def __init__(
        self,
        memory_store: MemoryStore,
        patterns: PatternRegistry,
        *,
        config: Optional[ConsolidationConfig] = None,
        events: Optional[EventDispatcher] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = memory_store
        self.patterns = patterns
        self.config = config or ConsolidationConfig()
        self._events = events or EventDispatcher()
        self._clock = clock or utc_now

    def consolidate(self) -> ConsolidationResult:
        result = ConsolidationResult(removed_duplicates=self.deduplicate_memories())
        if self.config.enable_contradiction_detection:
            result.contradictions_detected = self.detect_contradictions()
        result.pruned_patterns = self.prune_old_patterns()
        result.merged_patterns = self.merge_patterns()

        memories_count = len(self.store)
        logger.info(
            f"Consolidation finished: {result.removed_duplicates} duplicates removed, "
            f"{result.contradictions_detected} contradictions, {result.pruned_patterns} patterns pruned, "
            f"{result.merged_patterns} merged ({memories_count} memories remain)"
        )
        self._events.emit("memory:consolidated", memoriesCount=memories_count)
        return result

    def deduplicate_memories(self) -> int:
        memories = self.store.all()
        vectors = [as_array(m.embedding) for m in memories]
        removed: Set[int] = set()

        for i in range(len(memories)):
            if i in removed:
                continue
            for j in range(i + 1, len(memories)):
                if j in removed:
                    continue
                if cosine_similarity(vectors[i], vectors[j]) <= self.config.dedup_threshold:
                    continue
                if memories[i].quality >= memories[j].quality:
                    removed.add(j)
                else:
                    removed.add(i)
                    break

        for idx in sorted(removed):
            self.store.remove(memories[idx].memory_id)
        return len(removed)

    def detect_contradictions(self) -> int:
        """Flag the lower-quality side of similar memories with divergent outcomes.

        Only newly flagged memories are counted, so re-running on unchanged
        data reports 0.
        """
        memories = self.store.all()
        vectors = [as_array(m.embedding) for m in memories]
        flagged = 0

        for i in range(len(memories)):
            for j in range(i + 1, len(memories)):
                gap = abs(memories[i].quality - memories[j].quality)
                if gap <= self.config.contradiction_quality_gap:
                    continue
                if cosine_similarity(vectors[i], vectors[j]) <= self.config.contradiction_similarity:
                    continue
                loser = memories[i] if memories[i].quality < memories[j].quality else memories[j]
                if loser.consolidated:
                    continue
                self.store.mark_consolidated(loser.memory_id)
                flagged += 1

        return flagged

    def prune_old_patterns(self) -> int:
        now = self._clock()
        pruned = 0
        for pattern in self.patterns.all():
            if pattern.age_days(now) > self.config.max_pattern_age_days and pattern.usage_count < self.config.prune_min_usage:
                self.patterns.remove(pattern.pattern_id)
                pruned += 1
        return pruned

    def merge_patterns(self) -> int:
        patterns: List[Pattern] = self.patterns.all()
        vectors = [as_array(p.embedding) for p in patterns]
        absorbed: Set[int] = set()
        merged = 0

        for i in range(len(patterns)):
            if i in absorbed:
                continue
            for j in range(i + 1, len(patterns)):
                if j in absorbed:
                    continue
                if patterns[i].domain != patterns[j].domain:
                    continue
                if cosine_similarity(vectors[i], vectors[j]) <= self.config.merge_similarity:
                    continue

                keep_idx, drop_idx = (i, j) if patterns[i].success_rate >= patterns[j].success_rate else (j, i)
                self._absorb(patterns[keep_idx], patterns[drop_idx])
                absorbed.add(drop_idx)
                merged += 1
                if drop_idx == i:
                    break

        return merged

    def _absorb(self, keep: Pattern, drop: Pattern) -> None:
        previous_quality = keep.success_rate
        keep.usage_count += drop.usage_count
        keep.quality_history.extend(drop.quality_history)
        keep.recompute_success_rate()
        keep.updated_at = self._clock()
        keep.evolution_history.append(
            PatternEvolution(
                timestamp=keep.updated_at,
                type="merge",
                previous_quality=previous_quality,
                new_quality=keep.success_rate,
                description=f"Merged with pattern {drop.pattern_id}",
            )
        )
        self.patterns.remove(drop.pattern_id)
        logger.debug(f"Merged pattern {drop.pattern_id} into {keep.pattern_id}")


__all__ = [
    "ConsolidationConfig",
    "ConsolidationEngine",
]
