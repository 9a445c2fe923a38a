"""
Pattern Registry - Promotion and evolution of long-lived strategies

WHAT: Holds Patterns promoted from distilled memories and evolves them with new experience
WHERE: engram/runtime/memory/patterns.py - pattern layer
WHO: ReasoningBank (promotion/evolution) and Consolidator (prune/merge)
TIME: Promotion and evolution O(1); history capped at 100 samples

Evolution types produced here are ``improvement`` and ``prune``; ``merge``
comes only from consolidation. ``split`` is a reserved value that nothing
currently produces.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Callable, Dict, List, Optional

from .models import DistilledMemory, EvolutionType, Pattern, PatternEvolution, Trajectory, utc_now
from .telemetry import EventDispatcher

logger = logging.getLogger(__name__)

_NAME_STRIP = re.compile(r"[^a-z0-9_]")


def generate_pattern_name(strategy: str) -> str:
    """First four strategy words, snake-cased, restricted to [a-z0-9_]."""
    words = strategy.split(" ")[:4]
    return _NAME_STRIP.sub("", "_".join(words).lower())


def determine_evolution_type(previous: float, current: float) -> EvolutionType:
    delta = current - previous
    if delta > 0.05:
        return "improvement"
    if delta < -0.1:
        return "prune"
    return "improvement"


class PatternRegistry:
    """Insertion-ordered map of patterns."""

    def __init__(
        self,
        *,
        events: Optional[EventDispatcher] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._patterns: Dict[str, Pattern] = {}
        self._events = events or EventDispatcher()
        self._clock = clock or utc_now

    def __len__(self) -> int:
        return len(self._patterns)

    def __contains__(self, pattern_id: object) -> bool:
        return pattern_id in self._patterns

    def get(self, pattern_id: str) -> Optional[Pattern]:
        return self._patterns.get(pattern_id)

    def all(self) -> List[Pattern]:
        return list(self._patterns.values())

    def add(self, pattern: Pattern) -> Pattern:
        self._patterns[pattern.pattern_id] = pattern
        return pattern

    def remove(self, pattern_id: str) -> bool:
        return self._patterns.pop(pattern_id, None) is not None

    def promote(self, memory: DistilledMemory, *, domain: str = "general") -> Pattern:
        """Create (or replace) the pattern ``pat_<memory_id>`` from a memory."""
        now = self._clock()
        pattern = Pattern(
            pattern_id=f"pat_{memory.memory_id}",
            name=generate_pattern_name(memory.strategy),
            domain=domain,
            embedding=list(memory.embedding),
            strategy=memory.strategy,
            success_rate=memory.quality,
            usage_count=memory.usage_count,
            quality_history=[memory.quality],
            created_at=now,
            updated_at=now,
        )
        return self.add(pattern)

    def evolve(self, pattern_id: str, experience: Trajectory) -> Optional[PatternEvolution]:
        """
        Fold a new trajectory's quality into a pattern.

        Unknown ids are ignored and return None.
        """
        pattern = self._patterns.get(pattern_id)
        if pattern is None:
            logger.debug(f"evolve ignored for unknown pattern {pattern_id}")
            return None

        previous_quality = pattern.success_rate
        pattern.record_quality(experience.quality_score)
        pattern.usage_count += 1
        pattern.updated_at = self._clock()

        evolution = PatternEvolution(
            timestamp=pattern.updated_at,
            type=determine_evolution_type(previous_quality, pattern.success_rate),
            previous_quality=previous_quality,
            new_quality=pattern.success_rate,
            description=f"Updated based on trajectory {experience.trajectory_id}",
        )
        pattern.evolution_history.append(evolution)
        self._events.emit("pattern:evolved", patternId=pattern_id, evolutionType=evolution.type)
        return evolution


__all__ = [
    "PatternRegistry",
    "determine_evolution_type",
    "generate_pattern_name",
]
