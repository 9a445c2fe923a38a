"""
Distiller - Extract reusable strategy memories from judged trajectories

WHAT: Converts a successful, judged trajectory into a DistilledMemory
WHERE: engram/runtime/memory/distiller.py - learning layer
WHO: ReasoningBank after judging; callers distilling ad hoc
TIME: O(steps · dim) per trajectory

Gating: returns None when the verdict is unsuccessful or the trajectory's
quality is below the distillation threshold. A trajectory yields at most
one memory; distilling it again returns the memory already recorded
(or None if consolidation has since removed it).
"""

from __future__ import annotations

import logging
from typing import List, Optional

from .judge import TrajectoryJudge
from .memory_store import MemoryStore
from .models import DistilledMemory, Trajectory
from .vector_math import weighted_average

logger = logging.getLogger(__name__)

EMPTY_EMBEDDING_DIM = 768


def extract_strategy(trajectory: Trajectory) -> str:
    """Summarise the distinct actions in first-seen order."""
    unique_actions = list(dict.fromkeys(step.action for step in trajectory.steps))
    if len(unique_actions) <= 3:
        return f"Apply {' -> '.join(unique_actions)}"
    return f"Multi-step approach: {', '.join(unique_actions[:3])}..."


def extract_key_learnings(trajectory: Trajectory) -> List[str]:
    verdict = trajectory.verdict
    if verdict is None:
        return []
    if verdict.success:
        learnings = [f"Successful approach for {trajectory.domain} domain"]
        learnings.extend(f"Strength: {s}" for s in verdict.strengths[:2])
    else:
        learnings = ["Approach needs refinement"]
        learnings.extend(f"Improvement: {i}" for i in verdict.improvements[:2])
    return learnings


def aggregate_embedding(trajectory: Trajectory) -> List[float]:
    """Recency-weighted mean of step states; step i has weight (i+1)/N."""
    steps = trajectory.steps
    if not steps:
        return [0.0] * EMPTY_EMBEDDING_DIM
    n = len(steps)
    weights = [(i + 1) / n for i in range(n)]
    return weighted_average([s.state_after for s in steps], weights).tolist()


class Distiller:
    """Writes distilled memories into a MemoryStore."""

    def __init__(self, judge: TrajectoryJudge, store: MemoryStore) -> None:
        self.judge = judge
        self.store = store

    @property
    def distillation_threshold(self) -> float:
        return self.judge.distillation_threshold

    def distill(self, trajectory: Trajectory) -> Optional[DistilledMemory]:
        """
        Distill a trajectory, judging it first if needed.

        Returns:
            The stored memory, or None when there is nothing worth keeping

        Raises:
            InvalidStateError: If the trajectory must be judged but is incomplete
        """
        if trajectory.distilled_memory_id is not None:
            return self.store.get(trajectory.distilled_memory_id)

        verdict = trajectory.verdict or self.judge.judge(trajectory)
        if not verdict.success or trajectory.quality_score < self.distillation_threshold:
            logger.debug(f"Trajectory {trajectory.trajectory_id} not distilled (success={verdict.success})")
            return None

        memory = DistilledMemory(
            trajectory_id=trajectory.trajectory_id,
            strategy=extract_strategy(trajectory),
            key_learnings=extract_key_learnings(trajectory),
            embedding=aggregate_embedding(trajectory),
            quality=trajectory.quality_score,
        )
        if not self.store.insert(memory):
            return None

        trajectory.distilled_memory_id = memory.memory_id
        logger.debug(f"Distilled {memory.memory_id} from {trajectory.trajectory_id}: {memory.strategy}")
        return memory


__all__ = [
    "Distiller",
    "EMPTY_EMBEDDING_DIM",
    "aggregate_embedding",
    "extract_key_learnings",
    "extract_strategy",
]
