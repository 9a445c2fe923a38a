"""
Memory Models - Type-safe data structures for trajectory learning

WHAT: Pydantic models for trajectories, verdicts, distilled memories and patterns
WHERE: engram/runtime/memory/models.py - data layer
WHO: TrajectoryStore, Judge, Distiller, MemoryStore, Consolidator
TIME: Model validation <1ms

Cross references are id-based: a Trajectory carries the id of the memory
distilled from it and a DistilledMemory carries its trajectory id. The
objects themselves live in two independent stores keyed by those ids.

Invariants:
- TrajectorySteps are frozen once appended; all steps share one dimension
- Pattern.success_rate is always the mean of Pattern.quality_history
- quality_history keeps at most the 100 most recent samples
"""

from __future__ import annotations

import math
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

from .errors import InvalidStateError

QUALITY_HISTORY_LIMIT = 100

EvolutionType = Literal["improvement", "merge", "split", "prune"]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def generate_key(prefix: str) -> str:
    """Generate a millisecond-timestamp key with a random suffix."""
    return f"{prefix}_{int(time.time() * 1000)}_{uuid.uuid4().hex[:7]}"


class TrajectoryStep(BaseModel):
    """One state transition of a task execution."""

    model_config = ConfigDict(frozen=True)

    action: str
    state_after: List[float] = Field(default_factory=list)
    reward: float = 0.0


class TrajectoryVerdict(BaseModel):
    """Outcome of judging a completed trajectory."""

    success: bool
    confidence: float
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    improvements: List[str] = Field(default_factory=list)
    relevance_score: float = 0.0


class Trajectory(BaseModel):
    """
    Episodic record of a multi-step task execution.

    Examples:
    - domain="code", steps=[read_file, edit, run_tests], quality_score=0.82
    - domain="retrieval", steps=[embed, search, rerank], quality_score=0.4
    """

    trajectory_id: str = Field(default_factory=lambda: generate_key("traj"))
    domain: str = "general"
    steps: List[TrajectoryStep] = Field(default_factory=list)
    start_time: datetime = Field(default_factory=utc_now)
    quality_score: float = 0.0
    is_complete: bool = False
    verdict: Optional[TrajectoryVerdict] = None
    distilled_memory_id: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @property
    def dimension(self) -> int:
        return len(self.steps[0].state_after) if self.steps else 0

    def add_step(self, action: str, state_after: Sequence[float], reward: float) -> TrajectoryStep:
        """Append a step; the first step fixes the state dimension."""
        if self.is_complete:
            raise InvalidStateError(f"Cannot append to completed trajectory {self.trajectory_id}")
        vector = [float(x) for x in state_after]
        if self.steps and len(vector) != self.dimension:
            raise InvalidStateError(
                f"Step dimension {len(vector)} does not match trajectory dimension {self.dimension}"
            )
        step = TrajectoryStep(action=action, state_after=vector, reward=float(reward))
        self.steps.append(step)
        return step

    def complete(self, quality_score: Optional[float] = None) -> None:
        if quality_score is not None:
            self.quality_score = float(quality_score)
        self.is_complete = True

    def age_days(self, now: Optional[datetime] = None) -> float:
        reference = now or utc_now()
        return max(0.0, (reference - self.start_time).total_seconds() / 86400.0)


class DistilledMemory(BaseModel):
    """Reusable strategy extracted from a successful trajectory."""

    memory_id: str = Field(default_factory=lambda: generate_key("mem"))
    trajectory_id: str
    strategy: str
    key_learnings: List[str] = Field(default_factory=list)
    embedding: List[float] = Field(default_factory=list)
    quality: float = 0.0
    usage_count: int = 0
    last_used: datetime = Field(default_factory=utc_now)
    consolidated: bool = False  # soft-excluded from retrieval


class PatternEvolution(BaseModel):
    timestamp: datetime = Field(default_factory=utc_now)
    type: EvolutionType
    previous_quality: float
    new_quality: float
    description: str = ""


class Pattern(BaseModel):
    """Longer-lived aggregate promoted from a distilled memory."""

    pattern_id: str
    name: str
    domain: str = "general"
    embedding: List[float] = Field(default_factory=list)
    strategy: str = ""
    success_rate: float = 0.0
    usage_count: int = 0
    quality_history: List[float] = Field(default_factory=list)
    evolution_history: List[PatternEvolution] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    def recompute_success_rate(self) -> float:
        if len(self.quality_history) > QUALITY_HISTORY_LIMIT:
            self.quality_history = self.quality_history[-QUALITY_HISTORY_LIMIT:]
        if self.quality_history:
            self.success_rate = math.fsum(self.quality_history) / len(self.quality_history)
        return self.success_rate

    def record_quality(self, quality: float) -> float:
        """Append a sample to the capped history and return the new mean."""
        self.quality_history.append(float(quality))
        return self.recompute_success_rate()

    def age_days(self, now: Optional[datetime] = None) -> float:
        reference = now or utc_now()
        return (reference - self.updated_at).total_seconds() / 86400.0


class RetrievalResult(BaseModel):
    """One MMR-selected memory with its scoring breakdown."""

    memory: DistilledMemory
    relevance_score: float
    diversity_score: float
    combined_score: float


class ConsolidationResult(BaseModel):
    removed_duplicates: int = 0
    contradictions_detected: int = 0
    pruned_patterns: int = 0
    merged_patterns: int = 0


__all__ = [
    "ConsolidationResult",
    "DistilledMemory",
    "EvolutionType",
    "Pattern",
    "PatternEvolution",
    "QUALITY_HISTORY_LIMIT",
    "RetrievalResult",
    "Trajectory",
    "TrajectoryStep",
    "TrajectoryVerdict",
    "generate_key",
    "utc_now",
]
