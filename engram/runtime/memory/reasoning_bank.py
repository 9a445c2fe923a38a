"""
ReasoningBank - Central coordination of the trajectory learning pipeline

WHAT: Facade tying trajectory storage, judging, distillation, retrieval and consolidation
WHERE: engram/runtime/memory/reasoning_bank.py - top of the runtime stack
WHO: Entry point for agents recording executions and recalling strategies
TIME: Learning step target <10ms; retrieval O(k·n)

Pipeline:
1. RETRIEVE - top-k memories with MMR diversity
2. JUDGE - rule-based trajectory evaluation
3. DISTILL - strategy memories from successful trajectories
4. CONSOLIDATE - dedup, contradiction flags, pattern prune/merge

Single-writer: the instance holds no locks. Callers sharing one bank
across threads or tasks must serialise access themselves.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from engram.config.settings import ReasoningBankConfig

from .consolidation import ConsolidationConfig, ConsolidationEngine
from .distiller import Distiller
from .judge import TrajectoryJudge
from .memory_store import LocalMemoryStore
from .models import (
    ConsolidationResult,
    DistilledMemory,
    Pattern,
    PatternEvolution,
    RetrievalResult,
    Trajectory,
    TrajectoryVerdict,
    utc_now,
)
from .patterns import PatternRegistry
from .retrieval import MMRRetriever
from .telemetry import EventDispatcher, EventListener, NoOpTelemetryClient, TelemetryClient
from .trajectory_store import TrajectoryStore
from .vector_math import Vector

logger = logging.getLogger(__name__)


class ReasoningBank:
    """Facade that owns the stores and runs the learning pipeline."""

    def __init__(
        self,
        *,
        config: ReasoningBankConfig | None = None,
        memory_store: LocalMemoryStore | None = None,
        telemetry: TelemetryClient | None = None,
        events: EventDispatcher | None = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.config = config or ReasoningBankConfig()
        self._clock = clock or utc_now
        self._events = events or EventDispatcher()
        self._telemetry = telemetry or NoOpTelemetryClient()

        self._trajectories = TrajectoryStore(max_trajectories=self.config.max_trajectories)
        self._memories = memory_store or LocalMemoryStore(max_memories=self.config.max_memories)
        self._patterns = PatternRegistry(events=self._events, clock=self._clock)
        self._judge = TrajectoryJudge(
            distillation_threshold=self.config.distillation_threshold,
            clock=self._clock,
        )
        self._distiller = Distiller(self._judge, self._memories)
        self._retriever = MMRRetriever(
            self._memories,
            mmr_lambda=self.config.mmr_lambda,
            default_k=self.config.retrieval_k,
        )
        self._consolidator = ConsolidationEngine(
            self._memories,
            self._patterns,
            config=ConsolidationConfig(
                dedup_threshold=self.config.dedup_threshold,
                enable_contradiction_detection=self.config.enable_contradiction_detection,
                max_pattern_age_days=self.config.max_pattern_age_days,
            ),
            events=self._events,
            clock=self._clock,
        )

        self._retrieval_count = 0
        self._total_retrieval_ms = 0.0
        self._distillation_count = 0
        self._total_distillation_ms = 0.0

    @property
    def trajectories(self) -> TrajectoryStore:
        return self._trajectories

    @property
    def memories(self) -> LocalMemoryStore:
        return self._memories

    @property
    def patterns(self) -> PatternRegistry:
        return self._patterns

    @property
    def events(self) -> EventDispatcher:
        return self._events

    @property
    def telemetry(self) -> TelemetryClient:
        return self._telemetry

    # ------------------ retrieve ------------------
    def retrieve(self, query_embedding: Vector, k: Optional[int] = None) -> List[RetrievalResult]:
        with self._telemetry.span("reasoning_bank.retrieve", attributes={"k": k}) as span:
            results = self._retriever.retrieve(query_embedding, k)
            span.set_attribute("result_count", len(results))
        self._retrieval_count += 1
        self._total_retrieval_ms += span.duration_ms
        return results

    # ------------------ judge ---------------------
    def judge(self, trajectory: Trajectory) -> TrajectoryVerdict:
        verdict = self._judge.judge(trajectory)
        self._events.emit(
            "trajectory:judged",
            trajectoryId=trajectory.trajectory_id,
            success=verdict.success,
        )
        return verdict

    def judge_by_id(self, trajectory_id: str) -> TrajectoryVerdict:
        return self.judge(self._trajectories.require(trajectory_id))

    # ------------------ distill -------------------
    def distill(self, trajectory: Trajectory) -> Optional[DistilledMemory]:
        """Distill once per trajectory; later calls return the stored memory silently."""
        if trajectory.distilled_memory_id is not None:
            return self._memories.get(trajectory.distilled_memory_id)
        if trajectory.verdict is None:
            self.judge(trajectory)
        with self._telemetry.span(
            "reasoning_bank.distill",
            attributes={"trajectory_id": trajectory.trajectory_id},
        ) as span:
            memory = self._distiller.distill(trajectory)
            span.set_attribute("distilled", memory is not None)
        if memory is not None:
            self._distillation_count += 1
            self._total_distillation_ms += span.duration_ms
            self._events.emit(
                "memory:distilled",
                memoryId=memory.memory_id,
                trajectoryId=trajectory.trajectory_id,
            )
        return memory

    def distill_by_id(self, trajectory_id: str) -> Optional[DistilledMemory]:
        return self.distill(self._trajectories.require(trajectory_id))

    # ------------------ consolidate ---------------
    def consolidate(self) -> ConsolidationResult:
        with self._telemetry.span("reasoning_bank.consolidate"):
            return self._consolidator.consolidate()

    # ------------------ patterns ------------------
    def memory_to_pattern(self, memory: DistilledMemory) -> Pattern:
        trajectory = self._trajectories.get(memory.trajectory_id)
        domain = trajectory.domain if trajectory and trajectory.domain else "general"
        return self._patterns.promote(memory, domain=domain)

    def evolve_pattern(self, pattern_id: str, new_experience: Trajectory) -> Optional[PatternEvolution]:
        return self._patterns.evolve(pattern_id, new_experience)

    def get_patterns(self) -> List[Pattern]:
        return self._patterns.all()

    # ------------------ trajectories --------------
    def store_trajectory(self, trajectory: Trajectory) -> None:
        self._trajectories.store(trajectory)

    def get_trajectory(self, trajectory_id: str) -> Optional[Trajectory]:
        return self._trajectories.get(trajectory_id)

    def get_trajectories(self) -> List[Trajectory]:
        return self._trajectories.all()

    # ------------------ usage & stats -------------
    def record_usage(self, memory_id: str) -> Optional[DistilledMemory]:
        return self._memories.record_usage(memory_id, now=self._clock())

    def get_stats(self) -> Dict[str, float]:
        return {
            "trajectoryCount": len(self._trajectories),
            "memoryCount": len(self._memories),
            "patternCount": len(self._patterns),
            "avgRetrievalTimeMs": (
                self._total_retrieval_ms / self._retrieval_count if self._retrieval_count else 0.0
            ),
            "avgDistillationTimeMs": (
                self._total_distillation_ms / self._distillation_count if self._distillation_count else 0.0
            ),
            "consolidatedMemories": self._memories.consolidated_count(),
        }

    # ------------------ events --------------------
    def add_event_listener(self, listener: EventListener) -> None:
        self._events.add_listener(listener)

    def remove_event_listener(self, listener: EventListener) -> None:
        self._events.remove_listener(listener)


def create_reasoning_bank(config: ReasoningBankConfig | None = None, **overrides: Any) -> ReasoningBank:
    """Factory: build a bank from a config and/or field overrides."""
    if overrides:
        base = config.model_dump() if config is not None else {}
        base.update(overrides)
        config = ReasoningBankConfig(**base)
    return ReasoningBank(config=config)


__all__ = ["ReasoningBank", "create_reasoning_bank"]
