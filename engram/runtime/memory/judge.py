"""
Trajectory Judge - Rule-based evaluation of completed executions

WHAT: Turns a completed trajectory into a TrajectoryVerdict
WHERE: engram/runtime/memory/judge.py - evaluation layer
WHO: ReasoningBank and Distiller before distillation
TIME: O(steps) per verdict

Step statistics drive every rule:
- avg_reward: mean step reward
- positive_ratio: share of steps with reward > 0.5
- slope: last reward minus first reward (0 for ≤1 step)

success    = quality ≥ threshold AND positive_ratio > 0.6
confidence = 0.3·min(steps/10, 1) + 0.4·positive_ratio + 0.3·|quality − 0.5|·2
relevance  = 0.7·quality + 0.3·exp(−age_days / 30)
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional, Sequence

from .errors import InvalidStateError
from .models import Trajectory, TrajectoryStep, TrajectoryVerdict, utc_now

RECENCY_DECAY_DAYS = 30.0

# weakness fragment -> suggested improvement
IMPROVEMENT_TEMPLATES = (
    ("Low average reward", "Consider alternative strategies for each step"),
    ("Declining", "Re-evaluate approach when reward decreases"),
    ("negative/neutral", "Focus on steps with clearer positive signals"),
    ("Long trajectory", "Look for shortcuts or more direct approaches"),
)


@dataclass(slots=True)
class StepAnalysis:
    total_steps: int
    avg_reward: float
    positive_ratio: float
    slope: float


def analyze_steps(steps: Sequence[TrajectoryStep]) -> StepAnalysis:
    if not steps:
        return StepAnalysis(total_steps=0, avg_reward=0.0, positive_ratio=0.0, slope=0.0)
    rewards = [s.reward for s in steps]
    positive = sum(1 for r in rewards if r > 0.5)
    return StepAnalysis(
        total_steps=len(rewards),
        avg_reward=math.fsum(rewards) / len(rewards),
        positive_ratio=positive / len(rewards),
        slope=rewards[-1] - rewards[0] if len(rewards) > 1 else 0.0,
    )


def identify_strengths(trajectory: Trajectory, analysis: StepAnalysis) -> List[str]:
    strengths: List[str] = []
    if analysis.avg_reward > 0.7:
        strengths.append("High average reward across steps")
    if analysis.slope > 0.2:
        strengths.append("Positive reward trajectory")
    if trajectory.quality_score > 0.8:
        strengths.append("High overall quality")
    if analysis.total_steps < 5 and trajectory.quality_score > 0.6:
        strengths.append("Efficient solution (few steps)")
    return strengths


def identify_weaknesses(trajectory: Trajectory, analysis: StepAnalysis) -> List[str]:
    weaknesses: List[str] = []
    if analysis.avg_reward < 0.4:
        weaknesses.append("Low average reward")
    if analysis.slope < -0.1:
        weaknesses.append("Declining reward trajectory")
    if analysis.positive_ratio < 0.5:
        weaknesses.append("Many negative/neutral steps")
    if analysis.total_steps > 10 and trajectory.quality_score < 0.7:
        weaknesses.append("Long trajectory with mediocre outcome")
    return weaknesses


def generate_improvements(weaknesses: Sequence[str]) -> List[str]:
    improvements: List[str] = []
    for weakness in weaknesses:
        for fragment, suggestion in IMPROVEMENT_TEMPLATES:
            if fragment in weakness:
                improvements.append(suggestion)
    return improvements


class TrajectoryJudge:
    """Evaluates trajectories against the distillation threshold."""

    def __init__(
        self,
        *,
        distillation_threshold: float = 0.6,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.distillation_threshold = distillation_threshold
        self._clock = clock or utc_now

    def judge(self, trajectory: Trajectory) -> TrajectoryVerdict:
        """
        Produce a verdict and attach it to ``trajectory``.

        Re-judging overwrites the previous verdict.

        Raises:
            InvalidStateError: If the trajectory is not complete
        """
        if not trajectory.is_complete:
            raise InvalidStateError("Cannot judge incomplete trajectory")

        analysis = analyze_steps(trajectory.steps)
        weaknesses = identify_weaknesses(trajectory, analysis)
        verdict = TrajectoryVerdict(
            success=(
                trajectory.quality_score >= self.distillation_threshold
                and analysis.positive_ratio > 0.6
            ),
            confidence=self._confidence(trajectory, analysis),
            strengths=identify_strengths(trajectory, analysis),
            weaknesses=weaknesses,
            improvements=generate_improvements(weaknesses),
            relevance_score=self._relevance(trajectory),
        )
        trajectory.verdict = verdict
        return verdict

    def _confidence(self, trajectory: Trajectory, analysis: StepAnalysis) -> float:
        step_factor = min(analysis.total_steps / 10.0, 1.0)
        outcome_factor = abs(trajectory.quality_score - 0.5) * 2.0
        return step_factor * 0.3 + analysis.positive_ratio * 0.4 + outcome_factor * 0.3

    def _relevance(self, trajectory: Trajectory) -> float:
        age_days = trajectory.age_days(self._clock())
        return trajectory.quality_score * 0.7 + math.exp(-age_days / RECENCY_DECAY_DAYS) * 0.3


__all__ = [
    "IMPROVEMENT_TEMPLATES",
    "StepAnalysis",
    "TrajectoryJudge",
    "analyze_steps",
    "generate_improvements",
    "identify_strengths",
    "identify_weaknesses",
]
