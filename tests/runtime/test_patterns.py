from datetime import datetime, timezone

import pytest

from engram.runtime.memory.models import QUALITY_HISTORY_LIMIT, DistilledMemory, Trajectory
from engram.runtime.memory.patterns import (
    PatternRegistry,
    determine_evolution_type,
    generate_pattern_name,
)
from engram.runtime.memory.telemetry import EventDispatcher

NOW = datetime(2026, 1, 1, tzinfo=timezone.utc)


def _memory() -> DistilledMemory:
    return DistilledMemory(
        memory_id="mem_1",
        trajectory_id="traj_1",
        strategy="Apply read -> edit -> test",
        embedding=[0.1, 0.2],
        quality=0.8,
    )


def _experience(quality: float) -> Trajectory:
    trajectory = Trajectory(trajectory_id="traj_new")
    trajectory.complete(quality)
    return trajectory


def test_generate_pattern_name():
    assert generate_pattern_name("Apply read -> edit -> test") == "apply_read__edit"
    assert generate_pattern_name("Multi-step approach: a, b") == "multistep_approach_a_b"


def test_determine_evolution_type():
    assert determine_evolution_type(0.5, 0.6) == "improvement"
    assert determine_evolution_type(0.5, 0.3) == "prune"
    assert determine_evolution_type(0.5, 0.45) == "improvement"


def test_promote_memory():
    registry = PatternRegistry(clock=lambda: NOW)
    pattern = registry.promote(_memory(), domain="code")

    assert pattern.pattern_id == "pat_mem_1"
    assert pattern.domain == "code"
    assert pattern.success_rate == 0.8
    assert pattern.quality_history == [0.8]
    assert pattern.created_at == NOW
    assert registry.get("pat_mem_1") is pattern


def test_evolve_updates_history_and_emits():
    events = EventDispatcher()
    seen = []
    events.on("pattern:evolved", seen.append)
    registry = PatternRegistry(events=events, clock=lambda: NOW)
    registry.promote(_memory())

    evolution = registry.evolve("pat_mem_1", _experience(0.2))

    pattern = registry.get("pat_mem_1")
    assert pattern.quality_history == [0.8, 0.2]
    assert pattern.success_rate == pytest.approx(0.5)
    assert pattern.usage_count == 1
    assert evolution.type == "prune"
    assert evolution.previous_quality == pytest.approx(0.8)
    assert pattern.evolution_history == [evolution]
    assert seen == [{"patternId": "pat_mem_1", "evolutionType": "prune"}]


def test_evolve_unknown_pattern_is_ignored():
    registry = PatternRegistry()
    assert registry.evolve("pat_missing", _experience(0.9)) is None


def test_quality_history_is_capped():
    registry = PatternRegistry(clock=lambda: NOW)
    registry.promote(_memory())
    for _ in range(QUALITY_HISTORY_LIMIT + 20):
        registry.evolve("pat_mem_1", _experience(1.0))

    pattern = registry.get("pat_mem_1")
    assert len(pattern.quality_history) == QUALITY_HISTORY_LIMIT
    assert pattern.success_rate == pytest.approx(1.0)
