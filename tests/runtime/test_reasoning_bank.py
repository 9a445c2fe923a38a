from datetime import datetime, timezone

import pytest

from engram.config import ReasoningBankConfig
from engram.runtime.memory import (
    InvalidStateError,
    NotFoundError,
    ReasoningBank,
    TelemetryClient,
    Trajectory,
    create_reasoning_bank,
)

NOW = datetime(2026, 1, 1, tzinfo=timezone.utc)


class CaptureTelemetryClient(TelemetryClient):
    def __init__(self) -> None:
        self.spans: list[tuple[str, dict]] = []

    def emit_span(self, name: str, attributes: dict) -> None:
        self.spans.append((name, attributes))


def _trajectory(rewards=(0.2, 0.8, 0.9), quality=0.75, dim=16, domain="code") -> Trajectory:
    trajectory = Trajectory(domain=domain, start_time=NOW)
    for idx, reward in enumerate(rewards):
        state = [0.0] * dim
        state[idx % dim] = 1.0
        trajectory.add_step(f"action{idx}", state, reward)
    trajectory.complete(quality)
    return trajectory


def _bank(**config) -> ReasoningBank:
    return ReasoningBank(config=ReasoningBankConfig(**config), clock=lambda: NOW)


def test_end_to_end_learning_cycle():
    bank = _bank()
    trajectory = _trajectory()
    bank.store_trajectory(trajectory)

    verdict = bank.judge(trajectory)
    assert verdict.success is True

    memory = bank.distill(trajectory)
    assert memory is not None
    assert len(memory.embedding) == 16

    results = bank.retrieve(memory.embedding, k=1)
    assert [r.memory.memory_id for r in results] == [memory.memory_id]

    stats = bank.get_stats()
    assert stats["trajectoryCount"] == 1
    assert stats["memoryCount"] == 1
    assert stats["patternCount"] == 0
    assert stats["avgRetrievalTimeMs"] >= 0.0
    assert stats["consolidatedMemories"] == 0


def test_events_are_emitted_for_pipeline_steps():
    bank = _bank()
    seen = []
    bank.add_event_listener(lambda event: seen.append(event.type))

    trajectory = _trajectory()
    bank.store_trajectory(trajectory)
    memory = bank.distill(trajectory)
    pattern = bank.memory_to_pattern(memory)
    bank.evolve_pattern(pattern.pattern_id, _trajectory(quality=0.9))
    bank.consolidate()

    assert seen == [
        "trajectory:judged",
        "memory:distilled",
        "pattern:evolved",
        "memory:consolidated",
    ]


def test_remove_event_listener():
    bank = _bank()
    seen = []

    def listener(event):
        seen.append(event)

    bank.add_event_listener(listener)
    bank.remove_event_listener(listener)
    bank.judge(_trajectory())
    assert seen == []


def test_memory_to_pattern_uses_trajectory_domain():
    bank = _bank()
    trajectory = _trajectory(domain="retrieval")
    bank.store_trajectory(trajectory)
    memory = bank.distill(trajectory)

    pattern = bank.memory_to_pattern(memory)

    assert pattern.pattern_id == f"pat_{memory.memory_id}"
    assert pattern.domain == "retrieval"
    assert bank.get_patterns() == [pattern]


def test_unknown_ids_raise_not_found():
    bank = _bank()
    with pytest.raises(NotFoundError):
        bank.judge_by_id("traj_missing")
    with pytest.raises(NotFoundError):
        bank.distill_by_id("traj_missing")
    assert bank.get_trajectory("traj_missing") is None


def test_incomplete_trajectory_cannot_be_judged():
    bank = _bank()
    trajectory = Trajectory()
    trajectory.add_step("a", [1.0], 0.9)
    with pytest.raises(InvalidStateError):
        bank.judge(trajectory)


def test_low_quality_trajectory_is_not_distilled():
    bank = _bank()
    trajectory = _trajectory(rewards=(0.1, 0.2), quality=0.3)
    bank.store_trajectory(trajectory)

    assert bank.distill(trajectory) is None
    assert bank.get_stats()["memoryCount"] == 0


def test_record_usage_updates_memory():
    bank = _bank()
    trajectory = _trajectory()
    memory = bank.distill(trajectory)

    updated = bank.record_usage(memory.memory_id)

    assert updated.usage_count == 1
    assert updated.last_used == NOW
    assert bank.record_usage("mem_missing") is None


def test_telemetry_spans_are_recorded():
    telemetry = CaptureTelemetryClient()
    bank = ReasoningBank(telemetry=telemetry, clock=lambda: NOW)

    bank.distill(_trajectory())
    bank.retrieve([1.0] + [0.0] * 15)

    names = [name for name, _ in telemetry.spans]
    assert names == ["reasoning_bank.distill", "reasoning_bank.retrieve"]
    assert telemetry.spans[1][1]["result_count"] == 1
    assert "duration_ms" in telemetry.spans[0][1]


def test_create_reasoning_bank_applies_overrides():
    bank = create_reasoning_bank(retrieval_k=5, mmr_lambda=0.5)
    assert bank.config.retrieval_k == 5
    assert bank.config.mmr_lambda == 0.5
    assert bank.config.max_trajectories == 5000


def test_distilling_twice_reports_one_distillation():
    bank = _bank()
    seen = []
    bank.add_event_listener(lambda event: seen.append(event.type))
    trajectory = _trajectory()

    first = bank.distill(trajectory)
    second = bank.distill(trajectory)

    assert second is first
    assert seen == ["trajectory:judged", "memory:distilled"]
    assert bank.get_stats()["memoryCount"] == 1
    assert bank._distillation_count == 1
