import pytest

from engram.runtime.memory.errors import InvalidStateError, NotFoundError
from engram.runtime.memory.models import Trajectory
from engram.runtime.memory.trajectory_store import TrajectoryStore


def _trajectory(traj_id: str, quality: float) -> Trajectory:
    trajectory = Trajectory(trajectory_id=traj_id, domain="code")
    trajectory.add_step("act", [1.0, 0.0], 0.9)
    trajectory.complete(quality)
    return trajectory


def test_store_get_and_require():
    store = TrajectoryStore(max_trajectories=10)
    store.store(_trajectory("t1", 0.5))

    assert len(store) == 1
    assert "t1" in store
    assert store.get("t1").quality_score == 0.5
    assert store.get("missing") is None
    with pytest.raises(NotFoundError):
        store.require("missing")


def test_overflow_trims_to_eighty_percent_lowest_quality_first():
    store = TrajectoryStore(max_trajectories=5)
    for idx, quality in enumerate([0.9, 0.1, 0.8, 0.2, 0.7]):
        store.store(_trajectory(f"t{idx}", quality))
    assert len(store) == 5

    store.store(_trajectory("t5", 0.95))

    # floor(5 * 0.8) == 4 survivors, the two lowest scores are evicted
    assert len(store) == 4
    assert "t1" not in store
    assert "t3" not in store
    assert [t.trajectory_id for t in store.all()] == ["t0", "t2", "t4", "t5"]


def test_overflow_ties_evict_oldest_first():
    store = TrajectoryStore(max_trajectories=2)
    store.store(_trajectory("a", 0.5))
    store.store(_trajectory("b", 0.5))
    store.store(_trajectory("c", 0.5))

    # floor(2 * 0.8) == 1
    assert [t.trajectory_id for t in store.all()] == ["c"]


def test_trajectory_step_rules():
    trajectory = Trajectory()
    trajectory.add_step("a", [0.1, 0.2, 0.3], 0.5)
    assert trajectory.dimension == 3

    with pytest.raises(InvalidStateError):
        trajectory.add_step("b", [0.1, 0.2], 0.5)

    trajectory.complete(0.7)
    with pytest.raises(InvalidStateError):
        trajectory.add_step("c", [0.1, 0.2, 0.3], 0.5)
    assert trajectory.trajectory_id.startswith("traj_")
