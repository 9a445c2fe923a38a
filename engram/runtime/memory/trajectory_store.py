"""
Trajectory Store - Bounded pool of episodic task executions

WHAT: Holds trajectories keyed by id and enforces the capacity policy
WHERE: engram/runtime/memory/trajectory_store.py - episodic layer
WHO: ReasoningBank feeding Judge and Distiller
TIME: Insert O(1) amortised, overflow trim O(n log n)

Retention policy: when an insert pushes the pool past ``max_trajectories``
the pool is trimmed to 80% of capacity, evicting the lowest quality_score
trajectories first. Ties are evicted in insertion order (oldest first).
The newly stored trajectory is subject to the same rule, so a low-quality
insert into a full pool can be evicted immediately; nothing is raised and
callers detect drops by comparing sizes.
"""

from __future__ import annotations

import logging
import math
from typing import Dict, List, Optional

from .errors import NotFoundError
from .models import Trajectory

logger = logging.getLogger(__name__)

TRIM_RATIO = 0.8


class TrajectoryStore:
    """Insertion-ordered map of trajectories with quality-ranked eviction."""

    def __init__(self, *, max_trajectories: int = 5000) -> None:
        self._trajectories: Dict[str, Trajectory] = {}
        self._max_trajectories = max_trajectories

    @property
    def max_trajectories(self) -> int:
        return self._max_trajectories

    def __len__(self) -> int:
        return len(self._trajectories)

    def __contains__(self, trajectory_id: object) -> bool:
        return trajectory_id in self._trajectories

    def store(self, trajectory: Trajectory) -> None:
        """Insert or replace a trajectory and enforce retention policies."""

        self._trajectories[trajectory.trajectory_id] = trajectory
        if len(self._trajectories) > self._max_trajectories:
            self._enforce_limits()

    def get(self, trajectory_id: str) -> Optional[Trajectory]:
        return self._trajectories.get(trajectory_id)

    def require(self, trajectory_id: str) -> Trajectory:
        trajectory = self._trajectories.get(trajectory_id)
        if trajectory is None:
            raise NotFoundError(f"Unknown trajectory: {trajectory_id}")
        return trajectory

    def remove(self, trajectory_id: str) -> bool:
        return self._trajectories.pop(trajectory_id, None) is not None

    def all(self) -> List[Trajectory]:
        return list(self._trajectories.values())

    def _enforce_limits(self) -> None:
        target = math.floor(self._max_trajectories * TRIM_RATIO)
        # sorted() is stable: equal scores keep insertion order
        ranked = sorted(self._trajectories.values(), key=lambda t: t.quality_score)
        to_remove = len(ranked) - target
        for trajectory in ranked[:to_remove]:
            del self._trajectories[trajectory.trajectory_id]
        logger.debug(f"Trimmed {max(0, to_remove)} trajectories (pool now {len(self._trajectories)})")


__all__ = ["TRIM_RATIO", "TrajectoryStore"]
