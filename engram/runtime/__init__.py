"""
Runtime Module

WHAT: Runtime subsystem for trajectory learning and associative memory
WHERE: engram/runtime/ - in-process layer called by agents and services
WHO: Agents recording task executions and retrieving reusable strategies
TIME: Learning step target <10ms, retrieval O(k·n) per query

Provides the execution layer for the learning pipeline: trajectories are
stored, judged, distilled into memories, retrieved with MMR diversity and
periodically consolidated.

Memory Architecture:
- trajectories: episodic records of multi-step task executions
- memories: distilled, embedding-indexed strategies
- patterns: longer-lived aggregates promoted from memories
"""

__all__ = ["memory"]
