"""
Associative Memory - Trajectories, Distilled Memories & Patterns

WHAT: Local library for trajectory learning (no network services)
WHERE: engram/runtime/memory/ - runtime subsystem
WHO: Agents recording executions and recalling reusable strategies
TIME: Learning step <10ms avg, retrieval O(k·n)

Memory Types:
- trajectories: ordered steps with state vectors and rewards
- memories: distilled strategies with recency-weighted embeddings
- patterns: aggregates promoted from memories, evolved over reuse

Operations (local library - no network services):
- ReasoningBank.store_trajectory / judge / distill
- ReasoningBank.retrieve(query, k): MMR top-k
- ReasoningBank.consolidate(): dedup, contradictions, prune, merge
- ReasoningBank.memory_to_pattern / evolve_pattern
"""

from .consolidation import ConsolidationConfig, ConsolidationEngine  # noqa: F401
from .distiller import Distiller  # noqa: F401
from .errors import InvalidStateError, MemoryEngineError, NotFoundError  # noqa: F401
from .judge import TrajectoryJudge  # noqa: F401
from .memory_store import LocalMemoryStore, MemoryStore  # noqa: F401
from .models import (  # noqa: F401
    ConsolidationResult,
    DistilledMemory,
    Pattern,
    PatternEvolution,
    RetrievalResult,
    Trajectory,
    TrajectoryStep,
    TrajectoryVerdict,
)
from .patterns import PatternRegistry  # noqa: F401
from .reasoning_bank import ReasoningBank, create_reasoning_bank  # noqa: F401
from .retrieval import MMRRetriever  # noqa: F401
from .telemetry import (  # noqa: F401
    EventDispatcher,
    LoggingTelemetryClient,
    MemoryEvent,
    NoOpTelemetryClient,
    TelemetryClient,
    TelemetrySpan,
)
from .trajectory_store import TrajectoryStore  # noqa: F401
from .vector_math import cosine_similarity  # noqa: F401

__all__ = [
    "ConsolidationConfig",
    "ConsolidationEngine",
    "ConsolidationResult",
    "DistilledMemory",
    "Distiller",
    "EventDispatcher",
    "InvalidStateError",
    "LocalMemoryStore",
    "LoggingTelemetryClient",
    "MMRRetriever",
    "MemoryEngineError",
    "MemoryEvent",
    "MemoryStore",
    "NoOpTelemetryClient",
    "NotFoundError",
    "Pattern",
    "PatternEvolution",
    "PatternRegistry",
    "ReasoningBank",
    "RetrievalResult",
    "TelemetryClient",
    "TelemetrySpan",
    "Trajectory",
    "TrajectoryJudge",
    "TrajectoryStep",
    "TrajectoryStore",
    "TrajectoryVerdict",
    "cosine_similarity",
    "create_reasoning_bank",
]
