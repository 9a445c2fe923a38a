"""
Engine Settings - Validated configuration for the memory engine

WHAT: Pydantic models for ReasoningBank and MemoryGraph tuning knobs
WHERE: engram/config/settings.py - configuration layer
WHO: ReasoningBank, Consolidator, MemoryGraph and their callers
TIME: Validation once at construction

Every field has a documented default matching the engine's reference
behaviour. Overrides come from keyword arguments or from environment
variables via ``from_env()``:

- ENGRAM_BANK_<FIELD>  for ReasoningBankConfig (e.g. ENGRAM_BANK_MMR_LAMBDA)
- ENGRAM_GRAPH_<FIELD> for MemoryGraphConfig (e.g. ENGRAM_GRAPH_MAX_NODES)
"""

from __future__ import annotations

import os
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

BANK_ENV_PREFIX = "ENGRAM_BANK_"
GRAPH_ENV_PREFIX = "ENGRAM_GRAPH_"


def _read_env(fields: Mapping[str, Any], prefix: str, environ: Optional[Mapping[str, str]]) -> Dict[str, str]:
    source = os.environ if environ is None else environ
    values: Dict[str, str] = {}
    for name in fields:
        raw = source.get(f"{prefix}{name.upper()}")
        if raw is not None and raw != "":
            values[name] = raw
    return values


class ReasoningBankConfig(BaseModel):
    """Tuning for trajectory storage, distillation, retrieval and consolidation."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    max_trajectories: int = Field(default=5000, ge=1)
    distillation_threshold: float = Field(default=0.6, ge=0.0, le=1.0)
    retrieval_k: int = Field(default=3, ge=1)
    mmr_lambda: float = Field(default=0.7, ge=0.0, le=1.0)  # 1.0 = pure relevance
    max_pattern_age_days: float = Field(default=30, ge=0.0)
    dedup_threshold: float = Field(default=0.95, ge=-1.0, le=1.0)
    enable_contradiction_detection: bool = True
    max_memories: int = Field(default=10000, ge=1)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides: Any) -> ReasoningBankConfig:
        """Build a config from ENGRAM_BANK_* variables; keyword overrides win."""
        values: Dict[str, Any] = _read_env(cls.model_fields, BANK_ENV_PREFIX, environ)
        values.update(overrides)
        return cls(**values)


class MemoryGraphConfig(BaseModel):
    """Tuning for the structural memory graph."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    max_nodes: int = Field(default=5000, ge=1)
    page_rank_damping: float = Field(default=0.85, ge=0.0, le=1.0)
    similarity_threshold: float = Field(default=0.8, ge=-1.0, le=1.0)
    max_iterations: int = Field(default=50, ge=1)
    convergence_threshold: float = Field(default=1e-6, gt=0.0)
    community_max_iterations: int = Field(default=20, ge=1)
    default_alpha: float = Field(default=0.7, ge=0.0, le=1.0)
    similarity_search_k: int = Field(default=10, ge=1)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides: Any) -> MemoryGraphConfig:
        """Build a config from ENGRAM_GRAPH_* variables; keyword overrides win."""
        values: Dict[str, Any] = _read_env(cls.model_fields, GRAPH_ENV_PREFIX, environ)
        values.update(overrides)
        return cls(**values)


__all__ = [
    "BANK_ENV_PREFIX",
    "GRAPH_ENV_PREFIX",
    "MemoryGraphConfig",
    "ReasoningBankConfig",
]
