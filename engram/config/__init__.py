"""Configuration models for the Engram memory engine."""

from .settings import (  # noqa: F401
    BANK_ENV_PREFIX,
    GRAPH_ENV_PREFIX,
    MemoryGraphConfig,
    ReasoningBankConfig,
)

__all__ = [
    "BANK_ENV_PREFIX",
    "GRAPH_ENV_PREFIX",
    "MemoryGraphConfig",
    "ReasoningBankConfig",
]
