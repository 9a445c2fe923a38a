"""Error taxonomy for the memory engine.

Capacity overflow is intentionally absent: full stores drop new identities
silently and callers compare resulting sizes instead of catching errors.
"""

from __future__ import annotations


class MemoryEngineError(RuntimeError):
    """Base class for engine errors."""


class InvalidStateError(MemoryEngineError):
    """Raised when an operation's precondition on object state does not hold."""


class NotFoundError(MemoryEngineError):
    """Raised by strict lookups when an id is unknown."""


__all__ = [
    "InvalidStateError",
    "MemoryEngineError",
    "NotFoundError",
]
