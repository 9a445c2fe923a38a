"""Engram associative memory engine core package."""

__all__ = [
    "config",
    "graph",
    "runtime",
]
