"""
Telemetry & Events - Observability hooks for the memory engine

WHAT: Timing spans and typed engine events delivered to injected listeners
WHERE: engram/runtime/memory/telemetry.py - observability layer
WHO: ReasoningBank, Consolidator and MemoryGraph emitting events and spans
TIME: Zero-overhead when no listener is attached, <0.1ms per span otherwise

Two mechanisms live here:
- TelemetryClient spans: context managers that measure a block and hand the
  attributes to a sink (no-op by default, logging sink for debugging).
- EventDispatcher: a per-instance listener registry. Components own (or are
  handed) a dispatcher; nothing is registered globally.

Event types emitted by the engine:
- trajectory:judged, memory:distilled, memory:consolidated, pattern:evolved
- graph:built, pagerank:computed, communities:detected
"""

from __future__ import annotations

import logging
import time
from contextlib import AbstractContextManager
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


class TelemetrySpan(AbstractContextManager["TelemetrySpan"]):
    """
    Timed block reported to a TelemetryClient on exit.

    ``duration_ms`` stays readable after the block so callers can fold it
    into their own statistics. A failing block is reported with
    ``success=False`` and the exception class name under ``error``; the
    exception itself propagates.
    """

    def __init__(self, client: "TelemetryClient", name: str, attributes: Optional[Dict[str, Any]] = None) -> None:
        self._client = client
        self.name = name
        self.attributes: Dict[str, Any] = dict(attributes or {})
        self.duration_ms: float = 0.0
        self._started_ns: int = 0

    def __enter__(self) -> "TelemetrySpan":
        self._started_ns = time.perf_counter_ns()
        return self

    def set_attribute(self, key: str, value: Any) -> None:
        self.attributes[key] = value

    def __exit__(self, exc_type, exc, exc_tb) -> bool:
        self.duration_ms = (time.perf_counter_ns() - self._started_ns) / 1e6
        self.attributes["duration_ms"] = self.duration_ms
        self.attributes.setdefault("success", exc is None)
        if exc_type is not None:
            self.attributes["error"] = exc_type.__name__
        self._client.emit_span(self.name, self.attributes)
        return False


class TelemetryClient:
    """Span factory; subclasses decide where finished spans go."""

    def span(self, name: str, *, attributes: Optional[Dict[str, Any]] = None) -> TelemetrySpan:
        return TelemetrySpan(self, name, attributes)

    def emit_span(self, name: str, attributes: Dict[str, Any]) -> None:
        raise NotImplementedError


@dataclass(slots=True)
class NoOpTelemetryClient(TelemetryClient):
    """Default client: spans are timed but go nowhere."""

    def emit_span(self, name: str, attributes: Dict[str, Any]) -> None:
        return None


class LoggingTelemetryClient(TelemetryClient):
    """Writes finished spans to the module logger at DEBUG level."""

    def emit_span(self, name: str, attributes: Dict[str, Any]) -> None:
        payload = {k: attributes[k] for k in sorted(attributes)}
        logger.debug(f"[telemetry] {name}: {payload}")


@dataclass(slots=True)
class MemoryEvent:
    """A single engine event; payload keys are camelCase for wire parity."""

    type: str
    payload: Dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)


EventListener = Callable[[MemoryEvent], None]


class EventDispatcher:
    """Listener registry owned by a single engine instance.

    Listeners receive every event; ``on`` subscribes a handler to one event
    type and passes it only the payload. A failing listener is logged and
    skipped so observers can never break an engine operation.
    """

    def __init__(self, listeners: Optional[List[EventListener]] = None) -> None:
        self._listeners: List[EventListener] = list(listeners or [])

    def add_listener(self, listener: EventListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: EventListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def on(self, event_type: str, handler: Callable[[Dict[str, Any]], None]) -> EventListener:
        """Subscribe ``handler`` to one event type; returns the listener for removal."""

        def _filtered(event: MemoryEvent) -> None:
            if event.type == event_type:
                handler(event.payload)

        self.add_listener(_filtered)
        return _filtered

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def emit(self, event_type: str, **payload: Any) -> MemoryEvent:
        event = MemoryEvent(type=event_type, payload=dict(payload))
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.warning(f"Event listener failed for {event_type}: {e}")
        return event


__all__ = [
    "EventDispatcher",
    "EventListener",
    "LoggingTelemetryClient",
    "MemoryEvent",
    "NoOpTelemetryClient",
    "TelemetryClient",
    "TelemetrySpan",
]
