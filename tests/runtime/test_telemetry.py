import logging

import pytest

from engram.runtime.memory.telemetry import (
    EventDispatcher,
    LoggingTelemetryClient,
    NoOpTelemetryClient,
    TelemetryClient,
)


class CaptureTelemetryClient(TelemetryClient):
    def __init__(self) -> None:
        self.spans: list[tuple[str, dict]] = []

    def emit_span(self, name: str, attributes: dict) -> None:
        self.spans.append((name, attributes))


def test_dispatcher_on_filters_by_type():
    events = EventDispatcher()
    seen = []
    events.on("graph:built", seen.append)

    events.emit("pagerank:computed", iterations=3, nodeCount=2)
    events.emit("graph:built", nodeCount=4)

    assert seen == [{"nodeCount": 4}]
    assert events.listener_count == 1


def test_failing_listener_does_not_break_emit(caplog):
    events = EventDispatcher()
    seen = []

    def broken(event):
        raise ValueError("boom")

    events.add_listener(broken)
    events.add_listener(lambda event: seen.append(event.type))

    with caplog.at_level(logging.WARNING):
        event = events.emit("memory:consolidated", memoriesCount=0)

    assert event.payload == {"memoriesCount": 0}
    assert seen == ["memory:consolidated"]
    assert "boom" in caplog.text


def test_span_records_duration_and_success():
    client = NoOpTelemetryClient()
    with client.span("op", attributes={"k": 3}) as span:
        span.set_attribute("extra", True)

    assert span.attributes["success"] is True
    assert span.attributes["k"] == 3
    assert span.duration_ms >= 0.0


def test_logging_client_writes_debug(caplog):
    client = LoggingTelemetryClient()
    with caplog.at_level(logging.DEBUG, logger="engram.runtime.memory.telemetry"):
        with client.span("reasoning_bank.retrieve"):
            pass
    assert "reasoning_bank.retrieve" in caplog.text


def test_failed_span_records_error_and_reraises():
    client = CaptureTelemetryClient()

    with pytest.raises(KeyError):
        with client.span("op"):
            raise KeyError("missing")

    name, attributes = client.spans[0]
    assert name == "op"
    assert attributes["success"] is False
    assert attributes["error"] == "KeyError"
