"""Test helpers shared by unit, integration and BDD tests."""

import json
from typing import Any

from observapush.adapters.transport.in_memory import InMemoryPushTransport

FIXED_TIME = 1702300000.5


class FakeClock:
    """Settable wall clock returning seconds since epoch."""

    def __init__(self, now: float = FIXED_TIME) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def stream_of(payload: dict[str, Any]) -> dict[str, Any]:
    """Return the single stream of a log batch."""
    (stream,) = payload["streams"]
    return stream


def payload_text(payload: dict[str, Any]) -> str:
    """Return the sanitized payload string of a single-entry log batch."""
    ((_, text),) = stream_of(payload)["values"]
    return text


def log_data(payload: dict[str, Any]) -> dict[str, Any]:
    """Decode the payload string of a single-entry log batch."""
    return json.loads(payload_text(payload))


def metric_of(payload: dict[str, Any]) -> dict[str, Any]:
    """Return the single metric of a metrics document."""
    return payload["resourceMetrics"][0]["scopeMetrics"][0]["metrics"][0]


def metrics_by_name(transport: InMemoryPushTransport) -> dict[str, dict[str, Any]]:
    """Index pushed metrics documents by metric name (last push wins)."""
    return {metric_of(p)["name"]: metric_of(p) for p in transport.payloads}


def value_of(metric: dict[str, Any]) -> int:
    """Return the ``asInt`` of a metric's only data point."""
    body = metric["gauge"] if "gauge" in metric else metric["sum"]
    return body["dataPoints"][0]["asInt"]
