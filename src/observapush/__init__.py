"""observapush - in-process telemetry pipeline.

Ships sanitized structured logs and periodically aggregated request, latency,
business and host metrics to push-based log and metrics backends.
"""

import logging

from observapush.adapters.frameworks.asgi import ObservabilityMiddleware
from observapush.adapters.host import HostSampler
from observapush.adapters.logging import LogShipperHandler
from observapush.adapters.transport import (
    HttpPushTransport,
    InMemoryPushTransport,
    PushDispatcher,
)
from observapush.config import Settings, get_settings
from observapush.core.counters import CounterRegistry
from observapush.core.logs import LogShipper, status_to_level
from observapush.core.metrics import MetricsExporter
from observapush.core.models import LogEvent, MetricKind, MetricSample
from observapush.core.sanitize import Sanitizer, sanitize
from observapush.runtime.context import ObservabilityContext
from observapush.runtime.reporter import RateReporter


def get_logger(name: str) -> logging.Logger:
    """Return a local diagnostic logger."""
    return logging.getLogger(name)


__all__ = [
    "CounterRegistry",
    "HostSampler",
    "HttpPushTransport",
    "InMemoryPushTransport",
    "LogEvent",
    "LogShipper",
    "LogShipperHandler",
    "MetricKind",
    "MetricSample",
    "MetricsExporter",
    "ObservabilityContext",
    "ObservabilityMiddleware",
    "PushDispatcher",
    "RateReporter",
    "Sanitizer",
    "Settings",
    "get_logger",
    "get_settings",
    "sanitize",
    "status_to_level",
]
