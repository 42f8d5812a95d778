"""Core domain models for telemetry data."""

from dataclasses import dataclass, field
from enum import Enum


class MetricKind(str, Enum):
    """Aggregation kind of a metric sample.

    The value doubles as the key used by the metrics wire schema.
    """

    GAUGE = "gauge"
    SUM = "sum"

    @property
    def is_monotonic(self) -> bool:
        return self is MetricKind.SUM


@dataclass(frozen=True)
class LogEvent:
    """A labelled log entry ready to be pushed to the log backend.

    Attributes:
        labels: Stream labels (component, level, type).
        timestamp_nanos: Nanoseconds since epoch, as a decimal string.
        payload: Sanitized, serialized event data.
    """

    labels: dict[str, str]
    timestamp_nanos: str
    payload: str

    @property
    def level(self) -> str:
        return self.labels["level"]

    @property
    def type(self) -> str:
        return self.labels["type"]


@dataclass(frozen=True)
class MetricSample:
    """A single named measurement.

    Attributes:
        name: Metric name (e.g., request_total).
        value: Integer value sent as ``asInt``.
        kind: Gauge or cumulative sum.
        unit: Free-form unit string (e.g., requests/min).
        timestamp_nanos: Nanoseconds since epoch.
        attributes: Data point attributes (always carries ``source``).
    """

    name: str
    value: int
    kind: MetricKind
    unit: str
    timestamp_nanos: int
    attributes: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class Totals:
    """Cumulative (never windowed) counters."""

    requests: int = 0
    requests_by_method: dict[str, int] = field(default_factory=dict)
    auth_success: int = 0
    auth_failure: int = 0
    units_sold: int = 0
    revenue: float = 0.0
    failures: int = 0

    def method(self, name: str) -> int:
        return self.requests_by_method.get(name.upper(), 0)


@dataclass(frozen=True)
class WindowReport:
    """Everything one reporting tick needs, captured atomically.

    Attributes:
        current: Cumulative totals at drain time.
        previous: Totals captured at the previous drain.
        active_users: Distinct users seen during the window.
        service_latency_sum: Sum of request service times (ms).
        service_latency_count: Number of request service times.
        business_latency_sum: Sum of business event latencies (ms).
        business_latency_count: Number of business events.
    """

    current: Totals
    previous: Totals
    active_users: int = 0
    service_latency_sum: float = 0.0
    service_latency_count: int = 0
    business_latency_sum: float = 0.0
    business_latency_count: int = 0
