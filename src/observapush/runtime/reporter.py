"""Periodic reporter: drains counters into metric samples every interval."""

import enum
import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

from observapush.adapters.host import HostSampler
from observapush.core.counters import CounterRegistry
from observapush.core.metrics import MetricsExporter
from observapush.core.models import MetricKind, WindowReport
from observapush.core.rates import average, elapsed_minutes, per_minute

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 10.0
RATE_METHODS = ("GET", "POST", "PUT", "DELETE")


class ReporterState(enum.Enum):
    IDLE = "idle"
    COLLECTING = "collecting"
    EXPORTING = "exporting"


@dataclass(frozen=True)
class PendingMetric:
    """A computed value waiting to be exported. ``value`` None means undefined."""

    name: str
    value: float | None
    kind: MetricKind
    unit: str


class RateReporter:
    """Turns CounterRegistry windows into exported metrics.

    Each tick computes per-minute rates from the delta against the previous
    snapshot, window averages, the distinct active-user count, cumulative
    business totals and host load, then exports one sample per metric.

    Args:
        registry: Counter source, drained once per tick.
        exporter: Destination for the computed samples.
        host: Host load sampler; None disables cpu/memory metrics.
        interval: Seconds between ticks.
        clock: Wall clock returning seconds since epoch.
        business_prefix: Prefix of business metric names.
        business_unit: Unit of the units-sold total.
    """

    def __init__(
        self,
        registry: CounterRegistry,
        exporter: MetricsExporter,
        host: HostSampler | None = None,
        interval: float = DEFAULT_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.time,
        business_prefix: str = "pizza",
        business_unit: str = "pizzas",
    ) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.registry = registry
        self.exporter = exporter
        self.host = host
        self.interval = interval
        self.business_prefix = business_prefix
        self.business_unit = business_unit
        self.state = ReporterState.IDLE
        self._clock = clock
        self._last_report = clock()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def build_samples(
        self, report: WindowReport, minutes: float
    ) -> list[PendingMetric]:
        """Derive every metric of one window."""
        current, previous = report.current, report.previous
        prefix = self.business_prefix
        gauge, total = MetricKind.GAUGE, MetricKind.SUM

        pending = [
            PendingMetric(
                "request_total",
                per_minute(current.requests, previous.requests, minutes),
                gauge,
                "requests/min",
            )
        ]
        for method in RATE_METHODS:
            pending.append(
                PendingMetric(
                    f"request_{method.lower()}",
                    per_minute(
                        current.method(method), previous.method(method), minutes
                    ),
                    gauge,
                    "requests/min",
                )
            )
        pending += [
            PendingMetric(
                "auth_success",
                per_minute(current.auth_success, previous.auth_success, minutes),
                gauge,
                "attempts/min",
            ),
            PendingMetric(
                "auth_failure",
                per_minute(current.auth_failure, previous.auth_failure, minutes),
                gauge,
                "attempts/min",
            ),
            PendingMetric("active_users", report.active_users, gauge, "users"),
            PendingMetric(
                f"{prefix}_sold_total", current.units_sold, total, self.business_unit
            ),
            PendingMetric(
                f"{prefix}_failures_total", current.failures, total, "failures"
            ),
            PendingMetric(
                f"{prefix}_revenue",
                per_minute(current.revenue, previous.revenue, minutes, scale=1000),
                gauge,
                "revenue/min",
            ),
            PendingMetric(
                "latency_service",
                average(report.service_latency_sum, report.service_latency_count),
                gauge,
                "ms",
            ),
            PendingMetric(
                f"latency_{prefix}",
                average(report.business_latency_sum, report.business_latency_count),
                gauge,
                "ms",
            ),
        ]
        if self.host is not None:
            pending += [
                PendingMetric("cpu_usage", self.host.cpu_percent(), gauge, "%"),
                PendingMetric("memory_usage", self.host.memory_percent(), gauge, "%"),
            ]
        return pending

    def tick(self) -> list[PendingMetric]:
        """Run one Collecting → Exporting → Idle cycle.

        Returns:
            The metrics computed for this window (skipped ones included).
        """
        try:
            self.state = ReporterState.COLLECTING
            now = self._clock()
            minutes = elapsed_minutes(self._last_report, now)
            report = self.registry.drain()
            self._last_report = now
            if minutes <= 0:
                logger.warning(
                    "Reporting window of %.3f minutes, skipping rates", minutes
                )
            pending = self.build_samples(report, minutes)

            self.state = ReporterState.EXPORTING
            for metric in pending:
                self.exporter.export(
                    metric.name, metric.value, metric.kind, metric.unit
                )
            return pending
        finally:
            self.state = ReporterState.IDLE

    def start(self) -> None:
        """Start ticking on a daemon thread. Calling twice is a no-op."""
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, name="observapush-reporter", daemon=True
        )
        self._thread.start()
        logger.info("Metrics reporting started (every %ss)", self.interval)

    def stop(self, timeout: float | None = None) -> None:
        """Stop ticking. The current tick, if any, is allowed to finish."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            try:
                self.tick()
            except Exception:
                logger.exception("Error in periodic metrics reporting")
