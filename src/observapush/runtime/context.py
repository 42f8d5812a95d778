"""Explicitly constructed telemetry context owned by the server bootstrap.

One ObservabilityContext bundles the shipper, registry, exporter and reporter
so they can be handed to middleware and business code by reference instead of
being reached through module globals.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from types import TracebackType

from observapush.adapters.host import HostSampler
from observapush.adapters.transport.http import HttpPushTransport, PushDispatcher
from observapush.config import Settings
from observapush.core.counters import CounterRegistry
from observapush.core.logs import LogShipper
from observapush.core.metrics import MetricsExporter
from observapush.core.ports import PushTransportPort
from observapush.core.sanitize import Sanitizer
from observapush.runtime.reporter import RateReporter

logger = logging.getLogger(__name__)


@dataclass
class ObservabilityContext:
    """All pipeline components for one process."""

    settings: Settings
    shipper: LogShipper
    registry: CounterRegistry
    exporter: MetricsExporter
    reporter: RateReporter
    dispatcher: PushDispatcher | None = None
    _started: bool = field(default=False, repr=False)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        log_transport: PushTransportPort | None = None,
        metrics_transport: PushTransportPort | None = None,
        host: HostSampler | None = None,
        clock: Callable[[], float] | None = None,
    ) -> "ObservabilityContext":
        """Build a context from settings.

        Args:
            settings: Pipeline settings.
            log_transport: Override for the log backend transport.
            metrics_transport: Override for the metrics backend transport.
            host: Override for the host sampler.
            clock: Wall clock (seconds since epoch) shared by all components.

        When either transport is not given, an HTTP transport backed by a
        shared PushDispatcher is created for it.
        """
        logging.getLogger("observapush").setLevel(settings.log_level)
        dispatcher = None
        if log_transport is None or metrics_transport is None:
            dispatcher = PushDispatcher(
                max_workers=settings.push_max_workers,
                timeout=settings.push_timeout_seconds,
                max_pending=settings.push_max_pending,
            )
        if log_transport is None:
            log_transport = HttpPushTransport(
                dispatcher, settings.logging_url, settings.logging_credential
            )
        if metrics_transport is None:
            metrics_transport = HttpPushTransport(
                dispatcher, settings.metrics_url, settings.metrics_api_key
            )

        clock_kwargs = {"clock": clock} if clock is not None else {}
        registry = CounterRegistry()
        exporter = MetricsExporter(
            metrics_transport, settings.metrics_source, **clock_kwargs
        )
        shipper = LogShipper(
            log_transport,
            settings.logging_source,
            Sanitizer(settings.sensitive_keys),
            **clock_kwargs,
        )
        reporter = RateReporter(
            registry,
            exporter,
            host=host or HostSampler(settings.cpu_fallback),
            interval=settings.report_interval_seconds,
            business_prefix=settings.business_metric_prefix,
            business_unit=settings.business_unit,
            **clock_kwargs,
        )
        return cls(
            settings=settings,
            shipper=shipper,
            registry=registry,
            exporter=exporter,
            reporter=reporter,
            dispatcher=dispatcher,
        )

    def record_purchase(self, success: bool, latency_ms: float, revenue: float) -> None:
        """Record a completed purchase (producer-facing entry point)."""
        self.registry.record_business_event(success, latency_ms, revenue)

    def start(self) -> None:
        """Start periodic reporting."""
        if self._started:
            return
        self._started = True
        self.reporter.start()
        logger.info("Metrics initialized for source: %s", self.settings.metrics_source)

    def shutdown(self, wait: bool = False) -> None:
        """Stop reporting and release the push workers.

        In-flight pushes are abandoned unless ``wait`` is true.
        """
        self.reporter.stop(timeout=self.settings.report_interval_seconds)
        if self.dispatcher is not None:
            self.dispatcher.close(wait=wait)
        self._started = False

    def __enter__(self) -> "ObservabilityContext":
        self.start()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.shutdown()
