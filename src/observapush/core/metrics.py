"""Metric export: one named measurement per push."""

import logging
import math
import time
from collections.abc import Callable

from observapush.core.encoding.otlp import encode_metric
from observapush.core.logs import nanos_from_millis
from observapush.core.models import MetricKind, MetricSample
from observapush.core.ports import PushTransportPort
from observapush.core.rates import round_half_up

logger = logging.getLogger(__name__)


def gauge(
    name: str, value: int, unit: str, source: str, timestamp_nanos: int
) -> MetricSample:
    """Create a gauge sample attributed to ``source``."""
    return MetricSample(
        name=name,
        value=value,
        kind=MetricKind.GAUGE,
        unit=unit,
        timestamp_nanos=timestamp_nanos,
        attributes={"source": source},
    )


def cumulative_sum(
    name: str, value: int, unit: str, source: str, timestamp_nanos: int
) -> MetricSample:
    """Create a monotonic cumulative-sum sample attributed to ``source``."""
    return MetricSample(
        name=name,
        value=value,
        kind=MetricKind.SUM,
        unit=unit,
        timestamp_nanos=timestamp_nanos,
        attributes={"source": source},
    )


class MetricsExporter:
    """Encodes measurements and pushes them through a transport."""

    def __init__(
        self,
        transport: PushTransportPort,
        source: str,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.transport = transport
        self.source = source
        self._clock = clock

    def export(
        self,
        name: str,
        value: float | None,
        kind: MetricKind | str = MetricKind.GAUGE,
        unit: str = "",
    ) -> MetricSample | None:
        """Push one measurement. Undefined or non-finite values are skipped.

        Args:
            name: Metric name.
            value: Measured value; rounded half-up to an integer.
            kind: ``gauge`` or ``sum`` (cumulative, monotonic).
            unit: Unit string.

        Returns:
            The pushed sample, or None if the value was skipped.
        """
        if value is None or not math.isfinite(value):
            logger.warning("Skipping metric %s with undefined value %r", name, value)
            return None
        builder = cumulative_sum if MetricKind(kind) is MetricKind.SUM else gauge
        sample = builder(
            name,
            round_half_up(value),
            unit,
            self.source,
            nanos_from_millis(self._clock),
        )
        self.send(sample)
        return sample

    def send(self, sample: MetricSample) -> None:
        """Push an already built sample."""
        try:
            self.transport.send(encode_metric(sample), sample.name)
        except Exception:
            logger.exception("Failed to export metric %s", sample.name)
