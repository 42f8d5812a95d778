"""Resource/scope/metric encoder for the metrics backend push API."""

from typing import Any

from observapush.core.models import MetricKind, MetricSample

CUMULATIVE = "AGGREGATION_TEMPORALITY_CUMULATIVE"


def encode_metric(sample: MetricSample) -> dict[str, Any]:
    """Encode one sample as a single-data-point metrics document.

    Args:
        sample: The measurement to encode.

    Returns:
        Nested ``resourceMetrics[0].scopeMetrics[0].metrics[0]`` document.
        Cumulative sums also carry the aggregation temporality and the
        monotonic flag.
    """
    data_point = {
        "asInt": sample.value,
        "timeUnixNano": sample.timestamp_nanos,
        "attributes": [
            {"key": key, "value": {"stringValue": value}}
            for key, value in sample.attributes.items()
        ],
    }
    body: dict[str, Any] = {"dataPoints": [data_point]}
    if sample.kind is MetricKind.SUM:
        body["aggregationTemporality"] = CUMULATIVE
        body["isMonotonic"] = True

    metric = {"name": sample.name, "unit": sample.unit, sample.kind.value: body}
    return {"resourceMetrics": [{"scopeMetrics": [{"metrics": [metric]}]}]}
