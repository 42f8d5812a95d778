"""Stream-batch encoder for the log backend push API."""

from typing import Any

from observapush.core.models import LogEvent


def encode_log_event(event: LogEvent) -> dict[str, Any]:
    """Wrap a single log event into a stream-batch envelope.

    Args:
        event: The event to encode.

    Returns:
        ``{"streams": [{"stream": labels, "values": [[ts, payload]]}]}``
        with exactly one stream and one value pair.
    """
    return {
        "streams": [
            {
                "stream": dict(event.labels),
                "values": [[event.timestamp_nanos, event.payload]],
            }
        ]
    }
