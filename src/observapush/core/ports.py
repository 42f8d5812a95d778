"""Port interfaces for telemetry transports.

The core depends only on these protocols. Concrete adapters live under
``observapush.adapters.transport``.
"""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class PushTransportPort(Protocol):
    """Port for pushing one JSON document to a telemetry backend.

    Implementations must return without waiting for delivery and must never
    raise to the caller. Delivery is best-effort and at most once.
    Examples: HttpPushTransport, InMemoryPushTransport.
    """

    def send(self, payload: dict[str, Any], description: str) -> None:
        """Submit ``payload`` in the background.

        Args:
            payload: JSON-serializable request body.
            description: Short human-readable label used in local diagnostics
                (e.g., the metric name).
        """
        ...
