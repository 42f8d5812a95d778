"""In-memory push transport.

Records every payload instead of sending it. Suitable for testing and for
running the pipeline without any backend configured.
"""

import threading
from typing import Any


class InMemoryPushTransport:
    """In-memory implementation of PushTransportPort."""

    def __init__(self) -> None:
        self._payloads: list[tuple[str, dict[str, Any]]] = []
        self._lock = threading.Lock()

    def send(self, payload: dict[str, Any], description: str) -> None:
        """Record a payload."""
        with self._lock:
            self._payloads.append((description, payload))

    @property
    def payloads(self) -> list[dict[str, Any]]:
        with self._lock:
            return [payload for _, payload in self._payloads]

    @property
    def descriptions(self) -> list[str]:
        with self._lock:
            return [description for description, _ in self._payloads]

    def clear(self) -> None:
        with self._lock:
            self._payloads.clear()
