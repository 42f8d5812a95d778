"""Background HTTP push transport built on httpx.

Requests are submitted to a thread pool and ``send`` returns immediately.
Failures (transport errors, non-2xx answers) are logged locally and dropped:
there is no retry. A bounded backlog drops new pushes while the workers are
saturated instead of queueing them without limit.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class PushDispatcher:
    """Owns the worker pool and HTTP client shared by all push transports.

    Args:
        max_workers: Number of concurrent pushes.
        timeout: Per-request timeout in seconds.
        client: Preconfigured client (tests inject one with a MockTransport).
        max_pending: Queued and running pushes allowed before new ones are
            dropped.
    """

    def __init__(
        self,
        max_workers: int = 4,
        timeout: float = 5.0,
        client: httpx.Client | None = None,
        max_pending: int = 1000,
    ) -> None:
        self._client = client or httpx.Client(timeout=timeout)
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="observapush-push"
        )
        self._pending: set[Future[None]] = set()
        self._lock = threading.Lock()
        self._closed = False
        self._client_closed = False
        self._max_pending = max_pending

    def submit(
        self,
        url: str,
        payload: dict[str, Any],
        headers: dict[str, str],
        description: str,
    ) -> None:
        """Schedule one POST. Never blocks on the network and never raises."""
        with self._lock:
            if self._closed:
                logger.debug("Dispatcher closed, dropping %s", description)
                return
            if len(self._pending) >= self._max_pending:
                logger.debug("Push backlog full, dropping %s", description)
                return
            try:
                future = self._executor.submit(
                    self._post, url, payload, headers, description
                )
            except RuntimeError:
                logger.debug("Executor shut down, dropping %s", description)
                return
            self._pending.add(future)
        future.add_done_callback(self._discard)

    def flush(self, timeout: float | None = None) -> None:
        """Wait for the pushes submitted so far. Used by tests and shutdown."""
        with self._lock:
            pending = list(self._pending)
        for future in pending:
            try:
                future.result(timeout=timeout)
            except Exception:
                logger.debug("Pending push did not complete", exc_info=True)

    def close(self, wait: bool = False) -> None:
        """Stop accepting pushes. In-flight pushes are abandoned unless ``wait``.

        The HTTP client is closed once the last running push has finished.
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self._executor.shutdown(wait=wait, cancel_futures=not wait)
        self._close_client_when_idle()

    def _discard(self, future: Future[None]) -> None:
        with self._lock:
            self._pending.discard(future)
            closed = self._closed
        if closed:
            self._close_client_when_idle()

    def _close_client_when_idle(self) -> None:
        with self._lock:
            if self._pending or self._client_closed:
                return
            self._client_closed = True
        self._client.close()

    def _post(
        self,
        url: str,
        payload: dict[str, Any],
        headers: dict[str, str],
        description: str,
    ) -> None:
        try:
            response = self._client.post(url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            logger.warning("Error pushing %s: %s", description, e)
            return
        if response.is_success:
            logger.debug("Pushed %s", description)
        else:
            logger.warning(
                "Failed to push %s: %s %s",
                description,
                response.status_code,
                response.text,
            )


class HttpPushTransport:
    """PushTransportPort implementation that POSTs JSON with a bearer credential.

    Example:
        ```python
        dispatcher = PushDispatcher()
        logs = HttpPushTransport(dispatcher, LOG_URL, f"{user_id}:{api_key}")
        logs.send({"streams": [...]}, "http log")
        ```
    """

    def __init__(self, dispatcher: PushDispatcher, url: str, credential: str) -> None:
        self.dispatcher = dispatcher
        self.url = url
        self._headers = {
            "Authorization": f"Bearer {credential}",
            "Content-Type": "application/json",
        }

    def send(self, payload: dict[str, Any], description: str) -> None:
        """Submit ``payload`` in the background."""
        self.dispatcher.submit(self.url, payload, self._headers, description)
