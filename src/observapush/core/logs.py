"""Log shipping: labelled, sanitized log events pushed to the log backend."""

import logging
import time
import traceback
from collections.abc import Callable, Mapping
from typing import Any

from observapush.core.encoding.loki import encode_log_event
from observapush.core.models import LogEvent
from observapush.core.ports import PushTransportPort
from observapush.core.sanitize import Sanitizer

logger = logging.getLogger(__name__)

UNKNOWN = "unknown"


def status_to_level(status_code: int) -> str:
    """Map an HTTP status code to a log level.

    - 500 and above → "error"
    - 400-499 → "warn"
    - anything else → "info"
    """
    if status_code >= 500:
        return "error"
    if status_code >= 400:
        return "warn"
    return "info"


def nanos_from_millis(clock: Callable[[], float] = time.time) -> int:
    """Nanoseconds since epoch at millisecond resolution.

    ``clock`` returns seconds; the value is truncated to whole milliseconds and
    scaled by 10**6, so the last six digits are always zero.
    """
    return int(clock() * 1000) * 1_000_000


class LogShipper:
    """Builds log events and hands them to a push transport.

    Every entry point is fire-and-forget: nothing is returned to the request
    path except the built event (useful in tests) and nothing raises.
    """

    def __init__(
        self,
        transport: PushTransportPort,
        source: str,
        sanitizer: Sanitizer | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the shipper.

        Args:
            transport: Transport that delivers stream batches.
            source: Value of the ``component`` label.
            sanitizer: Redaction policy (default: password and token keys).
            clock: Wall clock returning seconds since epoch.
        """
        self.transport = transport
        self.source = source
        self.sanitizer = sanitizer or Sanitizer()
        self._clock = clock

    def log(self, level: str, type_: str, data: Any) -> LogEvent | None:
        """Sanitize ``data`` and push it as one log stream entry.

        Args:
            level: Log level label (info, warn, error).
            type_: Event type label (http, db, factory, exception, ...).
            data: Arbitrary structured payload.

        Returns:
            The pushed event, or None if it could not be built.
        """
        try:
            event = LogEvent(
                labels={"component": self.source, "level": level, "type": type_},
                timestamp_nanos=str(nanos_from_millis(self._clock)),
                payload=self.sanitizer.sanitize(data),
            )
            self.transport.send(encode_log_event(event), f"{type_} log")
        except Exception:
            logger.exception("Failed to ship %s log", type_)
            return None
        return event

    def log_http(self, status_code: int, data: Mapping[str, Any]) -> LogEvent | None:
        """Log an HTTP access record with a level derived from the status."""
        return self.log(status_to_level(status_code), "http", data)

    def log_db_query(self, query: str, params: Any = None) -> LogEvent | None:
        """Log a database query and its bound parameters."""
        data = {
            "req": query,
            "params": self.sanitizer.sanitize(params) if params is not None else "",
        }
        return self.log("info", "db", data)

    def log_factory_request(
        self,
        request_body: Any,
        response_body: Any,
        success: bool,
        status_code: int,
    ) -> LogEvent | None:
        """Log an outbound call to the upstream factory service."""
        data = {
            "req": self.sanitizer.sanitize(request_body),
            "res": self.sanitizer.sanitize(response_body),
            "status": status_code,
        }
        return self.log("info" if success else "error", "factory", data)

    def log_exception(
        self,
        error: BaseException,
        request: Mapping[str, Any] | None = None,
    ) -> LogEvent | None:
        """Log an exception, with the request method and target when known.

        Args:
            error: The exception to log.
            request: ASGI scope of the request being served, if any.
        """
        path = method = UNKNOWN
        if request is not None:
            path = request_target(request)
            method = request.get("method", UNKNOWN)
        data = {
            "message": str(error),
            "stack": "".join(
                traceback.format_exception(type(error), error, error.__traceback__)
            ),
            "path": path,
            "method": method,
        }
        return self.log("error", "exception", data)


def request_target(scope: Mapping[str, Any]) -> str:
    """Return the request path including its query string, if any."""
    path = str(scope.get("path", "")) or UNKNOWN
    query = scope.get("query_string", b"")
    if isinstance(query, bytes):
        query = query.decode("latin-1")
    return f"{path}?{query}" if query else path
