"""ASGI middleware that access-logs and counts every HTTP request.

The middleware wraps the ``receive`` and ``send`` callables handed to the
application. Messages pass through unchanged; the wrappers only copy what they
need (status, bodies) and the access log is emitted once, right after the
final body chunk has been forwarded to the server.
"""

import logging
import time
from collections.abc import Callable, Coroutine, Hashable, Mapping
from typing import Any

from observapush.core.counters import CounterRegistry
from observapush.core.logs import LogShipper, request_target

logger = logging.getLogger(__name__)

# ASGI type aliases
Scope = dict[str, Any]
Message = dict[str, Any]
Receive = Callable[[], Coroutine[Any, Any, Message]]
Send = Callable[[Message], Coroutine[Any, Any, None]]
ASGIApp = Callable[[Scope, Receive, Send], Coroutine[Any, Any, None]]
UserResolver = Callable[[Scope], Hashable | None]

EMPTY_BODY = "{}"


def _get_header(scope: Scope, name: str) -> str | None:
    """Return the first value of a header (case-insensitive), if present."""
    wanted = name.lower().encode()
    for key, value in scope.get("headers", []):
        if key.lower() == wanted:
            return value.decode("latin-1")
    return None


def _client_address(scope: Scope) -> str:
    """Proxy-aware client address.

    Prefers the first ``X-Forwarded-For`` entry, then the connection peer,
    then an empty string.
    """
    forwarded = _get_header(scope, "x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    client = scope.get("client")
    if client:
        return str(client[0])
    return ""


def default_user_resolver(scope: Scope) -> Hashable | None:
    """Find the authenticated user id left in the scope by inner middleware.

    Looks at ``scope["user"]`` (Starlette's AuthenticationMiddleware) and then
    at ``scope["state"]["user_id"]``.
    """
    user = scope.get("user")
    if user is not None and getattr(user, "is_authenticated", True):
        if isinstance(user, Mapping):
            user_id = user.get("id")
        else:
            user_id = getattr(user, "id", None)
        if user_id is not None:
            return user_id
    state = scope.get("state")
    if isinstance(state, Mapping):
        return state.get("user_id")
    return None


class _Exchange:
    """Per-request capture buffer."""

    def __init__(self, max_body_bytes: int) -> None:
        self.max_body_bytes = max_body_bytes
        self.status: int | None = None
        self.request_body = bytearray()
        self.response_body = bytearray()
        self.finalized = False

    def _append(self, buffer: bytearray, chunk: bytes) -> None:
        room = self.max_body_bytes - len(buffer)
        if room > 0:
            buffer += chunk[:room]

    def add_request_body(self, chunk: bytes) -> None:
        self._append(self.request_body, chunk)

    def add_response_body(self, chunk: bytes) -> None:
        self._append(self.response_body, chunk)


class ObservabilityMiddleware:
    """ASGI middleware that ships an access log and updates request counters.

    For each HTTP request it captures the method, target, final status,
    whether an Authorization header was present (never its value), latency,
    request and response bodies and client address, ships them as an
    ``http`` log, and records the request and its latency in the registry.
    Application exceptions are shipped as ``exception`` logs, counted as
    status 500 and re-raised.

    Example:
        ```python
        app = ObservabilityMiddleware(app, context.shipper, context.registry)
        ```
    """

    def __init__(
        self,
        app: ASGIApp,
        shipper: LogShipper | None,
        registry: CounterRegistry | None,
        auth_path_prefix: str = "/api/auth",
        max_body_bytes: int = 65536,
        user_resolver: UserResolver = default_user_resolver,
    ) -> None:
        """Initialize the middleware.

        Args:
            app: The ASGI application to wrap.
            shipper: Log shipper for access and exception logs (optional).
            registry: Counter registry for request metrics (optional).
            auth_path_prefix: Requests whose path contains this string count
                as authentication attempts.
            max_body_bytes: Captured bodies are redacted and then truncated to
                this size.
            user_resolver: Extracts the authenticated user id from the scope.
        """
        self.app = app
        self.shipper = shipper
        self.registry = registry
        self.auth_path_prefix = auth_path_prefix
        self.max_body_bytes = max_body_bytes
        self.user_resolver = user_resolver
        self.log_requests = True
        self.record_metrics = True

    def set_log_requests(self, enabled: bool) -> None:
        """Set whether to ship access logs. Counters are unaffected."""
        self.log_requests = enabled

    def set_record_metrics(self, enabled: bool) -> None:
        """Set whether to update request counters. Logs are unaffected."""
        self.record_metrics = enabled

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI callable interface that processes requests through the wrapped app."""
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        start_time = time.perf_counter()
        exchange = _Exchange(self.max_body_bytes)

        async def wrapped_receive() -> Message:
            message = await receive()
            if message["type"] == "http.request":
                exchange.add_request_body(message.get("body", b""))
            return message

        async def wrapped_send(message: Message) -> None:
            if message["type"] == "http.response.start":
                exchange.status = message["status"]
            elif message["type"] == "http.response.body":
                exchange.add_response_body(message.get("body", b""))
            await send(message)
            if message["type"] == "http.response.body" and not message.get(
                "more_body", False
            ):
                self._finalize(scope, exchange, start_time)

        try:
            await self.app(scope, wrapped_receive, wrapped_send)
        except Exception as e:
            if exchange.status is None:
                exchange.status = 500
            if self.shipper is not None:
                self.shipper.log_exception(e, scope)
            raise
        finally:
            self._finalize(scope, exchange, start_time)

    def _finalize(self, scope: Scope, exchange: _Exchange, start_time: float) -> None:
        """Record the exchange once. Failures are logged, never propagated."""
        if exchange.finalized:
            return
        exchange.finalized = True
        duration_ms = (time.perf_counter() - start_time) * 1000
        status = exchange.status or 0
        try:
            if self.record_metrics and self.registry is not None:
                self._record_metrics(self.registry, scope, status, duration_ms)
            if self.log_requests and self.shipper is not None:
                record = self._access_record(
                    self.shipper, scope, exchange, status, duration_ms
                )
                self.shipper.log_http(status, record)
        except Exception:
            logger.exception("Failed to record request %s", scope.get("path"))

    def _record_metrics(
        self, registry: CounterRegistry, scope: Scope, status: int, duration_ms: float
    ) -> None:
        user_id = self.user_resolver(scope)
        registry.record_request(
            scope.get("method", ""),
            user_id is not None,
            user_id,
            self.auth_path_prefix in scope.get("path", ""),
            status,
        )
        registry.record_service_latency(duration_ms)

    def _access_record(
        self,
        shipper: LogShipper,
        scope: Scope,
        exchange: _Exchange,
        status: int,
        duration_ms: float,
    ) -> dict[str, Any]:
        def body(buffer: bytearray) -> str:
            text = bytes(buffer).decode("utf-8", errors="replace")
            return shipper.sanitizer.clip(text, self.max_body_bytes)

        request_body = body(exchange.request_body)
        return {
            "method": scope.get("method", ""),
            "path": request_target(scope),
            "status": status,
            "auth": _get_header(scope, "authorization") is not None,
            "response_time_ms": round(duration_ms, 3),
            "req": request_body or EMPTY_BODY,
            "res": body(exchange.response_body),
            "ip": _client_address(scope),
        }
