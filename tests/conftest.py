"""Shared test fixtures for all test modules."""

from typing import Any

import httpx
import pytest

from observapush.adapters.frameworks.asgi import Receive, Scope, Send
from observapush.adapters.transport.in_memory import InMemoryPushTransport
from observapush.core.counters import CounterRegistry
from observapush.core.logs import LogShipper
from observapush.core.metrics import MetricsExporter
from tests.helpers import FakeClock


@pytest.fixture
def clock() -> FakeClock:
    """Provide a controllable wall clock."""
    return FakeClock()


@pytest.fixture
def log_transport() -> InMemoryPushTransport:
    """Provide a recording transport for log batches."""
    return InMemoryPushTransport()


@pytest.fixture
def metrics_transport() -> InMemoryPushTransport:
    """Provide a recording transport for metrics documents."""
    return InMemoryPushTransport()


@pytest.fixture
def shipper(log_transport: InMemoryPushTransport, clock: FakeClock) -> LogShipper:
    """Provide a log shipper writing to the recording transport."""
    return LogShipper(log_transport, "pizza-service", clock=clock)


@pytest.fixture
def exporter(
    metrics_transport: InMemoryPushTransport, clock: FakeClock
) -> MetricsExporter:
    """Provide a metrics exporter writing to the recording transport."""
    return MetricsExporter(metrics_transport, "pizza-service", clock=clock)


@pytest.fixture
def registry() -> CounterRegistry:
    """Provide an empty counter registry."""
    return CounterRegistry()


# === ASGI Test Fixtures ===


@pytest.fixture
def basic_asgi_app():
    """Basic ASGI app fixture that returns 200 OK."""

    async def app(scope: Scope, receive: Receive, send: Send) -> None:
        """Simple ASGI app that returns 200 OK."""
        await send({"type": "http.response.start", "status": 200, "headers": []})
        await send({"type": "http.response.body", "body": b"OK"})

    return app


@pytest.fixture
def asgi_scope():
    """Factory fixture for creating ASGI scope dicts."""

    def _scope(
        method: str = "GET",
        path: str = "/test",
        headers: dict[str, str] | None = None,
        query_string: bytes = b"",
        client: tuple[str, int] | None = ("10.0.0.7", 51234),
    ) -> Scope:
        return {
            "type": "http",
            "method": method,
            "path": path,
            "query_string": query_string,
            "headers": [
                (k.lower().encode(), v.encode()) for k, v in (headers or {}).items()
            ],
            "client": client,
        }

    return _scope


@pytest.fixture
def asgi_receive():
    """Factory fixture for a receive callable delivering one request body."""

    def _receive(body: bytes = b"") -> Receive:
        async def receive() -> dict[str, Any]:
            return {"type": "http.request", "body": body, "more_body": False}

        return receive

    return _receive


@pytest.fixture
def asgi_send_capture():
    """Fixture that returns a send callable and a responses list for capture."""

    responses: list[dict[str, object]] = []

    async def send(message: dict[str, object]) -> None:
        """Capture ASGI messages."""
        responses.append(message)

    return send, responses


@pytest.fixture
def asgi_test_client():
    """Factory fixture that creates an httpx.AsyncClient for ASGI testing.

    Usage:
        async def test_something(asgi_test_client):
            async with asgi_test_client(app) as client:
                response = await client.get("/endpoint")
    """

    def _get_client(app):
        """Return an AsyncClient context manager for the given app."""
        return httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app), base_url="http://test"
        )

    return _get_client
