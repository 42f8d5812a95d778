"""BDD step definitions for the telemetry pipeline feature."""

import asyncio
import json
from dataclasses import dataclass, field
from types import SimpleNamespace
from typing import Any

import pytest
from pytest_bdd import given, parsers, then, when

from observapush.adapters.frameworks.asgi import (
    ObservabilityMiddleware,
    Receive,
    Scope,
    Send,
)
from observapush.adapters.transport.in_memory import InMemoryPushTransport
from observapush.config import Settings
from observapush.runtime.context import ObservabilityContext
from tests.helpers import FakeClock, metrics_by_name, stream_of, value_of


@dataclass
class PipelineScenarioContext:
    """Shared state between steps in a pipeline scenario."""

    clock: FakeClock = field(default_factory=FakeClock)
    log_transport: InMemoryPushTransport = field(default_factory=InMemoryPushTransport)
    metrics_transport: InMemoryPushTransport = field(
        default_factory=InMemoryPushTransport
    )
    telemetry: ObservabilityContext | None = None
    app: Any = None
    login_token: str = ""


@pytest.fixture
def ctx() -> PipelineScenarioContext:
    """Fresh scenario context for each test."""
    return PipelineScenarioContext()


def pizza_service(ctx: PipelineScenarioContext):
    """Minimal ASGI app standing in for the pizza service."""

    async def app(scope: Scope, receive: Receive, send: Send) -> None:
        await receive()
        if scope["path"].startswith("/api/auth"):
            body = {"user": {"id": 1}, "token": ctx.login_token}
        else:
            body = {"ok": True}
        await send(
            {
                "type": "http.response.start",
                "status": 200,
                "headers": [(b"content-type", b"application/json")],
            }
        )
        await send({"type": "http.response.body", "body": json.dumps(body).encode()})

    return app


def simulate_request(
    ctx: PipelineScenarioContext,
    method: str,
    path: str,
    body: bytes = b"",
    user: str | None = None,
) -> None:
    """Drive one request through the wrapped app."""
    scope: Scope = {
        "type": "http",
        "method": method,
        "path": path,
        "query_string": b"",
        "headers": [(b"content-type", b"application/json")],
        "client": ("127.0.0.1", 40000),
    }
    if user is not None:
        scope["user"] = SimpleNamespace(id=user, is_authenticated=True)

    async def receive() -> dict[str, Any]:
        return {"type": "http.request", "body": body, "more_body": False}

    async def send(message: dict[str, Any]) -> None:
        pass

    asyncio.run(ctx.app(scope, receive, send))


def shipped_text(ctx: PipelineScenarioContext) -> str:
    return json.dumps(ctx.log_transport.payloads)


# === Background Steps ===
@given("a telemetry context with recording transports")
def step_context(ctx: PipelineScenarioContext) -> None:
    ctx.telemetry = ObservabilityContext.from_settings(
        Settings(logging_source="pizza-service", metrics_source="pizza-service"),
        log_transport=ctx.log_transport,
        metrics_transport=ctx.metrics_transport,
        clock=ctx.clock,
    )


@given("the service is wrapped with observability middleware")
def step_middleware(ctx: PipelineScenarioContext) -> None:
    ctx.app = ObservabilityMiddleware(
        pizza_service(ctx), ctx.telemetry.shipper, ctx.telemetry.registry
    )


# === Business Steps ===
@when(
    parsers.parse(
        "a purchase succeeds with latency {latency:d} ms and revenue {revenue:g}"
    )
)
def step_purchase_succeeds(
    ctx: PipelineScenarioContext, latency: int, revenue: float
) -> None:
    ctx.telemetry.record_purchase(True, latency, revenue)


@when(parsers.parse("a purchase fails with latency {latency:d} ms"))
def step_purchase_fails(ctx: PipelineScenarioContext, latency: int) -> None:
    ctx.telemetry.record_purchase(False, latency, 0.0)


@when(parsers.parse("the reporter ticks after {minutes:d} minute"))
def step_tick(ctx: PipelineScenarioContext, minutes: int) -> None:
    ctx.metrics_transport.clear()
    ctx.clock.advance(minutes * 60)
    ctx.telemetry.reporter.tick()


@then(parsers.parse('the metric "{name}" is a cumulative sum of {value:d}'))
def step_cumulative_sum(ctx: PipelineScenarioContext, name: str, value: int) -> None:
    metric = metrics_by_name(ctx.metrics_transport)[name]
    assert metric["sum"]["aggregationTemporality"] == (
        "AGGREGATION_TEMPORALITY_CUMULATIVE"
    )
    assert metric["sum"]["isMonotonic"] is True
    assert value_of(metric) == value


@then(parsers.parse('the metric "{name}" has value {value:d}'))
def step_metric_value(ctx: PipelineScenarioContext, name: str, value: int) -> None:
    assert value_of(metrics_by_name(ctx.metrics_transport)[name]) == value


# === Logging Steps ===
@when(parsers.parse('the service logs an exception "{message}" for {method} "{path}"'))
def step_log_exception(
    ctx: PipelineScenarioContext, message: str, method: str, path: str
) -> None:
    try:
        raise RuntimeError(message)
    except RuntimeError as e:
        ctx.telemetry.shipper.log_exception(
            e, {"type": "http", "method": method, "path": path}
        )


@then(parsers.parse('a log is shipped with level "{level}" and type "{type_}"'))
def step_log_labels(ctx: PipelineScenarioContext, level: str, type_: str) -> None:
    labels = [stream_of(p)["stream"] for p in ctx.log_transport.payloads]
    assert any(
        label["level"] == level and label["type"] == type_ for label in labels
    )


@then(parsers.parse('the shipped log contains "{text}"'))
def step_log_contains(ctx: PipelineScenarioContext, text: str) -> None:
    assert text in shipped_text(ctx)


@then(parsers.parse('no shipped log contains "{text}"'))
def step_log_not_contains(ctx: PipelineScenarioContext, text: str) -> None:
    assert ctx.log_transport.payloads
    assert text not in shipped_text(ctx)


# === Request Steps ===
@when(parsers.parse('{n:d} {method} requests are made to "{path}"'))
def step_requests(ctx: PipelineScenarioContext, n: int, method: str, path: str) -> None:
    for _ in range(n):
        simulate_request(ctx, method, path)


@when(
    parsers.re(r'user "(?P<user>[^"]+)" makes (?P<n>\d+) requests?'),
    converters={"n": int},
)
def step_user_requests(ctx: PipelineScenarioContext, user: str, n: int) -> None:
    for _ in range(n):
        simulate_request(ctx, "GET", "/api/order", user=user)


@when(
    parsers.parse(
        'a login is made with password "{password}" '
        'and the response carries token "{token}"'
    )
)
def step_login(ctx: PipelineScenarioContext, password: str, token: str) -> None:
    ctx.login_token = token
    body = json.dumps({"email": "d@jwt.com", "password": password}).encode()
    simulate_request(ctx, "PUT", "/api/auth", body=body)


@then(parsers.parse("the GET counter is {n:d}"))
def step_get_counter(ctx: PipelineScenarioContext, n: int) -> None:
    assert ctx.telemetry.registry.snapshot().method("GET") == n


@then(parsers.parse("the request total is {n:d}"))
def step_request_total(ctx: PipelineScenarioContext, n: int) -> None:
    assert ctx.telemetry.registry.snapshot().requests == n


@then(parsers.parse("the auth success counter is {n:d}"))
def step_auth_success(ctx: PipelineScenarioContext, n: int) -> None:
    assert ctx.telemetry.registry.snapshot().auth_success == n


@then(parsers.parse("there are {n:d} active users"))
def step_active_users(ctx: PipelineScenarioContext, n: int) -> None:
    assert ctx.telemetry.registry.active_user_count == n
