"""Example pizza service instrumented with observapush.

Run with:
    OBSERVAPUSH_LOGGING_URL=... OBSERVAPUSH_METRICS_URL=... \
        uvicorn examples.fastapi_example:app --reload

Endpoints:
    GET  /api/order/menu  - menu (database query logged as a ``db`` log)
    PUT  /api/auth        - login (password and token masked in the access log)
    POST /api/order       - order (factory call logged, purchase recorded)
    GET  /error           - unhandled error (shipped as an ``exception`` log)

Every request is access-logged and counted; request rates, latencies, active
users, pizza sales and host usage are pushed every report interval.
"""

import asyncio
import logging
import random
import time

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from observapush import LogShipperHandler, ObservabilityContext, get_settings
from observapush.adapters.frameworks.fastapi import instrument_fastapi

context = ObservabilityContext.from_settings(get_settings())

# Application logs go to the log backend too
app_logger = logging.getLogger("pizza")
app_logger.setLevel(logging.INFO)
app_logger.addHandler(LogShipperHandler(context.shipper))

app = instrument_fastapi(FastAPI(title="Pizza Service"), context)

MENU = [
    {"id": 1, "title": "Veggie", "price": 0.0038},
    {"id": 2, "title": "Pepperoni", "price": 0.0042},
]


class Credentials(BaseModel):
    email: str
    password: str


class OrderItem(BaseModel):
    menuId: int
    description: str
    price: float


class Order(BaseModel):
    franchiseId: int
    storeId: int
    items: list[OrderItem]


@app.get("/api/order/menu")
async def get_menu() -> list[dict]:
    context.shipper.log_db_query("SELECT * FROM menu")
    return MENU


@app.put("/api/auth")
async def login(credentials: Credentials) -> dict:
    context.shipper.log_db_query(
        "SELECT * FROM user WHERE email=?", [credentials.email]
    )
    if credentials.password != "diner":
        raise HTTPException(status_code=404, detail="unknown user")
    user = {"id": 3, "email": credentials.email}
    return {"user": user, "token": "eyJhbGciOi.demo.jwt"}


@app.post("/api/order")
async def create_order(order: Order) -> dict:
    """Forward the order to the pizza factory and record the purchase."""
    started = time.perf_counter()
    await asyncio.sleep(random.uniform(0.05, 0.2))  # Simulated factory call
    success = random.random() > 0.1
    factory_response = {"reportUrl": "https://factory.example/report", "jwt": "signed"}
    context.shipper.log_factory_request(
        order.model_dump(), factory_response, success, 200 if success else 500
    )

    latency_ms = (time.perf_counter() - started) * 1000
    revenue = sum(item.price for item in order.items)
    context.record_purchase(success, latency_ms, revenue if success else 0.0)
    if not success:
        app_logger.error("Factory rejected order", extra={"store": order.storeId})
        raise HTTPException(status_code=500, detail="Failed to fulfill order")
    return {"order": order.model_dump(), "jwt": factory_response["jwt"]}


@app.get("/error")
async def error_endpoint() -> dict[str, str]:
    raise ValueError("Intentional error for demonstration")
