"""
Order Service — FastAPI entry point

Exposes order creation over HTTP. The request is handed to the
OrderOrchestrator, which calls the customer, inventory and payment
services, stores the order and publishes a confirmation.

  ┌────────┐     ┌───────────────┐────▶ Customer Service
  │ Client │────▶│ Order Service │────▶ Product Service
  │        │     │               │────▶ Order DB (orders, order_lines)
  │        │     │               │────▶ Payment Service
  └────────┘     └───────────────┘────▶ Redis Pub/Sub (order_events)
"""

import logging
import os
from contextlib import asynccontextmanager

import httpx
import redis.asyncio as aioredis
from fastapi import Depends, FastAPI, HTTPException
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from .clients import CustomerClient, PaymentClient, ProductClient
from .commands import OrderPersister
from .exceptions import (
    BusinessError,
    CustomerNotFoundError,
    OrderCreationError,
)
from .models import OrderRequest
from .orchestrator import OrderOrchestrator
from .publisher import ConfirmationPublisher
from .schema import create_tables

DATABASE_URL = os.environ["DATABASE_URL"]
REDIS_URL = os.environ.get("REDIS_URL", "redis://localhost:6379")
CUSTOMER_SERVICE_URL = os.environ["CUSTOMER_SERVICE_URL"]
PRODUCT_SERVICE_URL = os.environ["PRODUCT_SERVICE_URL"]
PAYMENT_SERVICE_URL = os.environ["PAYMENT_SERVICE_URL"]
ORDER_EVENTS_CHANNEL = os.environ.get("ORDER_EVENTS_CHANNEL", "order_events")
SERVICE_TIMEOUT = float(os.environ.get("SERVICE_TIMEOUT", "10.0"))
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

engine = create_async_engine(DATABASE_URL, echo=False)
async_session = async_sessionmaker(engine, expire_on_commit=False)
redis_pool: aioredis.Redis | None = None
http_client: httpx.AsyncClient | None = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    global redis_pool, http_client
    await create_tables(engine)
    redis_pool = aioredis.from_url(
        REDIS_URL, decode_responses=True, socket_timeout=SERVICE_TIMEOUT
    )
    http_client = httpx.AsyncClient(timeout=SERVICE_TIMEOUT)
    logger.info("Order service started")
    yield
    await http_client.aclose()
    await redis_pool.aclose()
    await engine.dispose()


app = FastAPI(title="Order Service", lifespan=lifespan)


def get_orchestrator() -> OrderOrchestrator:
    return OrderOrchestrator(
        customers=CustomerClient(http_client, CUSTOMER_SERVICE_URL),
        products=ProductClient(http_client, PRODUCT_SERVICE_URL),
        store=OrderPersister(async_session),
        payments=PaymentClient(http_client, PAYMENT_SERVICE_URL),
        confirmations=ConfirmationPublisher(redis_pool, ORDER_EVENTS_CHANNEL),
        step_timeout=SERVICE_TIMEOUT,
    )


def _status_for(error: OrderCreationError) -> int:
    if isinstance(error, CustomerNotFoundError):
        return 404
    if isinstance(error, BusinessError):
        return 400
    return 500


# ── Command Endpoints ────────────────────────────

@app.post("/orders", status_code=201)
async def create_order(
    req: OrderRequest,
    orchestrator: OrderOrchestrator = Depends(get_orchestrator),
):
    """Create an order. The response carries the new order id and the step log."""
    try:
        result = await orchestrator.execute(req)
    except OrderCreationError as e:
        raise HTTPException(status_code=_status_for(e), detail=e.to_dict()) from e
    return result.model_dump()


@app.get("/health")
async def health():
    return {"status": "ok", "service": "order-service"}
