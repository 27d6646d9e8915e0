"""
Order Service — collaborator clients

Each collaborator is described by a Protocol so the orchestrator never
depends on a transport. The HTTP implementations share one
httpx.AsyncClient and turn error statuses and transport failures into
ServiceError. Malformed URLs, e.g. from a misconfigured base URL, are
reported the same way.
"""

import logging
from typing import Protocol
from urllib.parse import quote

import httpx

from .events import OrderConfirmation
from .exceptions import ServiceError
from .models import (
    Customer,
    Order,
    OrderLine,
    PaymentRequest,
    PurchaseRequest,
    PurchaseResponse,
)

logger = logging.getLogger(__name__)


# ── Capability interfaces ────────────────────────

class CustomerDirectory(Protocol):
    async def find_customer(self, customer_id: str) -> Customer | None: ...


class ProductPurchaser(Protocol):
    async def purchase(
        self, lines: list[PurchaseRequest]
    ) -> list[PurchaseResponse]: ...


class OrderStore(Protocol):
    async def save_order(self, order: Order) -> Order: ...

    async def save_order_line(self, line: OrderLine) -> OrderLine: ...


class PaymentInitiator(Protocol):
    async def request_payment(self, payment: PaymentRequest) -> None: ...


class ConfirmationChannel(Protocol):
    async def publish_confirmation(self, confirmation: OrderConfirmation) -> None: ...


# ── HTTP implementations ─────────────────────────

class CustomerClient:
    """Customer directory: GET {base_url}/customers/{id}, 404 means absent."""

    def __init__(self, client: httpx.AsyncClient, base_url: str):
        self.client = client
        self.base_url = base_url.rstrip("/")

    async def find_customer(self, customer_id: str) -> Customer | None:
        try:
            resp = await self.client.get(
                f"{self.base_url}/customers/{quote(customer_id, safe='')}"
            )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise ServiceError("customer-service", str(e)) from e
        if resp.status_code == 404:
            return None
        if resp.is_error:
            raise ServiceError("customer-service", resp.text, resp.status_code)
        try:
            return Customer.model_validate(resp.json())
        except ValueError as e:
            raise ServiceError("customer-service", f"Malformed customer: {e}") from e


class ProductClient:
    """Inventory service: one batched POST {base_url}/purchase for all lines."""

    def __init__(self, client: httpx.AsyncClient, base_url: str):
        self.client = client
        self.base_url = base_url.rstrip("/")

    async def purchase(self, lines: list[PurchaseRequest]) -> list[PurchaseResponse]:
        try:
            resp = await self.client.post(
                f"{self.base_url}/purchase",
                json=[line.model_dump(mode="json") for line in lines],
            )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise ServiceError("product-service", str(e)) from e
        if resp.is_error:
            raise ServiceError(
                "product-service",
                f"An error occurred while processing the product purchase: {resp.text}",
                resp.status_code,
            )
        try:
            purchased = [PurchaseResponse.model_validate(item) for item in resp.json()]
        except (TypeError, ValueError) as e:
            raise ServiceError("product-service", f"Malformed purchase response: {e}") from e
        if len(purchased) != len(lines):
            raise ServiceError(
                "product-service",
                f"Expected {len(lines)} purchase results, got {len(purchased)}",
            )
        return purchased


class PaymentClient:
    """Payment service: POST the request and return without waiting for settlement."""

    def __init__(self, client: httpx.AsyncClient, url: str):
        self.client = client
        self.url = url

    async def request_payment(self, payment: PaymentRequest) -> None:
        try:
            resp = await self.client.post(self.url, json=payment.model_dump(mode="json"))
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise ServiceError("payment-service", str(e)) from e
        if resp.is_error:
            raise ServiceError("payment-service", resp.text, resp.status_code)
        logger.debug("Payment requested for order %s", payment.order_id)
