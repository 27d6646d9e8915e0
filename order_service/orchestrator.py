"""
Order Orchestrator — order creation across services

The orchestrator runs a fixed sequence of calls against independently
owned services:

  ┌──────────────────────────────────────────────────────────┐
  │  1. Customer directory: confirm the customer exists       │
  │  2. Inventory: purchase all product lines in one batch    │
  │  3. Order store: persist the order header (id assigned)   │
  │  4. Order store: persist each order line, one at a time   │
  │  5. Payment service: request payment for the order        │
  │  6. Event channel: publish the order confirmation         │
  └──────────────────────────────────────────────────────────┘

There are no compensating transactions. Step order is the only
consistency mechanism: nothing is written before steps 1-2 succeed,
and lines are only written once their parent order exists. A failure
in steps 3-4 leaves whatever was already committed and raises
PersistenceError saying how far the run got.

Once the order and its lines are stored the order id is the result of
the call. Failures in steps 5-6 are logged and returned as warnings
rather than raised.

Every step is recorded in the saga log so partial failures can be
reconciled by an operator.
"""

import asyncio
import logging
from collections.abc import Awaitable
from datetime import datetime, timezone
from typing import TypeVar

from sqlalchemy.exc import SQLAlchemyError

from .clients import (
    ConfirmationChannel,
    CustomerDirectory,
    OrderStore,
    PaymentInitiator,
    ProductPurchaser,
)
from .events import OrderConfirmation
from .exceptions import (
    BusinessError,
    CustomerNotFoundError,
    PersistenceError,
    PurchaseError,
    ServiceError,
)
from .models import OrderLine, OrderRequest, OrderResult, PaymentRequest, to_order

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_STEP_TIMEOUT = 10.0


class OrderOrchestrator:
    """Sequences order creation across the collaborator services."""

    def __init__(
        self,
        customers: CustomerDirectory,
        products: ProductPurchaser,
        store: OrderStore,
        payments: PaymentInitiator,
        confirmations: ConfirmationChannel,
        step_timeout: float = DEFAULT_STEP_TIMEOUT,
    ):
        self.customers = customers
        self.products = products
        self.store = store
        self.payments = payments
        self.confirmations = confirmations
        self.step_timeout = step_timeout

    async def create_order(self, request: OrderRequest) -> int:
        """Create the order and return its id."""
        result = await self.execute(request)
        return result.order_id

    async def execute(self, request: OrderRequest) -> OrderResult:
        """
        Run the order creation sequence.

        Raises BusinessError (steps 1-2) or PersistenceError (steps 3-4).
        Each call creates a new order; identical requests are not
        deduplicated.
        """
        saga_log: list[dict] = []
        warnings: list[str] = []

        # ── Step 1: validate the customer ───────────
        self._begin(saga_log, 1, "ValidateCustomer")
        try:
            customer = await self._call(self.customers.find_customer(request.customer_id))
        except (ServiceError, asyncio.TimeoutError) as e:
            self._fail(saga_log, e)
            logger.error("Customer lookup failed for %s: %s", request.customer_id, _describe(e))
            raise BusinessError(
                f"Cannot create order: customer lookup failed: {_describe(e)}",
                saga_log,
            ) from e
        if customer is None:
            self._fail(saga_log, f"No customer exists with id {request.customer_id}")
            logger.info("Rejected order for unknown customer %s", request.customer_id)
            raise CustomerNotFoundError(request.customer_id, saga_log)
        self._complete(saga_log)

        # ── Step 2: purchase the products ───────────
        self._begin(saga_log, 2, "PurchaseProducts")
        try:
            purchased = await self._call(self.products.purchase(list(request.products)))
        except (ServiceError, asyncio.TimeoutError) as e:
            self._fail(saga_log, e)
            logger.error("Product purchase failed for customer %s: %s", customer.id, _describe(e))
            raise PurchaseError(
                f"An error occurred while processing the product purchase: {_describe(e)}",
                saga_log,
            ) from e
        self._complete(saga_log)

        # ── Step 3: persist the order header ────────
        self._begin(saga_log, 3, "PersistOrder")
        try:
            order = await self._call(self.store.save_order(to_order(request)))
        except (SQLAlchemyError, asyncio.TimeoutError) as e:
            self._fail(saga_log, e)
            logger.exception("Failed to persist order for customer %s", customer.id)
            raise PersistenceError(
                f"Failed to persist order: {_describe(e)}", saga_log
            ) from e
        saga_log[-1]["order_id"] = order.id
        self._complete(saga_log)

        # ── Step 4: persist the order lines ─────────
        self._begin(saga_log, 4, "PersistOrderLines")
        lines_persisted = 0
        for line in request.products:
            try:
                await self._call(
                    self.store.save_order_line(
                        OrderLine(
                            order_id=order.id,
                            product_id=line.product_id,
                            quantity=line.quantity,
                        )
                    )
                )
            except (SQLAlchemyError, asyncio.TimeoutError) as e:
                saga_log[-1]["lines_persisted"] = lines_persisted
                self._fail(saga_log, e)
                logger.exception(
                    "Order %s left with %d of %d lines",
                    order.id, lines_persisted, len(request.products),
                )
                raise PersistenceError(
                    f"Failed to persist order line for product {line.product_id}: {_describe(e)}",
                    saga_log,
                    order_id=order.id,
                    lines_persisted=lines_persisted,
                ) from e
            lines_persisted += 1
        saga_log[-1]["lines_persisted"] = lines_persisted
        self._complete(saga_log)

        # ── Step 5: request payment ─────────────────
        self._begin(saga_log, 5, "RequestPayment")
        payment = PaymentRequest(
            amount=request.amount,
            payment_method=request.payment_method,
            order_id=order.id,
            order_reference=order.reference,
            customer=customer,
        )
        try:
            await self._call(self.payments.request_payment(payment))
            self._complete(saga_log)
        except (ServiceError, asyncio.TimeoutError) as e:
            self._fail(saga_log, e)
            warnings.append(f"Payment request failed: {_describe(e)}")
            logger.warning("Payment request failed for order %s: %s", order.id, _describe(e))

        # ── Step 6: publish the confirmation ────────
        self._begin(saga_log, 6, "PublishConfirmation")
        confirmation = OrderConfirmation(
            order_reference=request.reference or order.reference,
            total_amount=request.amount,
            payment_method=request.payment_method,
            customer=customer,
            products=purchased,
        )
        try:
            await self._call(self.confirmations.publish_confirmation(confirmation))
            self._complete(saga_log)
        except (ServiceError, asyncio.TimeoutError) as e:
            self._fail(saga_log, e)
            warnings.append(f"Order confirmation not published: {_describe(e)}")
            logger.warning("Confirmation publish failed for order %s: %s", order.id, _describe(e))

        logger.info(
            "Created order %s (%s) with %d lines for customer %s",
            order.id, order.reference, lines_persisted, customer.id,
        )
        return OrderResult(
            order_id=order.id,
            reference=order.reference,
            saga_log=saga_log,
            warnings=warnings,
        )

    async def _call(self, awaitable: Awaitable[T]) -> T:
        return await asyncio.wait_for(awaitable, timeout=self.step_timeout)

    @staticmethod
    def _begin(saga_log: list[dict], step: int, action: str) -> None:
        saga_log.append(
            {
                "step": step,
                "action": action,
                "status": "EXECUTING",
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }
        )

    @staticmethod
    def _complete(saga_log: list[dict]) -> None:
        saga_log[-1]["status"] = "COMPLETED"

    @staticmethod
    def _fail(saga_log: list[dict], error: Exception | str) -> None:
        saga_log[-1]["status"] = "FAILED"
        saga_log[-1]["error"] = _describe(error) if isinstance(error, Exception) else error


def _describe(error: Exception) -> str:
    if isinstance(error, asyncio.TimeoutError):
        return "timed out"
    return str(error)
