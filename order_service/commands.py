"""
Order Service — write side

Each save opens its own session and commits on its own. Writing an
order and its lines is therefore a sequence of independent durable
writes, not one transaction: a failure part way leaves the rows
already committed in place.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .models import Order, OrderLine
from .schema import order_lines, orders

logger = logging.getLogger(__name__)


async def save_order(session: AsyncSession, order: Order) -> Order:
    """Insert the order header and return it with its assigned id."""
    created_at = order.created_at or datetime.now(timezone.utc)
    result = await session.execute(
        insert(orders).values(
            reference=order.reference,
            customer_id=order.customer_id,
            total_amount=order.amount,
            payment_method=order.payment_method,
            created_at=created_at,
        )
    )
    await session.commit()
    order_id = result.inserted_primary_key[0]
    logger.debug("Saved order %s (%s)", order_id, order.reference)
    return order.model_copy(update={"id": order_id, "created_at": created_at})


async def save_order_line(session: AsyncSession, line: OrderLine) -> OrderLine:
    """Insert one order line. The parent order must already be committed."""
    result = await session.execute(
        insert(order_lines).values(
            order_id=line.order_id,
            product_id=line.product_id,
            quantity=line.quantity,
        )
    )
    await session.commit()
    return line.model_copy(update={"id": result.inserted_primary_key[0]})


class OrderPersister:
    """Binds the save functions to a session factory, one session per write."""

    def __init__(self, session_factory: async_sessionmaker):
        self.session_factory = session_factory

    async def save_order(self, order: Order) -> Order:
        async with self.session_factory() as session:
            return await save_order(session, order)

    async def save_order_line(self, line: OrderLine) -> OrderLine:
        async with self.session_factory() as session:
            return await save_order_line(session, line)
