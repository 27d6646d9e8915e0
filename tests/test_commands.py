"""Tests for the order store against a SQLite database."""

import pytest
from sqlalchemy import func, select

from order_service.exceptions import CustomerNotFoundError
from order_service.models import Order, OrderLine
from order_service.orchestrator import OrderOrchestrator
from order_service.schema import order_lines, orders

from .fakes import FakeCustomers


def _order(**overrides):
    values = {
        "reference": "ORD-1",
        "customer_id": "1",
        "amount": 59.99,
        "payment_method": "CARD",
    }
    values.update(overrides)
    return Order(**values)


async def _count(session_factory, table):
    async with session_factory() as session:
        return (await session.execute(select(func.count()).select_from(table))).scalar_one()


async def test_save_order_assigns_id(persister, session_factory):
    saved = await persister.save_order(_order())

    assert saved.id is not None
    assert saved.created_at is not None
    async with session_factory() as session:
        row = (await session.execute(select(orders).where(orders.c.id == saved.id))).one()
    assert row.reference == "ORD-1"
    assert row.total_amount == 59.99
    assert row.payment_method == "CARD"
    assert row.customer_id == "1"


async def test_each_order_gets_its_own_id(persister):
    first = await persister.save_order(_order())
    second = await persister.save_order(_order())

    assert first.id != second.id


async def test_save_order_line_references_order(persister, session_factory):
    saved = await persister.save_order(_order())

    line = await persister.save_order_line(
        OrderLine(order_id=saved.id, product_id=3, quantity=2)
    )

    assert line.id is not None
    async with session_factory() as session:
        row = (await session.execute(select(order_lines))).one()
    assert (row.order_id, row.product_id, row.quantity) == (saved.id, 3, 2)


async def test_writes_are_committed_independently(persister, session_factory):
    saved = await persister.save_order(_order())
    await persister.save_order_line(OrderLine(order_id=saved.id, product_id=1, quantity=1))

    # Visible from a fresh session without any enclosing transaction
    assert await _count(session_factory, orders) == 1
    assert await _count(session_factory, order_lines) == 1


async def test_create_order_against_database(
    persister, session_factory, customers, products, payments, channel, order_request, customer
):
    orchestrator = OrderOrchestrator(customers, products, persister, payments, channel)

    order_id = await orchestrator.create_order(order_request)

    async with session_factory() as session:
        order_rows = (await session.execute(select(orders))).all()
        line_rows = (
            await session.execute(select(order_lines).order_by(order_lines.c.id))
        ).all()
    assert len(order_rows) == 1
    assert order_rows[0].id == order_id
    assert order_rows[0].total_amount == 59.99
    assert order_rows[0].reference == "ORD-1"
    assert [(r.order_id, r.product_id, r.quantity) for r in line_rows] == [
        (order_id, 1, 2),
        (order_id, 2, 1),
    ]
    assert payments.requests[0].order_id == order_id
    assert payments.requests[0].customer == customer
    assert len(channel.published[0].products) == 2


async def test_missing_customer_writes_no_rows(
    persister, session_factory, products, payments, channel, order_request
):
    orchestrator = OrderOrchestrator(FakeCustomers(), products, persister, payments, channel)

    with pytest.raises(CustomerNotFoundError):
        await orchestrator.create_order(order_request)

    assert await _count(session_factory, orders) == 0
    assert await _count(session_factory, order_lines) == 0
