"""
Order Service — event definitions

Events are named for what happened and are never modified after
they are built.
"""

from pydantic import BaseModel

from .models import Customer, PurchaseResponse


class OrderConfirmation(BaseModel):
    """An order was created, its lines stored and its payment requested."""
    order_reference: str
    total_amount: float
    payment_method: str
    customer: Customer
    products: list[PurchaseResponse]
