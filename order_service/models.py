"""
Order Service — data transfer models

Inputs received from callers, payloads exchanged with collaborator
services, and the Order / OrderLine records owned by this service.
"""

from datetime import datetime
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

CUSTOMER_ID_PATTERN = r"^[A-Za-z0-9_-]+$"


class PurchaseRequest(BaseModel):
    """One ordered product line."""
    model_config = ConfigDict(frozen=True)

    product_id: int
    quantity: float = Field(gt=0)


class OrderRequest(BaseModel):
    """Create-order input. Immutable once received."""
    model_config = ConfigDict(
        frozen=True, str_strip_whitespace=True, coerce_numbers_to_str=True
    )

    customer_id: str = Field(min_length=1, max_length=64, pattern=CUSTOMER_ID_PATTERN)
    products: list[PurchaseRequest] = Field(min_length=1)
    amount: float = Field(ge=0)
    payment_method: str = Field(min_length=1)
    reference: str | None = None

    @field_validator("amount")
    @classmethod
    def amount_in_cents(cls, value: float) -> float:
        # orders.total_amount keeps two decimal places
        if round(value, 2) != value:
            raise ValueError("amount must have at most two decimal places")
        return value


class Customer(BaseModel):
    """Customer snapshot as returned by the customer directory."""
    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: str
    firstname: str | None = None
    lastname: str | None = None
    email: str | None = None


class PurchaseResponse(BaseModel):
    """Confirmed purchase of one line, as returned by the inventory service."""
    product_id: int
    name: str | None = None
    description: str | None = None
    price: float | None = None
    quantity: float


class Order(BaseModel):
    """Order header. id is assigned by the database on insert."""
    id: int | None = None
    reference: str
    customer_id: str
    amount: float
    payment_method: str
    created_at: datetime | None = None


class OrderLine(BaseModel):
    id: int | None = None
    order_id: int
    product_id: int
    quantity: float


class PaymentRequest(BaseModel):
    amount: float
    payment_method: str
    order_id: int
    order_reference: str
    customer: Customer


class OrderResult(BaseModel):
    """Outcome of a successful run: the new order id plus the step log."""
    order_id: int
    reference: str
    saga_log: list[dict]
    warnings: list[str] = Field(default_factory=list)


def generate_reference() -> str:
    return f"ORD-{uuid4().hex[:8].upper()}"


def to_order(request: OrderRequest) -> Order:
    """Build the order header from a request. Product lines are not part of it."""
    return Order(
        reference=request.reference or generate_reference(),
        customer_id=request.customer_id,
        amount=request.amount,
        payment_method=request.payment_method,
    )
