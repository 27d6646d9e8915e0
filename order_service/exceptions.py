"""
Order Service — error taxonomy

Business errors abort a run before anything is persisted.
Persistence errors abort a run that may already have written rows;
there is no rollback, so the error says how far the run got.
"""


class ServiceError(Exception):
    """A collaborator service could not be reached or answered with an error status."""

    def __init__(self, service: str, detail: str, status_code: int | None = None):
        self.service = service
        self.detail = detail
        self.status_code = status_code
        super().__init__(f"{service}: {detail}")


class OrderCreationError(Exception):
    """Base class for failures that prevent an order id from being returned."""

    def __init__(self, message: str, saga_log: list[dict] | None = None):
        super().__init__(message)
        self.message = message
        self.saga_log = saga_log or []

    def to_dict(self) -> dict:
        return {"error": self.message, "saga_log": self.saga_log}


class BusinessError(OrderCreationError):
    """A domain precondition failed (unknown customer, purchase rejected)."""


class CustomerNotFoundError(BusinessError):
    def __init__(self, customer_id: str, saga_log: list[dict] | None = None):
        super().__init__(
            f"Cannot create order: no customer exists with id {customer_id}",
            saga_log,
        )
        self.customer_id = customer_id


class PurchaseError(BusinessError):
    """The inventory service did not accept the batched purchase."""


class PersistenceError(OrderCreationError):
    """
    A write of the order header or of an order line failed.

    order_id is None when the header itself was not written.
    lines_persisted counts the order lines written before the failure.
    A line write that times out may still commit after the timeout fired,
    so lines_persisted can be one lower than the rows actually stored.
    Reconcile against order_lines for that order_id.
    """

    def __init__(
        self,
        message: str,
        saga_log: list[dict] | None = None,
        order_id: int | None = None,
        lines_persisted: int = 0,
    ):
        super().__init__(message, saga_log)
        self.order_id = order_id
        self.lines_persisted = lines_persisted

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["order_id"] = self.order_id
        data["lines_persisted"] = self.lines_persisted
        return data
