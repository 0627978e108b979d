"""Checkout error taxonomy.

Field validation reuses protean's ``ValidationError`` (a dict of field name to
messages). The classes here cover the failures that are not about a single
form field.
"""


class CheckoutError(Exception):
    """Base class for checkout failures."""


class MissingOrderContext(CheckoutError):
    """Checkout was entered without an order context (items + running total)."""


class StockUnavailable(CheckoutError):
    """A non-customized add/update asked for more units than are in stock."""

    def __init__(self, product_id: str, requested: int, available: int, message: str) -> None:
        super().__init__(message)
        self.product_id = product_id
        self.requested = requested
        self.available = available
        self.message = message


class StorageCapacityExceeded(CheckoutError):
    """A durable-storage write would exceed the capacity ceiling."""

    def __init__(self, key: str, size: int, capacity: int) -> None:
        super().__init__(f"Writing {size} bytes to {key!r} would exceed the {capacity} byte storage limit")
        self.key = key
        self.size = size
        self.capacity = capacity


class CollaboratorUnavailable(CheckoutError):
    """A collaborator call failed at the transport level or reported failure."""

    def __init__(self, operation: str, reason: str, status_code: int | None = None) -> None:
        super().__init__(f"{operation} failed: {reason}")
        self.operation = operation
        self.reason = reason
        self.status_code = status_code


class PaymentIntegrationError(CheckoutError):
    """A payment provider call returned something unusable (no redirect URL, bad shape)."""

    def __init__(self, provider: str, reason: str) -> None:
        super().__init__(reason)
        self.provider = provider
        self.reason = reason
