from typing import Optional


class OrderError(Exception):
    """Base class for checkout and order lifecycle failures."""

    http_status: int = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(OrderError):
    """A checkout precondition failed before anything was written."""

    http_status = 400


class NotFoundError(OrderError):
    http_status = 404


class StockError(OrderError):
    """Requested quantity exceeds what is left in stock."""

    http_status = 409

    def __init__(self, product_id: int, product_name: str, available: int, requested: int):
        super().__init__(
            f'Product "{product_name}" does not have enough stock. '
            f"Requested: {requested}, remaining: {available}"
        )
        self.product_id = product_id
        self.product_name = product_name
        self.available = available
        self.requested = requested


class StateError(OrderError):
    """An order or payment status transition is not allowed."""

    http_status = 409

    def __init__(self, current_status: str, target_status: str, message: Optional[str] = None):
        super().__init__(
            message or f'Cannot change order status from "{current_status}" to "{target_status}"'
        )
        self.current_status = current_status
        self.target_status = target_status


class SignatureError(OrderError):
    """A webhook request was not signed with the shared secret."""

    http_status = 401


class PersistenceError(OrderError):
    """The underlying store failed; never retried automatically."""

    http_status = 503
