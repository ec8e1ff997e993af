"""Order lifecycle exceptions.

Raised by the engine and the snapshot store. The API layer catches these and
translates them into HTTP responses.
"""


class OrderLifecycleError(Exception):
    """Base class for every error raised by the order lifecycle engine."""


class ValidationError(OrderLifecycleError):
    """Creation or mutation input is missing or malformed."""


class NotFoundError(OrderLifecycleError):
    """No order with the requested id exists in the collection."""

    def __init__(self, order_id: int) -> None:
        super().__init__(f"Order {order_id} not found")
        self.order_id = order_id


class PersistenceError(OrderLifecycleError):
    """The snapshot store could not be read or written, or holds a corrupt snapshot."""
