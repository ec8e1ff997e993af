"""Status state machine for the order lifecycle."""

from order_lifecycle.models.order import Order
from order_lifecycle.models.status import STATUS_ORDER, OrderStatus


class OrderTransitions:
    """Forward-only transitions over pending < cooking < ready < delivered."""

    ORDER = STATUS_ORDER

    @classmethod
    def can_transition(cls, from_state: OrderStatus, to_state: OrderStatus) -> bool:
        """A transition is valid only when it moves strictly forward."""
        return to_state.index > from_state.index

    @classmethod
    def apply(cls, order: Order, to_state: OrderStatus, now: int, packing_duration_ms: int) -> bool:
        """Advance ``order`` in place and stamp the lifecycle fields.

        Returns False, leaving the order untouched, for an equal or earlier
        status. Skipped phases get their stamps too, so ``cooking_at`` is set
        whenever the order has reached cooking, and ``pack_until`` whenever it
        has reached ready.
        """
        if not cls.can_transition(order.status, to_state):
            return False

        if to_state.index >= OrderStatus.COOKING.index and order.cooking_at is None:
            order.cooking_at = now

        if to_state.index >= OrderStatus.READY.index and order.pack_until is None:
            order.ready_at = now
            order.pack_until = now + packing_duration_ms
            order.packed = False

        if to_state == OrderStatus.DELIVERED and order.delivered_at is None:
            order.delivered_at = now

        order.status = to_state
        return True

    @staticmethod
    def packing_expired(order: Order, now: int) -> bool:
        """True for a ready, unpacked order whose packing window has elapsed."""
        return (
            order.status == OrderStatus.READY
            and order.pack_until is not None
            and not order.packed
            and now >= order.pack_until
        )
