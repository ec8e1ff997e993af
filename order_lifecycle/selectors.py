"""Read-side helpers over an order list: grouping, ordering and statistics."""

from decimal import Decimal
from functools import cmp_to_key

from pydantic import BaseModel

from order_lifecycle.models.order import Order
from order_lifecycle.models.status import STATUS_ORDER, OrderStatus, PaymentStatus
from order_lifecycle.progress import is_overdue

# Kitchen attention order: what is on the stove first, then the queue
PRIORITY_RANK: dict[OrderStatus, int] = {
    OrderStatus.COOKING: 0,
    OrderStatus.PENDING: 1,
    OrderStatus.READY: 2,
    OrderStatus.DELIVERED: 3,
}


class OrderStatistics(BaseModel):
    """Summary figures for dashboards."""

    total: int
    pending: int
    cooking: int
    ready: int
    delivered: int
    total_revenue: Decimal
    average_order_value: Decimal
    unpaid_orders: int
    unpaid_amount: Decimal


def group_by_status(orders: list[Order]) -> dict[OrderStatus, list[Order]]:
    buckets: dict[OrderStatus, list[Order]] = {status: [] for status in STATUS_ORDER}
    for order in orders:
        buckets[order.status].append(order)
    return buckets


def sort_by_created_at(orders: list[Order], descending: bool = True) -> list[Order]:
    return sorted(orders, key=lambda o: (o.created_at, o.id), reverse=descending)


def sort_by_priority(orders: list[Order], now: int) -> list[Order]:
    """Overdue orders first, then by kitchen rank, then first-come first-served."""

    def compare(a: Order, b: Order) -> int:
        overdue_a, overdue_b = is_overdue(a, now), is_overdue(b, now)
        if overdue_a != overdue_b:
            return -1 if overdue_a else 1
        rank = PRIORITY_RANK[a.status] - PRIORITY_RANK[b.status]
        if rank:
            return rank
        return a.created_at - b.created_at

    return sorted(orders, key=cmp_to_key(compare))


def order_statistics(orders: list[Order]) -> OrderStatistics:
    buckets = group_by_status(orders)
    revenue = sum((o.total for o in orders), Decimal("0"))
    unpaid = [o for o in orders if o.payment_status == PaymentStatus.DUE]

    return OrderStatistics(
        total=len(orders),
        pending=len(buckets[OrderStatus.PENDING]),
        cooking=len(buckets[OrderStatus.COOKING]),
        ready=len(buckets[OrderStatus.READY]),
        delivered=len(buckets[OrderStatus.DELIVERED]),
        total_revenue=revenue,
        average_order_value=(revenue / len(orders)).quantize(Decimal("0.01")) if orders else Decimal("0"),
        unpaid_orders=len(unpaid),
        unpaid_amount=sum((o.total for o in unpaid), Decimal("0")),
    )
