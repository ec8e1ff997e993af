"""Data models for the order lifecycle engine."""

from order_lifecycle.models.order import (
    CartItem,
    Coordinates,
    CustomerSnapshot,
    Driver,
    Order,
    OrderMeta,
    RouteMeta,
)
from order_lifecycle.models.status import (
    ORDER_STATUS_CONFIG,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    StatusConfig,
)

__all__ = [
    # Order
    "CartItem",
    "Coordinates",
    "CustomerSnapshot",
    "Driver",
    "Order",
    "OrderMeta",
    "RouteMeta",
    # Status
    "ORDER_STATUS_CONFIG",
    "OrderStatus",
    "PaymentMethod",
    "PaymentStatus",
    "StatusConfig",
]
