"""Progress and ETA projection.

Pure functions of ``(order, now)`` that panels evaluate on every tick. They
never mutate the order and nothing here is cached.
"""

import math

from pydantic import BaseModel, Field

from order_lifecycle.config import get_settings
from order_lifecycle.models.order import Order
from order_lifecycle.models.status import ORDER_STATUS_CONFIG, OrderStatus, StatusConfig

MINUTE_MS = 60_000
DEFAULT_ESTIMATE_MINUTES = 15
MIN_ESTIMATE_MINUTES = 5


class ProgressInfo(BaseModel):
    """Displayable progress of one order."""

    percentage: int = Field(ge=0, le=100)
    label: str


def clamp_percentage(value: float) -> int:
    """Round half up and clamp into [0, 100]."""
    return max(0, min(100, math.floor(value + 0.5)))


def _fraction(elapsed: float, total: float) -> float:
    if total <= 0:
        return 1.0
    return min(1.0, max(0.0, elapsed / total))


def _in_band(fraction: float, config: StatusConfig) -> int:
    low, high = config.progress_range
    return clamp_percentage(low + (high - low) * fraction)


def estimate_ms(order: Order) -> int:
    """Kitchen phase length: the order's estimate, never under five minutes."""
    minutes = order.estimated_time or DEFAULT_ESTIMATE_MINUTES
    return max(MIN_ESTIMATE_MINUTES, minutes) * MINUTE_MS


def phase_deadline(order: Order) -> int | None:
    """Timestamp at which the current phase is expected to end."""
    if order.status == OrderStatus.PENDING:
        return order.created_at + estimate_ms(order)
    if order.status == OrderStatus.COOKING:
        start = order.cooking_at if order.cooking_at is not None else order.created_at
        return start + estimate_ms(order)
    if order.status == OrderStatus.READY and not order.packed:
        return order.pack_until
    return None


def progress_for(
    order: Order,
    now: int,
    *,
    packing_duration_ms: int | None = None,
    status_config: dict[OrderStatus, StatusConfig] = ORDER_STATUS_CONFIG,
) -> ProgressInfo:
    """Map the elapsed share of the current phase into the status's percentage band.

    ``packing_duration_ms`` defaults to the configured packing window.
    """
    if packing_duration_ms is None:
        packing_duration_ms = get_settings().packing_duration_ms
    config = status_config[order.status]

    if order.status == OrderStatus.PENDING:
        fraction = _fraction(now - order.created_at, estimate_ms(order))
        return ProgressInfo(percentage=_in_band(fraction, config), label=config.progress_label)

    if order.status == OrderStatus.COOKING:
        start = order.cooking_at if order.cooking_at is not None else order.created_at
        fraction = _fraction(now - start, estimate_ms(order))
        return ProgressInfo(percentage=_in_band(fraction, config), label=config.progress_label)

    if order.status == OrderStatus.READY:
        if order.pack_until is None or order.packed:
            return ProgressInfo(percentage=_in_band(1.0, config), label="Listo")
        remaining = max(0, order.pack_until - now)
        fraction = _fraction(packing_duration_ms - remaining, packing_duration_ms)
        return ProgressInfo(percentage=_in_band(fraction, config), label=config.progress_label)

    return ProgressInfo(percentage=100, label=config.progress_label)


def minutes_left_for(order: Order, now: int) -> int:
    """Whole minutes (rounded up) left in the current phase; 0 once it is due."""
    deadline = phase_deadline(order)
    if deadline is None:
        return 0
    return math.ceil(max(0, deadline - now) / MINUTE_MS)


def is_overdue(order: Order, now: int) -> bool:
    """An undelivered order past its kitchen estimate counted from creation."""
    if order.status == OrderStatus.DELIVERED:
        return False
    return now > order.created_at + estimate_ms(order)


def eta_label(order: Order, now: int) -> str:
    if order.status == OrderStatus.DELIVERED:
        return "Entregado"
    left = minutes_left_for(order, now)
    if left <= 0:
        return "Listo" if order.status == OrderStatus.READY else "~1 min"
    return f"~{left} min"


def format_time_remaining(milliseconds: int) -> str:
    """Countdown as MM:SS, rounding partial seconds up."""
    total_seconds = max(0, math.ceil(milliseconds / 1000))
    minutes, seconds = divmod(total_seconds, 60)
    return f"{minutes:02d}:{seconds:02d}"
