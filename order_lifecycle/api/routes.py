"""API routes for the role panels."""

from contextlib import contextmanager
from typing import Iterator

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from pydantic import BaseModel

from order_lifecycle.errors import NotFoundError, ValidationError
from order_lifecycle.models.order import (
    CartItem,
    Coordinates,
    CustomerSnapshot,
    GeocodePrecision,
    Order,
    OrderMeta,
    RouteMeta,
)
from order_lifecycle.models.status import OrderStatus, PaymentMethod, PaymentStatus
from order_lifecycle.progress import (
    eta_label,
    is_overdue,
    minutes_left_for,
    progress_for,
)
from order_lifecycle.selectors import OrderStatistics, order_statistics
from order_lifecycle.state.engine import OrderEngine
from order_lifecycle.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()


# Request/Response Models


class CreateOrderRequest(BaseModel):
    """Cashier checkout payload."""

    customer: CustomerSnapshot
    cart: list[CartItem]
    coordinates: Coordinates | None = None
    geocode_precision: GeocodePrecision = "none"
    route_meta: RouteMeta | None = None
    meta: OrderMeta | None = None
    payment_method: PaymentMethod | None = None
    payment_status: PaymentStatus = PaymentStatus.DUE
    due_method: PaymentMethod | None = None


class TransitionRequest(BaseModel):
    """Requested status; Spanish aliases are accepted."""

    status: str


class AssignDriverRequest(BaseModel):
    name: str
    phone: str | None = None


class ProgressResponse(BaseModel):
    """Projection of one order at the server's current time."""

    order_id: int
    status: OrderStatus
    percentage: int
    label: str
    minutes_left: int
    eta_label: str
    overdue: bool


# Dependency to get the engine


def get_engine(request: Request) -> OrderEngine:
    """Engine of this process, created by the application lifespan."""
    return request.app.state.engine


@contextmanager
def domain_errors() -> Iterator[None]:
    """Translate engine exceptions into HTTP errors."""
    try:
        yield
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    except ValidationError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)
        ) from e


def _require(engine: OrderEngine, order_id: int) -> Order:
    order = engine.by_id(order_id)
    if order is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Order {order_id} not found",
        )
    return order


# Routes


@router.post("/orders", response_model=Order, status_code=status.HTTP_201_CREATED)
async def create_order(
    request: CreateOrderRequest,
    engine: OrderEngine = Depends(get_engine),
) -> Order:
    """
    Create a pending order.

    Totals and the kitchen estimate are computed from the cart and frozen.
    """
    with domain_errors():
        order = await engine.create(
            request.customer,
            request.cart,
            coordinates=request.coordinates,
            geocode_precision=request.geocode_precision,
            route_meta=request.route_meta,
            meta=request.meta,
            payment_method=request.payment_method,
            payment_status=request.payment_status,
            due_method=request.due_method,
        )
    return order


@router.get("/orders", response_model=list[Order])
async def list_orders(
    status_filter: str | None = Query(default=None, alias="status"),
    payment_status: PaymentStatus | None = None,
    active: bool = False,
    engine: OrderEngine = Depends(get_engine),
) -> list[Order]:
    """List orders, optionally filtered by status, payment status or activity."""
    with domain_errors():
        if status_filter is not None:
            orders = engine.by_status(status_filter)
        elif active:
            orders = engine.active()
        else:
            orders = engine.all()

    if payment_status is not None:
        orders = [o for o in orders if o.payment_status == payment_status]
    return orders


@router.get("/orders/statistics", response_model=OrderStatistics)
async def get_statistics(engine: OrderEngine = Depends(get_engine)) -> OrderStatistics:
    """Counts, revenue and unpaid totals over the whole collection."""
    return order_statistics(engine.all())


@router.get("/orders/code/{code}", response_model=Order)
async def get_order_by_code(code: str, engine: OrderEngine = Depends(get_engine)) -> Order:
    """Customer lookup by public code."""
    order = engine.by_public_code(code)
    if order is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Order not found",
        )
    return order


@router.get("/orders/{order_id}", response_model=Order)
async def get_order(order_id: int, engine: OrderEngine = Depends(get_engine)) -> Order:
    """Get order details."""
    return _require(engine, order_id)


@router.get("/orders/{order_id}/progress", response_model=ProgressResponse)
async def get_order_progress(
    order_id: int,
    engine: OrderEngine = Depends(get_engine),
) -> ProgressResponse:
    """Progress bar and ETA figures for one order."""
    order = _require(engine, order_id)
    now = engine.clock()
    progress = progress_for(
        order, now, packing_duration_ms=engine.settings.packing_duration_ms
    )

    return ProgressResponse(
        order_id=order.id,
        status=order.status,
        percentage=progress.percentage,
        label=progress.label,
        minutes_left=minutes_left_for(order, now),
        eta_label=eta_label(order, now),
        overdue=is_overdue(order, now),
    )


@router.post("/orders/{order_id}/status", response_model=Order)
async def transition_order(
    order_id: int,
    request: TransitionRequest,
    engine: OrderEngine = Depends(get_engine),
) -> Order:
    """Advance an order; repeated or backward requests leave it unchanged."""
    with domain_errors():
        await engine.transition_status(order_id, request.status)
    return _require(engine, order_id)


@router.post("/orders/{order_id}/payment", response_model=Order)
async def confirm_payment(order_id: int, engine: OrderEngine = Depends(get_engine)) -> Order:
    """Record payment collected by the driver or the cashier."""
    with domain_errors():
        await engine.confirm_payment(order_id)
    return _require(engine, order_id)


@router.post("/orders/{order_id}/packed", response_model=Order)
async def confirm_packed(order_id: int, engine: OrderEngine = Depends(get_engine)) -> Order:
    """Confirm packing before the packing window runs out."""
    with domain_errors():
        await engine.confirm_packed(order_id)
    return _require(engine, order_id)


@router.post("/orders/{order_id}/driver", response_model=Order)
async def assign_driver(
    order_id: int,
    request: AssignDriverRequest,
    engine: OrderEngine = Depends(get_engine),
) -> Order:
    """Attach the driver taking the order."""
    with domain_errors():
        await engine.assign_driver(order_id, request.name, request.phone)
    return _require(engine, order_id)


@router.delete("/orders/{order_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_order(order_id: int, engine: OrderEngine = Depends(get_engine)) -> None:
    """Delete an order (corrections only)."""
    with domain_errors():
        await engine.delete(order_id)

    logger.info("order_deleted_via_api", order_id=order_id)
