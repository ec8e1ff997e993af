"""Order-related data models.

Every timestamp is an integer count of epoch milliseconds, the form the
snapshot store persists. Field names serialize to camelCase so the snapshot
stays readable by the role panels.
"""

from decimal import Decimal
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, StringConstraints, field_validator
from pydantic.alias_generators import to_camel

from order_lifecycle.models.status import OrderStatus, PaymentMethod, PaymentStatus

RequiredText = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]

GeocodePrecision = Literal["exact", "approx", "none"]
ServiceType = Literal["delivery", "local"]


class SnapshotModel(BaseModel):
    """Base for everything stored inside the order snapshot."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CartItem(SnapshotModel):
    """One line of a cart. Lines with a negative id are synthetic (e.g. "Extras")."""

    model_config = ConfigDict(frozen=True)

    item_id: int
    name: RequiredText
    unit_price: Decimal = Field(ge=0)
    quantity: int = Field(default=1, ge=1)
    cooking_time: int = Field(default=0, ge=0, description="Preparation minutes")

    @property
    def is_synthetic(self) -> bool:
        return self.item_id < 0

    @property
    def subtotal(self) -> Decimal:
        return self.unit_price * self.quantity


class CustomerSnapshot(SnapshotModel):
    """Customer data copied onto the order at creation."""

    model_config = ConfigDict(frozen=True)

    name: RequiredText
    phone: RequiredText
    street: RequiredText
    number: RequiredText
    sector: str | None = None
    city: str | None = None
    references: str | None = None

    @property
    def address(self) -> str:
        return ", ".join(part for part in (self.street, self.number, self.sector) if part)


class Coordinates(SnapshotModel):
    """Geographic location."""

    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)


class RouteMeta(SnapshotModel):
    """Route from the restaurant to the customer."""

    distance: float | None = Field(default=None, description="Meters")
    duration: float | None = Field(default=None, description="Seconds")
    points: list[tuple[float, float]] = Field(default_factory=list)


class Driver(SnapshotModel):
    """Delivery driver assigned to an order."""

    name: RequiredText
    phone: str | None = None


class OrderMeta(SnapshotModel):
    """Delivery extras recorded for the ticket and for auditing."""

    service: ServiceType = "delivery"
    delivery_zone: str | None = None
    delivery_fee: Decimal | None = Field(default=None, ge=0)
    extras_total: Decimal = Field(default=Decimal("0"), ge=0)
    note: str | None = None


class Order(SnapshotModel):
    """Complete order details.

    Identity, customer, cart and the figures derived from the cart are frozen;
    the engine mutates only the lifecycle and payment fields.
    """

    id: int = Field(frozen=True)
    public_code: str = Field(frozen=True)
    customer: CustomerSnapshot = Field(frozen=True)
    cart: tuple[CartItem, ...] = Field(frozen=True, min_length=1)
    total: Decimal = Field(frozen=True, ge=0)
    estimated_time: int = Field(frozen=True, ge=0, description="Minutes")
    created_at: int = Field(frozen=True)
    created_by: str = "Cajero"

    # Lifecycle
    status: OrderStatus = OrderStatus.PENDING
    cooking_at: int | None = None
    ready_at: int | None = None
    pack_until: int | None = None
    packed: bool = False
    delivered_at: int | None = None

    # Payment
    payment_method: PaymentMethod | None = None
    payment_status: PaymentStatus = PaymentStatus.DUE
    due_method: PaymentMethod | None = None
    paid_at: int | None = None

    # Routing
    coordinates: Coordinates | None = Field(default=None, frozen=True)
    geocode_precision: GeocodePrecision = Field(default="none", frozen=True)
    route_meta: RouteMeta | None = Field(default=None, frozen=True)
    maps_url: str | None = Field(default=None, frozen=True)
    waze_url: str | None = Field(default=None, frozen=True)

    driver: Driver | None = None
    meta: OrderMeta | None = None

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v: object) -> OrderStatus:
        """Accept the status aliases older snapshots may carry."""
        return OrderStatus.parse(v)  # type: ignore[arg-type]

    @property
    def is_paid(self) -> bool:
        return self.payment_status == PaymentStatus.PAID


def public_code_for(order_id: int) -> str:
    """Short customer-facing code: the last six digits of the order id."""
    return str(order_id)[-6:]


def calculate_total(cart: list[CartItem] | tuple[CartItem, ...], meta: OrderMeta | None = None) -> Decimal:
    """Sum of unit price times quantity over real cart lines, plus any extras."""
    subtotal = sum((item.subtotal for item in cart if not item.is_synthetic), Decimal("0"))
    extras = meta.extras_total if meta else Decimal("0")
    return subtotal + extras


def estimate_cooking_time(
    cart: list[CartItem] | tuple[CartItem, ...],
    default: int = 15,
) -> int:
    """Slowest real cart line; the kitchen prepares every line in parallel."""
    slowest = max((item.cooking_time for item in cart if not item.is_synthetic), default=0)
    return slowest or default
