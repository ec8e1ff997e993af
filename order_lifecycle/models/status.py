"""Order status progression and the status display table."""

from enum import Enum

from pydantic import BaseModel, Field


class OrderStatus(str, Enum):
    """Order status progression."""

    PENDING = "pending"
    COOKING = "cooking"
    READY = "ready"
    DELIVERED = "delivered"

    @property
    def index(self) -> int:
        """Position in the fixed ordering pending < cooking < ready < delivered."""
        return STATUS_ORDER.index(self)

    @classmethod
    def parse(cls, value: "str | OrderStatus") -> "OrderStatus":
        """Normalize a status name, accepting the Spanish aliases panels send.

        Raises ValueError for anything unrecognised.
        """
        if isinstance(value, OrderStatus):
            return value
        key = str(value).strip().lower()
        try:
            return STATUS_ALIASES[key]
        except KeyError:
            raise ValueError(f"Unknown order status: {value!r}") from None


class PaymentStatus(str, Enum):
    """Payment state tracked independently of the order status."""

    PAID = "paid"
    DUE = "due"


class PaymentMethod(str, Enum):
    """Accepted payment methods."""

    CASH = "efectivo"
    DEBIT = "debito"
    CREDIT = "credito"
    TRANSFER = "transferencia"
    MERCADO_PAGO = "mp"


STATUS_ORDER: tuple[OrderStatus, ...] = (
    OrderStatus.PENDING,
    OrderStatus.COOKING,
    OrderStatus.READY,
    OrderStatus.DELIVERED,
)

STATUS_ALIASES: dict[str, OrderStatus] = {
    "pending": OrderStatus.PENDING,
    "pendiente": OrderStatus.PENDING,
    "cooking": OrderStatus.COOKING,
    "cocinando": OrderStatus.COOKING,
    "en_cocina": OrderStatus.COOKING,
    "ready": OrderStatus.READY,
    "listo": OrderStatus.READY,
    "ready_for_pickup": OrderStatus.READY,
    "ready_to_deliver": OrderStatus.READY,
    "listo_para_retiro": OrderStatus.READY,
    "delivered": OrderStatus.DELIVERED,
    "entregado": OrderStatus.DELIVERED,
}


class StatusConfig(BaseModel):
    """Display semantics for one status."""

    label: str
    progress_label: str
    progress_range: tuple[int, int] = Field(description="[min, max] percentage band")


ORDER_STATUS_CONFIG: dict[OrderStatus, StatusConfig] = {
    OrderStatus.PENDING: StatusConfig(
        label="Pendiente", progress_label="En cola", progress_range=(0, 50)
    ),
    OrderStatus.COOKING: StatusConfig(
        label="En Cocina", progress_label="Cocinando", progress_range=(50, 90)
    ),
    OrderStatus.READY: StatusConfig(
        label="Listo para Delivery", progress_label="Empaque", progress_range=(90, 100)
    ),
    OrderStatus.DELIVERED: StatusConfig(
        label="Entregado", progress_label="Entregado", progress_range=(100, 100)
    ),
}
