"""Order lifecycle engine: the single owner of one context's order collection."""

import asyncio
import time
from typing import Any, Callable, Iterable, Mapping
from uuid import uuid4

from pydantic import ValidationError as PydanticValidationError

from order_lifecycle.config import Settings, get_settings
from order_lifecycle.errors import NotFoundError, PersistenceError, ValidationError
from order_lifecycle.models.order import (
    CartItem,
    Coordinates,
    CustomerSnapshot,
    Driver,
    GeocodePrecision,
    Order,
    OrderMeta,
    RouteMeta,
    calculate_total,
    estimate_cooking_time,
    public_code_for,
)
from order_lifecycle.models.status import OrderStatus, PaymentMethod, PaymentStatus
from order_lifecycle.routing import RouteResolver, maps_url, waze_url
from order_lifecycle.state.store import SnapshotStore
from order_lifecycle.state.sync import LocalBroadcast, SnapshotSync
from order_lifecycle.state.workflow import OrderTransitions
from order_lifecycle.utils.logging import get_logger

logger = get_logger(__name__)

Clock = Callable[[], int]


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return time.time_ns() // 1_000_000


class OrderEngine:
    """Owns the in-memory order collection of one context.

    Every mutation (user operation, packing sweep or external reload) runs
    under one lock, writes the full collection to the snapshot store and then
    emits the in-context broadcast. Accessors return copies; the collection
    itself is never handed out.
    """

    def __init__(
        self,
        store: SnapshotStore,
        *,
        settings: Settings | None = None,
        clock: Clock = now_ms,
        router: RouteResolver | None = None,
        broadcast: LocalBroadcast | None = None,
        context_id: str | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.context_id = context_id or uuid4().hex
        self.clock = clock
        self.router = router
        self.sync = SnapshotSync(store, self.settings.orders_key, self.context_id, broadcast)
        self.last_persistence_error: PersistenceError | None = None
        self.logger = logger.bind(context_id=self.context_id)

        self._orders: list[Order] = []
        self._lock = asyncio.Lock()
        self._last_id = 0

    @property
    def broadcast(self) -> LocalBroadcast:
        return self.sync.broadcast

    # ------------------------------------------------------------------
    # Startup and sync
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Hydrate from the store and follow other contexts' writes.

        An unreachable store never stops startup: the engine serves its own
        collection and only misses other contexts' changes.
        """
        await self.load()
        try:
            await self.sync.start(self.reload)
        except PersistenceError as e:
            self.logger.warning("sync_subscribe_failed", error=str(e))

    async def load(self) -> None:
        """Hydrate the collection; an unreadable snapshot starts an empty one."""
        async with self._lock:
            try:
                self._orders = await self.sync.load()
            except PersistenceError as e:
                self.logger.warning("snapshot_load_failed", error=str(e))
                self._orders = []

        self.logger.info("orders_loaded", count=len(self._orders))

    async def reload(self) -> None:
        """Replace the collection wholesale with the stored snapshot."""
        async with self._lock:
            try:
                orders = await self.sync.load()
            except PersistenceError as e:
                # Keep serving the current collection until a readable snapshot arrives
                self.logger.warning("snapshot_reload_failed", error=str(e))
                return
            self._orders = orders
            self.sync.notify()

        self.logger.debug("orders_reloaded", count=len(orders))

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def create(
        self,
        customer: CustomerSnapshot | Mapping[str, Any],
        cart: Iterable[CartItem | Mapping[str, Any]],
        *,
        coordinates: Coordinates | Mapping[str, Any] | None = None,
        geocode_precision: GeocodePrecision = "none",
        route_meta: RouteMeta | Mapping[str, Any] | None = None,
        meta: OrderMeta | Mapping[str, Any] | None = None,
        payment_method: PaymentMethod | str | None = None,
        payment_status: PaymentStatus | str = PaymentStatus.DUE,
        due_method: PaymentMethod | str | None = None,
        created_by: str = "Cajero",
    ) -> Order:
        """Create a pending order from customer and cart snapshots.

        Args:
            customer: Customer data; name, phone, street and number are required
            cart: Non-empty sequence of cart lines
            coordinates: Delivery location, used for links and routing
            route_meta: Precomputed route; resolved through the router when absent

        Returns:
            A copy of the created order

        Raises:
            ValidationError: Missing or malformed customer, cart or metadata
        """
        try:
            customer_snapshot = CustomerSnapshot.model_validate(customer)
            items = tuple(CartItem.model_validate(item) for item in cart)
            coords = Coordinates.model_validate(coordinates) if coordinates is not None else None
            route = RouteMeta.model_validate(route_meta) if route_meta is not None else None
            order_meta = OrderMeta.model_validate(meta) if meta is not None else None
            method = PaymentMethod(payment_method) if payment_method is not None else None
            pay_status = PaymentStatus(payment_status)
            due = PaymentMethod(due_method) if due_method is not None else None
        except (PydanticValidationError, ValueError) as e:
            raise ValidationError(f"Invalid order input: {e}") from e

        if not items:
            raise ValidationError("Cannot create an order with an empty cart")

        if route is None and coords is not None and self.router is not None:
            route = await self.router.resolve(coords)

        async with self._lock:
            now = self.clock()
            order_id = self._allocate_id(now)
            try:
                order = Order(
                    id=order_id,
                    public_code=public_code_for(order_id),
                    customer=customer_snapshot,
                    cart=items,
                    total=calculate_total(items, order_meta),
                    estimated_time=estimate_cooking_time(
                        items, default=self.settings.default_estimated_minutes
                    ),
                    created_at=now,
                    created_by=created_by,
                    payment_method=method,
                    payment_status=pay_status,
                    due_method=due,
                    paid_at=now if pay_status == PaymentStatus.PAID else None,
                    coordinates=coords,
                    geocode_precision=geocode_precision,
                    route_meta=route,
                    maps_url=maps_url(coords) if coords else None,
                    waze_url=waze_url(coords) if coords else None,
                    meta=order_meta,
                )
            except PydanticValidationError as e:
                raise ValidationError(f"Invalid order input: {e}") from e
            self._orders.append(order)

            self.logger.info(
                "order_created",
                order_id=order.id,
                public_code=order.public_code,
                items=len(items),
                total=str(order.total),
                estimated_time=order.estimated_time,
                routed=route is not None,
            )
            await self._commit()
            return order.model_copy(deep=True)

    async def transition_status(self, order_id: int, new_status: OrderStatus | str) -> None:
        """Advance an order's status; equal or earlier targets are ignored.

        Raises:
            ValidationError: Unknown status name
            NotFoundError: No such order
        """
        try:
            target = OrderStatus.parse(new_status)
        except ValueError as e:
            raise ValidationError(str(e)) from e

        async with self._lock:
            order = self._find(order_id)
            previous = order.status
            applied = OrderTransitions.apply(
                order, target, self.clock(), self.settings.packing_duration_ms
            )
            if not applied:
                self.logger.debug(
                    "status_transition_ignored",
                    order_id=order_id,
                    current=previous.value,
                    requested=target.value,
                )
                return

            self.logger.info(
                "status_transition",
                order_id=order_id,
                from_status=previous.value,
                to_status=target.value,
            )
            await self._commit()

    async def confirm_payment(self, order_id: int) -> None:
        """Mark an order paid; repeated confirmations keep the first ``paid_at``."""
        async with self._lock:
            order = self._find(order_id)
            if order.payment_status == PaymentStatus.PAID:
                return

            order.payment_status = PaymentStatus.PAID
            order.paid_at = self.clock()
            self.logger.info("payment_confirmed", order_id=order_id)
            await self._commit()

    async def confirm_packed(self, order_id: int) -> None:
        """Explicitly confirm packing of an order that has reached ready."""
        async with self._lock:
            order = self._find(order_id)
            if order.pack_until is None:
                raise ValidationError(f"Order {order_id} is not ready for packing")
            if order.packed:
                return

            order.packed = True
            self.logger.info("packing_confirmed", order_id=order_id)
            await self._commit()

    async def assign_driver(self, order_id: int, name: str, phone: str | None = None) -> None:
        """Attach the delivery driver taking the order."""
        try:
            driver = Driver(name=name, phone=phone or None)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid driver: {e}") from e

        async with self._lock:
            order = self._find(order_id)
            order.driver = driver
            self.logger.info("driver_assigned", order_id=order_id, driver=driver.name)
            await self._commit()

    async def delete(self, order_id: int) -> None:
        """Remove an order whatever its status (corrections only)."""
        async with self._lock:
            order = self._find(order_id)
            self._orders.remove(order)
            self.logger.info("order_deleted", order_id=order_id, status=order.status.value)
            await self._commit()

    async def sweep_packing(self, now: int | None = None) -> int:
        """Mark every expired packing window as packed.

        Writes only when something changed. Returns the number of orders
        promoted.
        """
        async with self._lock:
            now = self.clock() if now is None else now
            expired = [o for o in self._orders if OrderTransitions.packing_expired(o, now)]
            if not expired:
                return 0

            for order in expired:
                order.packed = True
                self.logger.info(
                    "packing_expired",
                    order_id=order.id,
                    overdue_ms=now - (order.pack_until or now),
                )
            await self._commit()
            return len(expired)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def all(self) -> list[Order]:
        """Every order, in creation order."""
        return [order.model_copy(deep=True) for order in self._orders]

    def by_status(self, status: OrderStatus | str) -> list[Order]:
        try:
            wanted = OrderStatus.parse(status)
        except ValueError as e:
            raise ValidationError(str(e)) from e
        return [o.model_copy(deep=True) for o in self._orders if o.status == wanted]

    def by_payment_status(self, payment_status: PaymentStatus | str) -> list[Order]:
        try:
            wanted = PaymentStatus(payment_status)
        except ValueError as e:
            raise ValidationError(str(e)) from e
        return [o.model_copy(deep=True) for o in self._orders if o.payment_status == wanted]

    def active(self) -> list[Order]:
        """Orders not yet delivered."""
        return [
            o.model_copy(deep=True) for o in self._orders if o.status != OrderStatus.DELIVERED
        ]

    def by_id(self, order_id: int) -> Order | None:
        for order in self._orders:
            if order.id == order_id:
                return order.model_copy(deep=True)
        return None

    def by_public_code(self, code: str) -> Order | None:
        """Most recent order carrying ``code`` (codes repeat every million ids)."""
        wanted = code.strip().lstrip("#")
        matches = [o for o in self._orders if o.public_code == wanted]
        if not matches:
            return None
        return max(matches, key=lambda o: o.id).model_copy(deep=True)

    def __len__(self) -> int:
        return len(self._orders)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _find(self, order_id: int) -> Order:
        for order in self._orders:
            if order.id == order_id:
                return order
        raise NotFoundError(order_id)

    def _allocate_id(self, now: int) -> int:
        """Clock-derived id, bumped past every id this context has seen."""
        highest = max((o.id for o in self._orders), default=0)
        order_id = max(now, highest + 1, self._last_id + 1)
        self._last_id = order_id
        return order_id

    async def _commit(self) -> None:
        """Persist the full collection, then tell same-context viewers.

        A failed write is not retried: the in-memory collection stays
        authoritative for this context until the next successful write.
        """
        try:
            await self.sync.persist(self._orders)
        except PersistenceError as e:
            self.last_persistence_error = e
            self.logger.warning("snapshot_write_failed", error=str(e), count=len(self._orders))
        else:
            self.last_persistence_error = None
        self.sync.notify()
