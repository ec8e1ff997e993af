"""Pytest configuration and fixtures."""

from decimal import Decimal
from typing import AsyncGenerator

import pytest
import pytest_asyncio

from order_lifecycle.config import Settings
from order_lifecycle.models.order import CartItem, CustomerSnapshot, Order
from order_lifecycle.state.engine import OrderEngine
from order_lifecycle.state.store import MemorySnapshotStore

T0 = 1_718_000_123_456


class FakeClock:
    """Manually advanced epoch-millisecond clock."""

    def __init__(self, now: int = T0) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, milliseconds: int) -> int:
        self.now += milliseconds
        return self.now


class BroadcastCounter:
    """Listener counting in-context broadcasts."""

    def __init__(self) -> None:
        self.calls = 0

    def __call__(self) -> None:
        self.calls += 1


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from the environment and any .env file."""
    return Settings(
        _env_file=None,
        store_backend="memory",
        packing_duration_ms=90_000,
        sweep_interval_seconds=0.01,
        default_estimated_minutes=15,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest_asyncio.fixture
async def store() -> AsyncGenerator[MemorySnapshotStore, None]:
    """Create a test snapshot store."""
    snapshot_store = MemorySnapshotStore()
    await snapshot_store.connect()
    yield snapshot_store
    await snapshot_store.disconnect()


@pytest_asyncio.fixture
async def engine(
    store: MemorySnapshotStore, settings: Settings, clock: FakeClock
) -> OrderEngine:
    """Create a started engine (context "ctx-a")."""
    order_engine = OrderEngine(store, settings=settings, clock=clock, context_id="ctx-a")
    await order_engine.start()
    return order_engine


@pytest_asyncio.fixture
async def other_engine(
    store: MemorySnapshotStore, settings: Settings, clock: FakeClock
) -> OrderEngine:
    """A second context ("ctx-b") sharing the same store, like a second browser tab."""
    order_engine = OrderEngine(store, settings=settings, clock=clock, context_id="ctx-b")
    await order_engine.start()
    return order_engine


@pytest.fixture
def broadcasts(engine: OrderEngine) -> BroadcastCounter:
    counter = BroadcastCounter()
    engine.broadcast.subscribe(counter)
    return counter


# Sample data fixtures


@pytest.fixture
def sample_customer() -> CustomerSnapshot:
    """Create a sample customer."""
    return CustomerSnapshot(
        name="Camila Rojas",
        phone="+56 9 8765 4321",
        street="Av. Capitán Ávalos",
        number="6130",
        sector="Mirasol",
        city="Puerto Montt",
    )


@pytest.fixture
def sample_cart() -> list[CartItem]:
    """Two lines prepared in 25 and 15 minutes."""
    return [
        CartItem(
            item_id=1003,
            name="KOI MIX (45 Bocados mixtos)",
            unit_price=Decimal("25990"),
            cooking_time=25,
        ),
        CartItem(
            item_id=1501,
            name="Gyozas de Camarón (5u)",
            unit_price=Decimal("3990"),
            quantity=2,
            cooking_time=15,
        ),
    ]


@pytest.fixture
def sample_order(sample_customer: CustomerSnapshot, sample_cart: list[CartItem]) -> Order:
    """A pending order built directly, without an engine."""
    return Order(
        id=T0,
        public_code=str(T0)[-6:],
        customer=sample_customer,
        cart=tuple(sample_cart),
        total=Decimal("33970"),
        estimated_time=25,
        created_at=T0,
    )
