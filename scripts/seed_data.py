"""Seed sample orders across every lifecycle stage."""

import asyncio
from decimal import Decimal

from order_lifecycle.models.order import CartItem, CustomerSnapshot
from order_lifecycle.models.status import OrderStatus, PaymentMethod, PaymentStatus
from order_lifecycle.state.engine import OrderEngine
from order_lifecycle.state.store import RedisSnapshotStore

CATALOG = {
    "koi_mix": CartItem(
        item_id=1003, name="KOI MIX (45 Bocados mixtos)", unit_price=Decimal("25990"), cooking_time=25
    ),
    "promo_1": CartItem(
        item_id=1002, name="PROMOCIÓN 1 (36 Bocados mixtos)", unit_price=Decimal("21990"), cooking_time=22
    ),
    "avocado": CartItem(
        item_id=1201, name="AVOCADO (Envuelto en Palta)", unit_price=Decimal("5990"), cooking_time=14
    ),
    "gyozas": CartItem(
        item_id=1501, name="Gyozas de Camarón (5u)", unit_price=Decimal("3990"), cooking_time=7
    ),
}


async def seed_orders() -> None:
    """Create one order per status."""
    print("Seeding orders...")

    store = RedisSnapshotStore()
    await store.connect()

    engine = OrderEngine(store, context_id="seed-script")
    await engine.load()

    samples = [
        (
            CustomerSnapshot(
                name="Camila Rojas",
                phone="+56 9 8765 4321",
                street="Av. Capitán Ávalos",
                number="6130",
                sector="Mirasol",
                city="Puerto Montt",
            ),
            [CATALOG["koi_mix"], CATALOG["gyozas"].model_copy(update={"quantity": 2})],
            OrderStatus.PENDING,
        ),
        (
            CustomerSnapshot(
                name="Diego Soto",
                phone="+56 9 1234 5678",
                street="Los Notros",
                number="221",
                city="Puerto Montt",
            ),
            [CATALOG["promo_1"]],
            OrderStatus.COOKING,
        ),
        (
            CustomerSnapshot(
                name="Valentina Muñoz",
                phone="+56 9 5555 1212",
                street="Egaña",
                number="85",
                city="Puerto Varas",
                references="Casa azul, portón negro",
            ),
            [CATALOG["avocado"], CATALOG["gyozas"]],
            OrderStatus.READY,
        ),
        (
            CustomerSnapshot(
                name="Tomás Vera",
                phone="+56 9 4444 0000",
                street="Urmeneta",
                number="500",
                city="Puerto Montt",
            ),
            [CATALOG["koi_mix"]],
            OrderStatus.DELIVERED,
        ),
    ]

    for customer, cart, status in samples:
        order = await engine.create(
            customer,
            cart,
            payment_method=PaymentMethod.CASH,
            payment_status=PaymentStatus.DUE,
        )
        if status != OrderStatus.PENDING:
            await engine.transition_status(order.id, status)
        print(f"  ✓ Order #{order.public_code} for {customer.name} ({status.value})")

    await store.disconnect()
    print("✓ Orders seeded successfully\n")


async def main() -> None:
    """Run all seed functions."""
    print("\n" + "=" * 50)
    print("  Seeding Order Lifecycle Data")
    print("=" * 50 + "\n")

    await seed_orders()

    print("=" * 50)
    print("  ✓ All data seeded successfully!")
    print("=" * 50 + "\n")


if __name__ == "__main__":
    asyncio.run(main())
