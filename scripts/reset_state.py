"""Delete the order snapshot (useful for testing)."""

import asyncio

from order_lifecycle.config import get_settings
from order_lifecycle.state.store import RedisSnapshotStore


async def reset_orders() -> None:
    """Remove every order from the snapshot store."""
    settings = get_settings()

    print(f"\n⚠️  WARNING: This will delete ALL orders under '{settings.orders_key}'!")
    response = input("Are you sure? (yes/no): ")

    if response.lower() != "yes":
        print("Cancelled.")
        return

    print("\nResetting orders...")

    store = RedisSnapshotStore()
    await store.connect()

    # Connected panels reload and see an empty collection
    await store.delete(settings.orders_key, origin="reset-script")

    await store.disconnect()

    print("✓ Order snapshot cleared\n")


if __name__ == "__main__":
    asyncio.run(reset_orders())
