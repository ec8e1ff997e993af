"""State management modules."""

from order_lifecycle.state.engine import OrderEngine
from order_lifecycle.state.store import MemorySnapshotStore, RedisSnapshotStore, SnapshotStore
from order_lifecycle.state.sweeper import PackingSweeper
from order_lifecycle.state.sync import LocalBroadcast, SnapshotSync

__all__ = [
    "OrderEngine",
    "PackingSweeper",
    "SnapshotStore",
    "RedisSnapshotStore",
    "MemorySnapshotStore",
    "LocalBroadcast",
    "SnapshotSync",
]
