"""Cross-viewer synchronization for the order snapshot.

Two signals keep every viewer coherent:

- ``LocalBroadcast``: in-context publish/subscribe. Emitted after each
  mutation and after each external reload; it carries no payload, listeners
  re-read the engine.
- store change notifications: delivered by the snapshot store when another
  context writes the orders key; the listener re-reads the whole snapshot.

Consistency is eventual, last-writer-wins, whole-snapshot overwrite. Two
contexts mutating inside the same propagation window do not merge: the later
write replaces the earlier one.
"""

from typing import Awaitable, Callable

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from order_lifecycle.errors import PersistenceError
from order_lifecycle.models.order import Order
from order_lifecycle.state.store import SnapshotStore, StoreChange
from order_lifecycle.utils.logging import get_logger

logger = get_logger(__name__)

Listener = Callable[[], None]

ORDER_LIST = TypeAdapter(list[Order])


def serialize_orders(orders: list[Order]) -> str:
    """Encode the full collection as the JSON array the store keeps."""
    return ORDER_LIST.dump_json(orders, by_alias=True).decode("utf-8")


def deserialize_orders(raw: str | bytes) -> list[Order]:
    """Decode a stored snapshot, rejecting corrupt payloads."""
    try:
        return ORDER_LIST.validate_json(raw)
    except PydanticValidationError as e:
        raise PersistenceError(f"Corrupt order snapshot: {e.error_count()} error(s)") from e


class LocalBroadcast:
    """In-context change signal shared by every mounted viewer."""

    def __init__(self) -> None:
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` and return a callable that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def emit(self) -> None:
        """Tell every listener to re-read; a failing listener does not stop the others."""
        for listener in list(self._listeners):
            try:
                listener()
            except Exception:
                logger.exception("broadcast_listener_failed", listener=repr(listener))

    def __len__(self) -> int:
        return len(self._listeners)


class SnapshotSync:
    """Moves the order collection between one engine context and the store."""

    def __init__(
        self,
        store: SnapshotStore,
        key: str,
        context_id: str,
        broadcast: LocalBroadcast | None = None,
    ) -> None:
        self.store = store
        self.key = key
        self.context_id = context_id
        self.broadcast = broadcast or LocalBroadcast()
        self._on_external_change: Callable[[], Awaitable[None]] | None = None

    async def load(self) -> list[Order]:
        """Read the full snapshot; an absent key is an empty collection."""
        raw = await self.store.read(self.key)
        if not raw:
            return []
        return deserialize_orders(raw)

    async def persist(self, orders: list[Order]) -> None:
        """Write the full snapshot; the store announces it to other contexts."""
        await self.store.write(self.key, serialize_orders(orders), origin=self.context_id)

    def notify(self) -> None:
        """Emit the in-context broadcast."""
        self.broadcast.emit()

    async def start(self, on_external_change: Callable[[], Awaitable[None]]) -> None:
        """Begin listening for writes made by other contexts."""
        self._on_external_change = on_external_change
        await self.store.listen(self.handle_store_change)

    async def handle_store_change(self, change: StoreChange) -> None:
        """Filter a store notification down to other contexts' writes of our key."""
        if change.key != self.key or change.origin == self.context_id:
            return
        if self._on_external_change is None:
            return

        logger.debug("external_change_received", key=change.key, origin=change.origin)
        await self._on_external_change()
