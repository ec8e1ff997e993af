"""Durable snapshot store shared by every engine context.

The store keeps whole serialized values under fixed keys and tells every
listener when a key changes. It is always read and written in full.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Awaitable, Callable

import redis.asyncio as redis
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from redis.exceptions import RedisError

from order_lifecycle.config import get_settings
from order_lifecycle.errors import PersistenceError
from order_lifecycle.utils.logging import get_logger

logger = get_logger(__name__)


class StoreChange(BaseModel):
    """External-change notification: which key changed and which context wrote it."""

    key: str
    origin: str


ChangeHandler = Callable[[StoreChange], Awaitable[None]]


class SnapshotStore(ABC):
    """Key/value store holding whole snapshots."""

    async def connect(self) -> None:
        """Open any underlying connection."""

    async def disconnect(self) -> None:
        """Release connections and stop listening."""

    @abstractmethod
    async def read(self, key: str) -> str | None:
        """Return the serialized value under ``key`` or None when absent."""

    @abstractmethod
    async def write(self, key: str, value: str, origin: str) -> None:
        """Replace the value under ``key`` and notify listeners."""

    @abstractmethod
    async def delete(self, key: str, origin: str) -> None:
        """Remove ``key`` and notify listeners."""

    @abstractmethod
    async def listen(self, handler: ChangeHandler) -> None:
        """Start delivering change notifications to ``handler``."""


class RedisSnapshotStore(SnapshotStore):
    """Snapshot store backed by Redis, with change notifications over pub/sub."""

    def __init__(
        self,
        redis_url: str | None = None,
        channel: str | None = None,
        client: redis.Redis | None = None,
        retry_delay: float = 1.0,
        max_retry_delay: float = 30.0,
    ) -> None:
        settings = get_settings()
        self.redis_url = redis_url or settings.redis_url
        self.channel = channel or settings.sync_channel
        self.redis_client: redis.Redis | None = client
        self.retry_delay = retry_delay
        self.max_retry_delay = max_retry_delay
        self._listeners: list[asyncio.Task[None]] = []

    async def connect(self) -> None:
        """Establish Redis connection."""
        if self.redis_client is None:
            try:
                self.redis_client = await redis.from_url(
                    self.redis_url,
                    encoding="utf-8",
                    decode_responses=True,
                )
            except RedisError as e:
                raise PersistenceError(f"Cannot connect to {self.redis_url}: {e}") from e
            logger.info("redis_connected", url=self.redis_url)

    async def disconnect(self) -> None:
        """Close Redis connection."""
        for task in self._listeners:
            task.cancel()
        if self._listeners:
            await asyncio.gather(*self._listeners, return_exceptions=True)
        self._listeners.clear()

        if self.redis_client:
            await self.redis_client.aclose()
            self.redis_client = None
            logger.info("redis_disconnected")

    async def read(self, key: str) -> str | None:
        """Get a snapshot from Redis."""
        if not self.redis_client:
            await self.connect()

        try:
            return await self.redis_client.get(key)
        except RedisError as e:
            raise PersistenceError(f"Cannot read {key}: {e}") from e

    async def write(self, key: str, value: str, origin: str) -> None:
        """Set a snapshot and announce the change on the sync channel."""
        if not self.redis_client:
            await self.connect()

        try:
            await self.redis_client.set(key, value)
            await self.redis_client.publish(
                self.channel, StoreChange(key=key, origin=origin).model_dump_json()
            )
        except RedisError as e:
            raise PersistenceError(f"Cannot write {key}: {e}") from e

        logger.debug("snapshot_written", key=key, bytes=len(value))

    async def delete(self, key: str, origin: str) -> None:
        """Delete a snapshot key."""
        if not self.redis_client:
            await self.connect()

        try:
            await self.redis_client.delete(key)
            await self.redis_client.publish(
                self.channel, StoreChange(key=key, origin=origin).model_dump_json()
            )
        except RedisError as e:
            raise PersistenceError(f"Cannot delete {key}: {e}") from e

        logger.debug("snapshot_deleted", key=key)

    async def listen(self, handler: ChangeHandler) -> None:
        """Forward every change on the sync channel to ``handler``.

        The subscription lives on a background task that re-subscribes with
        exponential backoff whenever Redis is unreachable or the connection
        drops, so a context never stops following other contexts' writes.
        """
        if not self.redis_client:
            await self.connect()

        self._listeners.append(asyncio.create_task(self._listen_loop(handler)))

    async def _listen_loop(self, handler: ChangeHandler) -> None:
        delay = self.retry_delay
        while True:
            pubsub = self.redis_client.pubsub()
            try:
                await pubsub.subscribe(self.channel)
                logger.info("sync_channel_subscribed", channel=self.channel)
                delay = self.retry_delay

                async for message in pubsub.listen():
                    if message.get("type") != "message":
                        continue
                    await dispatch_change(message["data"], handler)
            except RedisError as e:
                logger.warning(
                    "sync_channel_lost", channel=self.channel, error=str(e), retry_in=delay
                )
            finally:
                await pubsub.aclose()

            await asyncio.sleep(delay)
            delay = min(delay * 2, self.max_retry_delay)


class MemorySnapshotStore(SnapshotStore):
    """Process-local snapshot store.

    Engines sharing one instance behave like panels sharing one browser
    storage: each write notifies every listener on a separate task.
    """

    def __init__(self) -> None:
        self._data: dict[str, str] = {}
        self._handlers: list[ChangeHandler] = []
        self._pending: set[asyncio.Task[None]] = set()

    async def disconnect(self) -> None:
        await self.drain()
        self._handlers.clear()

    async def read(self, key: str) -> str | None:
        return self._data.get(key)

    async def write(self, key: str, value: str, origin: str) -> None:
        self._data[key] = value
        self._notify(StoreChange(key=key, origin=origin))

    async def delete(self, key: str, origin: str) -> None:
        self._data.pop(key, None)
        self._notify(StoreChange(key=key, origin=origin))

    async def listen(self, handler: ChangeHandler) -> None:
        self._handlers.append(handler)

    async def drain(self) -> None:
        """Wait until every notification scheduled so far has been handled."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def _notify(self, change: StoreChange) -> None:
        payload = change.model_dump_json()
        for handler in self._handlers:
            task = asyncio.create_task(dispatch_change(payload, handler))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)


async def dispatch_change(payload: str, handler: ChangeHandler) -> None:
    """Decode one notification and hand it over; a failing handler never stops the feed."""
    try:
        change = StoreChange.model_validate_json(payload)
    except PydanticValidationError:
        logger.warning("sync_notification_malformed", payload=payload[:200])
        return

    try:
        await handler(change)
    except Exception:
        logger.exception("sync_handler_failed", key=change.key, origin=change.origin)


# Global snapshot store instance
_snapshot_store: SnapshotStore | None = None


async def get_snapshot_store() -> SnapshotStore:
    """Get the global snapshot store for the configured backend."""
    global _snapshot_store
    if _snapshot_store is None:
        settings = get_settings()
        if settings.store_backend == "memory":
            _snapshot_store = MemorySnapshotStore()
        else:
            _snapshot_store = RedisSnapshotStore()
        await _snapshot_store.connect()
    return _snapshot_store
