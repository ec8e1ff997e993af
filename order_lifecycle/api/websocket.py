"""WebSocket relay of the in-context broadcast to connected role panels."""

import asyncio
import json
from typing import Any

from fastapi import WebSocket, WebSocketDisconnect
from pydantic import BaseModel, ValidationError

from order_lifecycle.state.engine import OrderEngine
from order_lifecycle.state.sync import serialize_orders
from order_lifecycle.utils.logging import get_logger

logger = get_logger(__name__)

ROLES: tuple[str, ...] = ("cashier", "kitchen", "delivery", "client")


class WebSocketMessage(BaseModel):
    """WebSocket message format."""

    type: str  # "ping", "refresh"
    metadata: dict[str, Any] = {}


class ConnectionManager:
    """Manages panel connections and relays ``orders_changed`` signals to them."""

    def __init__(self) -> None:
        self.active_connections: dict[WebSocket, str] = {}
        self._unsubscribe = None
        self._sends: set[asyncio.Task[None]] = set()

    def attach(self, engine: OrderEngine) -> None:
        """Relay every broadcast of ``engine`` to the connected panels."""
        self.detach()
        self._unsubscribe = engine.broadcast.subscribe(self._on_broadcast)

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    async def connect(self, role: str, websocket: WebSocket) -> None:
        """Accept and register a WebSocket connection."""
        await websocket.accept()
        self.active_connections[websocket] = role
        logger.info("websocket_connected", role=role, connections=len(self.active_connections))

    def disconnect(self, websocket: WebSocket) -> None:
        """Remove a WebSocket connection."""
        role = self.active_connections.pop(websocket, None)
        if role is not None:
            logger.info("websocket_disconnected", role=role)

    async def broadcast_changed(self) -> None:
        """Tell every panel to re-read the order collection."""
        for websocket in list(self.active_connections):
            try:
                await websocket.send_json({"type": "orders_changed"})
            except (WebSocketDisconnect, RuntimeError) as e:
                logger.warning("websocket_send_failed", error=str(e))
                self.disconnect(websocket)

    def _on_broadcast(self) -> None:
        if not self.active_connections:
            return
        task = asyncio.get_running_loop().create_task(self.broadcast_changed())
        self._sends.add(task)
        task.add_done_callback(self._sends.discard)


# Global connection manager
manager = ConnectionManager()


async def handle_panel_connection(
    websocket: WebSocket,
    role: str,
    engine: OrderEngine,
) -> None:
    """
    Serve one role panel until it disconnects.

    Args:
        websocket: WebSocket connection
        role: Panel role (cashier, kitchen, delivery, client)
        engine: Engine of this process
    """
    await manager.connect(role, websocket)

    await websocket.send_json(
        {
            "type": "connected",
            "role": role,
            "context_id": engine.context_id,
        }
    )

    try:
        while True:
            data = await websocket.receive_text()

            try:
                message_data = json.loads(data)
                ws_message = WebSocketMessage(**message_data)
            except (json.JSONDecodeError, TypeError, ValidationError) as e:
                await websocket.send_json(
                    {
                        "type": "error",
                        "message": "Invalid message format",
                        "details": str(e),
                    }
                )
                continue

            if ws_message.type == "ping":
                await websocket.send_json({"type": "pong"})

            elif ws_message.type == "refresh":
                # Full snapshot for panels that cannot reach the REST API
                await websocket.send_json(
                    {
                        "type": "snapshot",
                        "orders": json.loads(serialize_orders(engine.all())),
                    }
                )

            else:
                await websocket.send_json(
                    {
                        "type": "error",
                        "message": f"Unknown message type: {ws_message.type}",
                    }
                )

    except WebSocketDisconnect:
        logger.info("websocket_client_disconnected", role=role)
    finally:
        manager.disconnect(websocket)
