"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

from fastapi import FastAPI, Request, WebSocket
from fastapi.middleware.cors import CORSMiddleware

from order_lifecycle.config import get_settings
from order_lifecycle.routing import RouteResolver
from order_lifecycle.state.engine import OrderEngine
from order_lifecycle.state.store import get_snapshot_store
from order_lifecycle.state.sweeper import PackingSweeper
from order_lifecycle.utils.logging import get_logger, setup_logging

# Setup logging first
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    # Startup
    logger.info("application_starting")
    settings = get_settings()

    store = await get_snapshot_store()
    engine = OrderEngine(
        store,
        settings=settings,
        router=RouteResolver() if settings.routing_enabled else None,
    )
    await engine.start()
    manager.attach(engine)

    sweeper = PackingSweeper(engine)
    sweeper.start()

    app.state.engine = engine
    app.state.sweeper = sweeper
    logger.info("order_engine_initialized", context_id=engine.context_id, orders=len(engine))

    yield

    # Shutdown
    logger.info("application_shutting_down")
    await sweeper.stop()
    manager.detach()
    await store.disconnect()


# Create FastAPI app
app = FastAPI(
    title="Order Lifecycle Engine",
    description="Order state machine, packing sweep and cross-panel sync for a delivery kitchen",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware
settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health_check(request: Request) -> dict[str, Any]:
    """Liveness plus the state of this process's engine.

    Reports ``degraded`` while the last snapshot write has failed.
    """
    engine: OrderEngine | None = getattr(request.app.state, "engine", None)
    if engine is None:
        return {"status": "starting", "service": "order-lifecycle"}

    sweeper: PackingSweeper | None = getattr(request.app.state, "sweeper", None)
    error = engine.last_persistence_error
    return {
        "status": "degraded" if error else "healthy",
        "service": "order-lifecycle",
        "context_id": engine.context_id,
        "orders": len(engine),
        "sweeper_running": bool(sweeper and sweeper.running),
        "persistence_error": str(error) if error else None,
    }


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {
        "message": "Order Lifecycle Engine API",
        "docs": "/docs",
        "health": "/health",
        "panels": "/ws/{role}",
    }


# Import and include routers
from order_lifecycle.api.routes import router  # noqa: E402
from order_lifecycle.api.websocket import ROLES, handle_panel_connection, manager  # noqa: E402

app.include_router(router, prefix="/api/v1", tags=["orders"])


# WebSocket endpoint
@app.websocket("/ws/{role}")
async def websocket_endpoint(websocket: WebSocket, role: str) -> None:
    """WebSocket endpoint carrying change signals to a role panel."""
    if role not in ROLES:
        await websocket.close(code=1003, reason="Unknown panel role")
        return

    await handle_panel_connection(websocket, role, websocket.app.state.engine)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "order_lifecycle.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.environment == "development",
    )
