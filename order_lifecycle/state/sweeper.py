"""Background packing sweep.

Promotes ready orders whose packing window has elapsed to ``packed`` on a
fixed interval, independent of any user action.
"""

import asyncio
import contextlib

from order_lifecycle.config import get_settings
from order_lifecycle.state.engine import OrderEngine
from order_lifecycle.utils.logging import get_logger

logger = get_logger(__name__)


class PackingSweeper:
    """Runs ``OrderEngine.sweep_packing`` every ``interval`` seconds."""

    def __init__(self, engine: OrderEngine, interval: float | None = None) -> None:
        self.engine = engine
        self.interval = interval if interval is not None else get_settings().sweep_interval_seconds
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def tick(self) -> int:
        """Run one sweep cycle. Faults are logged and the cycle skipped, never raised."""
        try:
            return await self.engine.sweep_packing()
        except Exception:
            logger.exception("packing_sweep_failed", context_id=self.engine.context_id)
            return 0

    def start(self) -> None:
        """Schedule the sweep loop on the running event loop."""
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="packing-sweeper")
        logger.info("packing_sweeper_started", interval=self.interval)

    async def stop(self) -> None:
        """Cancel the sweep loop and wait for it to finish."""
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None
        logger.info("packing_sweeper_stopped")

    async def _run(self) -> None:
        while True:
            await self.tick()
            await asyncio.sleep(self.interval)
