"""Tests for the packing expiry sweep."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from order_lifecycle.models.order import CartItem, CustomerSnapshot
from order_lifecycle.models.status import OrderStatus
from order_lifecycle.state.engine import OrderEngine
from order_lifecycle.state.sweeper import PackingSweeper


@pytest.mark.asyncio
async def test_sweep_marks_expired_window_packed(
    engine: OrderEngine,
    clock,
    settings,
    sample_customer: CustomerSnapshot,
    sample_cart: list[CartItem],
) -> None:
    """Test that an elapsed packing window is packed without any explicit call."""
    order = await engine.create(sample_customer, sample_cart)
    t0 = clock.now
    await engine.transition_status(order.id, "ready")
    assert engine.by_id(order.id).pack_until == t0 + 90_000

    clock.now = t0 + 90_001
    promoted = await engine.sweep_packing()

    assert promoted == 1
    ready = engine.by_id(order.id)
    assert ready.packed is True
    assert ready.status == OrderStatus.READY


@pytest.mark.asyncio
async def test_sweep_leaves_open_windows(
    engine: OrderEngine,
    clock,
    broadcasts,
    sample_customer: CustomerSnapshot,
    sample_cart: list[CartItem],
) -> None:
    """Test that a sweep with nothing to do writes nothing."""
    order = await engine.create(sample_customer, sample_cart)
    await engine.transition_status(order.id, "ready")
    calls = broadcasts.calls

    clock.advance(45_000)
    promoted = await engine.sweep_packing()

    assert promoted == 0
    assert engine.by_id(order.id).packed is False
    assert broadcasts.calls == calls


@pytest.mark.asyncio
async def test_sweep_ignores_other_statuses(
    engine: OrderEngine,
    clock,
    sample_customer: CustomerSnapshot,
    sample_cart: list[CartItem],
) -> None:
    """Delivered orders keep their flag even when their window is long gone."""
    order = await engine.create(sample_customer, sample_cart)
    await engine.transition_status(order.id, "delivered")

    clock.advance(10 * 60_000)

    assert await engine.sweep_packing() == 0
    assert engine.by_id(order.id).packed is False


@pytest.mark.asyncio
async def test_sweep_with_explicit_time(
    engine: OrderEngine,
    clock,
    sample_customer: CustomerSnapshot,
    sample_cart: list[CartItem],
) -> None:
    order = await engine.create(sample_customer, sample_cart)
    await engine.transition_status(order.id, "ready")
    pack_until = engine.by_id(order.id).pack_until

    assert await engine.sweep_packing(now=pack_until - 1) == 0
    assert await engine.sweep_packing(now=pack_until) == 1
    assert await engine.sweep_packing(now=pack_until + 1) == 0


@pytest.mark.asyncio
async def test_tick_swallows_faults() -> None:
    """Test that a failing sweep is logged and skipped, never raised."""
    engine = MagicMock()
    engine.context_id = "ctx-test"
    engine.sweep_packing = AsyncMock(side_effect=RuntimeError("boom"))
    sweeper = PackingSweeper(engine, interval=0.01)

    assert await sweeper.tick() == 0
    engine.sweep_packing.assert_awaited_once()


@pytest.mark.asyncio
async def test_sweeper_runs_in_background(
    engine: OrderEngine,
    clock,
    sample_customer: CustomerSnapshot,
    sample_cart: list[CartItem],
) -> None:
    order = await engine.create(sample_customer, sample_cart)
    await engine.transition_status(order.id, "ready")
    clock.advance(90_001)

    sweeper = PackingSweeper(engine, interval=0.01)
    sweeper.start()
    try:
        assert sweeper.running
        for _ in range(50):
            if engine.by_id(order.id).packed:
                break
            await asyncio.sleep(0.01)
    finally:
        await sweeper.stop()

    assert engine.by_id(order.id).packed is True
    assert not sweeper.running


@pytest.mark.asyncio
async def test_sweeper_keeps_running_after_fault() -> None:
    engine = MagicMock()
    engine.context_id = "ctx-test"
    calls = []

    async def flaky_sweep() -> int:
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("boom")
        return 0

    engine.sweep_packing = AsyncMock(side_effect=flaky_sweep)
    sweeper = PackingSweeper(engine, interval=0.001)

    sweeper.start()
    for _ in range(50):
        if engine.sweep_packing.await_count >= 2:
            break
        await asyncio.sleep(0.01)
    await sweeper.stop()

    assert engine.sweep_packing.await_count >= 2
