"""Tests for the progress and ETA projection."""

import pytest

from order_lifecycle.config import get_settings
from order_lifecycle.models.order import Order
from order_lifecycle.models.status import OrderStatus
from order_lifecycle.progress import (
    MINUTE_MS,
    clamp_percentage,
    eta_label,
    format_time_remaining,
    is_overdue,
    minutes_left_for,
    phase_deadline,
    progress_for,
)
from order_lifecycle.state.workflow import OrderTransitions


def test_pending_progress(sample_order: Order) -> None:
    """A 25 minute order fills the 0-50 band over 25 minutes."""
    t0 = sample_order.created_at

    assert progress_for(sample_order, t0).percentage == 0
    assert progress_for(sample_order, t0).label == "En cola"
    assert progress_for(sample_order, t0 + 12 * MINUTE_MS + 30_000).percentage == 25
    assert progress_for(sample_order, t0 + 60 * MINUTE_MS).percentage == 50


def test_cooking_progress_counts_from_cooking_at(sample_order: Order) -> None:
    start = sample_order.created_at + 10 * MINUTE_MS
    OrderTransitions.apply(sample_order, OrderStatus.COOKING, start, 90_000)

    assert progress_for(sample_order, start).percentage == 50
    assert progress_for(sample_order, start).label == "Cocinando"
    assert progress_for(sample_order, start + 12 * MINUTE_MS + 30_000).percentage == 70
    assert progress_for(sample_order, start + 40 * MINUTE_MS).percentage == 90


def test_ready_progress_tracks_packing_window(sample_order: Order) -> None:
    ready_at = sample_order.created_at + 30 * MINUTE_MS
    OrderTransitions.apply(sample_order, OrderStatus.READY, ready_at, 90_000)

    assert progress_for(sample_order, ready_at).percentage == 90
    assert progress_for(sample_order, ready_at).label == "Empaque"
    assert progress_for(sample_order, ready_at + 45_000).percentage == 95
    assert progress_for(sample_order, ready_at + 90_000).percentage == 100

    sample_order.packed = True
    packed = progress_for(sample_order, ready_at + 1_000)
    assert packed.percentage == 100
    assert packed.label == "Listo"


def test_delivered_progress(sample_order: Order) -> None:
    OrderTransitions.apply(sample_order, OrderStatus.DELIVERED, sample_order.created_at, 90_000)

    progress = progress_for(sample_order, sample_order.created_at)

    assert progress.percentage == 100
    assert progress.label == "Entregado"


def test_progress_never_decreases(sample_order: Order) -> None:
    """Test that progress is monotonic across the whole lifecycle."""
    t0 = sample_order.created_at
    readings = []

    for now in range(t0, t0 + 10 * MINUTE_MS, 30_000):
        readings.append(progress_for(sample_order, now).percentage)

    cooking_at = t0 + 10 * MINUTE_MS
    OrderTransitions.apply(sample_order, OrderStatus.COOKING, cooking_at, 90_000)
    for now in range(cooking_at, cooking_at + 30 * MINUTE_MS, 30_000):
        readings.append(progress_for(sample_order, now).percentage)

    ready_at = cooking_at + 30 * MINUTE_MS
    OrderTransitions.apply(sample_order, OrderStatus.READY, ready_at, 90_000)
    for now in range(ready_at, ready_at + 120_000, 5_000):
        readings.append(progress_for(sample_order, now).percentage)

    OrderTransitions.apply(sample_order, OrderStatus.DELIVERED, ready_at + 120_000, 90_000)
    readings.append(progress_for(sample_order, ready_at + 120_000).percentage)

    assert readings == sorted(readings)
    assert all(0 <= r <= 100 for r in readings)
    assert readings[-1] == 100


def test_short_estimates_use_five_minute_floor(sample_order: Order) -> None:
    order = sample_order.model_copy(update={"estimated_time": 2})

    assert phase_deadline(order) == order.created_at + 5 * MINUTE_MS


def test_zero_estimate_uses_default(sample_order: Order) -> None:
    order = sample_order.model_copy(update={"estimated_time": 0})

    assert phase_deadline(order) == order.created_at + 15 * MINUTE_MS


@pytest.mark.parametrize(
    ("value", "expected"),
    [(-3, 0), (0, 0), (49.5, 50), (49.4, 49), (100, 100), (150, 100)],
)
def test_clamp_percentage(value: float, expected: int) -> None:
    assert clamp_percentage(value) == expected


def test_minutes_left(sample_order: Order) -> None:
    t0 = sample_order.created_at

    assert minutes_left_for(sample_order, t0) == 25
    assert minutes_left_for(sample_order, t0 + 1) == 25
    assert minutes_left_for(sample_order, t0 + MINUTE_MS + 1) == 24
    assert minutes_left_for(sample_order, t0 + 30 * MINUTE_MS) == 0


def test_minutes_left_for_packing(sample_order: Order) -> None:
    ready_at = sample_order.created_at
    OrderTransitions.apply(sample_order, OrderStatus.READY, ready_at, 90_000)

    assert minutes_left_for(sample_order, ready_at) == 2
    assert minutes_left_for(sample_order, ready_at + 45_000) == 1

    sample_order.packed = True
    assert minutes_left_for(sample_order, ready_at) == 0


def test_overdue(sample_order: Order) -> None:
    t0 = sample_order.created_at

    assert not is_overdue(sample_order, t0 + 25 * MINUTE_MS)
    assert is_overdue(sample_order, t0 + 25 * MINUTE_MS + 1)

    OrderTransitions.apply(sample_order, OrderStatus.DELIVERED, t0, 90_000)
    assert not is_overdue(sample_order, t0 + 60 * MINUTE_MS)


def test_eta_label(sample_order: Order) -> None:
    t0 = sample_order.created_at

    assert eta_label(sample_order, t0) == "~25 min"
    assert eta_label(sample_order, t0 + 40 * MINUTE_MS) == "~1 min"

    OrderTransitions.apply(sample_order, OrderStatus.READY, t0, 90_000)
    sample_order.packed = True
    assert eta_label(sample_order, t0) == "Listo"

    OrderTransitions.apply(sample_order, OrderStatus.DELIVERED, t0, 90_000)
    assert eta_label(sample_order, t0) == "Entregado"


@pytest.mark.parametrize(
    ("milliseconds", "expected"),
    [(90_000, "01:30"), (1, "00:01"), (0, "00:00"), (-5_000, "00:00"), (25 * MINUTE_MS, "25:00")],
)
def test_format_time_remaining(milliseconds: int, expected: str) -> None:
    assert format_time_remaining(milliseconds) == expected


def test_packing_progress_uses_given_window(sample_order: Order) -> None:
    ready_at = sample_order.created_at
    OrderTransitions.apply(sample_order, OrderStatus.READY, ready_at, 60_000)

    progress = progress_for(sample_order, ready_at + 30_000, packing_duration_ms=60_000)

    assert progress.percentage == 95


def test_packing_progress_defaults_to_configured_window(
    sample_order: Order, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Test that the projector follows the configured window, not a fixed one."""
    monkeypatch.setenv("PACKING_DURATION_MS", "60000")
    get_settings.cache_clear()
    try:
        ready_at = sample_order.created_at
        OrderTransitions.apply(sample_order, OrderStatus.READY, ready_at, 60_000)

        assert progress_for(sample_order, ready_at + 30_000).percentage == 95
    finally:
        get_settings.cache_clear()
