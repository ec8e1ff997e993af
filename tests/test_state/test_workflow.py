"""Tests for the status state machine."""

import pytest

from order_lifecycle.models.order import Order
from order_lifecycle.models.status import STATUS_ORDER, OrderStatus
from order_lifecycle.state.workflow import OrderTransitions


@pytest.mark.parametrize(
    ("from_state", "to_state", "expected"),
    [
        (OrderStatus.PENDING, OrderStatus.COOKING, True),
        (OrderStatus.PENDING, OrderStatus.DELIVERED, True),
        (OrderStatus.COOKING, OrderStatus.READY, True),
        (OrderStatus.READY, OrderStatus.DELIVERED, True),
        (OrderStatus.COOKING, OrderStatus.COOKING, False),
        (OrderStatus.READY, OrderStatus.COOKING, False),
        (OrderStatus.DELIVERED, OrderStatus.PENDING, False),
    ],
)
def test_can_transition(from_state: OrderStatus, to_state: OrderStatus, expected: bool) -> None:
    assert OrderTransitions.can_transition(from_state, to_state) is expected


def test_status_order() -> None:
    assert [s.index for s in STATUS_ORDER] == [0, 1, 2, 3]


def test_parse_aliases() -> None:
    assert OrderStatus.parse("Pendiente") == OrderStatus.PENDING
    assert OrderStatus.parse(" EN_COCINA ") == OrderStatus.COOKING
    assert OrderStatus.parse("ready_to_deliver") == OrderStatus.READY
    assert OrderStatus.parse("entregado") == OrderStatus.DELIVERED

    with pytest.raises(ValueError):
        OrderStatus.parse("cancelled")


def test_apply_stamps_in_place(sample_order: Order) -> None:
    start = sample_order.created_at

    assert OrderTransitions.apply(sample_order, OrderStatus.COOKING, start + 1_000, 90_000)
    assert sample_order.cooking_at == start + 1_000

    assert OrderTransitions.apply(sample_order, OrderStatus.READY, start + 2_000, 90_000)
    assert sample_order.cooking_at == start + 1_000
    assert sample_order.ready_at == start + 2_000
    assert sample_order.pack_until == start + 92_000
    assert sample_order.packed is False

    assert OrderTransitions.apply(sample_order, OrderStatus.DELIVERED, start + 3_000, 90_000)
    assert sample_order.delivered_at == start + 3_000
    assert sample_order.pack_until == start + 92_000


def test_apply_rejects_backward(sample_order: Order) -> None:
    OrderTransitions.apply(sample_order, OrderStatus.READY, 10, 90_000)
    before = sample_order.model_copy(deep=True)

    assert not OrderTransitions.apply(sample_order, OrderStatus.PENDING, 20, 90_000)
    assert sample_order == before


def test_packing_expired(sample_order: Order) -> None:
    assert not OrderTransitions.packing_expired(sample_order, 10**15)

    OrderTransitions.apply(sample_order, OrderStatus.READY, 0, 90_000)

    assert not OrderTransitions.packing_expired(sample_order, 89_999)
    assert OrderTransitions.packing_expired(sample_order, 90_000)

    sample_order.packed = True
    assert not OrderTransitions.packing_expired(sample_order, 90_001)
