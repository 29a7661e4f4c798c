"""State machine tests for orders, items and the catering sub-state."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from pos_core.models.enums import CateringStatus, OrderItemStatus, OrderStatus, OrderType
from pos_core.models.order import Order, OrderItem
from pos_core.services import order_status
from pos_core.services.errors import InvalidTransition, OrderNotEditable

NOW = datetime(2026, 3, 2, 10, 0, tzinfo=timezone.utc)

LEGAL_EDGES = {
    (OrderStatus.NEW, OrderStatus.PREPARING),
    (OrderStatus.NEW, OrderStatus.CANCELLED),
    (OrderStatus.PREPARING, OrderStatus.READY),
    (OrderStatus.PREPARING, OrderStatus.CANCELLED),
    (OrderStatus.READY, OrderStatus.COMPLETED),
}


def _order(status: OrderStatus = OrderStatus.NEW, total: str = "100000", catering: bool = False) -> Order:
    order = Order(
        status=status,
        order_type=OrderType.CATERING if catering else OrderType.DINE_IN,
        total_amount=Decimal(total),
        catering_status=CateringStatus.BOOKED if catering else None,
    )
    order.items = []
    order.payments = []
    return order


@pytest.mark.parametrize("current", list(OrderStatus))
@pytest.mark.parametrize("requested", list(OrderStatus))
def test_transition_matrix(current: OrderStatus, requested: OrderStatus) -> None:
    order = _order(current)
    if (current, requested) in LEGAL_EDGES:
        order_status.set_status(order, requested, NOW)
        assert order.status == requested
        assert order.updated_at == NOW
    else:
        with pytest.raises(InvalidTransition) as exc_info:
            order_status.set_status(order, requested, NOW)
        assert exc_info.value.current == current.value
        assert exc_info.value.requested == requested.value
        assert order.status == current


def test_completion_sets_completed_at() -> None:
    order = _order(OrderStatus.READY)
    order_status.set_status(order, OrderStatus.COMPLETED, NOW)
    assert order.completed_at == NOW


def test_cancel_moves_unsettled_catering_to_cancelled() -> None:
    order = _order(catering=True)
    order.catering_status = CateringStatus.DP_PAID
    order_status.set_status(order, OrderStatus.CANCELLED, NOW)
    assert order.catering_status == CateringStatus.CANCELLED


def test_ensure_editable_only_for_new_orders() -> None:
    order_status.ensure_editable(_order(OrderStatus.NEW))
    for status in (OrderStatus.PREPARING, OrderStatus.READY, OrderStatus.COMPLETED, OrderStatus.CANCELLED):
        with pytest.raises(OrderNotEditable):
            order_status.ensure_editable(_order(status))


def test_item_status_advances_and_freezes_on_terminal_orders() -> None:
    order = _order(OrderStatus.PREPARING)
    item = OrderItem(status=OrderItemStatus.PENDING)

    order_status.set_item_status(order, item, OrderItemStatus.PREPARING)
    order_status.set_item_status(order, item, OrderItemStatus.READY)
    assert item.status == OrderItemStatus.READY

    with pytest.raises(InvalidTransition):
        order_status.set_item_status(order, item, OrderItemStatus.PENDING)

    frozen = _order(OrderStatus.COMPLETED)
    pending = OrderItem(status=OrderItemStatus.PENDING)
    with pytest.raises(InvalidTransition):
        order_status.set_item_status(frozen, pending, OrderItemStatus.PREPARING)


def test_item_cannot_skip_preparing() -> None:
    item = OrderItem(status=OrderItemStatus.PENDING)
    with pytest.raises(InvalidTransition):
        order_status.set_item_status(_order(), item, OrderItemStatus.READY)


def test_settle_partial_payment_moves_catering_to_dp_paid() -> None:
    order = _order(total="499800", catering=True)
    assert order_status.settle(order, Decimal("249900"), NOW) is True
    assert order.catering_status == CateringStatus.DP_PAID
    assert order.status == OrderStatus.NEW
    assert order.completed_at is None


def test_settle_full_payment_goes_straight_to_settled() -> None:
    order = _order(total="499800", catering=True)
    assert order_status.settle(order, Decimal("499800"), NOW) is True
    assert order.catering_status == CateringStatus.SETTLED
    assert order.status == OrderStatus.COMPLETED
    assert order.completed_at == NOW


def test_settle_without_payment_changes_nothing() -> None:
    order = _order(total="0")
    assert order_status.settle(order, Decimal("0"), NOW) is False
    assert order.status == OrderStatus.NEW
