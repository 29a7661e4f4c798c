"""Order, item and catering status transition helpers."""

from __future__ import annotations

from datetime import datetime

from pos_core.models.enums import (
    TERMINAL_ORDER_STATUSES,
    CateringStatus,
    OrderItemStatus,
    OrderStatus,
    OrderType,
)
from pos_core.models.order import Order, OrderItem
from pos_core.services.errors import InvalidTransition, OrderNotEditable

ALLOWED_TRANSITIONS: dict[OrderStatus, set[OrderStatus]] = {
    OrderStatus.NEW: {OrderStatus.PREPARING, OrderStatus.CANCELLED},
    OrderStatus.PREPARING: {OrderStatus.READY, OrderStatus.CANCELLED},
    OrderStatus.READY: {OrderStatus.COMPLETED},
    OrderStatus.COMPLETED: set(),
    OrderStatus.CANCELLED: set(),
}

ALLOWED_ITEM_TRANSITIONS: dict[OrderItemStatus, set[OrderItemStatus]] = {
    OrderItemStatus.PENDING: {OrderItemStatus.PREPARING},
    OrderItemStatus.PREPARING: {OrderItemStatus.READY},
    OrderItemStatus.READY: set(),
}

ALLOWED_CATERING_TRANSITIONS: dict[CateringStatus, set[CateringStatus]] = {
    CateringStatus.BOOKED: {CateringStatus.DP_PAID, CateringStatus.SETTLED, CateringStatus.CANCELLED},
    CateringStatus.DP_PAID: {CateringStatus.SETTLED, CateringStatus.CANCELLED},
    CateringStatus.SETTLED: set(),
    CateringStatus.CANCELLED: set(),
}


def can_transition(current: OrderStatus, new: OrderStatus) -> bool:
    """Return whether order can move from current to new status."""
    return new in ALLOWED_TRANSITIONS.get(current, set())


def is_terminal(order: Order) -> bool:
    return order.status in TERMINAL_ORDER_STATUSES


def ensure_editable(order: Order) -> None:
    """Raise unless the order's items may still be added, changed or removed."""
    if order.status != OrderStatus.NEW:
        raise OrderNotEditable(f"items can only change on NEW orders, order is {order.status.value}")


def set_status(order: Order, new_status: OrderStatus, now: datetime) -> None:
    """Move the order to ``new_status`` and update corresponding timestamps."""
    if not can_transition(order.status, new_status):
        raise InvalidTransition(order.status.value, new_status.value)

    order.status = new_status
    order.updated_at = now
    if new_status == OrderStatus.COMPLETED:
        order.completed_at = now
    elif new_status == OrderStatus.CANCELLED and order.catering_status is not None:
        if CateringStatus.CANCELLED in ALLOWED_CATERING_TRANSITIONS[order.catering_status]:
            order.catering_status = CateringStatus.CANCELLED


def set_item_status(order: Order, item: OrderItem, new_status: OrderItemStatus) -> None:
    """Advance one item's kitchen status; terminal orders are frozen."""
    if is_terminal(order):
        raise InvalidTransition(order.status.value, new_status.value, subject=f"item on {order.status.value} order")
    if new_status not in ALLOWED_ITEM_TRANSITIONS.get(item.status, set()):
        raise InvalidTransition(item.status.value, new_status.value, subject="item")
    item.status = new_status


def set_catering_status(order: Order, new_status: CateringStatus) -> None:
    if order.order_type != OrderType.CATERING or order.catering_status is None:
        raise InvalidTransition("NONE", new_status.value, subject="catering status")
    if new_status not in ALLOWED_CATERING_TRANSITIONS[order.catering_status]:
        raise InvalidTransition(order.catering_status.value, new_status.value, subject="catering status")
    order.catering_status = new_status


def settle(order: Order, amount_paid, now: datetime) -> bool:
    """Apply the payment completion rule; return whether anything changed.

    A positive ``amount_paid`` reaching ``total_amount`` completes the order
    from any non-terminal status and settles an unsettled catering order. A
    catering order's first deposit below the total moves it to DP_PAID.
    """
    changed = False
    fully_paid = amount_paid >= order.total_amount

    if order.catering_status is not None and amount_paid > 0:
        if fully_paid and order.catering_status != CateringStatus.SETTLED:
            set_catering_status(order, CateringStatus.SETTLED)
            changed = True
        elif not fully_paid and order.catering_status == CateringStatus.BOOKED:
            set_catering_status(order, CateringStatus.DP_PAID)
            changed = True

    if fully_paid and amount_paid > 0 and not is_terminal(order):
        # Payment completion bypasses the kitchen path NEW -> PREPARING -> READY.
        order.status = OrderStatus.COMPLETED
        order.completed_at = now
        changed = True

    if changed:
        order.updated_at = now
    return changed
