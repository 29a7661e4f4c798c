"""Item-level edits of NEW orders, including the bulk diff-save used by the cart screen."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from sqlalchemy.orm import Session

from pos_core.core.security import Actor
from pos_core.db.session import transaction
from pos_core.models import Order, OrderItem
from pos_core.models.enums import OrderItemStatus
from pos_core.realtime.events import ITEM_UPDATED, ORDER_UPDATED, notify
from pos_core.schemas.order import DesiredOrderItem, OrderItemCreate, OrderItemUpdate
from pos_core.services import order_status
from pos_core.services.audit_service import log_action, order_state
from pos_core.services.catalog_resolver import CatalogResolver, SqlCatalogResolver
from pos_core.services.errors import (
    InvalidQuantity,
    OrderItemNotFound,
    OrderNotEditable,
    ValidationFailed,
)
from pos_core.services.order_service import build_item, get_order
from pos_core.services.pricing import apply_totals, line_subtotal, to_money
from pos_core.utils.time import utcnow

logger = logging.getLogger(__name__)


@dataclass
class ItemChanges:
    """Ids touched by one edit, plus the order after it committed."""

    order: Order
    added_items: list[OrderItem] = field(default_factory=list)
    updated: list[int] = field(default_factory=list)
    removed: list[int] = field(default_factory=list)

    @property
    def added(self) -> list[int]:
        return [item.id for item in self.added_items]

    def __bool__(self) -> bool:
        return bool(self.added_items or self.updated or self.removed)


def _find_item(order: Order, item_id: int) -> OrderItem:
    for item in order.items:
        if item.id == item_id:
            return item
    raise OrderItemNotFound(item_id)


def _check_quantity(quantity: int) -> None:
    if quantity < 1:
        raise InvalidQuantity(f"quantity must be at least 1, got {quantity}")


def _recompute(order: Order) -> bool:
    """Refresh totals after an item change; return whether the order settled.

    Totals may not fall below what has already been paid. Reaching the paid
    amount exactly runs the payment completion rule.
    """
    apply_totals(order)
    now = utcnow()
    order.updated_at = now
    paid = order.amount_paid
    if order.total_amount < paid:
        raise OrderNotEditable(f"order total {order.total_amount} would fall below amount paid {paid}")
    if paid > 0 and order.total_amount == paid:
        return order_status.settle(order, paid, now)
    return False


def _commit_edit(
    db: Session,
    outlet_id: int,
    order_id: int,
    actor: Actor,
    action_type: str,
    apply: Callable[[Order, ItemChanges], None],
) -> ItemChanges:
    with transaction(db):
        order = get_order(db, outlet_id, order_id, for_update=True)
        order_status.ensure_editable(order)
        before = order_state(order)
        changes = ItemChanges(order=order)
        apply(order, changes)
        if not changes:
            return changes
        db.flush()
        settled = _recompute(order)
        log_action(
            db,
            actor=actor,
            action_type=action_type,
            order=order,
            before_snapshot=before,
            after_snapshot=order_state(order),
        )
    logger.info(
        "Order %s items edited: +%d ~%d -%d",
        order.id,
        len(changes.added),
        len(changes.updated),
        len(changes.removed),
    )
    notify(order, ITEM_UPDATED, *((ORDER_UPDATED,) if settled else ()))
    return changes


def add_item(
    db: Session,
    outlet_id: int,
    order_id: int,
    payload: OrderItemCreate,
    actor: Actor,
    resolver: CatalogResolver | None = None,
) -> ItemChanges:
    resolver = resolver or SqlCatalogResolver(db)

    def apply(order: Order, changes: ItemChanges) -> None:
        _check_quantity(payload.quantity)
        line = resolver.resolve(outlet_id, payload.product_id, payload.variant_id, payload.modifier_ids)
        item = build_item(line, payload.quantity, payload.notes)
        order.items.append(item)
        changes.added_items.append(item)

    return _commit_edit(db, outlet_id, order_id, actor, "order_item_added", apply)


def _update_line(item: OrderItem, quantity: int | None, notes: str | None, *, notes_given: bool) -> bool:
    """Apply a quantity/notes change to a line; return whether it changed."""
    changed = False
    if quantity is not None and quantity != item.quantity:
        _check_quantity(quantity)
        item.quantity = quantity
        item.subtotal = to_money(
            line_subtotal(item.unit_price, (modifier.unit_price for modifier in item.modifiers), quantity)
        )
        changed = True
    if notes_given and notes != item.notes:
        item.notes = notes
        changed = True
    return changed


def update_item(
    db: Session,
    outlet_id: int,
    order_id: int,
    item_id: int,
    payload: OrderItemUpdate,
    actor: Actor,
) -> ItemChanges:
    """Change quantity and/or notes; the frozen unit price is kept."""

    def apply(order: Order, changes: ItemChanges) -> None:
        item = _find_item(order, item_id)
        notes_given = "notes" in payload.model_fields_set
        if _update_line(item, payload.quantity, payload.notes, notes_given=notes_given):
            changes.updated.append(item.id)

    return _commit_edit(db, outlet_id, order_id, actor, "order_item_updated", apply)


def remove_item(
    db: Session,
    outlet_id: int,
    order_id: int,
    item_id: int,
    actor: Actor,
) -> ItemChanges:
    """Delete a line and its modifiers; an order left empty stays NEW."""

    def apply(order: Order, changes: ItemChanges) -> None:
        item = _find_item(order, item_id)
        order.items.remove(item)
        changes.removed.append(item_id)

    return _commit_edit(db, outlet_id, order_id, actor, "order_item_removed", apply)


def replace_items(
    db: Session,
    outlet_id: int,
    order_id: int,
    desired: list[DesiredOrderItem],
    actor: Actor,
    resolver: CatalogResolver | None = None,
) -> ItemChanges:
    """Diff the desired cart against the stored lines and apply it at once.

    Entries with an ``id`` refer to stored lines and may change quantity or
    notes; entries without one are new lines; stored lines missing from the
    desired list are removed. Nothing is written unless every entry is valid.
    """
    resolver = resolver or SqlCatalogResolver(db)

    def apply(order: Order, changes: ItemChanges) -> None:
        existing = {item.id: item for item in order.items}
        kept: set[int] = set()
        new_lines = []

        for entry in desired:
            _check_quantity(entry.quantity)
            if entry.id is None:
                if entry.product_id is None:
                    raise ValidationFailed("product_id is required for new items")
                line = resolver.resolve(outlet_id, entry.product_id, entry.variant_id, entry.modifier_ids)
                new_lines.append(build_item(line, entry.quantity, entry.notes))
                continue
            item = existing.get(entry.id)
            if item is None:
                raise OrderItemNotFound(entry.id)
            if entry.id in kept:
                raise ValidationFailed(f"item {entry.id} listed more than once")
            kept.add(entry.id)
            if _update_line(item, entry.quantity, entry.notes, notes_given=True):
                changes.updated.append(item.id)

        for item_id, item in existing.items():
            if item_id not in kept:
                order.items.remove(item)
                changes.removed.append(item_id)
        for item in new_lines:
            order.items.append(item)
            changes.added_items.append(item)

    return _commit_edit(db, outlet_id, order_id, actor, "order_items_replaced", apply)


def update_item_status(
    db: Session,
    outlet_id: int,
    order_id: int,
    item_id: int,
    new_status: OrderItemStatus,
    actor: Actor,
) -> Order:
    """Advance one line through the kitchen stations."""
    with transaction(db):
        order = get_order(db, outlet_id, order_id, for_update=True)
        item = _find_item(order, item_id)
        previous = item.status
        order_status.set_item_status(order, item, new_status)
        order.updated_at = utcnow()
        log_action(
            db,
            actor=actor,
            action_type="order_item_status_changed",
            order=order,
            before_snapshot={"item_id": item.id, "status": previous.value},
            after_snapshot={"item_id": item.id, "status": new_status.value},
        )
    notify(order, ITEM_UPDATED)
    return order
