"""Order creation, lookup and lifecycle transitions."""

from __future__ import annotations

import logging
from datetime import date

from sqlalchemy import and_, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from pos_core.core.config import settings
from pos_core.core.security import Actor
from pos_core.db.session import transaction, violates_unique
from pos_core.models import Order, OrderItem, OrderItemModifier, Outlet
from pos_core.models.enums import (
    ACTIVE_ORDER_STATUSES,
    UNSETTLED_CATERING_STATUSES,
    CateringStatus,
    OrderStatus,
    OrderType,
)
from pos_core.realtime.events import ORDER_CREATED, ORDER_UPDATED, notify
from pos_core.schemas.order import OrderCreate
from pos_core.services import order_status
from pos_core.services.audit_service import log_action, order_state
from pos_core.services.catalog_resolver import CatalogResolver, ResolvedLine, SqlCatalogResolver
from pos_core.services.errors import (
    MissingCateringFields,
    OrderNotFound,
    OutletNotFound,
    TransientConflict,
)
from pos_core.services.pricing import apply_totals, line_subtotal, to_money, validate_discount
from pos_core.utils.time import business_date, utcnow

logger = logging.getLogger(__name__)

_NUMBERING_INDEXES = tuple(
    index for index in Order.__table__.indexes if index.name in {"uq_orders_outlet_date_seq", "uq_orders_outlet_date_number"}
)


def format_order_number(seq: int) -> str:
    """Render the per-day counter, e.g. ``KWR-001``."""
    return f"{settings.order_number_prefix}-{seq:0{settings.order_number_width}d}"


def build_item(line: ResolvedLine, quantity: int, notes: str | None) -> OrderItem:
    """Materialize a resolved cart line with its frozen prices."""
    item = OrderItem(
        product_id=line.product_id,
        variant_id=line.variant_id,
        quantity=quantity,
        unit_price=to_money(line.unit_price),
        subtotal=to_money(line_subtotal(line.unit_price, line.modifier_prices, quantity)),
        notes=notes,
        station=line.station,
    )
    item.modifiers = [
        OrderItemModifier(modifier_id=modifier.modifier_id, unit_price=to_money(modifier.unit_price))
        for modifier in line.modifiers
    ]
    return item


def _next_order_seq(db: Session, outlet_id: int, order_date: date) -> int:
    current = db.scalar(
        select(func.max(Order.order_seq)).where(Order.outlet_id == outlet_id, Order.order_date == order_date)
    )
    return (current or 0) + 1


def _lock_outlet(db: Session, outlet_id: int) -> Outlet:
    outlet = db.scalar(
        select(Outlet).where(Outlet.id == outlet_id, Outlet.is_active.is_(True)).with_for_update()
    )
    if outlet is None:
        raise OutletNotFound(outlet_id)
    return outlet


def _check_catering_fields(payload: OrderCreate) -> None:
    if payload.order_type != OrderType.CATERING:
        return
    missing = [
        name
        for name, value in (("catering_date", payload.catering_date), ("customer_id", payload.customer_id))
        if value is None
    ]
    if missing:
        raise MissingCateringFields(missing)


def _insert_order(
    db: Session,
    outlet_id: int,
    payload: OrderCreate,
    lines: list[tuple[ResolvedLine, int, str | None]],
    actor: Actor,
) -> Order:
    _lock_outlet(db, outlet_id)
    now = utcnow()
    order_date = business_date(now)
    seq = _next_order_seq(db, outlet_id, order_date)

    is_catering = payload.order_type == OrderType.CATERING
    order = Order(
        outlet_id=outlet_id,
        order_date=order_date,
        order_seq=seq,
        order_number=format_order_number(seq),
        order_type=payload.order_type,
        status=OrderStatus.NEW,
        customer_id=payload.customer_id,
        table_number=payload.table_number,
        notes=payload.notes,
        discount_type=payload.discount_type,
        discount_value=payload.discount_value,
        tax_amount=payload.tax_amount,
        catering_date=payload.catering_date if is_catering else None,
        catering_status=CateringStatus.BOOKED if is_catering else None,
        catering_dp_amount=payload.catering_dp_amount if is_catering else None,
        delivery_platform=payload.delivery_platform,
        delivery_address=payload.delivery_address,
        created_by=actor.user_id,
        created_at=now,
        updated_at=now,
    )
    order.items = [build_item(line, quantity, notes) for line, quantity, notes in lines]
    order.payments = []
    apply_totals(order)
    db.add(order)
    db.flush()
    log_action(db, actor=actor, action_type="order_created", order=order, after_snapshot=order_state(order))
    return order


def create_order(
    db: Session,
    outlet_id: int,
    payload: OrderCreate,
    actor: Actor,
    resolver: CatalogResolver | None = None,
) -> Order:
    """Validate a cart, number it and persist it as a NEW order.

    Lines are resolved first so catalog errors surface before catering field
    errors. The number is ``max(seq) + 1`` for the outlet's business day,
    taken under the outlet row lock; a unique index collision is retried
    ``order_number_max_attempts - 1`` times before ``TransientConflict``.
    """
    resolver = resolver or SqlCatalogResolver(db)
    try:
        lines = [
            (resolver.resolve(outlet_id, item.product_id, item.variant_id, item.modifier_ids), item.quantity, item.notes)
            for item in payload.items
        ]
        _check_catering_fields(payload)
        validate_discount(payload.discount_type, payload.discount_value)
    except Exception:
        db.rollback()
        raise

    attempts = max(settings.order_number_max_attempts, 1)
    for attempt in range(1, attempts + 1):
        try:
            with transaction(db):
                order = _insert_order(db, outlet_id, payload, lines, actor)
        except IntegrityError as exc:
            if not any(violates_unique(exc, index) for index in _NUMBERING_INDEXES):
                logger.error("Order insert for outlet %s failed: %s", outlet_id, exc.orig)
                raise
            logger.warning(
                "Order number collision for outlet %s (attempt %d/%d)", outlet_id, attempt, attempts
            )
            continue
        logger.info("Created order %s (%s) for outlet %s", order.order_number, order.id, outlet_id)
        notify(order, ORDER_CREATED)
        return order
    raise TransientConflict("order number collision, retry the request")


def get_order(db: Session, outlet_id: int, order_id: int, *, for_update: bool = False) -> Order:
    """Load an order of ``outlet_id`` with items, modifiers and payments."""
    stmt = (
        select(Order)
        .where(Order.id == order_id, Order.outlet_id == outlet_id)
        .options(
            selectinload(Order.items).selectinload(OrderItem.modifiers),
            selectinload(Order.payments),
        )
    )
    if for_update:
        stmt = stmt.with_for_update(of=Order)
    order = db.scalar(stmt)
    if order is None:
        raise OrderNotFound(order_id)
    return order


def list_orders(
    db: Session,
    outlet_id: int,
    *,
    statuses: list[OrderStatus] | None = None,
    active: bool = False,
    order_type: OrderType | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    limit: int | None = None,
    offset: int = 0,
) -> list[Order]:
    """Return the outlet's orders, newest first.

    ``active`` keeps orders still in the kitchen flow plus catering orders
    that are neither settled nor cancelled.
    """
    stmt = select(Order).where(Order.outlet_id == outlet_id)
    if statuses:
        stmt = stmt.where(Order.status.in_(statuses))
    if active:
        stmt = stmt.where(
            or_(
                Order.status.in_(ACTIVE_ORDER_STATUSES),
                and_(Order.catering_status.in_(UNSETTLED_CATERING_STATUSES), Order.status != OrderStatus.CANCELLED),
            )
        )
    if order_type is not None:
        stmt = stmt.where(Order.order_type == order_type)
    if start_date is not None:
        stmt = stmt.where(Order.order_date >= start_date)
    if end_date is not None:
        stmt = stmt.where(Order.order_date <= end_date)

    limit = min(limit or settings.list_default_limit, settings.list_max_limit)
    stmt = (
        stmt.options(
            selectinload(Order.items).selectinload(OrderItem.modifiers),
            selectinload(Order.payments),
        )
        .order_by(Order.created_at.desc(), Order.id.desc())
        .limit(limit)
        .offset(max(offset, 0))
    )
    return list(db.scalars(stmt))


def transition_status(
    db: Session,
    outlet_id: int,
    order_id: int,
    new_status: OrderStatus,
    actor: Actor,
) -> Order:
    """Move an order along the kitchen flow or cancel it."""
    with transaction(db):
        order = get_order(db, outlet_id, order_id, for_update=True)
        before = order_state(order)
        order_status.set_status(order, new_status, utcnow())
        action = "order_cancelled" if new_status == OrderStatus.CANCELLED else "order_status_changed"
        log_action(db, actor=actor, action_type=action, order=order, before_snapshot=before, after_snapshot=order_state(order))
    logger.info("Order %s moved to %s", order.id, new_status.value)
    notify(order, ORDER_UPDATED)
    return order


def cancel_order(db: Session, outlet_id: int, order_id: int, actor: Actor) -> Order:
    return transition_status(db, outlet_id, order_id, OrderStatus.CANCELLED, actor)
