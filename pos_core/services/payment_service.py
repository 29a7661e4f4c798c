"""Payment recording and reconciliation against order totals."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from pos_core.core.config import settings
from pos_core.core.security import Actor
from pos_core.db.session import is_lock_conflict, transaction
from pos_core.models import Order, Payment
from pos_core.models.enums import OrderStatus, PaymentMethod, PaymentStatus
from pos_core.realtime.events import ORDER_PAID, ORDER_UPDATED, notify
from pos_core.schemas.order import PaymentCreate
from pos_core.services import order_status
from pos_core.services.audit_service import log_action, order_state
from pos_core.services.errors import (
    InvalidPayment,
    OrderNotPayable,
    PaymentExceedsBalance,
    TransientConflict,
)
from pos_core.services.order_service import get_order
from pos_core.services.pricing import to_money
from pos_core.utils.time import utcnow

logger = logging.getLogger(__name__)


@dataclass
class PaymentOutcome:
    payment: Payment
    order: Order
    status_changed: bool


def _check_payable(order: Order, amount: Decimal) -> Decimal:
    """Validate a payment against the order; return the remaining balance."""
    if order.status == OrderStatus.CANCELLED:
        raise OrderNotPayable("order is CANCELLED")
    paid = order.amount_paid
    remaining = order.total_amount - paid
    if remaining <= 0:
        raise OrderNotPayable("order is already fully paid")
    if amount <= 0:
        raise InvalidPayment("payment amount must be positive")
    if paid + amount > order.total_amount:
        raise PaymentExceedsBalance(remaining)
    return remaining


def _cash_change(payload: PaymentCreate, amount: Decimal) -> tuple[Decimal | None, Decimal | None]:
    if payload.payment_method != PaymentMethod.CASH:
        return None, None
    if payload.amount_received is None:
        raise InvalidPayment("amount_received is required for CASH payments")
    received = to_money(payload.amount_received)
    if received < amount:
        raise InvalidPayment(f"amount_received {received} is less than amount {amount}")
    return received, received - amount


def _record_payment(
    db: Session,
    outlet_id: int,
    order_id: int,
    payload: PaymentCreate,
    actor: Actor,
) -> PaymentOutcome:
    with transaction(db):
        order = get_order(db, outlet_id, order_id, for_update=True)
        amount = to_money(payload.amount)
        _check_payable(order, amount)
        amount_received, change_amount = _cash_change(payload, amount)

        before = order_state(order)
        now = utcnow()
        payment = Payment(
            payment_method=payload.payment_method,
            amount=amount,
            status=PaymentStatus.COMPLETED,
            reference_number=payload.reference_number,
            amount_received=amount_received,
            change_amount=change_amount,
            processed_by=actor.user_id,
            processed_at=now,
        )
        order.payments.append(payment)
        changed = order_status.settle(order, order.amount_paid, now)
        order.updated_at = now
        db.flush()
        log_action(
            db,
            actor=actor,
            action_type="payment_recorded",
            order=order,
            before_snapshot=before,
            after_snapshot={**order_state(order), "payment_id": payment.id, "amount": str(amount)},
        )
    return PaymentOutcome(payment=payment, order=order, status_changed=changed)


def add_payment(
    db: Session,
    outlet_id: int,
    order_id: int,
    payload: PaymentCreate,
    actor: Actor,
) -> PaymentOutcome:
    """Record a payment and apply the completion rule in the same transaction.

    The order row is locked for the whole read-validate-insert sequence, so
    two concurrent payments can never overshoot ``total_amount``. Lock
    timeouts and serialization failures are retried before giving up with
    ``TransientConflict``.
    """
    attempts = max(settings.payment_max_attempts, 1)
    for attempt in range(1, attempts + 1):
        try:
            outcome = _record_payment(db, outlet_id, order_id, payload, actor)
        except OperationalError as exc:
            if not is_lock_conflict(exc):
                logger.error("Payment on order %s failed: %s", order_id, exc.orig)
                raise
            logger.warning("Payment on order %s hit a lock conflict (attempt %d/%d)", order_id, attempt, attempts)
            continue
        logger.info(
            "Recorded %s payment %s on order %s: amount=%s paid=%s total=%s",
            outcome.payment.payment_method.value,
            outcome.payment.id,
            order_id,
            outcome.payment.amount,
            outcome.order.amount_paid,
            outcome.order.total_amount,
        )
        events = (ORDER_PAID, ORDER_UPDATED) if outcome.status_changed else (ORDER_PAID,)
        notify(outcome.order, *events)
        return outcome
    raise TransientConflict("payment could not be recorded due to a concurrent update, retry the request")


def list_payments(db: Session, outlet_id: int, order_id: int) -> list[Payment]:
    get_order(db, outlet_id, order_id)
    return list(db.scalars(select(Payment).where(Payment.order_id == order_id).order_by(Payment.id)))
