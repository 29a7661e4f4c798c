"""Audit log helpers."""

from __future__ import annotations

from typing import Any

from sqlalchemy.orm import Session

from pos_core.core.security import Actor
from pos_core.models import AuditLog, Order


def order_state(order: Order) -> dict[str, Any]:
    """Compact, JSON-safe view of the fields lifecycle actions change."""
    return {
        "status": order.status.value,
        "catering_status": order.catering_status.value if order.catering_status else None,
        "total_amount": str(order.total_amount),
        "item_count": len(order.items),
    }


def log_action(
    db: Session,
    *,
    actor: Actor | None,
    action_type: str,
    order: Order | None = None,
    before_snapshot: dict[str, Any] | None = None,
    after_snapshot: dict[str, Any] | None = None,
) -> None:
    db.add(
        AuditLog(
            actor_user_id=actor.user_id if actor is not None else None,
            outlet_id=order.outlet_id if order is not None else None,
            action_type=action_type,
            order_id=order.id if order is not None else None,
            before_snapshot=before_snapshot,
            after_snapshot=after_snapshot,
        )
    )
