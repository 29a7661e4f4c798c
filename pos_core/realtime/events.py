"""Domain events emitted after order and payment mutations commit."""

from __future__ import annotations

import logging
from typing import Any

from pos_core.models.order import Order
from pos_core.realtime import hub as realtime_hub
from pos_core.schemas.order import order_snapshot

logger = logging.getLogger(__name__)

ORDER_CREATED = "order.created"
ORDER_UPDATED = "order.updated"
ITEM_UPDATED = "item.updated"
ORDER_PAID = "order.paid"


def build_event(event_type: str, order: Order) -> dict[str, Any]:
    """Return the wire payload for ``event_type`` carrying a full order snapshot."""
    return {
        "type": event_type,
        "outlet_id": order.outlet_id,
        "order_id": order.id,
        "order": order_snapshot(order).model_dump(mode="json"),
    }


def notify(order: Order, *event_types: str) -> None:
    """Broadcast events for a committed order to its outlet's subscribers.

    Notification is fire-and-forget: failures are logged, never raised into
    the request that already committed.
    """
    for event_type in event_types:
        try:
            recipients = realtime_hub.event_hub.publish(order.outlet_id, build_event(event_type, order))
        except Exception:
            logger.exception("Failed to publish %s for order %s", event_type, order.id)
            continue
        logger.debug("Published %s for order %s to %d subscriber(s)", event_type, order.id, recipients)
