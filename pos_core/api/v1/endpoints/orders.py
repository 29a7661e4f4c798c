"""Order endpoints scoped to one outlet."""

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from pos_core.core.config import settings
from pos_core.core.security import Actor, get_outlet_actor
from pos_core.db.session import get_db
from pos_core.models.enums import OrderStatus, OrderType
from pos_core.schemas.order import (
    ItemChangeResult,
    OrderCreate,
    OrderItemCreate,
    OrderItemsReplace,
    OrderItemStatusUpdate,
    OrderItemUpdate,
    OrderListResponse,
    OrderResponse,
    OrderStatusUpdate,
    order_snapshot,
)
from pos_core.services import order_edit_service, order_service
from pos_core.services.order_edit_service import ItemChanges

router: APIRouter = APIRouter()


def _change_result(changes: ItemChanges) -> ItemChangeResult:
    return ItemChangeResult(
        added=changes.added,
        updated=changes.updated,
        removed=changes.removed,
        order=order_snapshot(changes.order),
    )


@router.post("", response_model=OrderResponse, status_code=201)
def create_order(
    outlet_id: int,
    payload: OrderCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_outlet_actor),
) -> OrderResponse:
    order = order_service.create_order(db, outlet_id, payload, actor)
    return order_snapshot(order)


@router.get("", response_model=OrderListResponse)
def list_orders(
    outlet_id: int,
    status: list[OrderStatus] | None = Query(default=None),
    active: bool = False,
    order_type: OrderType | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    limit: int | None = Query(default=None, ge=1),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_outlet_actor),
) -> OrderListResponse:
    """List orders newest first; ``status`` may repeat."""
    orders = order_service.list_orders(
        db,
        outlet_id,
        statuses=status,
        active=active,
        order_type=order_type,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
        offset=offset,
    )
    return OrderListResponse(
        orders=[order_snapshot(order) for order in orders],
        limit=min(limit or settings.list_default_limit, settings.list_max_limit),
        offset=offset,
    )


@router.get("/{order_id}", response_model=OrderResponse)
def get_order(
    outlet_id: int,
    order_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_outlet_actor),
) -> OrderResponse:
    return order_snapshot(order_service.get_order(db, outlet_id, order_id))


@router.patch("/{order_id}/status", response_model=OrderResponse)
def update_order_status(
    outlet_id: int,
    order_id: int,
    payload: OrderStatusUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_outlet_actor),
) -> OrderResponse:
    order = order_service.transition_status(db, outlet_id, order_id, payload.status, actor)
    return order_snapshot(order)


@router.delete("/{order_id}", response_model=OrderResponse)
def cancel_order(
    outlet_id: int,
    order_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_outlet_actor),
) -> OrderResponse:
    """Cancel an order; orders are never physically deleted."""
    return order_snapshot(order_service.cancel_order(db, outlet_id, order_id, actor))


@router.post("/{order_id}/items", response_model=ItemChangeResult, status_code=201)
def add_order_item(
    outlet_id: int,
    order_id: int,
    payload: OrderItemCreate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_outlet_actor),
) -> ItemChangeResult:
    return _change_result(order_edit_service.add_item(db, outlet_id, order_id, payload, actor))


@router.put("/{order_id}/items", response_model=ItemChangeResult)
def replace_order_items(
    outlet_id: int,
    order_id: int,
    payload: OrderItemsReplace,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_outlet_actor),
) -> ItemChangeResult:
    """Save the whole cart; lines are diffed against what is stored."""
    changes = order_edit_service.replace_items(db, outlet_id, order_id, payload.items, actor)
    return _change_result(changes)


@router.patch("/{order_id}/items/{item_id}", response_model=ItemChangeResult)
def update_order_item(
    outlet_id: int,
    order_id: int,
    item_id: int,
    payload: OrderItemUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_outlet_actor),
) -> ItemChangeResult:
    changes = order_edit_service.update_item(db, outlet_id, order_id, item_id, payload, actor)
    return _change_result(changes)


@router.delete("/{order_id}/items/{item_id}", response_model=ItemChangeResult)
def remove_order_item(
    outlet_id: int,
    order_id: int,
    item_id: int,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_outlet_actor),
) -> ItemChangeResult:
    changes = order_edit_service.remove_item(db, outlet_id, order_id, item_id, actor)
    return _change_result(changes)


@router.patch("/{order_id}/items/{item_id}/status", response_model=OrderResponse)
def update_order_item_status(
    outlet_id: int,
    order_id: int,
    item_id: int,
    payload: OrderItemStatusUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_outlet_actor),
) -> OrderResponse:
    order = order_edit_service.update_item_status(db, outlet_id, order_id, item_id, payload.status, actor)
    return order_snapshot(order)
