"""Schema exports."""

from pos_core.schemas.order import (
    DesiredOrderItem,
    ItemChangeResult,
    OrderCreate,
    OrderItemCreate,
    OrderItemResponse,
    OrderItemsReplace,
    OrderItemStatusUpdate,
    OrderItemUpdate,
    OrderListResponse,
    OrderResponse,
    OrderStatusUpdate,
    PaymentCreate,
    PaymentResponse,
    PaymentResult,
)

__all__ = [
    "DesiredOrderItem",
    "ItemChangeResult",
    "OrderCreate",
    "OrderItemCreate",
    "OrderItemResponse",
    "OrderItemsReplace",
    "OrderItemStatusUpdate",
    "OrderItemUpdate",
    "OrderListResponse",
    "OrderResponse",
    "OrderStatusUpdate",
    "PaymentCreate",
    "PaymentResponse",
    "PaymentResult",
]
