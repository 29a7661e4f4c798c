"""Order, item and payment API schemas."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from pos_core.models.enums import (
    CateringStatus,
    DiscountType,
    OrderItemStatus,
    OrderStatus,
    OrderType,
    PaymentMethod,
    PaymentStatus,
)
from pos_core.models.order import Order


class OrderItemCreate(BaseModel):
    """Single cart line."""

    product_id: int
    variant_id: int | None = None
    quantity: int = Field(default=1, ge=1)
    modifier_ids: list[int] = Field(default_factory=list)
    notes: str | None = None


class OrderCreate(BaseModel):
    """Create a new order from a cart."""

    order_type: OrderType
    table_number: str | None = None
    customer_id: int | None = None
    notes: str | None = None
    discount_type: DiscountType | None = None
    discount_value: Decimal | None = None
    tax_amount: Decimal = Field(default=Decimal("0"), ge=0)
    catering_date: datetime | None = None
    catering_dp_amount: Decimal | None = Field(default=None, ge=0)
    delivery_platform: str | None = None
    delivery_address: str | None = None
    items: list[OrderItemCreate] = Field(min_length=1)


class OrderItemUpdate(BaseModel):
    """Quantity and/or notes change on an existing line."""

    quantity: int | None = None
    notes: str | None = None


class DesiredOrderItem(BaseModel):
    """Entry of a bulk-edited cart; ``id`` marks an already persisted line."""

    id: int | None = None
    product_id: int | None = None
    variant_id: int | None = None
    quantity: int = 1
    modifier_ids: list[int] = Field(default_factory=list)
    notes: str | None = None


class OrderItemsReplace(BaseModel):
    items: list[DesiredOrderItem]


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class OrderItemStatusUpdate(BaseModel):
    status: OrderItemStatus


class PaymentCreate(BaseModel):
    """Payment submission; cash needs ``amount_received`` for change."""

    payment_method: PaymentMethod
    amount: Decimal
    amount_received: Decimal | None = None
    reference_number: str | None = Field(default=None, max_length=100)


class OrderItemModifierResponse(BaseModel):
    id: int
    modifier_id: int
    unit_price: Decimal

    model_config = ConfigDict(from_attributes=True)


class OrderItemResponse(BaseModel):
    id: int
    product_id: int
    variant_id: int | None
    quantity: int
    unit_price: Decimal
    subtotal: Decimal
    notes: str | None
    status: OrderItemStatus
    station: str | None
    modifiers: list[OrderItemModifierResponse]

    model_config = ConfigDict(from_attributes=True)


class PaymentResponse(BaseModel):
    id: int
    order_id: int
    payment_method: PaymentMethod
    amount: Decimal
    status: PaymentStatus
    reference_number: str | None
    amount_received: Decimal | None
    change_amount: Decimal | None
    processed_by: int
    processed_at: datetime

    model_config = ConfigDict(from_attributes=True)


class OrderResponse(BaseModel):
    """Full order snapshot, also used as the realtime event payload."""

    id: int
    outlet_id: int
    order_number: str
    order_date: date
    order_type: OrderType
    status: OrderStatus
    customer_id: int | None
    table_number: str | None
    notes: str | None
    subtotal: Decimal
    discount_type: DiscountType | None
    discount_value: Decimal | None
    discount_amount: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    amount_paid: Decimal
    catering_date: datetime | None
    catering_status: CateringStatus | None
    catering_dp_amount: Decimal | None
    delivery_platform: str | None
    delivery_address: str | None
    created_by: int
    created_at: datetime
    updated_at: datetime
    completed_at: datetime | None
    items: list[OrderItemResponse]
    payments: list[PaymentResponse]


class OrderListResponse(BaseModel):
    orders: list[OrderResponse]
    limit: int
    offset: int


class PaymentResult(BaseModel):
    payment: PaymentResponse
    order: OrderResponse


class ItemChangeResult(BaseModel):
    """Outcome of an item add/update/remove or a bulk diff-save."""

    added: list[int] = Field(default_factory=list)
    updated: list[int] = Field(default_factory=list)
    removed: list[int] = Field(default_factory=list)
    order: OrderResponse


def order_snapshot(order: Order) -> OrderResponse:
    """Serialize an order with items, modifiers and payments."""
    return OrderResponse(
        id=order.id,
        outlet_id=order.outlet_id,
        order_number=order.order_number,
        order_date=order.order_date,
        order_type=order.order_type,
        status=order.status,
        customer_id=order.customer_id,
        table_number=order.table_number,
        notes=order.notes,
        subtotal=order.subtotal,
        discount_type=order.discount_type,
        discount_value=order.discount_value,
        discount_amount=order.discount_amount,
        tax_amount=order.tax_amount,
        total_amount=order.total_amount,
        amount_paid=order.amount_paid,
        catering_date=order.catering_date,
        catering_status=order.catering_status,
        catering_dp_amount=order.catering_dp_amount,
        delivery_platform=order.delivery_platform,
        delivery_address=order.delivery_address,
        created_by=order.created_by,
        created_at=order.created_at,
        updated_at=order.updated_at,
        completed_at=order.completed_at,
        items=[OrderItemResponse.model_validate(item) for item in order.items],
        payments=[PaymentResponse.model_validate(payment) for payment in order.payments],
    )
