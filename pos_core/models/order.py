"""Order aggregate ORM models: header, line items and item modifiers."""

from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import Date, DateTime, Enum, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pos_core.db.base import Base
from pos_core.models.enums import (
    CateringStatus,
    DiscountType,
    OrderItemStatus,
    OrderStatus,
    OrderType,
    PaymentStatus,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Order(Base):
    """One purchase transaction at an outlet."""

    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(primary_key=True)
    outlet_id: Mapped[int] = mapped_column(ForeignKey("outlets.id"), nullable=False)
    order_date: Mapped[date] = mapped_column(Date, nullable=False)
    order_seq: Mapped[int] = mapped_column(Integer, nullable=False)
    order_number: Mapped[str] = mapped_column(String(20), nullable=False)
    order_type: Mapped[OrderType] = mapped_column(Enum(OrderType, name="order_type", native_enum=False), nullable=False)
    status: Mapped[OrderStatus] = mapped_column(
        Enum(OrderStatus, name="order_status", native_enum=False),
        nullable=False,
        default=OrderStatus.NEW,
    )
    customer_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    table_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    subtotal: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    discount_type: Mapped[DiscountType | None] = mapped_column(
        Enum(DiscountType, name="discount_type", native_enum=False),
        nullable=True,
    )
    discount_value: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    discount_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    tax_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))

    catering_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    catering_status: Mapped[CateringStatus | None] = mapped_column(
        Enum(CateringStatus, name="catering_status", native_enum=False),
        nullable=True,
    )
    catering_dp_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    delivery_platform: Mapped[str | None] = mapped_column(String(50), nullable=True)
    delivery_address: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_by: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    items: Mapped[list["OrderItem"]] = relationship(
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )
    payments: Mapped[list["Payment"]] = relationship(back_populates="order", order_by="Payment.id")

    __table_args__ = (
        Index("uq_orders_outlet_date_seq", "outlet_id", "order_date", "order_seq", unique=True),
        Index("uq_orders_outlet_date_number", "outlet_id", "order_date", "order_number", unique=True),
        Index("ix_orders_outlet_created", "outlet_id", "created_at"),
        Index("ix_orders_status", "status"),
        Index("ix_orders_catering_status", "catering_status"),
    )

    @property
    def amount_paid(self) -> Decimal:
        """Sum of COMPLETED payment amounts."""
        return sum(
            (Decimal(payment.amount) for payment in self.payments if payment.status == PaymentStatus.COMPLETED),
            Decimal("0"),
        )


class OrderItem(Base):
    """Order line with a frozen price snapshot."""

    __tablename__ = "order_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    order_id: Mapped[int] = mapped_column(ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id: Mapped[int] = mapped_column(ForeignKey("products.id"), nullable=False)
    variant_id: Mapped[int | None] = mapped_column(ForeignKey("variants.id"), nullable=True)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    subtotal: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[OrderItemStatus] = mapped_column(
        Enum(OrderItemStatus, name="order_item_status", native_enum=False),
        nullable=False,
        default=OrderItemStatus.PENDING,
    )
    station: Mapped[str | None] = mapped_column(String(32), nullable=True)

    order: Mapped[Order] = relationship(back_populates="items")
    modifiers: Mapped[list["OrderItemModifier"]] = relationship(
        back_populates="item",
        cascade="all, delete-orphan",
        order_by="OrderItemModifier.id",
    )


class OrderItemModifier(Base):
    """Selected modifier on an order line with its frozen price."""

    __tablename__ = "order_item_modifiers"

    id: Mapped[int] = mapped_column(primary_key=True)
    order_item_id: Mapped[int] = mapped_column(
        ForeignKey("order_items.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    modifier_id: Mapped[int] = mapped_column(ForeignKey("modifiers.id"), nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    item: Mapped[OrderItem] = relationship(back_populates="modifiers")
