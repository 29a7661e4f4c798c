"""Payment ORM model."""

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import DateTime, Enum, ForeignKey, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pos_core.db.base import Base
from pos_core.models.enums import PaymentMethod, PaymentStatus


class Payment(Base):
    """Append-only payment event against an order."""

    __tablename__ = "payments"

    id: Mapped[int] = mapped_column(primary_key=True)
    order_id: Mapped[int] = mapped_column(ForeignKey("orders.id"), nullable=False, index=True)
    payment_method: Mapped[PaymentMethod] = mapped_column(
        Enum(PaymentMethod, name="payment_method", native_enum=False),
        nullable=False,
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    status: Mapped[PaymentStatus] = mapped_column(
        Enum(PaymentStatus, name="payment_status", native_enum=False),
        nullable=False,
        default=PaymentStatus.COMPLETED,
    )
    reference_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    amount_received: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    change_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    processed_by: Mapped[int] = mapped_column(Integer, nullable=False)
    processed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    order: Mapped["Order"] = relationship(back_populates="payments")
