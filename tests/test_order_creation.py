"""Order creation tests: price snapshots, totals, numbering and events."""

import threading
from datetime import datetime, timezone
from decimal import Decimal

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from pos_core.core.security import Actor
from pos_core.db.session import violates_unique
from pos_core.models import AuditLog, Modifier, Order, Product
from pos_core.models.enums import CateringStatus, DiscountType, OrderStatus, OrderType
from pos_core.schemas.order import OrderCreate, OrderItemCreate
from pos_core.services import order_service
from pos_core.services.catalog_resolver import ResolvedLine
from pos_core.services.errors import (
    InvalidDiscount,
    MissingCateringFields,
    ModifierConstraintViolated,
    OutletNotFound,
    TransientConflict,
    UnknownProduct,
    VariantMismatch,
)


def _dine_in(catalog, **overrides) -> OrderCreate:
    payload = {
        "order_type": OrderType.DINE_IN,
        "table_number": "A3",
        "items": [
            OrderItemCreate(product_id=catalog.nasi_goreng, quantity=2),
            OrderItemCreate(product_id=catalog.es_teh, quantity=2, modifier_ids=[catalog.sugar_sweet]),
        ],
    }
    payload.update(overrides)
    return OrderCreate(**payload)


def test_create_order_snapshots_prices_and_totals(db: Session, catalog, cashier: Actor) -> None:
    order = order_service.create_order(db, catalog.outlet_id, _dine_in(catalog), cashier)

    assert order.status == OrderStatus.NEW
    assert order.order_number == "KWR-001"
    assert order.created_by == cashier.user_id
    assert [item.subtotal for item in order.items] == [Decimal("50000.00"), Decimal("16000.00")]
    assert order.subtotal == Decimal("66000.00")
    assert order.total_amount == Decimal("66000.00")
    assert order.total_amount == order.subtotal - order.discount_amount + order.tax_amount
    assert order.items[0].station == "GRILL"
    assert order.catering_status is None


def test_modifier_prices_are_frozen_per_unit(db: Session, catalog, cashier: Actor) -> None:
    payload = OrderCreate(
        order_type=OrderType.TAKEAWAY,
        items=[
            OrderItemCreate(
                product_id=catalog.nasi_goreng,
                quantity=3,
                modifier_ids=[catalog.extra_egg, catalog.extra_cheese],
            )
        ],
    )
    order = order_service.create_order(db, catalog.outlet_id, payload, cashier)

    item = order.items[0]
    assert item.unit_price == Decimal("25000.00")
    assert sorted(modifier.unit_price for modifier in item.modifiers) == [Decimal("5000.00"), Decimal("7000.00")]
    assert item.subtotal == Decimal("111000.00")

    db.get(Product, catalog.nasi_goreng).base_price = Decimal("99000")
    db.get(Modifier, catalog.extra_egg).price = Decimal("9000")
    db.commit()

    reloaded = order_service.get_order(db, catalog.outlet_id, order.id)
    assert reloaded.items[0].unit_price == Decimal("25000.00")
    assert reloaded.total_amount == Decimal("111000.00")


def test_discount_and_tax_are_applied(db: Session, catalog, cashier: Actor) -> None:
    payload = _dine_in(
        catalog,
        discount_type=DiscountType.PERCENTAGE,
        discount_value=Decimal("10"),
        tax_amount=Decimal("5940"),
    )
    order = order_service.create_order(db, catalog.outlet_id, payload, cashier)
    assert order.discount_amount == Decimal("6600.00")
    assert order.tax_amount == Decimal("5940.00")
    assert order.total_amount == Decimal("65340.00")


def test_numbering_is_sequential_per_outlet(db: Session, catalog, cashier: Actor) -> None:
    numbers = [
        order_service.create_order(db, catalog.outlet_id, _dine_in(catalog), cashier).order_number
        for _ in range(3)
    ]
    assert numbers == ["KWR-001", "KWR-002", "KWR-003"]


def test_numbering_restarts_on_a_new_business_day(db: Session, catalog, cashier: Actor, monkeypatch) -> None:
    monkeypatch.setattr(order_service, "utcnow", lambda: datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc))
    first = order_service.create_order(db, catalog.outlet_id, _dine_in(catalog), cashier)
    monkeypatch.setattr(order_service, "utcnow", lambda: datetime(2026, 5, 1, 18, 0, tzinfo=timezone.utc))
    next_day = order_service.create_order(db, catalog.outlet_id, _dine_in(catalog), cashier)

    assert first.order_number == "KWR-001"
    assert next_day.order_number == "KWR-001"
    assert next_day.order_date > first.order_date


def test_concurrent_creations_get_unique_gap_free_numbers(session_factory, catalog, cashier: Actor) -> None:
    errors: list[Exception] = []
    numbers: list[str] = []
    lock = threading.Lock()

    def worker() -> None:
        session = session_factory()
        try:
            order = order_service.create_order(session, catalog.outlet_id, _dine_in(catalog), cashier)
            with lock:
                numbers.append(order.order_number)
        except Exception as exc:  # pragma: no cover - surfaced by the assertion below
            with lock:
                errors.append(exc)
        finally:
            session.close()

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    assert sorted(numbers) == [f"KWR-{seq:03d}" for seq in range(1, 9)]


def test_collision_is_retried_once_then_conflicts(db: Session, catalog, cashier: Actor, monkeypatch) -> None:
    order_service.create_order(db, catalog.outlet_id, _dine_in(catalog), cashier)
    calls: list[int] = []

    def stale_seq(session, outlet_id, order_date) -> int:
        calls.append(outlet_id)
        return 1

    monkeypatch.setattr(order_service, "_next_order_seq", stale_seq)
    with pytest.raises(TransientConflict):
        order_service.create_order(db, catalog.outlet_id, _dine_in(catalog), cashier)
    assert len(calls) == 2
    assert db.scalar(select(func.count()).select_from(Order)) == 1


def test_collision_recovers_on_retry(db: Session, catalog, cashier: Actor, monkeypatch) -> None:
    order_service.create_order(db, catalog.outlet_id, _dine_in(catalog), cashier)
    original = order_service._next_order_seq
    answers = iter([1])

    def flaky_seq(session, outlet_id, order_date) -> int:
        return next(answers, None) or original(session, outlet_id, order_date)

    monkeypatch.setattr(order_service, "_next_order_seq", flaky_seq)
    order = order_service.create_order(db, catalog.outlet_id, _dine_in(catalog), cashier)
    assert order.order_number == "KWR-002"


def test_other_integrity_errors_are_not_retried(db: Session, catalog, cashier: Actor, monkeypatch) -> None:
    calls: list[int] = []

    def broken_insert(*args, **kwargs):
        calls.append(1)
        raise IntegrityError("INSERT INTO orders", {}, Exception("NOT NULL constraint failed: orders.created_by"))

    monkeypatch.setattr(order_service, "_insert_order", broken_insert)
    with pytest.raises(IntegrityError):
        order_service.create_order(db, catalog.outlet_id, _dine_in(catalog), cashier)
    assert len(calls) == 1


def test_numbering_collisions_are_recognized_by_index_name() -> None:
    seq_index = next(index for index in Order.__table__.indexes if index.name == "uq_orders_outlet_date_seq")
    postgres = IntegrityError(
        "INSERT INTO orders", {}, Exception('duplicate key value violates unique constraint "uq_orders_outlet_date_seq"')
    )
    sqlite = IntegrityError(
        "INSERT INTO orders", {}, Exception("UNIQUE constraint failed: orders.outlet_id, orders.order_date, orders.order_seq")
    )
    foreign_key = IntegrityError("INSERT INTO orders", {}, Exception("FOREIGN KEY constraint failed"))

    assert violates_unique(postgres, seq_index)
    assert violates_unique(sqlite, seq_index)
    assert not violates_unique(foreign_key, seq_index)


def test_unknown_product_is_rejected_without_writes(db: Session, catalog, cashier: Actor) -> None:
    payload = _dine_in(catalog, items=[OrderItemCreate(product_id=catalog.other_outlet_product)])
    with pytest.raises(UnknownProduct):
        order_service.create_order(db, catalog.outlet_id, payload, cashier)
    assert db.scalar(select(func.count()).select_from(Order)) == 0


def test_variant_mismatch_is_rejected(db: Session, catalog, cashier: Actor) -> None:
    payload = _dine_in(catalog, items=[OrderItemCreate(product_id=catalog.nasi_goreng, variant_id=catalog.ayam_half)])
    with pytest.raises(VariantMismatch):
        order_service.create_order(db, catalog.outlet_id, payload, cashier)


def test_modifier_rules_are_enforced(db: Session, catalog, cashier: Actor) -> None:
    payload = _dine_in(catalog, items=[OrderItemCreate(product_id=catalog.es_teh)])
    with pytest.raises(ModifierConstraintViolated):
        order_service.create_order(db, catalog.outlet_id, payload, cashier)


def test_catering_requires_date_and_customer(db: Session, catalog, cashier: Actor) -> None:
    payload = _dine_in(catalog, order_type=OrderType.CATERING)
    with pytest.raises(MissingCateringFields) as exc_info:
        order_service.create_order(db, catalog.outlet_id, payload, cashier)
    assert exc_info.value.missing == ["catering_date", "customer_id"]


def test_catalog_errors_win_over_catering_errors(db: Session, catalog, cashier: Actor) -> None:
    payload = _dine_in(
        catalog,
        order_type=OrderType.CATERING,
        items=[OrderItemCreate(product_id=catalog.other_outlet_product)],
    )
    with pytest.raises(UnknownProduct):
        order_service.create_order(db, catalog.outlet_id, payload, cashier)


def test_catering_order_starts_booked(db: Session, catalog, cashier: Actor) -> None:
    payload = _dine_in(
        catalog,
        order_type=OrderType.CATERING,
        customer_id=42,
        catering_date=datetime(2026, 6, 1, 11, 0, tzinfo=timezone.utc),
        catering_dp_amount=Decimal("30000"),
    )
    order = order_service.create_order(db, catalog.outlet_id, payload, cashier)
    assert order.catering_status == CateringStatus.BOOKED
    assert order.catering_dp_amount == Decimal("30000")


def test_invalid_discount_is_rejected(db: Session, catalog, cashier: Actor) -> None:
    payload = _dine_in(catalog, discount_type=DiscountType.PERCENTAGE, discount_value=Decimal("120"))
    with pytest.raises(InvalidDiscount):
        order_service.create_order(db, catalog.outlet_id, payload, cashier)


def test_unknown_outlet_is_rejected(db: Session, catalog, cashier: Actor) -> None:
    class StaticResolver:
        def resolve(self, outlet_id, product_id, variant_id, modifier_ids) -> ResolvedLine:
            return ResolvedLine(product_id=catalog.nasi_goreng, variant_id=None, unit_price=Decimal("1000"), station=None)

    with pytest.raises(OutletNotFound):
        order_service.create_order(db, 9999, _dine_in(catalog), cashier, resolver=StaticResolver())


def test_creation_emits_event_and_audit_entry(db: Session, catalog, cashier: Actor, outlet_events) -> None:
    order = order_service.create_order(db, catalog.outlet_id, _dine_in(catalog), cashier)

    events = outlet_events()
    assert [event["type"] for event in events] == ["order.created"]
    assert events[0]["order_id"] == order.id
    assert events[0]["order"]["order_number"] == "KWR-001"
    assert len(events[0]["order"]["items"]) == 2

    entry = db.scalar(select(AuditLog).where(AuditLog.order_id == order.id))
    assert entry.action_type == "order_created"
    assert entry.actor_user_id == cashier.user_id
