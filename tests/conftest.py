"""Shared fixtures: file-backed SQLite per test, a small catalog and actors."""

import asyncio
from collections.abc import Iterator
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path

import pytest
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from pos_core.core.security import Actor, create_access_token
from pos_core.db import session as db_session
from pos_core.db.base import Base
from pos_core.models import Modifier, ModifierGroup, Outlet, Product, Variant, VariantGroup
from pos_core.models.enums import UserRole
from pos_core.realtime import hub as realtime_hub


def _build_test_engine(db_file: Path) -> Engine:
    return db_session.build_engine(f"sqlite:///{db_file}")


@dataclass
class Catalog:
    outlet_id: int
    other_outlet_id: int
    nasi_goreng: int
    es_teh: int
    ayam: int
    ayam_half: int
    sugar_sweet: int
    sugar_plain: int
    extra_egg: int
    extra_cheese: int
    other_outlet_product: int


@pytest.fixture
def session_factory(tmp_path: Path, monkeypatch) -> Iterator[sessionmaker]:
    engine = _build_test_engine(tmp_path / "pos_core_test.db")
    testing_session_local = sessionmaker(
        autocommit=False, autoflush=False, expire_on_commit=False, bind=engine
    )
    Base.metadata.create_all(bind=engine)

    monkeypatch.setattr(db_session, "engine", engine)
    monkeypatch.setattr(db_session, "SessionLocal", testing_session_local)
    yield testing_session_local
    engine.dispose()


@pytest.fixture
def db(session_factory: sessionmaker) -> Iterator[Session]:
    session: Session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def hub(monkeypatch) -> realtime_hub.EventHub:
    fresh = realtime_hub.EventHub(queue_max=16)
    monkeypatch.setattr(realtime_hub, "event_hub", fresh)
    return fresh


@pytest.fixture
def catalog(session_factory: sessionmaker) -> Catalog:
    """Two outlets; the first sells fried rice, iced tea and grilled chicken."""
    session: Session = session_factory()
    try:
        outlet = Outlet(name="Kedai Warung")
        other = Outlet(name="Kedai Pusat")
        session.add_all([outlet, other])
        session.flush()

        nasi_goreng = Product(outlet_id=outlet.id, name="Nasi Goreng", base_price=Decimal("25000"), station="GRILL")
        es_teh = Product(outlet_id=outlet.id, name="Es Teh", base_price=Decimal("8000"), station="BEVERAGE")
        ayam = Product(outlet_id=outlet.id, name="Ayam Bakar", base_price=Decimal("30000"), station="GRILL")
        other_product = Product(outlet_id=other.id, name="Soto", base_price=Decimal("20000"))
        session.add_all([nasi_goreng, es_teh, ayam, other_product])
        session.flush()

        portion = VariantGroup(product_id=ayam.id, name="Porsi")
        session.add(portion)
        session.flush()
        ayam_half = Variant(variant_group_id=portion.id, name="1/2", price_adjustment=Decimal("15000"))
        session.add(ayam_half)

        sugar = ModifierGroup(product_id=es_teh.id, name="Gula", min_select=1, max_select=1)
        extras = ModifierGroup(product_id=nasi_goreng.id, name="Tambahan", min_select=0, max_select=2)
        session.add_all([sugar, extras])
        session.flush()
        sugar_sweet = Modifier(modifier_group_id=sugar.id, name="Manis", price=Decimal("0"))
        sugar_plain = Modifier(modifier_group_id=sugar.id, name="Tawar", price=Decimal("0"))
        extra_egg = Modifier(modifier_group_id=extras.id, name="Telur", price=Decimal("5000"))
        extra_cheese = Modifier(modifier_group_id=extras.id, name="Keju", price=Decimal("7000"))
        session.add_all([sugar_sweet, sugar_plain, extra_egg, extra_cheese])
        session.commit()

        return Catalog(
            outlet_id=outlet.id,
            other_outlet_id=other.id,
            nasi_goreng=nasi_goreng.id,
            es_teh=es_teh.id,
            ayam=ayam.id,
            ayam_half=ayam_half.id,
            sugar_sweet=sugar_sweet.id,
            sugar_plain=sugar_plain.id,
            extra_egg=extra_egg.id,
            extra_cheese=extra_cheese.id,
            other_outlet_product=other_product.id,
        )
    finally:
        session.close()


@pytest.fixture
def cashier(catalog: Catalog) -> Actor:
    return Actor(user_id=7, outlet_id=catalog.outlet_id, role=UserRole.CASHIER)


@pytest.fixture
def outlet_events(hub: realtime_hub.EventHub, catalog: Catalog):
    """Subscribe to the catalog outlet; calling the fixture drains delivered events."""
    loop = asyncio.new_event_loop()
    subscriber = hub.subscribe(catalog.outlet_id, loop=loop)

    async def _collect() -> list[dict]:
        events: list[dict] = []
        while True:
            try:
                event = await subscriber.get(timeout=0.05)
            except asyncio.TimeoutError:
                return events
            if event is None:
                return events
            events.append(event)

    def drain() -> list[dict]:
        return loop.run_until_complete(_collect())

    yield drain
    hub.unsubscribe(subscriber)
    loop.close()


@pytest.fixture
def issue_token():
    """Mint an access token carrying ``actor``'s claims."""

    def _issue(actor: Actor) -> str:
        return create_access_token(
            {"sub": str(actor.user_id), "outlet_id": actor.outlet_id, "role": actor.role.value}
        )

    return _issue
