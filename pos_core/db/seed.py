"""Database seeding helpers."""

import logging
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from pos_core.core.config import settings
from pos_core.models import Modifier, ModifierGroup, Outlet, Product, Variant, VariantGroup
from pos_core.models.enums import Station

logger = logging.getLogger(__name__)

DEMO_OUTLET_NAME: str = "Demo Outlet"


def _product(outlet: Outlet, name: str, price: str, station: Station) -> Product:
    return Product(outlet_id=outlet.id, name=name, base_price=Decimal(price), station=station.value)


def ensure_seed_data(session: Session) -> Outlet | None:
    """Create a demo outlet with a small catalog in development only.

    Does nothing when any outlet already exists.
    """
    if settings.app_env != "dev":
        return None
    if session.scalar(select(Outlet.id).limit(1)) is not None:
        return None

    outlet = Outlet(name=DEMO_OUTLET_NAME, address="Jl. Contoh No. 1")
    session.add(outlet)
    session.flush()

    chicken = _product(outlet, "Ayam Bakar", "25000", Station.GRILL)
    tea = _product(outlet, "Es Teh", "8000", Station.BEVERAGE)
    rice = _product(outlet, "Nasi Putih", "5000", Station.RICE)
    session.add_all([chicken, tea, rice])
    session.flush()

    portion = VariantGroup(product_id=chicken.id, name="Porsi")
    session.add(portion)
    session.flush()
    session.add_all(
        [
            Variant(variant_group_id=portion.id, name="1/4", price_adjustment=Decimal("0")),
            Variant(variant_group_id=portion.id, name="1/2", price_adjustment=Decimal("15000")),
        ]
    )

    sambal = ModifierGroup(product_id=chicken.id, name="Sambal", min_select=0, max_select=2)
    sugar = ModifierGroup(product_id=tea.id, name="Gula", min_select=1, max_select=1)
    session.add_all([sambal, sugar])
    session.flush()
    session.add_all(
        [
            Modifier(modifier_group_id=sambal.id, name="Sambal Matah", price=Decimal("3000")),
            Modifier(modifier_group_id=sambal.id, name="Sambal Bawang", price=Decimal("2000")),
            Modifier(modifier_group_id=sugar.id, name="Manis", price=Decimal("0")),
            Modifier(modifier_group_id=sugar.id, name="Tawar", price=Decimal("0")),
        ]
    )
    session.commit()
    logger.info("Seeded demo outlet %s with %d products", outlet.id, 3)
    return outlet
