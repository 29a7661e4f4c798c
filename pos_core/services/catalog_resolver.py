"""Catalog snapshot resolution: validate a cart line and freeze its prices."""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from pos_core.models.catalog import ModifierGroup, Product, Variant, VariantGroup
from pos_core.services.errors import ModifierConstraintViolated, UnknownProduct, VariantMismatch


@dataclass(frozen=True)
class ResolvedModifier:
    modifier_id: int
    unit_price: Decimal


@dataclass(frozen=True)
class ResolvedLine:
    """Prices of one cart line as they were at resolution time."""

    product_id: int
    variant_id: int | None
    unit_price: Decimal
    station: str | None
    modifiers: list[ResolvedModifier] = field(default_factory=list)

    @property
    def modifier_prices(self) -> list[Decimal]:
        return [modifier.unit_price for modifier in self.modifiers]


class CatalogResolver(Protocol):
    def resolve(
        self,
        outlet_id: int,
        product_id: int,
        variant_id: int | None,
        modifier_ids: Sequence[int],
    ) -> ResolvedLine: ...


class SqlCatalogResolver:
    """Resolve lines against the catalog tables in the caller's session."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def resolve(
        self,
        outlet_id: int,
        product_id: int,
        variant_id: int | None,
        modifier_ids: Sequence[int],
    ) -> ResolvedLine:
        product: Product | None = self.db.scalar(
            select(Product)
            .where(Product.id == product_id, Product.outlet_id == outlet_id, Product.is_active.is_(True))
            .options(selectinload(Product.modifier_groups).selectinload(ModifierGroup.modifiers))
        )
        if product is None:
            raise UnknownProduct(product_id)

        unit_price = Decimal(product.base_price)
        if variant_id is not None:
            variant: Variant | None = self.db.scalar(
                select(Variant)
                .join(VariantGroup, Variant.variant_group_id == VariantGroup.id)
                .where(
                    Variant.id == variant_id,
                    Variant.is_active.is_(True),
                    VariantGroup.is_active.is_(True),
                    VariantGroup.product_id == product.id,
                )
            )
            if variant is None:
                raise VariantMismatch(product.id, variant_id)
            unit_price += Decimal(variant.price_adjustment)

        return ResolvedLine(
            product_id=product.id,
            variant_id=variant_id,
            unit_price=unit_price,
            station=product.station,
            modifiers=_resolve_modifiers(product, modifier_ids),
        )


def _resolve_modifiers(product: Product, modifier_ids: Sequence[int]) -> list[ResolvedModifier]:
    duplicates = [modifier_id for modifier_id, count in Counter(modifier_ids).items() if count > 1]
    if duplicates:
        raise ModifierConstraintViolated(f"modifier {duplicates[0]} selected more than once")

    active_groups = [group for group in product.modifier_groups if group.is_active]
    group_by_modifier = {
        modifier.id: (group, modifier)
        for group in active_groups
        for modifier in group.modifiers
        if modifier.is_active
    }

    selected_per_group: Counter[int] = Counter()
    resolved: list[ResolvedModifier] = []
    for modifier_id in modifier_ids:
        entry = group_by_modifier.get(modifier_id)
        if entry is None:
            raise ModifierConstraintViolated(f"modifier {modifier_id} does not belong to product {product.id}")
        group, modifier = entry
        selected_per_group[group.id] += 1
        resolved.append(ResolvedModifier(modifier_id=modifier.id, unit_price=Decimal(modifier.price)))

    for group in active_groups:
        count = selected_per_group[group.id]
        if count < group.min_select:
            raise ModifierConstraintViolated(
                f"modifier group '{group.name}' requires at least {group.min_select} selection(s)"
            )
        if group.max_select is not None and count > group.max_select:
            raise ModifierConstraintViolated(
                f"modifier group '{group.name}' allows at most {group.max_select} selection(s)"
            )
    return resolved
