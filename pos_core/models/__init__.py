"""Application models package."""

from pos_core.models.audit_log import AuditLog
from pos_core.models.catalog import Modifier, ModifierGroup, Product, Variant, VariantGroup
from pos_core.models.order import Order, OrderItem, OrderItemModifier
from pos_core.models.outlet import Outlet
from pos_core.models.payment import Payment

__all__ = [
    "AuditLog", "Modifier", "ModifierGroup", "Product", "Variant", "VariantGroup",
    "Order", "OrderItem", "OrderItemModifier", "Outlet", "Payment",
]
