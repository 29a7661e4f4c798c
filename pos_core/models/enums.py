"""Enumerations shared by ORM models, schemas and services."""

from enum import Enum


class OrderType(str, Enum):
    DINE_IN = "DINE_IN"
    TAKEAWAY = "TAKEAWAY"
    DELIVERY = "DELIVERY"
    CATERING = "CATERING"


class OrderStatus(str, Enum):
    NEW = "NEW"
    PREPARING = "PREPARING"
    READY = "READY"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class OrderItemStatus(str, Enum):
    PENDING = "PENDING"
    PREPARING = "PREPARING"
    READY = "READY"


class CateringStatus(str, Enum):
    BOOKED = "BOOKED"
    DP_PAID = "DP_PAID"
    SETTLED = "SETTLED"
    CANCELLED = "CANCELLED"


class PaymentMethod(str, Enum):
    CASH = "CASH"
    QRIS = "QRIS"
    TRANSFER = "TRANSFER"


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class DiscountType(str, Enum):
    PERCENTAGE = "PERCENTAGE"
    FIXED_AMOUNT = "FIXED_AMOUNT"


class UserRole(str, Enum):
    OWNER = "OWNER"
    MANAGER = "MANAGER"
    CASHIER = "CASHIER"
    KITCHEN = "KITCHEN"


class Station(str, Enum):
    GRILL = "GRILL"
    BEVERAGE = "BEVERAGE"
    RICE = "RICE"
    DESSERT = "DESSERT"


TERMINAL_ORDER_STATUSES: frozenset[OrderStatus] = frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED})
ACTIVE_ORDER_STATUSES: frozenset[OrderStatus] = frozenset({OrderStatus.NEW, OrderStatus.PREPARING, OrderStatus.READY})
UNSETTLED_CATERING_STATUSES: frozenset[CateringStatus] = frozenset({CateringStatus.BOOKED, CateringStatus.DP_PAID})
