"""Domain errors raised by the order and payment services.

Every error carries a stable ``code`` for clients, a human readable
``detail`` and the HTTP status the API layer answers with.
"""

from __future__ import annotations


class OrderError(Exception):
    """Base class for client-visible order core errors."""

    code: str = "order_error"
    status_code: int = 400

    def __init__(self, detail: str | None = None) -> None:
        self.detail: str = detail or self.__class__.__doc__ or self.code
        super().__init__(self.detail)


class ValidationFailed(OrderError):
    """Request is invalid and must be corrected by the caller."""

    code = "validation_failed"
    status_code = 400


class UnknownProduct(ValidationFailed):
    """Product is unknown to the outlet or inactive."""

    code = "unknown_product"

    def __init__(self, product_id: int) -> None:
        self.product_id = product_id
        super().__init__(f"product {product_id} not found in outlet")


class VariantMismatch(ValidationFailed):
    """Variant does not belong to the product."""

    code = "variant_mismatch"

    def __init__(self, product_id: int, variant_id: int) -> None:
        self.product_id = product_id
        self.variant_id = variant_id
        super().__init__(f"variant {variant_id} does not belong to product {product_id}")


class ModifierConstraintViolated(ValidationFailed):
    """Modifier selection breaks the product's modifier rules."""

    code = "modifier_constraint_violated"


class MissingCateringFields(ValidationFailed):
    """Catering orders need a catering date and a customer."""

    code = "missing_catering_fields"

    def __init__(self, missing: list[str]) -> None:
        self.missing = missing
        super().__init__(f"{', '.join(missing)} required for CATERING orders")


class InvalidQuantity(ValidationFailed):
    """Quantity must be at least 1."""

    code = "invalid_quantity"


class InvalidDiscount(ValidationFailed):
    """Discount type or value is invalid."""

    code = "invalid_discount"


class InvalidPayment(ValidationFailed):
    """Payment amount or cash fields are invalid."""

    code = "invalid_payment"


class InvalidTransition(OrderError):
    """Requested status change is not a legal edge."""

    code = "invalid_transition"
    status_code = 409

    def __init__(self, current: str, requested: str, subject: str = "order") -> None:
        self.current = current
        self.requested = requested
        super().__init__(f"cannot transition {subject} from {current} to {requested}")


class OrderNotEditable(OrderError):
    """Items can only change while the order is NEW."""

    code = "order_not_editable"
    status_code = 409


class OrderNotPayable(OrderError):
    """Order does not accept further payments."""

    code = "order_not_payable"
    status_code = 409


class PaymentExceedsBalance(OrderError):
    """Payment is larger than the remaining balance."""

    code = "payment_exceeds_balance"
    status_code = 409

    def __init__(self, remaining: object) -> None:
        self.remaining = remaining
        super().__init__(f"payment exceeds remaining balance of {remaining}")


class OrderNotFound(OrderError):
    code = "order_not_found"
    status_code = 404

    def __init__(self, order_id: int) -> None:
        super().__init__(f"order {order_id} not found")


class OrderItemNotFound(OrderError):
    code = "order_item_not_found"
    status_code = 404

    def __init__(self, item_id: int) -> None:
        super().__init__(f"item {item_id} not found in order")


class TransientConflict(OrderError):
    """Concurrent update conflict; the request may be retried."""

    code = "transient_conflict"
    status_code = 409


class OutletNotFound(OrderError):
    code = "outlet_not_found"
    status_code = 404

    def __init__(self, outlet_id: int) -> None:
        super().__init__(f"outlet {outlet_id} not found")
