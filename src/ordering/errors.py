"""Domain errors for the Ordering domain.

Each error kind carries a stable ``code`` that API clients can rely on, and a
human-readable message. Errors derive from Protean's exception classes so that
they flow through command handlers and units of work like any other domain
validation failure.
"""

from protean.exceptions import ObjectNotFoundError, ValidationError


class OrderingError(ValidationError):
    """Base class for semantic failures raised by the ordering core."""

    code = "ordering_error"
    field = "ordering"
    status_code = 400

    def __init__(self, message: str, field: str | None = None):
        self.message = message
        super().__init__({field or self.field: [message]})


class NotFound(ObjectNotFoundError):
    """A referenced product, cart, order, return or refund does not exist."""

    code = "not_found"
    status_code = 404

    def __init__(self, message: str, field: str = "id"):
        self.message = message
        self.messages = {field: [message]}
        super().__init__(message)


class InvalidQuantity(OrderingError):
    code = "invalid_quantity"
    field = "quantity"
    status_code = 422


class InsufficientStock(OrderingError):
    code = "insufficient_stock"
    field = "quantity"
    status_code = 409


class InvalidCoupon(OrderingError):
    code = "invalid_coupon"
    field = "coupon_code"


class CouponThresholdNotMet(OrderingError):
    code = "coupon_threshold_not_met"
    field = "coupon_code"


class CouponAlreadyApplied(OrderingError):
    code = "coupon_already_applied"
    field = "coupon_code"
    status_code = 409


class IllegalTransition(OrderingError):
    code = "illegal_transition"
    field = "status"
    status_code = 409


class RefundExceedsTotal(OrderingError):
    code = "refund_exceeds_total"
    field = "amount"
    status_code = 409


class EmptyOrder(OrderingError):
    code = "empty_order"
    field = "items"


class ReturnNotAllowed(OrderingError):
    code = "return_not_allowed"
    field = "status"
    status_code = 409
