"""Pricing calculator shared by carts and orders.

All functions are pure: the same lines and coupons always produce the same
breakdown. Coupon discounts are computed independently from the original
subtotal (never compounded) and the combined discount is clamped to the
subtotal, so a discounted base can never go negative.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field

from ordering import settings
from ordering.coupon.port import CouponType
from ordering.errors import InvalidCoupon, InvalidQuantity


@dataclass(frozen=True)
class PricingPolicy:
    """Tax and shipping rules applied to a subtotal."""

    tax_rate: float = field(default_factory=lambda: settings.TAX_RATE)
    free_shipping_threshold: float = field(default_factory=lambda: settings.FREE_SHIPPING_THRESHOLD)
    flat_shipping_charge: float = field(default_factory=lambda: settings.FLAT_SHIPPING_CHARGE)

    def tax_for(self, subtotal: float) -> float:
        return to_cents(subtotal * self.tax_rate)

    def shipping_for(self, subtotal: float) -> float:
        if subtotal <= 0:
            return 0.0
        if subtotal > self.free_shipping_threshold:
            return 0.0
        return to_cents(self.flat_shipping_charge)


@dataclass(frozen=True)
class PriceBreakdown:
    subtotal: float
    tax_amount: float
    tax_rate: float
    shipping_amount: float
    discount_amount: float
    total: float


def to_cents(amount: float) -> float:
    return round(float(amount), 2)


def line_subtotal(unit_price: float, quantity: int) -> float:
    if unit_price < 0:
        raise InvalidQuantity("Unit price cannot be negative", field="price")
    if quantity < 1:
        raise InvalidQuantity("Quantity must be at least 1")
    return to_cents(unit_price * quantity)


def compute_subtotal(lines: Iterable[tuple[float, int]]) -> float:
    """Sum of ``unit_price * quantity`` over (unit_price, quantity) lines."""
    return to_cents(sum(line_subtotal(price, quantity) for price, quantity in lines))


def coupon_discount(subtotal: float, coupon_type: str, value: float) -> float:
    """Discount contributed by one coupon against the original subtotal."""
    kind = CouponType(coupon_type)
    if kind == CouponType.PERCENTAGE:
        if not 0 < value <= 100:
            raise InvalidCoupon(f"Percentage discount must be within (0, 100], got {value}")
        return subtotal * value / 100
    if value < 0:
        raise InvalidCoupon(f"Fixed discount cannot be negative, got {value}")
    return float(value)


def compute_discount(subtotal: float, coupons: Iterable[tuple[str, float]]) -> float:
    """Combined discount of all (coupon_type, value) pairs, clamped to the subtotal."""
    discount = sum(coupon_discount(subtotal, coupon_type, value) for coupon_type, value in coupons)
    return to_cents(min(discount, subtotal))


def compute_pricing(
    lines: Iterable[tuple[float, int]],
    coupons: Iterable[tuple[str, float]] = (),
    policy: PricingPolicy | None = None,
    tax_rate: float | None = None,
    shipping_amount: float | None = None,
) -> PriceBreakdown:
    """Price a set of lines.

    Args:
        lines: (unit_price, quantity) pairs.
        coupons: (coupon_type, value) pairs for every applied coupon.
        policy: Tax and shipping rules; defaults to the configured policy.
        tax_rate: Explicit tax rate overriding the policy.
        shipping_amount: Explicit shipping charge overriding the policy.
    """
    policy = policy or PricingPolicy()
    subtotal = compute_subtotal(lines)
    if tax_rate is None:
        rate, tax = policy.tax_rate, policy.tax_for(subtotal)
    else:
        rate, tax = tax_rate, to_cents(subtotal * tax_rate)
    shipping = policy.shipping_for(subtotal) if shipping_amount is None else to_cents(shipping_amount)
    discount = compute_discount(subtotal, coupons)
    total = to_cents(max(0.0, subtotal + tax + shipping - discount))

    return PriceBreakdown(
        subtotal=subtotal,
        tax_amount=tax,
        tax_rate=rate,
        shipping_amount=shipping,
        discount_amount=discount,
        total=total,
    )
