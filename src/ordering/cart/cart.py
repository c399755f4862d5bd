"""Cart aggregate (CQRS): per-user staging area that converts to an Order at checkout.

The cart is a standard CQRS aggregate (not event sourced). There is exactly one
cart per user, created lazily on first access. Every mutating method finishes
by recomputing the derived totals (subtotal, item count, tax, shipping,
discount, total) from the current items and coupons, so stored totals are
never trusted between operations. Each mutation also pushes the 30-day
inactivity expiry forward.
"""

import json
from datetime import timedelta

from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String

from ordering import settings
from ordering.cart.events import (
    CartCleared,
    CartCouponApplied,
    CartCouponRemoved,
    CartExpired,
    CartItemAdded,
    CartItemQuantityUpdated,
    CartItemRemoved,
    UnavailableItemsRemoved,
)
from ordering.coupon.port import CouponBook, normalize_code
from ordering.domain import ordering
from ordering.errors import (
    CouponAlreadyApplied,
    CouponThresholdNotMet,
    InvalidCoupon,
    InvalidQuantity,
)
from ordering.pricing import PricingPolicy, compute_pricing
from ordering.utils.clock import as_utc, utcnow


def variant_key(variant) -> tuple[str, str]:
    """Normalize a variant descriptor into the (name, option) part of a line's key.

    ``None``, ``{}`` and ``{"name": "", "option": ""}`` all describe "no variant".
    """
    if not variant:
        return ("", "")
    return (variant.get("name") or "", variant.get("option") or "")


def variant_from(name, option) -> dict | None:
    """Build a variant descriptor from separate name and option fields, or ``None``."""
    if not name and not option:
        return None
    return {"name": name or "", "option": option or ""}


@ordering.entity(part_of="Cart")
class CartItem:
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    price = Float(required=True, min_value=0.0)  # Snapshotted when first added
    variant_name = String(max_length=100)
    variant_option = String(max_length=100)
    added_at = DateTime()

    @property
    def variant(self) -> dict | None:
        if not self.variant_name and not self.variant_option:
            return None
        return {"name": self.variant_name, "option": self.variant_option}

    def matches(self, product_id, variant) -> bool:
        return str(self.product_id) == str(product_id) and variant_key(self.variant) == variant_key(variant)


@ordering.entity(part_of="Cart")
class AppliedCoupon:
    code = String(required=True, max_length=20)
    coupon_type = String(required=True, max_length=20)
    discount = Float(required=True, min_value=0.0)


@ordering.aggregate
class Cart:
    user_id = Identifier(required=True, unique=True)
    items = HasMany(CartItem)
    applied_coupons = HasMany(AppliedCoupon)
    subtotal = Float(default=0.0)
    total_items = Integer(default=0)
    estimated_tax = Float(default=0.0)
    estimated_shipping = Float(default=0.0)
    estimated_discount = Float(default=0.0)
    estimated_total = Float(default=0.0)
    expires_at = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, user_id):
        now = utcnow()
        return cls(
            user_id=user_id,
            created_at=now,
            updated_at=now,
            expires_at=now + timedelta(days=settings.CART_TTL_DAYS),
        )

    # -------------------------------------------------------------------
    # Derived state
    # -------------------------------------------------------------------
    def recalculate_totals(self, policy: PricingPolicy | None = None):
        """Recompute every derived field from the current items and coupons."""
        breakdown = compute_pricing(
            lines=[(item.price, item.quantity) for item in self.items],
            coupons=[(coupon.coupon_type, coupon.discount) for coupon in self.applied_coupons],
            policy=policy,
        )
        self.subtotal = breakdown.subtotal
        self.total_items = sum(item.quantity for item in self.items)
        self.estimated_tax = breakdown.tax_amount
        self.estimated_shipping = breakdown.shipping_amount
        self.estimated_discount = breakdown.discount_amount
        self.estimated_total = breakdown.total

    def find_item(self, product_id, variant=None):
        return next((i for i in self.items if i.matches(product_id, variant)), None)

    def has_coupon(self, code) -> bool:
        normalized = normalize_code(code)
        return any(c.code == normalized for c in self.applied_coupons)

    @property
    def is_empty(self) -> bool:
        return not self.items and not self.applied_coupons

    def is_expired(self, now=None) -> bool:
        if self.expires_at is None:
            return False
        return as_utc(self.expires_at) <= (now or utcnow())

    def _touch(self):
        now = utcnow()
        self.updated_at = now
        self.expires_at = now + timedelta(days=settings.CART_TTL_DAYS)
        return now

    @staticmethod
    def _check_quantity(quantity):
        if quantity < 1:
            raise InvalidQuantity("Quantity must be at least 1")
        if quantity > settings.MAX_ITEM_QUANTITY:
            raise InvalidQuantity(f"Quantity cannot exceed {settings.MAX_ITEM_QUANTITY}")

    # -------------------------------------------------------------------
    # Item management
    # -------------------------------------------------------------------
    def add_item(self, product_id, quantity, price, variant=None):
        """Add a product to the cart, or increase the quantity of an existing line.

        The price recorded on the first add is kept when the same product and
        variant are added again.
        """
        self._check_quantity(quantity)
        variant_name, variant_option = variant_key(variant)

        existing = self.find_item(product_id, variant)
        if existing:
            self._check_quantity(existing.quantity + quantity)

        now = self._touch()
        if existing:
            existing.quantity += quantity
            recorded_price = existing.price
        else:
            self.add_items(
                CartItem(
                    product_id=product_id,
                    quantity=quantity,
                    price=price,
                    variant_name=variant_name or None,
                    variant_option=variant_option or None,
                    added_at=now,
                )
            )
            recorded_price = price

        self.recalculate_totals()

        self.raise_(
            CartItemAdded(
                cart_id=str(self.id),
                user_id=str(self.user_id),
                product_id=str(product_id),
                variant_name=variant_name or None,
                variant_option=variant_option or None,
                quantity=quantity,
                price=recorded_price,
                total_items=self.total_items,
                subtotal=self.subtotal,
            )
        )

    def update_item_quantity(self, product_id, quantity, variant=None):
        """Set a line's quantity exactly. Zero or less removes the line."""
        existing = self.find_item(product_id, variant)
        if existing is None:
            self.recalculate_totals()
            return

        if quantity <= 0:
            self.remove_item(product_id, variant)
            return

        self._check_quantity(quantity)
        previous_quantity = existing.quantity
        existing.quantity = quantity
        self._touch()
        self.recalculate_totals()

        variant_name, variant_option = variant_key(variant)
        self.raise_(
            CartItemQuantityUpdated(
                cart_id=str(self.id),
                user_id=str(self.user_id),
                product_id=str(product_id),
                variant_name=variant_name or None,
                variant_option=variant_option or None,
                previous_quantity=previous_quantity,
                new_quantity=quantity,
                total_items=self.total_items,
                subtotal=self.subtotal,
            )
        )

    def remove_item(self, product_id, variant=None):
        """Remove the line matching product and variant. Absent lines are ignored."""
        existing = self.find_item(product_id, variant)
        if existing is None:
            self.recalculate_totals()
            return

        self.remove_items(existing)
        self._touch()
        self.recalculate_totals()

        variant_name, variant_option = variant_key(variant)
        self.raise_(
            CartItemRemoved(
                cart_id=str(self.id),
                user_id=str(self.user_id),
                product_id=str(product_id),
                variant_name=variant_name or None,
                variant_option=variant_option or None,
                total_items=self.total_items,
                subtotal=self.subtotal,
            )
        )

    def clear(self, reason="cleared"):
        """Empty the cart of items and coupons."""
        for item in list(self.items):
            self.remove_items(item)
        for coupon in list(self.applied_coupons):
            self.remove_applied_coupons(coupon)

        self._touch()
        self.recalculate_totals()

        self.raise_(
            CartCleared(
                cart_id=str(self.id),
                user_id=str(self.user_id),
                reason=reason,
                total_items=self.total_items,
                subtotal=self.subtotal,
            )
        )

    def remove_unavailable_items(self, product_ids):
        """Drop every line whose product is in ``product_ids``."""
        doomed = {str(pid) for pid in product_ids}
        stale = [item for item in self.items if str(item.product_id) in doomed]
        if not stale:
            self.recalculate_totals()
            return

        for item in stale:
            self.remove_items(item)
        self._touch()
        self.recalculate_totals()

        self.raise_(
            UnavailableItemsRemoved(
                cart_id=str(self.id),
                user_id=str(self.user_id),
                product_ids=json.dumps(sorted({str(item.product_id) for item in stale})),
                total_items=self.total_items,
                subtotal=self.subtotal,
            )
        )

    # -------------------------------------------------------------------
    # Coupon management
    # -------------------------------------------------------------------
    def apply_coupon(self, code, coupon_book: CouponBook):
        """Apply a coupon by code after checking it against the coupon book.

        The minimum order amount is checked against the current subtotal; once
        applied, a coupon keeps contributing even if the subtotal later drops.
        """
        normalized = normalize_code(code)
        coupon = coupon_book.lookup(normalized)
        if coupon is None:
            raise InvalidCoupon(f"Invalid coupon code: {normalized}")

        self.recalculate_totals()
        if self.subtotal < coupon.min_amount:
            raise CouponThresholdNotMet(
                f"Minimum order amount of ${coupon.min_amount:.2f} required for coupon {normalized}"
            )

        if self.has_coupon(normalized):
            raise CouponAlreadyApplied(f"Coupon {normalized} already applied")

        self.add_applied_coupons(
            AppliedCoupon(
                code=normalized,
                coupon_type=coupon.coupon_type.value,
                discount=coupon.value,
            )
        )
        self._touch()
        self.recalculate_totals()

        self.raise_(
            CartCouponApplied(
                cart_id=str(self.id),
                user_id=str(self.user_id),
                coupon_code=normalized,
                coupon_type=coupon.coupon_type.value,
                discount=coupon.value,
                total_items=self.total_items,
                subtotal=self.subtotal,
            )
        )

    def remove_coupon(self, code):
        """Remove a coupon by code. Unknown codes are ignored."""
        normalized = normalize_code(code)
        coupon = next((c for c in self.applied_coupons if c.code == normalized), None)
        if coupon is None:
            self.recalculate_totals()
            return

        self.remove_applied_coupons(coupon)
        self._touch()
        self.recalculate_totals()

        self.raise_(
            CartCouponRemoved(
                cart_id=str(self.id),
                user_id=str(self.user_id),
                coupon_code=normalized,
                total_items=self.total_items,
                subtotal=self.subtotal,
            )
        )

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------
    def expire(self):
        """Empty a cart that has passed its inactivity expiry."""
        for item in list(self.items):
            self.remove_items(item)
        for coupon in list(self.applied_coupons):
            self.remove_applied_coupons(coupon)
        self.recalculate_totals()

        self.raise_(
            CartExpired(
                cart_id=str(self.id),
                user_id=str(self.user_id),
                expired_at=utcnow(),
            )
        )
