"""Domain events for the Cart aggregate.

Every cart event carries the owning user and the cart totals after the change
so that downstream consumers (realtime fan-out, analytics) never need to load
the cart to react.
"""

from protean.fields import DateTime, Float, Identifier, Integer, String, Text

from ordering.domain import ordering


@ordering.event(part_of="Cart")
class CartItemAdded:
    """A product was added to the cart, or its quantity was increased by a repeated add."""

    __version__ = 1

    cart_id = Identifier(required=True)
    user_id = Identifier(required=True)
    product_id = Identifier(required=True)
    variant_name = String()
    variant_option = String()
    quantity = Integer(required=True)
    price = Float(required=True)
    total_items = Integer(required=True)
    subtotal = Float(required=True)


@ordering.event(part_of="Cart")
class CartItemQuantityUpdated:
    """The quantity of a cart line was set to a new value."""

    __version__ = 1

    cart_id = Identifier(required=True)
    user_id = Identifier(required=True)
    product_id = Identifier(required=True)
    variant_name = String()
    variant_option = String()
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)
    total_items = Integer(required=True)
    subtotal = Float(required=True)


@ordering.event(part_of="Cart")
class CartItemRemoved:
    """A line was removed from the cart."""

    __version__ = 1

    cart_id = Identifier(required=True)
    user_id = Identifier(required=True)
    product_id = Identifier(required=True)
    variant_name = String()
    variant_option = String()
    total_items = Integer(required=True)
    subtotal = Float(required=True)


@ordering.event(part_of="Cart")
class CartCleared:
    """All items and coupons were removed from the cart."""

    __version__ = 1

    cart_id = Identifier(required=True)
    user_id = Identifier(required=True)
    reason = String()
    total_items = Integer(default=0)
    subtotal = Float(default=0.0)


@ordering.event(part_of="Cart")
class CartCouponApplied:
    """A coupon code was applied to the cart."""

    __version__ = 1

    cart_id = Identifier(required=True)
    user_id = Identifier(required=True)
    coupon_code = String(required=True)
    coupon_type = String(required=True)
    discount = Float(required=True)
    total_items = Integer(required=True)
    subtotal = Float(required=True)


@ordering.event(part_of="Cart")
class CartCouponRemoved:
    """A coupon code was removed from the cart."""

    __version__ = 1

    cart_id = Identifier(required=True)
    user_id = Identifier(required=True)
    coupon_code = String(required=True)
    total_items = Integer(required=True)
    subtotal = Float(required=True)


@ordering.event(part_of="Cart")
class UnavailableItemsRemoved:
    """Lines referencing products that are no longer sellable were dropped."""

    __version__ = 1

    cart_id = Identifier(required=True)
    user_id = Identifier(required=True)
    product_ids = Text(required=True)  # JSON: list of product ids
    total_items = Integer(required=True)
    subtotal = Float(required=True)


@ordering.event(part_of="Cart")
class CartExpired:
    """A cart passed its inactivity expiry and was emptied."""

    __version__ = 1

    cart_id = Identifier(required=True)
    user_id = Identifier(required=True)
    expired_at = DateTime(required=True)
