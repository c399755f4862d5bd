"""Cart checkout: converts the user's cart into an order and empties the cart.

The order is priced from the cart's price snapshot and its applied coupons;
the catalogue is still consulted to confirm each product is sellable in the
requested quantity. Order and cart are stored in the same unit of work.
"""

import json

import structlog
from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from ordering.cart.cart import Cart
from ordering.domain import ordering
from ordering.errors import EmptyOrder
from ordering.order.creation import place_order
from ordering.utils.clock import as_utc

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Cart")
class CheckoutCart:
    user_id = Identifier(required=True)
    shipping_address = Text(required=True)  # JSON: address dict
    billing_address = Text()  # JSON: address dict, defaults to shipping
    payment_method = Text(required=True)  # JSON: {method_type, last4, brand, ...}
    shipping_method = String(max_length=50)
    currency = String(max_length=3)
    customer_note = String(max_length=1000)
    source = String(max_length=20)


@ordering.command_handler(part_of=Cart)
class CheckoutCartHandler:
    @handle(CheckoutCart)
    def checkout_cart(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.find_by_user(command.user_id)
        if cart is None or not cart.items:
            raise EmptyOrder("Cart is empty")

        cart_items = sorted(cart.items, key=lambda item: as_utc(item.added_at))
        order = place_order(
            customer_id=command.user_id,
            lines=[
                {
                    "product_id": item.product_id,
                    "quantity": item.quantity,
                    "price": item.price,
                    "variant_name": item.variant_name,
                    "variant_option": item.variant_option,
                }
                for item in cart_items
            ],
            shipping_address=json.loads(command.shipping_address),
            billing_address=json.loads(command.billing_address) if command.billing_address else None,
            payment_method=json.loads(command.payment_method),
            shipping_method=command.shipping_method,
            coupons=[
                {"code": coupon.code, "coupon_type": coupon.coupon_type, "value": coupon.discount}
                for coupon in cart.applied_coupons
            ],
            currency=command.currency,
            customer_note=command.customer_note,
            source=command.source,
        )

        cart.clear(reason="checked_out")
        repo.add(cart)

        logger.info(
            "cart_checked_out",
            user_id=str(command.user_id),
            cart_id=str(cart.id),
            order_id=str(order.id),
            order_number=order.order_number,
        )
        return str(order.id)
