"""Order placement: command, handler and the placement routine shared with cart checkout.

Prices, names and SKUs are taken from the catalogue (or from the cart's
price snapshot at checkout); client-supplied totals are never trusted. The
order number is allocated and stock is reserved inside the same unit of work
that stores the order.
"""

import json

import structlog
from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from ordering.catalogue import get_catalogue
from ordering.coupon import get_coupon_book
from ordering.coupon.port import normalize_code
from ordering.domain import ordering
from ordering.errors import CouponThresholdNotMet, EmptyOrder, InvalidCoupon
from ordering.order.numbering import next_order_number
from ordering.order.order import Order, OrderSource
from ordering.pricing import compute_subtotal

logger = structlog.get_logger(__name__)


def _loads(value):
    if value is None:
        return None
    return json.loads(value) if isinstance(value, str) else value


def resolve_coupons(codes, subtotal) -> list[dict]:
    """Look up coupon codes and check each one's minimum against ``subtotal``."""
    book = get_coupon_book()
    resolved = []
    for raw in codes:
        code = normalize_code(raw)
        if any(c["code"] == code for c in resolved):
            continue
        coupon = book.lookup(code)
        if coupon is None:
            raise InvalidCoupon(f"Invalid coupon code: {code}")
        if subtotal < coupon.min_amount:
            raise CouponThresholdNotMet(f"Minimum order amount of ${coupon.min_amount:.2f} required for coupon {code}")
        resolved.append({"code": code, "coupon_type": coupon.coupon_type.value, "value": coupon.value})
    return resolved


def place_order(
    customer_id,
    lines,
    shipping_address,
    payment_method,
    billing_address=None,
    shipping_method=None,
    coupons=(),
    coupon_codes=(),
    currency=None,
    customer_note=None,
    source=OrderSource.WEB.value,
) -> Order:
    """Build, number and stage a new order, reserving catalogue stock for it.

    Args:
        lines: List of dicts with product_id, quantity and optional
               variant_name, variant_option and price. Lines without a
               price are charged the current catalogue price.
        coupons: Already-resolved coupons (code, coupon_type, value).
        coupon_codes: Raw codes to resolve against the coupon book.
    """
    if not lines:
        raise EmptyOrder("An order must contain at least one item")

    catalogue = get_catalogue()
    items_data = []
    for line in lines:
        product = catalogue.require_sellable(line["product_id"], line["quantity"])
        price = line.get("price")
        items_data.append(
            {
                "product_id": product.product_id,
                "name": product.name,
                "sku": product.sku,
                "price": product.price if price is None else price,
                "quantity": line["quantity"],
                "variant_name": line.get("variant_name"),
                "variant_option": line.get("variant_option"),
                "image_url": product.image_url,
            }
        )

    coupons = list(coupons)
    if coupon_codes:
        subtotal = compute_subtotal((item["price"], item["quantity"]) for item in items_data)
        coupons += resolve_coupons(coupon_codes, subtotal)

    order = Order.place(
        order_number=next_order_number(),
        customer_id=customer_id,
        items_data=items_data,
        shipping_address=shipping_address,
        billing_address=billing_address,
        payment_method=payment_method,
        shipping_method=shipping_method,
        coupons=coupons,
        currency=currency,
        customer_note=customer_note,
        source=source or OrderSource.WEB.value,
    )

    for item in order.items:
        catalogue.reserve_stock(item.product_id, item.quantity)
    current_domain.repository_for(Order).add(order)

    logger.info(
        "order_placed",
        order_id=str(order.id),
        order_number=order.order_number,
        customer_id=str(customer_id),
        total=order.pricing.total,
        item_count=order.total_items,
    )
    return order


@ordering.command(part_of="Order")
class PlaceOrder:
    customer_id = Identifier(required=True)
    items = Text(required=True)  # JSON: list of {product_id, quantity, variant_name, variant_option}
    shipping_address = Text(required=True)  # JSON: address dict
    billing_address = Text()  # JSON: address dict, defaults to shipping
    payment_method = Text(required=True)  # JSON: {method_type, last4, brand, ...}
    shipping_method = String(max_length=50)
    coupon_codes = Text()  # JSON: list of codes
    currency = String(max_length=3)
    customer_note = String(max_length=1000)
    source = String(max_length=20)


@ordering.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place(self, command):
        order = place_order(
            customer_id=command.customer_id,
            lines=_loads(command.items) or [],
            shipping_address=_loads(command.shipping_address),
            billing_address=_loads(command.billing_address),
            payment_method=_loads(command.payment_method),
            shipping_method=command.shipping_method,
            coupon_codes=_loads(command.coupon_codes) or [],
            currency=command.currency,
            customer_note=command.customer_note,
            source=command.source,
        )
        return str(order.id)
