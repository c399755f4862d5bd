"""Domain events for the Order aggregate.

Events are raised by the aggregate inside the unit of work and dispatched to
event handlers after commit. Every event carries the order id, the order
number and the owning customer so that notification handlers can route
messages without reloading the order.
"""

from protean.fields import DateTime, Float, Identifier, Integer, String, Text

from ordering.domain import ordering


@ordering.event(part_of="Order")
class OrderPlaced:
    """A new order was placed, either from a cart or from explicit items."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    customer_id = Identifier(required=True)
    items = Text(required=True)  # JSON: list of {product_id, quantity, price}
    total_items = Integer(required=True)
    subtotal = Float(required=True)
    tax_amount = Float()
    shipping_amount = Float()
    discount_amount = Float()
    total = Float(required=True)
    currency = String(default="USD")
    placed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderStatusChanged:
    """The order moved to a new status through the transition table."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    customer_id = Identifier(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    note = String()
    updated_by = String()
    changed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderRefunded:
    """A (partial or full) refund was recorded against the order."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    customer_id = Identifier(required=True)
    refund_id = String(required=True)
    amount = Float(required=True)
    total_refunded = Float(required=True)
    refundable_amount = Float(required=True)
    payment_status = String(required=True)
    previous_status = String(required=True)
    status = String(required=True)
    refunded_at = DateTime(required=True)


@ordering.event(part_of="Order")
class ReturnRequested:
    """The customer asked to return some or all items of a delivered order."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    customer_id = Identifier(required=True)
    return_id = Identifier(required=True)
    items = Text(required=True)  # JSON: list of returned item dicts
    reason = String()
    requested_at = DateTime(required=True)


@ordering.event(part_of="Order")
class ReturnStatusUpdated:
    """A return request advanced through its own workflow."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    customer_id = Identifier(required=True)
    return_id = Identifier(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    processed_by = String()
    updated_at = DateTime(required=True)


@ordering.event(part_of="Order")
class ShippingDetailsRecorded:
    """Carrier and tracking information was attached to the order."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    customer_id = Identifier(required=True)
    carrier = String(required=True)
    tracking_number = String(required=True)
    tracking_url = String()
    estimated_delivery = DateTime()
    recorded_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderNoteAdded:
    """A free-form note was appended to the order timeline."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    customer_id = Identifier(required=True)
    status = String(required=True)
    note = String(required=True)
    updated_by = String()
    added_at = DateTime(required=True)
