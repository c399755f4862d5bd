"""Shipping details: command and handler.

Attaches carrier and tracking information to an order that is being
processed or is already in transit.
"""

from protean import handle
from protean.fields import DateTime, Identifier, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.order import Order


@ordering.command(part_of="Order")
class RecordShippingDetails:
    order_id = Identifier(required=True)
    carrier = String(required=True, max_length=100)
    tracking_number = String(required=True, max_length=255)
    tracking_url = String(max_length=500)
    estimated_delivery = DateTime()
    updated_by = String(max_length=255)


@ordering.command_handler(part_of=Order)
class OrderFulfillmentHandler:
    @handle(RecordShippingDetails)
    def record_shipping_details(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.load(command.order_id)
        order.record_shipping_details(
            carrier=command.carrier,
            tracking_number=command.tracking_number,
            tracking_url=command.tracking_url,
            estimated_delivery=command.estimated_delivery,
            actor=command.updated_by,
        )
        repo.add(order)
