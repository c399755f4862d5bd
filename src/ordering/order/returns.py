"""Order returns: commands and handler.

Handles the return-request workflow: request, then approve or reject, then
receive and process.
"""

import json

from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.order import Order


@ordering.command(part_of="Order")
class RequestReturn:
    """Request a return of some or all items of a delivered order."""

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    items = Text()  # JSON: list of {product_id, quantity, reason, condition}; all items if omitted
    reason = String(max_length=500)


@ordering.command(part_of="Order")
class UpdateReturnStatus:
    order_id = Identifier(required=True)
    return_id = Identifier(required=True)
    status = String(required=True, max_length=20)
    processed_by = String(max_length=255)


@ordering.command_handler(part_of=Order)
class ManageReturnsHandler:
    @handle(RequestReturn)
    def request_return(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.load_for_customer(command.order_id, command.customer_id)

        items = json.loads(command.items) if isinstance(command.items, str) else command.items
        return_id = order.request_return(
            items=items,
            reason=command.reason,
            actor=str(command.customer_id),
        )
        repo.add(order)
        return return_id

    @handle(UpdateReturnStatus)
    def update_return_status(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.load(command.order_id)
        order.update_return_status(
            return_id=command.return_id,
            new_status=command.status,
            actor=command.processed_by,
        )
        repo.add(order)
