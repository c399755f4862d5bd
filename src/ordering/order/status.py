"""Order status transitions and timeline notes: commands and handler."""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from ordering.catalogue import get_catalogue
from ordering.domain import ordering
from ordering.order.order import Order, OrderStatus

logger = structlog.get_logger(__name__)


def release_order_stock(order: Order) -> None:
    """Put the quantities of a cancelled order back into catalogue stock."""
    catalogue = get_catalogue()
    for item in order.items:
        catalogue.release_stock(item.product_id, item.quantity)
    logger.info(
        "order_stock_released",
        order_id=str(order.id),
        order_number=order.order_number,
        item_count=order.total_items,
    )


@ordering.command(part_of="Order")
class UpdateOrderStatus:
    """Move an order through the transition table (administrative path)."""

    order_id = Identifier(required=True)
    status = String(required=True, max_length=20)
    note = String(max_length=1000)
    updated_by = String(max_length=255)


@ordering.command(part_of="Order")
class AddOrderNote:
    order_id = Identifier(required=True)
    note = String(required=True, max_length=1000)
    updated_by = String(max_length=255)


@ordering.command_handler(part_of=Order)
class OrderStatusHandler:
    @handle(UpdateOrderStatus)
    def update_order_status(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.load(command.order_id)
        previous = order.status
        order.update_status(command.status, note=command.note, actor=command.updated_by)
        if order.status == OrderStatus.CANCELLED.value:
            release_order_stock(order)
        repo.add(order)

        logger.info(
            "order_status_updated",
            order_id=str(order.id),
            previous_status=previous,
            new_status=order.status,
            updated_by=command.updated_by,
        )

    @handle(AddOrderNote)
    def add_order_note(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.load(command.order_id)
        order.add_timeline_note(command.note, actor=command.updated_by)
        repo.add(order)
