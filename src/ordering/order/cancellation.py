"""Order cancellation and refund: commands and handler."""

import structlog
from protean import handle
from protean.fields import Float, Identifier, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.order import Order
from ordering.order.status import release_order_stock

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class CancelOrder:
    """Customer-facing cancellation of the customer's own order."""

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    reason = String(max_length=500)


@ordering.command(part_of="Order")
class ProcessRefund:
    order_id = Identifier(required=True)
    amount = Float(required=True)
    reason = String(max_length=500)
    refund_id = String(max_length=255)  # Optional: gateway reference, generated when omitted
    processed_by = String(max_length=255)


@ordering.command_handler(part_of=Order)
class CancelOrderHandler:
    @handle(CancelOrder)
    def cancel_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.load_for_customer(command.order_id, command.customer_id)
        order.cancel(reason=command.reason, actor=str(command.customer_id))
        release_order_stock(order)
        repo.add(order)

        logger.info(
            "order_cancelled",
            order_id=str(order.id),
            order_number=order.order_number,
            reason=command.reason,
        )

    @handle(ProcessRefund)
    def process_refund(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.load(command.order_id)
        refund_id = order.process_refund(
            amount=command.amount,
            reason=command.reason,
            refund_id=command.refund_id,
            actor=command.processed_by,
        )
        repo.add(order)

        logger.info(
            "order_refund_processed",
            order_id=str(order.id),
            refund_id=refund_id,
            amount=command.amount,
            payment_status=order.payment_status,
        )
        return refund_id
