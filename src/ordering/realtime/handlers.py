"""Realtime fan-out: pushes cart and order changes to connected clients.

Handlers run after the originating unit of work has committed. Delivery is
best-effort: transport failures are logged and never reach the caller.

Channels:
    user_<user_id>    cart:updated, order:created, order:updated
    order_<order_id>  order:status_changed
"""

import json

import structlog
from protean.utils.mixins import handle

from ordering.cart.cart import Cart
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
from ordering.domain import ordering
from ordering.order.events import (
    OrderNoteAdded,
    OrderPlaced,
    OrderRefunded,
    OrderStatusChanged,
    ReturnRequested,
    ReturnStatusUpdated,
    ShippingDetailsRecorded,
)
from ordering.order.order import Order
from ordering.realtime import get_realtime
from ordering.realtime.port import order_channel, user_channel

logger = structlog.get_logger(__name__)


def emit(channel: str, event_name: str, payload: dict) -> None:
    """Send one realtime message, logging and discarding any failure."""
    try:
        get_realtime().emit(channel, event_name, payload)
    except Exception as exc:
        logger.warning(
            "Realtime emit failed",
            channel=channel,
            event_name=event_name,
            error=str(exc),
        )


def _cart_summary(event) -> dict:
    return {"total_items": event.total_items or 0, "subtotal": event.subtotal or 0.0}


@ordering.event_handler(part_of=Cart)
class CartRealtimeHandler:
    """Broadcasts ``cart:updated`` to the cart owner's channel."""

    def _updated(self, event, action: str, **details) -> None:
        emit(
            user_channel(event.user_id),
            "cart:updated",
            {"action": action, **details, "cart": _cart_summary(event)},
        )

    @handle(CartItemAdded)
    def on_item_added(self, event: CartItemAdded) -> None:
        self._updated(event, "item_added", product_id=str(event.product_id), quantity=event.quantity)

    @handle(CartItemQuantityUpdated)
    def on_item_quantity_updated(self, event: CartItemQuantityUpdated) -> None:
        self._updated(event, "item_updated", product_id=str(event.product_id), quantity=event.new_quantity)

    @handle(CartItemRemoved)
    def on_item_removed(self, event: CartItemRemoved) -> None:
        self._updated(event, "item_removed", product_id=str(event.product_id))

    @handle(CartCleared)
    def on_cleared(self, event: CartCleared) -> None:
        self._updated(event, "cart_cleared", reason=event.reason)

    @handle(CartCouponApplied)
    def on_coupon_applied(self, event: CartCouponApplied) -> None:
        self._updated(event, "coupon_applied", coupon_code=event.coupon_code)

    @handle(CartCouponRemoved)
    def on_coupon_removed(self, event: CartCouponRemoved) -> None:
        self._updated(event, "coupon_removed", coupon_code=event.coupon_code)

    @handle(UnavailableItemsRemoved)
    def on_unavailable_items_removed(self, event: UnavailableItemsRemoved) -> None:
        self._updated(event, "items_unavailable", product_ids=json.loads(event.product_ids))

    @handle(CartExpired)
    def on_expired(self, event: CartExpired) -> None:
        emit(
            user_channel(event.user_id),
            "cart:updated",
            {"action": "cart_expired", "cart": {"total_items": 0, "subtotal": 0.0}},
        )


@ordering.event_handler(part_of=Order)
class OrderRealtimeHandler:
    """Broadcasts order lifecycle changes to the customer and order channels."""

    def _updated(self, event, payload: dict, status_changed: bool = True) -> None:
        message = {"order_id": str(event.order_id), "order_number": event.order_number, **payload}
        emit(user_channel(event.customer_id), "order:updated", message)
        if status_changed:
            emit(order_channel(event.order_id), "order:status_changed", message)

    @handle(OrderPlaced)
    def on_order_placed(self, event: OrderPlaced) -> None:
        emit(
            user_channel(event.customer_id),
            "order:created",
            {
                "order_id": str(event.order_id),
                "order_number": event.order_number,
                "status": "pending",
                "total": event.total,
                "total_items": event.total_items,
            },
        )

    @handle(OrderStatusChanged)
    def on_status_changed(self, event: OrderStatusChanged) -> None:
        self._updated(
            event,
            {"previous_status": event.previous_status, "status": event.new_status, "note": event.note},
        )

    @handle(OrderRefunded)
    def on_refunded(self, event: OrderRefunded) -> None:
        self._updated(
            event,
            {
                "previous_status": event.previous_status,
                "status": event.status,
                "payment_status": event.payment_status,
                "refund": {"refund_id": event.refund_id, "amount": event.amount},
            },
        )

    @handle(ReturnRequested)
    def on_return_requested(self, event: ReturnRequested) -> None:
        self._updated(event, {"return": {"return_id": str(event.return_id), "status": "requested"}})

    @handle(ReturnStatusUpdated)
    def on_return_status_updated(self, event: ReturnStatusUpdated) -> None:
        self._updated(event, {"return": {"return_id": str(event.return_id), "status": event.new_status}})

    @handle(ShippingDetailsRecorded)
    def on_shipping_details_recorded(self, event: ShippingDetailsRecorded) -> None:
        self._updated(
            event,
            {"shipping": {"carrier": event.carrier, "tracking_number": event.tracking_number}},
            status_changed=False,
        )

    @handle(OrderNoteAdded)
    def on_note_added(self, event: OrderNoteAdded) -> None:
        self._updated(event, {"note": event.note, "status": event.status}, status_changed=False)
