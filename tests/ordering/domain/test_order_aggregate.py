"""Tests for placing an Order and its derived properties."""

from datetime import timedelta

import pytest
from ordering.errors import EmptyOrder, IllegalTransition, InvalidQuantity
from ordering.order.events import OrderNoteAdded, OrderPlaced, ShippingDetailsRecorded
from ordering.order.order import OrderStatus, PaymentStatus
from ordering.utils.clock import utcnow
from protean.exceptions import ValidationError


class TestPlaceOrder:
    def test_pricing_snapshot(self, make_order):
        order = make_order()

        assert order.pricing.subtotal == 20.0
        assert order.pricing.tax_amount == 1.6
        assert order.pricing.tax_rate == 0.08
        assert order.pricing.shipping_amount == 15.0
        assert order.pricing.discount_amount == 0.0
        assert order.pricing.total == 36.6

    def test_initial_state(self, make_order):
        order = make_order()

        assert order.status == OrderStatus.PENDING.value
        assert order.payment_status == PaymentStatus.PENDING.value
        assert order.timeline == []
        assert order.refunds == []
        assert order.returns == []
        assert order.currency == "USD"
        assert order.order_number == "LUX2405230001"

    def test_item_subtotals(self, make_order):
        order = make_order(
            items=[
                {"product_id": "prod-001", "name": "Silk Scarf", "price": 10.0, "quantity": 3},
                {"product_id": "prod-002", "name": "Leather Wallet", "price": 25.0, "quantity": 1},
            ]
        )

        for item in order.items:
            assert item.subtotal == item.price * item.quantity
        assert order.pricing.subtotal == 55.0
        assert order.total_items == 4

    def test_free_shipping_above_threshold(self, make_order):
        order = make_order(items=[{"product_id": "prod-003", "name": "Sweater", "price": 120.0, "quantity": 1}])
        assert order.pricing.shipping_amount == 0.0
        assert order.pricing.total == 129.6

    def test_coupons_recorded_on_pricing(self, make_order):
        order = make_order(
            items=[{"product_id": "prod-003", "name": "Sweater", "price": 120.0, "quantity": 1}],
            coupons=[{"code": "WELCOME10", "coupon_type": "percentage", "value": 10.0}],
        )

        assert order.pricing.discount_amount == 12.0
        assert order.pricing.discount_code == "WELCOME10"
        # 120 + 9.60 tax + 0 shipping - 12
        assert order.pricing.total == 117.6

    def test_billing_defaults_to_shipping(self, make_order, shipping_address):
        order = make_order()
        assert order.billing_address.city == shipping_address["city"]
        assert order.shipping_address.full_name == "Ada Lovelace"

    def test_empty_items_rejected(self, make_order):
        with pytest.raises(EmptyOrder) as exc:
            make_order(items=[])
        assert exc.value.code == "empty_order"

    def test_zero_quantity_rejected(self, make_order):
        with pytest.raises(InvalidQuantity):
            make_order(items=[{"product_id": "prod-001", "name": "Scarf", "price": 10.0, "quantity": 0}])

    def test_unknown_payment_method_rejected(self, make_order):
        with pytest.raises(ValidationError) as exc:
            make_order(payment_method={"method_type": "barter"})
        assert "method_type" in exc.value.messages

    def test_raises_order_placed(self, make_order):
        order = make_order()

        event = order._events[-1]
        assert isinstance(event, OrderPlaced)
        assert event.order_number == "LUX2405230001"
        assert event.customer_id == "cust-001"
        assert event.total == 36.6
        assert event.total_items == 2


class TestDerivedProperties:
    @pytest.mark.parametrize("status", ["pending", "confirmed"])
    def test_can_cancel_and_modify_early(self, order_at_status, status):
        order = order_at_status(status)
        assert order.can_cancel
        assert order.can_modify

    @pytest.mark.parametrize("status", ["processing", "shipped", "delivered", "cancelled"])
    def test_cannot_cancel_later(self, order_at_status, status):
        order = order_at_status(status)
        assert not order.can_cancel
        assert not order.can_modify

    def test_can_return_when_recently_delivered(self, order_at_status):
        assert order_at_status("delivered").can_return

    def test_cannot_return_after_window(self, order_at_status):
        order = order_at_status("delivered")
        order.created_at = utcnow() - timedelta(days=31)
        assert order.age_in_days == 31
        assert not order.can_return

    def test_return_window_boundary_inclusive(self, order_at_status):
        order = order_at_status("delivered")
        order.created_at = utcnow() - timedelta(days=30, hours=1)
        assert order.age_in_days == 30
        assert order.can_return

    def test_cannot_return_before_delivery(self, order_at_status):
        assert not order_at_status("shipped").can_return


class TestShippingDetails:
    def test_record_when_processing(self, order_at_status):
        order = order_at_status("processing")
        order.record_shipping_details("DHL", "DHL-123", tracking_url="https://track.example/DHL-123")

        assert order.shipping.carrier == "DHL"
        assert order.shipping.tracking_number == "DHL-123"
        assert order.shipping.method == "standard"
        assert isinstance(order._events[-1], ShippingDetailsRecorded)

    def test_rejected_when_pending(self, order_at_status):
        order = order_at_status("pending")
        with pytest.raises(IllegalTransition):
            order.record_shipping_details("DHL", "DHL-123")

    def test_delivery_stamps_actual_delivery(self, order_at_status):
        order = order_at_status("shipped")
        order.record_shipping_details("UPS", "1Z999")
        order.update_status("delivered")

        assert order.shipping.actual_delivery is not None
        assert order.shipping.carrier == "UPS"


class TestTimelineNotes:
    def test_note_uses_current_status(self, order_at_status):
        order = order_at_status("confirmed")
        before = len(order.timeline)
        order.add_timeline_note("Gift wrap requested", actor="agent-7")

        assert len(order.timeline) == before + 1
        entry = order.history[-1]
        assert entry.status == "confirmed"
        assert entry.note == "Gift wrap requested"
        assert entry.updated_by == "agent-7"
        assert isinstance(order._events[-1], OrderNoteAdded)
