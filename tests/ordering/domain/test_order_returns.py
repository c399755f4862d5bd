"""Tests for return requests and their workflow."""

from datetime import timedelta

import pytest
from ordering.errors import IllegalTransition, NotFound, ReturnNotAllowed
from ordering.order.events import ReturnRequested, ReturnStatusUpdated
from ordering.utils.clock import utcnow


class TestRequestReturn:
    def test_request_all_items_by_default(self, order_at_status):
        order = order_at_status("delivered")
        return_id = order.request_return(reason="Wrong size")

        request = order.find_return(return_id)
        assert request.status == "requested"
        assert request.returned_items == [
            {"product_id": "prod-001", "quantity": 2, "reason": None, "condition": None}
        ]
        assert isinstance(order._events[-1], ReturnRequested)

    def test_request_specific_items(self, order_at_status):
        order = order_at_status("delivered")
        return_id = order.request_return(
            items=[{"product_id": "prod-001", "quantity": 1, "condition": "new"}],
            reason="Only needed one",
        )

        items = order.find_return(return_id).returned_items
        assert items[0]["quantity"] == 1
        assert items[0]["condition"] == "new"

    def test_order_status_unchanged(self, order_at_status):
        order = order_at_status("delivered")
        order.request_return()
        assert order.status == "delivered"

    @pytest.mark.parametrize("status", ["pending", "confirmed", "processing", "shipped", "cancelled"])
    def test_not_delivered_rejected(self, order_at_status, status):
        order = order_at_status(status)
        with pytest.raises(ReturnNotAllowed) as exc:
            order.request_return(reason="Nope")
        assert exc.value.code == "return_not_allowed"
        assert order.returns == []

    def test_outside_window_rejected(self, order_at_status):
        order = order_at_status("delivered")
        order.created_at = utcnow() - timedelta(days=45)
        with pytest.raises(ReturnNotAllowed):
            order.request_return()

    def test_quantity_above_ordered_rejected(self, order_at_status):
        order = order_at_status("delivered")
        with pytest.raises(ReturnNotAllowed):
            order.request_return(items=[{"product_id": "prod-001", "quantity": 3}])

    def test_foreign_product_rejected(self, order_at_status):
        order = order_at_status("delivered")
        with pytest.raises(ReturnNotAllowed):
            order.request_return(items=[{"product_id": "prod-999", "quantity": 1}])


class TestReturnWorkflow:
    @pytest.fixture()
    def order_with_return(self, order_at_status):
        order = order_at_status("delivered")
        return_id = order.request_return(reason="Defective")
        order._events.clear()
        return order, return_id

    def test_full_workflow(self, order_with_return):
        order, return_id = order_with_return
        for status in ("approved", "received", "processed"):
            order.update_return_status(return_id, status, actor="warehouse-1")
            assert order.find_return(return_id).status == status

        event = order._events[-1]
        assert isinstance(event, ReturnStatusUpdated)
        assert event.previous_status == "received"
        assert event.new_status == "processed"
        assert order.find_return(return_id).processed_by == "warehouse-1"

    def test_reject(self, order_with_return):
        order, return_id = order_with_return
        order.update_return_status(return_id, "rejected")
        assert order.find_return(return_id).status == "rejected"

        with pytest.raises(IllegalTransition):
            order.update_return_status(return_id, "approved")

    def test_skipping_steps_rejected(self, order_with_return):
        order, return_id = order_with_return
        with pytest.raises(IllegalTransition):
            order.update_return_status(return_id, "processed")
        assert order.find_return(return_id).status == "requested"

    def test_unknown_return_id(self, order_with_return):
        order, _ = order_with_return
        with pytest.raises(NotFound):
            order.update_return_status("missing", "approved")
