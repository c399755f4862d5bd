"""Tests for applying and removing coupons on a Cart."""

import pytest
from ordering.cart.cart import Cart
from ordering.cart.events import CartCouponApplied, CartCouponRemoved
from ordering.coupon.port import Coupon, CouponType
from ordering.coupon.table_adapter import TableCouponBook
from ordering.errors import CouponAlreadyApplied, CouponThresholdNotMet, InvalidCoupon


@pytest.fixture()
def book():
    return TableCouponBook()


@pytest.fixture()
def cart():
    return Cart.create(user_id="user-001")


class TestApplyCoupon:
    def test_percentage_coupon(self, cart, book):
        cart.add_item("prod-001", 6, 10.0)  # 60.00
        cart.apply_coupon("WELCOME10", book)

        assert [c.code for c in cart.applied_coupons] == ["WELCOME10"]
        assert cart.estimated_discount == 6.0
        # 60 + 4.80 tax + 15 shipping - 6
        assert cart.estimated_total == 73.8

    def test_code_is_normalized(self, cart, book):
        cart.add_item("prod-001", 6, 10.0)
        cart.apply_coupon("  welcome10 ", book)

        assert cart.applied_coupons[0].code == "WELCOME10"

    def test_fixed_coupon(self, cart, book):
        cart.add_item("prod-001", 8, 10.0)  # 80.00
        cart.apply_coupon("FLAT15", book)

        assert cart.estimated_discount == 15.0

    def test_unknown_code_rejected(self, cart, book):
        cart.add_item("prod-001", 6, 10.0)
        with pytest.raises(InvalidCoupon) as exc:
            cart.apply_coupon("NOPE", book)
        assert exc.value.code == "invalid_coupon"

    def test_threshold_not_met(self, cart, book):
        cart.add_item("prod-001", 2, 10.0)  # 20.00, SAVE20 needs 100
        with pytest.raises(CouponThresholdNotMet):
            cart.apply_coupon("SAVE20", book)

        assert cart.applied_coupons == []
        assert cart.estimated_discount == 0.0

    def test_duplicate_rejected(self, cart, book):
        cart.add_item("prod-001", 6, 10.0)
        cart.apply_coupon("WELCOME10", book)
        with pytest.raises(CouponAlreadyApplied):
            cart.apply_coupon("welcome10", book)
        assert len(cart.applied_coupons) == 1

    def test_stacked_coupons_computed_from_original_subtotal(self, cart, book):
        cart.add_item("prod-003", 1, 120.0)
        cart.apply_coupon("WELCOME10", book)
        cart.apply_coupon("SAVE20", book)

        # 10% + 20% of 120.00, not compounded
        assert cart.estimated_discount == 36.0

    def test_discount_clamped_at_subtotal(self, cart):
        book = TableCouponBook(coupons=[Coupon("BIGFIX", CouponType.FIXED, 500.0)])
        cart.add_item("prod-001", 1, 10.0)
        cart.apply_coupon("BIGFIX", book)

        assert cart.estimated_discount == 10.0
        assert cart.estimated_total >= 0.0

    def test_coupon_survives_subtotal_drop(self, cart, book):
        cart.add_item("prod-001", 6, 10.0)
        cart.apply_coupon("WELCOME10", book)
        cart.update_item_quantity("prod-001", 1)

        assert [c.code for c in cart.applied_coupons] == ["WELCOME10"]
        assert cart.estimated_discount == 1.0

    def test_raises_coupon_applied_event(self, cart, book):
        cart.add_item("prod-001", 6, 10.0)
        cart._events.clear()
        cart.apply_coupon("WELCOME10", book)

        event = cart._events[-1]
        assert isinstance(event, CartCouponApplied)
        assert event.coupon_code == "WELCOME10"
        assert event.coupon_type == "percentage"


class TestRemoveCoupon:
    def test_remove_restores_totals(self, cart, book):
        cart.add_item("prod-001", 6, 10.0)
        before = cart.estimated_total
        cart.apply_coupon("WELCOME10", book)
        cart._events.clear()

        cart.remove_coupon("welcome10")

        assert cart.applied_coupons == []
        assert cart.estimated_total == before
        assert isinstance(cart._events[-1], CartCouponRemoved)

    def test_remove_unknown_code_is_noop(self, cart, book):
        cart.add_item("prod-001", 6, 10.0)
        cart.apply_coupon("WELCOME10", book)
        cart.remove_coupon("FLAT15")
        assert len(cart.applied_coupons) == 1
