"""Shared BDD fixtures and step definitions for the Ordering domain."""

import pytest
from ordering.cart.cart import Cart
from ordering.cart.events import (
    CartCleared,
    CartCouponApplied,
    CartCouponRemoved,
    CartItemAdded,
    CartItemQuantityUpdated,
    CartItemRemoved,
)
from ordering.coupon.table_adapter import TableCouponBook
from ordering.order.events import (
    OrderPlaced,
    OrderRefunded,
    OrderStatusChanged,
    ReturnRequested,
    ReturnStatusUpdated,
)
from protean.exceptions import ValidationError
from pytest_bdd import given, parsers, then

# Map event name strings to classes for dynamic lookup in Then steps
_CART_EVENT_CLASSES = {
    "CartItemAdded": CartItemAdded,
    "CartItemQuantityUpdated": CartItemQuantityUpdated,
    "CartItemRemoved": CartItemRemoved,
    "CartCleared": CartCleared,
    "CartCouponApplied": CartCouponApplied,
    "CartCouponRemoved": CartCouponRemoved,
}

_ORDER_EVENT_CLASSES = {
    "OrderPlaced": OrderPlaced,
    "OrderStatusChanged": OrderStatusChanged,
    "OrderRefunded": OrderRefunded,
    "ReturnRequested": ReturnRequested,
    "ReturnStatusUpdated": ReturnStatusUpdated,
}


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def error():
    """Container for captured validation errors."""
    return {"exc": None}


@pytest.fixture()
def coupon_book():
    return TableCouponBook()


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given("an empty cart", target_fixture="cart")
def empty_cart():
    return Cart.create(user_id="user-001")


@given(
    parsers.cfparse("the cart holds {quantity:d} of a product priced {price:f}"),
    target_fixture="cart",
)
def cart_with_product(quantity, price):
    cart = Cart.create(user_id="user-001")
    cart.add_item("prod-001", quantity, price)
    cart._events.clear()
    return cart


@given(parsers.cfparse('an order in "{status}" status'), target_fixture="order")
def order_in_status(order_at_status, status):
    return order_at_status(status)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then("the action fails with a validation error")
def action_fails_with_validation_error(error):
    assert error["exc"] is not None, "Expected a validation error but none was raised"
    assert isinstance(error["exc"], ValidationError)


@then(parsers.cfparse('the action fails with "{code}"'))
def action_fails_with_code(error, code):
    assert error["exc"] is not None, f"Expected {code} but no error was raised"
    assert error["exc"].code == code


@then("the action succeeds")
def action_succeeds(error):
    assert error["exc"] is None, f"Unexpected error: {error['exc']}"


@then(parsers.cfparse("a {event_type} cart event is raised"))
def cart_event_raised(cart, event_type):
    event_cls = _CART_EVENT_CLASSES[event_type]
    assert any(
        isinstance(e, event_cls) for e in cart._events
    ), f"No {event_type} event found. Events: {[type(e).__name__ for e in cart._events]}"


@then(parsers.cfparse("a {event_type} order event is raised"))
def order_event_raised(order, event_type):
    event_cls = _ORDER_EVENT_CLASSES[event_type]
    assert any(
        isinstance(e, event_cls) for e in order._events
    ), f"No {event_type} event found. Events: {[type(e).__name__ for e in order._events]}"


@then(parsers.cfparse('the order status is "{status}"'))
def order_status_is(order, status):
    assert order.status == status


@then(parsers.cfparse("the cart discount is {amount:f}"))
def cart_discount_is(cart, amount):
    assert cart.estimated_discount == amount


@then(parsers.cfparse("the cart total is {amount:f}"))
def cart_total_is(cart, amount):
    assert cart.estimated_total == amount
