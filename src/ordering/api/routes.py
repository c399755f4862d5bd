"""FastAPI routes for the Ordering domain: carts and orders.

The calling user is identified by the ``X-User-Id`` header.
"""

import json
import math
from datetime import datetime

from fastapi import APIRouter, Header, Query
from protean.utils.globals import current_domain

from ordering.api.schemas import (
    AddToCartRequest,
    ApplyCouponRequest,
    CancelOrderRequest,
    CartResponse,
    CheckoutRequest,
    OrderIdResponse,
    OrderListResponse,
    OrderStatsResponse,
    PlaceOrderRequest,
    RefundIdResponse,
    RefundRequest,
    ReturnIdResponse,
    ReturnRequestSchema,
    ShippingDetailsRequest,
    StatusResponse,
    UpdateCartItemRequest,
    UpdateOrderStatusRequest,
    UpdateReturnStatusRequest,
)
from ordering.cart.cart import Cart, variant_from
from ordering.cart.checkout import CheckoutCart
from ordering.cart.coupons import ApplyCoupon, RemoveCoupon
from ordering.cart.items import AddToCart, RemoveFromCart, UpdateCartItem
from ordering.cart.management import ClearCart, RefreshCart
from ordering.order.cancellation import CancelOrder, ProcessRefund
from ordering.order.creation import PlaceOrder
from ordering.order.fulfillment import RecordShippingDetails
from ordering.order.order import Order
from ordering.order.returns import RequestReturn, UpdateReturnStatus
from ordering.order.status import UpdateOrderStatus
from ordering.pricing import to_cents
from ordering.utils.clock import as_utc


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------
def _iso(value: datetime | None) -> str | None:
    return as_utc(value).isoformat() if value else None


def _variant_fields(variant) -> dict:
    if variant is None:
        return {"variant_name": None, "variant_option": None}
    return {"variant_name": variant.name or None, "variant_option": variant.option or None}


def serialize_cart(cart: Cart) -> dict:
    items = sorted(cart.items, key=lambda item: as_utc(item.added_at))
    return {
        "id": str(cart.id),
        "user_id": str(cart.user_id),
        "items": [
            {
                "product_id": str(item.product_id),
                "quantity": item.quantity,
                "price": item.price,
                "subtotal": to_cents(item.price * item.quantity),
                "variant": variant_from(item.variant_name, item.variant_option),
                "added_at": item.added_at,
            }
            for item in items
        ],
        "applied_coupons": [
            {"code": c.code, "type": c.coupon_type, "discount": c.discount} for c in cart.applied_coupons
        ],
        "subtotal": cart.subtotal,
        "total_items": cart.total_items,
        "estimated_tax": cart.estimated_tax,
        "estimated_shipping": cart.estimated_shipping,
        "estimated_discount": cart.estimated_discount,
        "estimated_total": cart.estimated_total,
        "expires_at": cart.expires_at,
        "updated_at": cart.updated_at,
    }


def _address(address) -> dict | None:
    if address is None:
        return None
    return {
        "first_name": address.first_name,
        "last_name": address.last_name,
        "company": address.company,
        "address_line1": address.address_line1,
        "address_line2": address.address_line2,
        "city": address.city,
        "state": address.state,
        "postal_code": address.postal_code,
        "country": address.country,
        "phone": address.phone,
    }


def serialize_order_summary(order: Order) -> dict:
    return {
        "id": str(order.id),
        "order_number": order.order_number,
        "status": order.status,
        "payment_status": order.payment_status,
        "total": order.pricing.total,
        "currency": order.currency,
        "total_items": order.total_items,
        "created_at": _iso(order.created_at),
    }


def serialize_order(order: Order) -> dict:
    pricing = order.pricing
    shipping = order.shipping
    payment = order.payment_method
    return {
        **serialize_order_summary(order),
        "customer_id": str(order.customer_id),
        "source": order.source,
        "items": [
            {
                "product_id": str(item.product_id),
                "name": item.name,
                "sku": item.sku,
                "price": item.price,
                "quantity": item.quantity,
                "variant": variant_from(item.variant_name, item.variant_option),
                "image_url": item.image_url,
                "subtotal": item.subtotal,
            }
            for item in order.items
        ],
        "pricing": {
            "subtotal": pricing.subtotal,
            "tax": {"amount": pricing.tax_amount, "rate": pricing.tax_rate},
            "shipping": {"amount": pricing.shipping_amount, "method": pricing.shipping_method},
            "discount": {
                "amount": pricing.discount_amount,
                "code": pricing.discount_code,
                "description": pricing.discount_description,
            },
            "total": pricing.total,
        },
        "payment_method": {
            "type": payment.method_type,
            "last4": payment.last4,
            "brand": payment.brand,
            "holder_name": payment.holder_name,
            "transaction_id": payment.transaction_id,
        }
        if payment
        else None,
        "shipping_address": _address(order.shipping_address),
        "billing_address": _address(order.billing_address),
        "shipping": {
            "method": shipping.method,
            "carrier": shipping.carrier,
            "tracking_number": shipping.tracking_number,
            "tracking_url": shipping.tracking_url,
            "estimated_delivery": _iso(shipping.estimated_delivery),
            "actual_delivery": _iso(shipping.actual_delivery),
        }
        if shipping
        else None,
        "customer_note": order.customer_note,
        "timeline": [
            {
                "status": entry.status,
                "timestamp": _iso(entry.timestamp),
                "note": entry.note,
                "updated_by": entry.updated_by,
            }
            for entry in order.history
        ],
        "refunds": [
            {
                "refund_id": refund.refund_id,
                "amount": refund.amount,
                "reason": refund.reason,
                "processed_at": _iso(refund.processed_at),
                "processed_by": refund.processed_by,
            }
            for refund in order.refunds
        ],
        "returns": [
            {
                "id": str(request.id),
                "items": request.returned_items,
                "reason": request.reason,
                "status": request.status,
                "requested_at": _iso(request.requested_at),
                "processed_at": _iso(request.processed_at),
            }
            for request in order.returns
        ],
        "total_refunded": order.total_refunded,
        "refundable_amount": order.get_refundable_amount(),
        "can_cancel": order.can_cancel,
        "can_modify": order.can_modify,
        "can_return": order.can_return,
        "age_in_days": order.age_in_days,
        "updated_at": _iso(order.updated_at),
    }


def _load_cart(user_id: str) -> dict:
    cart = current_domain.repository_for(Cart).find_by_user(user_id)
    return serialize_cart(cart)


def _order_id_response(order_id: str) -> OrderIdResponse:
    order = current_domain.repository_for(Order).load(order_id)
    return OrderIdResponse(order_id=order_id, order_number=order.order_number)


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/cart", tags=["cart"])


@cart_router.get("", response_model=CartResponse)
async def get_cart(x_user_id: str = Header()) -> dict:
    current_domain.process(RefreshCart(user_id=x_user_id), asynchronous=False)
    return _load_cart(x_user_id)


@cart_router.post("/items", response_model=CartResponse)
async def add_cart_item(body: AddToCartRequest, x_user_id: str = Header()) -> dict:
    command = AddToCart(
        user_id=x_user_id,
        product_id=body.product_id,
        quantity=body.quantity,
        **_variant_fields(body.variant),
    )
    current_domain.process(command, asynchronous=False)
    return _load_cart(x_user_id)


@cart_router.put("/items/{product_id}", response_model=CartResponse)
async def update_cart_item(product_id: str, body: UpdateCartItemRequest, x_user_id: str = Header()) -> dict:
    command = UpdateCartItem(
        user_id=x_user_id,
        product_id=product_id,
        quantity=body.quantity,
        **_variant_fields(body.variant),
    )
    current_domain.process(command, asynchronous=False)
    return _load_cart(x_user_id)


@cart_router.delete("/items/{product_id}", response_model=CartResponse)
async def remove_cart_item(
    product_id: str,
    x_user_id: str = Header(),
    variant_name: str | None = Query(default=None),
    variant_option: str | None = Query(default=None),
) -> dict:
    command = RemoveFromCart(
        user_id=x_user_id,
        product_id=product_id,
        variant_name=variant_name,
        variant_option=variant_option,
    )
    current_domain.process(command, asynchronous=False)
    return _load_cart(x_user_id)


@cart_router.delete("", response_model=CartResponse)
async def clear_cart(x_user_id: str = Header()) -> dict:
    current_domain.process(ClearCart(user_id=x_user_id), asynchronous=False)
    return _load_cart(x_user_id)


@cart_router.post("/coupons", response_model=CartResponse)
async def apply_cart_coupon(body: ApplyCouponRequest, x_user_id: str = Header()) -> dict:
    current_domain.process(ApplyCoupon(user_id=x_user_id, coupon_code=body.code), asynchronous=False)
    return _load_cart(x_user_id)


@cart_router.delete("/coupons/{code}", response_model=CartResponse)
async def remove_cart_coupon(code: str, x_user_id: str = Header()) -> dict:
    current_domain.process(RemoveCoupon(user_id=x_user_id, coupon_code=code), asynchronous=False)
    return _load_cart(x_user_id)


@cart_router.post("/checkout", status_code=201, response_model=OrderIdResponse)
async def checkout_cart(body: CheckoutRequest, x_user_id: str = Header()) -> OrderIdResponse:
    command = CheckoutCart(
        user_id=x_user_id,
        shipping_address=json.dumps(body.shipping_address.model_dump()),
        billing_address=json.dumps(body.billing_address.model_dump()) if body.billing_address else None,
        payment_method=json.dumps(body.payment_method.model_dump()),
        shipping_method=body.shipping_method,
        currency=body.currency,
        customer_note=body.customer_note,
        source=body.source,
    )
    order_id = current_domain.process(command, asynchronous=False)
    return _order_id_response(order_id)


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderIdResponse)
async def place_order(body: PlaceOrderRequest, x_user_id: str = Header()) -> OrderIdResponse:
    items = [
        {"product_id": line.product_id, "quantity": line.quantity, **_variant_fields(line.variant)}
        for line in body.items
    ]
    command = PlaceOrder(
        customer_id=x_user_id,
        items=json.dumps(items),
        shipping_address=json.dumps(body.shipping_address.model_dump()),
        billing_address=json.dumps(body.billing_address.model_dump()) if body.billing_address else None,
        payment_method=json.dumps(body.payment_method.model_dump()),
        shipping_method=body.shipping_method,
        coupon_codes=json.dumps(body.coupon_codes),
        currency=body.currency,
        customer_note=body.customer_note,
        source=body.source,
    )
    order_id = current_domain.process(command, asynchronous=False)
    return _order_id_response(order_id)


@order_router.get("", response_model=OrderListResponse)
async def list_orders(
    x_user_id: str = Header(),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
) -> OrderListResponse:
    result = current_domain.repository_for(Order).list_for_customer(x_user_id, page=page, limit=limit)
    return OrderListResponse(
        orders=[serialize_order_summary(order) for order in result.items],
        page=page,
        limit=limit,
        total=result.total,
        pages=math.ceil(result.total / limit) if result.total else 0,
    )


@order_router.get("/stats", response_model=OrderStatsResponse)
async def order_stats(
    start_date: datetime | None = Query(default=None),
    end_date: datetime | None = Query(default=None),
) -> OrderStatsResponse:
    stats = current_domain.repository_for(Order).statistics(start=as_utc(start_date), end=as_utc(end_date))
    return OrderStatsResponse(**stats)


@order_router.get("/{order_id}")
async def get_order(order_id: str, x_user_id: str = Header()) -> dict:
    order = current_domain.repository_for(Order).load_for_customer(order_id, x_user_id)
    return serialize_order(order)


@order_router.put("/{order_id}/status", response_model=StatusResponse)
async def update_order_status(
    order_id: str, body: UpdateOrderStatusRequest, x_user_id: str | None = Header(default=None)
) -> StatusResponse:
    command = UpdateOrderStatus(
        order_id=order_id,
        status=body.status,
        note=body.note,
        updated_by=x_user_id,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@order_router.put("/{order_id}/cancel", response_model=StatusResponse)
async def cancel_order(order_id: str, body: CancelOrderRequest, x_user_id: str = Header()) -> StatusResponse:
    command = CancelOrder(order_id=order_id, customer_id=x_user_id, reason=body.reason)
    current_domain.process(command, asynchronous=False)
    return StatusResponse(status="cancelled")


@order_router.post("/{order_id}/refunds", status_code=201, response_model=RefundIdResponse)
async def process_refund(
    order_id: str, body: RefundRequest, x_user_id: str | None = Header(default=None)
) -> RefundIdResponse:
    command = ProcessRefund(
        order_id=order_id,
        amount=body.amount,
        reason=body.reason,
        refund_id=body.refund_id,
        processed_by=x_user_id,
    )
    refund_id = current_domain.process(command, asynchronous=False)
    return RefundIdResponse(refund_id=refund_id)


@order_router.post("/{order_id}/returns", status_code=201, response_model=ReturnIdResponse)
async def request_return(order_id: str, body: ReturnRequestSchema, x_user_id: str = Header()) -> ReturnIdResponse:
    command = RequestReturn(
        order_id=order_id,
        customer_id=x_user_id,
        items=json.dumps([item.model_dump() for item in body.items]) if body.items else None,
        reason=body.reason,
    )
    return_id = current_domain.process(command, asynchronous=False)
    return ReturnIdResponse(return_id=return_id)


@order_router.put("/{order_id}/returns/{return_id}", response_model=StatusResponse)
async def update_return_status(
    order_id: str,
    return_id: str,
    body: UpdateReturnStatusRequest,
    x_user_id: str | None = Header(default=None),
) -> StatusResponse:
    command = UpdateReturnStatus(
        order_id=order_id,
        return_id=return_id,
        status=body.status,
        processed_by=x_user_id,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse(status=body.status)


@order_router.put("/{order_id}/shipping", response_model=StatusResponse)
async def record_shipping_details(
    order_id: str, body: ShippingDetailsRequest, x_user_id: str | None = Header(default=None)
) -> StatusResponse:
    command = RecordShippingDetails(
        order_id=order_id,
        carrier=body.carrier,
        tracking_number=body.tracking_number,
        tracking_url=body.tracking_url,
        estimated_delivery=body.estimated_delivery,
        updated_by=x_user_id,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse()
