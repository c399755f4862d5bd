"""Pydantic request/response schemas for the Ordering API.

These are external contracts (anti-corruption layer), separate from
internal Protean commands.
"""

from datetime import datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class VariantSchema(BaseModel):
    name: str = ""
    option: str = ""


class AddressSchema(BaseModel):
    first_name: str
    last_name: str
    company: str | None = None
    address_line1: str
    address_line2: str | None = None
    city: str
    state: str
    postal_code: str
    country: str
    phone: str | None = None


class PaymentMethodSchema(BaseModel):
    method_type: str = Field(alias="type")
    last4: str | None = None
    brand: str | None = None
    holder_name: str | None = None
    transaction_id: str | None = None

    model_config = {"populate_by_name": True}


# ---------------------------------------------------------------------------
# Cart Request Schemas
# ---------------------------------------------------------------------------
class AddToCartRequest(BaseModel):
    product_id: str
    quantity: int = 1
    variant: VariantSchema | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "product_id": "prod-001",
                    "quantity": 2,
                    "variant": {"name": "Size", "option": "M"},
                }
            ]
        }
    }


class UpdateCartItemRequest(BaseModel):
    quantity: int
    variant: VariantSchema | None = None


class ApplyCouponRequest(BaseModel):
    code: str = Field(min_length=1)


class CheckoutRequest(BaseModel):
    shipping_address: AddressSchema
    billing_address: AddressSchema | None = None
    payment_method: PaymentMethodSchema
    shipping_method: str | None = None
    currency: str | None = None
    customer_note: str | None = Field(default=None, max_length=1000)
    source: str | None = None


# ---------------------------------------------------------------------------
# Order Request Schemas
# ---------------------------------------------------------------------------
class OrderLineSchema(BaseModel):
    product_id: str
    quantity: int
    variant: VariantSchema | None = None


class PlaceOrderRequest(CheckoutRequest):
    items: list[OrderLineSchema]
    coupon_codes: list[str] = []


class UpdateOrderStatusRequest(BaseModel):
    status: str
    note: str | None = None


class CancelOrderRequest(BaseModel):
    reason: str | None = None


class RefundRequest(BaseModel):
    amount: float
    reason: str | None = None
    refund_id: str | None = None


class ReturnItemSchema(BaseModel):
    product_id: str
    quantity: int
    reason: str | None = None
    condition: str | None = None


class ReturnRequestSchema(BaseModel):
    items: list[ReturnItemSchema] = []
    reason: str | None = None


class UpdateReturnStatusRequest(BaseModel):
    status: str


class ShippingDetailsRequest(BaseModel):
    carrier: str
    tracking_number: str
    tracking_url: str | None = None
    estimated_delivery: datetime | None = None


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class CartItemResponse(BaseModel):
    product_id: str
    quantity: int
    price: float
    subtotal: float
    variant: VariantSchema | None = None
    added_at: datetime | None = None


class AppliedCouponResponse(BaseModel):
    code: str
    type: str
    discount: float


class CartResponse(BaseModel):
    id: str
    user_id: str
    items: list[CartItemResponse]
    applied_coupons: list[AppliedCouponResponse]
    subtotal: float
    total_items: int
    estimated_tax: float
    estimated_shipping: float
    estimated_discount: float
    estimated_total: float
    expires_at: datetime | None = None
    updated_at: datetime | None = None


class OrderIdResponse(BaseModel):
    order_id: str
    order_number: str | None = None


class RefundIdResponse(BaseModel):
    refund_id: str


class ReturnIdResponse(BaseModel):
    return_id: str


class StatusResponse(BaseModel):
    status: str = "ok"


class OrderListResponse(BaseModel):
    orders: list[dict]
    page: int
    limit: int
    total: int
    pages: int


class OrderStatsResponse(BaseModel):
    total_orders: int
    total_revenue: float
    average_order_value: float
    total_items: int
