"""Order aggregate (CQRS): an immutable pricing snapshot plus a fulfilment lifecycle.

Orders are standard CQRS aggregates persisted through the repository. Items
and pricing are fixed when the order is placed; afterwards only the lifecycle
changes: status transitions, refunds, return requests, shipping details and
timeline notes.

State machine:
    pending → confirmed → processing → shipped → delivered → returned → refunded
    pending/confirmed/processing → cancelled
    shipped → returned

Reaching the full refund amount forces ``refunded`` from any state.
"""

import json
from enum import Enum
from uuid import uuid4

from protean.exceptions import ValidationError
from protean.fields import (
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)

from ordering import settings
from ordering.domain import ordering
from ordering.errors import (
    EmptyOrder,
    IllegalTransition,
    NotFound,
    RefundExceedsTotal,
    ReturnNotAllowed,
)
from ordering.order.events import (
    OrderNoteAdded,
    OrderPlaced,
    OrderRefunded,
    OrderStatusChanged,
    ReturnRequested,
    ReturnStatusUpdated,
    ShippingDetailsRecorded,
)
from ordering.pricing import PricingPolicy, compute_pricing, line_subtotal, to_cents
from ordering.utils.clock import as_utc, utcnow


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"
    RETURNED = "returned"


class PaymentStatus(Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    PAID = "paid"
    FAILED = "failed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"
    PARTIALLY_REFUNDED = "partially_refunded"


class PaymentMethodType(Enum):
    CREDIT_CARD = "credit_card"
    DEBIT_CARD = "debit_card"
    PAYPAL = "paypal"
    STRIPE = "stripe"
    BANK_TRANSFER = "bank_transfer"
    CASH_ON_DELIVERY = "cash_on_delivery"


class Currency(Enum):
    USD = "USD"
    EUR = "EUR"
    GBP = "GBP"
    CAD = "CAD"
    AUD = "AUD"


class OrderSource(Enum):
    WEB = "web"
    MOBILE = "mobile"
    ADMIN = "admin"
    API = "api"


class ReturnStatus(Enum):
    REQUESTED = "requested"
    APPROVED = "approved"
    REJECTED = "rejected"
    RECEIVED = "received"
    PROCESSED = "processed"


class ItemCondition(Enum):
    NEW = "new"
    USED = "used"
    DAMAGED = "damaged"


# State machine transition map
_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED, OrderStatus.RETURNED},
    OrderStatus.DELIVERED: {OrderStatus.RETURNED},
    OrderStatus.CANCELLED: set(),  # Terminal
    OrderStatus.REFUNDED: set(),  # Terminal
    OrderStatus.RETURNED: {OrderStatus.REFUNDED},
}

# Customer-facing cancellation and item/address edits
_MODIFIABLE_STATES = {OrderStatus.PENDING, OrderStatus.CONFIRMED}

# Shipping details can be attached while the parcel is being prepared or in transit
_SHIPPABLE_STATES = {OrderStatus.PROCESSING, OrderStatus.SHIPPED}

_RETURN_TRANSITIONS = {
    ReturnStatus.REQUESTED: {ReturnStatus.APPROVED, ReturnStatus.REJECTED},
    ReturnStatus.APPROVED: {ReturnStatus.RECEIVED},
    ReturnStatus.RECEIVED: {ReturnStatus.PROCESSED},
    ReturnStatus.REJECTED: set(),
    ReturnStatus.PROCESSED: set(),
}


def transitions_from(status) -> set[str]:
    """Statuses reachable in one step from ``status`` through the transition table."""
    return {s.value for s in _VALID_TRANSITIONS[OrderStatus(status)]}


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@ordering.value_object(part_of="Order")
class Address:
    """A delivery or billing address captured when the order is placed."""

    first_name = String(required=True, max_length=50)
    last_name = String(required=True, max_length=50)
    company = String(max_length=100)
    address_line1 = String(required=True, max_length=255)
    address_line2 = String(max_length=255)
    city = String(required=True, max_length=100)
    state = String(required=True, max_length=100)
    postal_code = String(required=True, max_length=20)
    country = String(required=True, max_length=100)
    phone = String(max_length=30)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


@ordering.value_object(part_of="Order")
class PaymentMethod:
    method_type = String(required=True, choices=PaymentMethodType)
    last4 = String(max_length=4)
    brand = String(max_length=50)
    holder_name = String(max_length=100)
    transaction_id = String(max_length=255)


@ordering.value_object(part_of="Order")
class OrderPricing:
    """Financial snapshot of an order, locked when the order is placed.

    ``total`` always equals ``subtotal + tax_amount + shipping_amount -
    discount_amount`` clamped at zero, as produced by the pricing calculator.
    """

    subtotal = Float(default=0.0)
    tax_amount = Float(default=0.0)
    tax_rate = Float(default=0.0)
    shipping_amount = Float(default=0.0)
    shipping_method = String(max_length=50)
    discount_amount = Float(default=0.0)
    discount_code = String(max_length=100)
    discount_description = String(max_length=255)
    total = Float(default=0.0)


@ordering.value_object(part_of="Order")
class ShippingDetails:
    method = String(max_length=50)
    carrier = String(max_length=100)
    tracking_number = String(max_length=255)
    tracking_url = String(max_length=500)
    estimated_delivery = DateTime()
    actual_delivery = DateTime()


_SHIPPING_FIELDS = ("method", "carrier", "tracking_number", "tracking_url", "estimated_delivery", "actual_delivery")


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@ordering.entity(part_of="Order")
class OrderItem:
    """A priced line of an order. ``subtotal`` is always ``price * quantity``."""

    product_id = Identifier(required=True)
    name = String(required=True, max_length=255)
    sku = String(max_length=50)
    price = Float(required=True, min_value=0.0)
    quantity = Integer(required=True, min_value=1)
    variant_name = String(max_length=100)
    variant_option = String(max_length=100)
    image_url = String(max_length=500)
    subtotal = Float(required=True, min_value=0.0)


@ordering.entity(part_of="Order")
class TimelineEntry:
    status = String(required=True, choices=OrderStatus)
    timestamp = DateTime(required=True)
    note = String(max_length=1000)
    updated_by = String(max_length=255)


@ordering.entity(part_of="Order")
class Refund:
    refund_id = String(required=True, max_length=255)
    amount = Float(required=True, min_value=0.0)
    reason = String(max_length=500)
    processed_at = DateTime(required=True)
    processed_by = String(max_length=255)


@ordering.entity(part_of="Order")
class ReturnRequest:
    items = Text(required=True)  # JSON: list of {product_id, quantity, reason, condition}
    reason = String(max_length=500)
    status = String(choices=ReturnStatus, default=ReturnStatus.REQUESTED.value)
    requested_at = DateTime(required=True)
    processed_at = DateTime()
    processed_by = String(max_length=255)

    @property
    def returned_items(self) -> list[dict]:
        return json.loads(self.items) if self.items else []


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@ordering.aggregate
class Order:
    order_number = String(required=True, max_length=20, unique=True)
    customer_id = Identifier(required=True)
    items = HasMany(OrderItem)
    pricing = ValueObject(OrderPricing)
    currency = String(choices=Currency, default=Currency.USD.value)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    payment_status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    payment_method = ValueObject(PaymentMethod)
    shipping_address = ValueObject(Address)
    billing_address = ValueObject(Address)
    shipping = ValueObject(ShippingDetails)
    customer_note = String(max_length=1000)
    timeline = HasMany(TimelineEntry)
    refunds = HasMany(Refund)
    returns = HasMany(ReturnRequest)
    source = String(choices=OrderSource, default=OrderSource.WEB.value)
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        order_number,
        customer_id,
        items_data,
        shipping_address,
        payment_method,
        billing_address=None,
        shipping_method=None,
        coupons=(),
        currency=None,
        customer_note=None,
        source=OrderSource.WEB.value,
        policy: PricingPolicy | None = None,
    ):
        """Place a new order and compute its pricing snapshot.

        Args:
            order_number: Pre-allocated human-readable number.
            customer_id: The customer placing the order.
            items_data: List of dicts with product_id, name, sku, price,
                        quantity and optional variant_name, variant_option,
                        image_url.
            shipping_address: Address dict.
            payment_method: Dict with method_type and optional card details.
            billing_address: Address dict; defaults to the shipping address.
            coupons: List of dicts with code, coupon_type and value.
        """
        if not items_data:
            raise EmptyOrder("An order must contain at least one item")

        lines = []
        order_items = []
        for data in items_data:
            subtotal = line_subtotal(data["price"], data["quantity"])
            lines.append((data["price"], data["quantity"]))
            order_items.append(
                OrderItem(
                    product_id=data["product_id"],
                    name=data["name"],
                    sku=data.get("sku"),
                    price=data["price"],
                    quantity=data["quantity"],
                    variant_name=data.get("variant_name") or None,
                    variant_option=data.get("variant_option") or None,
                    image_url=data.get("image_url"),
                    subtotal=subtotal,
                )
            )

        breakdown = compute_pricing(
            lines=lines,
            coupons=[(c["coupon_type"], c["value"]) for c in coupons],
            policy=policy,
        )
        codes = [c["code"] for c in coupons]
        pricing = OrderPricing(
            subtotal=breakdown.subtotal,
            tax_amount=breakdown.tax_amount,
            tax_rate=breakdown.tax_rate,
            shipping_amount=breakdown.shipping_amount,
            shipping_method=shipping_method or settings.STANDARD_SHIPPING_METHOD,
            discount_amount=breakdown.discount_amount,
            discount_code=",".join(codes) if codes else None,
            discount_description=f"Coupons applied: {', '.join(codes)}" if codes else None,
            total=breakdown.total,
        )

        now = utcnow()
        order = cls(
            order_number=order_number,
            customer_id=customer_id,
            pricing=pricing,
            currency=currency or settings.DEFAULT_CURRENCY,
            status=OrderStatus.PENDING.value,
            payment_status=PaymentStatus.PENDING.value,
            payment_method=PaymentMethod(**payment_method),
            shipping_address=Address(**shipping_address),
            billing_address=Address(**(billing_address or shipping_address)),
            shipping=ShippingDetails(method=pricing.shipping_method),
            customer_note=customer_note,
            source=source,
            created_at=now,
            updated_at=now,
        )
        for item in order_items:
            order.add_items(item)

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                order_number=order.order_number,
                customer_id=str(customer_id),
                items=json.dumps(
                    [
                        {"product_id": str(item.product_id), "quantity": item.quantity, "price": item.price}
                        for item in order_items
                    ]
                ),
                total_items=order.total_items,
                subtotal=pricing.subtotal,
                tax_amount=pricing.tax_amount,
                shipping_amount=pricing.shipping_amount,
                discount_amount=pricing.discount_amount,
                total=pricing.total,
                currency=order.currency,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Derived state
    # -------------------------------------------------------------------
    @property
    def total_items(self) -> int:
        return sum(item.quantity for item in self.items)

    @property
    def can_cancel(self) -> bool:
        return OrderStatus(self.status) in _MODIFIABLE_STATES

    @property
    def can_modify(self) -> bool:
        return OrderStatus(self.status) in _MODIFIABLE_STATES

    @property
    def age_in_days(self) -> int:
        return self.age_on(utcnow())

    def age_on(self, now) -> int:
        if self.created_at is None:
            return 0
        return (now - as_utc(self.created_at)).days

    @property
    def can_return(self) -> bool:
        return self.can_return_on(utcnow())

    def can_return_on(self, now) -> bool:
        return (
            OrderStatus(self.status) == OrderStatus.DELIVERED
            and self.age_on(now) <= settings.RETURN_WINDOW_DAYS
        )

    @property
    def total_refunded(self) -> float:
        return to_cents(sum(refund.amount for refund in self.refunds))

    def get_refundable_amount(self) -> float:
        return to_cents(max(0.0, self.pricing.total - self.total_refunded))

    @property
    def history(self) -> list[TimelineEntry]:
        """Timeline entries in chronological order."""
        return sorted(self.timeline, key=lambda entry: as_utc(entry.timestamp))

    def find_return(self, return_id) -> ReturnRequest:
        request = next((r for r in self.returns if str(r.id) == str(return_id)), None)
        if request is None:
            raise NotFound(f"Return request {return_id} not found", field="return_id")
        return request

    def _replace_shipping(self, **changes):
        current = {name: getattr(self.shipping, name) for name in _SHIPPING_FIELDS} if self.shipping else {}
        current.setdefault("method", settings.STANDARD_SHIPPING_METHOD)
        self.shipping = ShippingDetails(**{**current, **changes})

    def _log(self, status, note, actor, now):
        self.add_timeline(
            TimelineEntry(
                status=status,
                timestamp=now,
                note=note,
                updated_by=actor,
            )
        )
        self.updated_at = now

    # -------------------------------------------------------------------
    # Status transitions
    # -------------------------------------------------------------------
    def update_status(self, new_status, note=None, actor=None):
        """Move the order to ``new_status`` if the transition table allows it.

        Rejected transitions leave status and timeline untouched.
        """
        try:
            target = OrderStatus(new_status)
        except ValueError:
            raise IllegalTransition(f"Unknown order status: {new_status}") from None

        current = OrderStatus(self.status)
        if target not in _VALID_TRANSITIONS[current]:
            raise IllegalTransition(f"Cannot transition from {current.value} to {target.value}")

        now = utcnow()
        self.status = target.value
        note = note or f"Order status changed to {target.value}"
        self._log(target.value, note, actor, now)

        if target == OrderStatus.DELIVERED:
            self._replace_shipping(actual_delivery=now)

        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                order_number=self.order_number,
                customer_id=str(self.customer_id),
                previous_status=current.value,
                new_status=target.value,
                note=note,
                updated_by=actor,
                changed_at=now,
            )
        )

    def cancel(self, reason=None, actor=None):
        """Customer-facing cancellation, only while the order is pending or confirmed."""
        if not self.can_cancel:
            raise IllegalTransition(f"Order cannot be cancelled in {self.status} state")
        self.update_status(
            OrderStatus.CANCELLED.value,
            note=f"Cancelled by customer: {reason}" if reason else "Cancelled by customer",
            actor=actor,
        )

    # -------------------------------------------------------------------
    # Refunds
    # -------------------------------------------------------------------
    def process_refund(self, amount, reason=None, refund_id=None, actor=None):
        """Record a refund. Reaching the order total forces the order to ``refunded``."""
        if amount is None or amount <= 0:
            raise ValidationError({"amount": ["Refund amount must be greater than zero"]})

        amount = to_cents(amount)
        if to_cents(self.total_refunded + amount) > self.pricing.total:
            raise RefundExceedsTotal(
                f"Refund of {amount:.2f} exceeds refundable amount {self.get_refundable_amount():.2f}"
            )

        now = utcnow()
        refund_id = refund_id or str(uuid4())
        self.add_refunds(
            Refund(
                refund_id=refund_id,
                amount=amount,
                reason=reason,
                processed_at=now,
                processed_by=actor,
            )
        )

        previous_status = self.status
        if self.total_refunded >= self.pricing.total:
            self.payment_status = PaymentStatus.REFUNDED.value
            if self.status != OrderStatus.REFUNDED.value:
                self.status = OrderStatus.REFUNDED.value
                self._log(OrderStatus.REFUNDED.value, f"Order fully refunded ({self.total_refunded:.2f})", actor, now)
        else:
            self.payment_status = PaymentStatus.PARTIALLY_REFUNDED.value
        self.updated_at = now

        self.raise_(
            OrderRefunded(
                order_id=str(self.id),
                order_number=self.order_number,
                customer_id=str(self.customer_id),
                refund_id=refund_id,
                amount=amount,
                total_refunded=self.total_refunded,
                refundable_amount=self.get_refundable_amount(),
                payment_status=self.payment_status,
                previous_status=previous_status,
                status=self.status,
                refunded_at=now,
            )
        )
        return refund_id

    # -------------------------------------------------------------------
    # Returns
    # -------------------------------------------------------------------
    def _normalize_return_items(self, items) -> list[dict]:
        ordered = {}
        for line in self.items:
            ordered[str(line.product_id)] = ordered.get(str(line.product_id), 0) + line.quantity

        if not items:
            return [{"product_id": pid, "quantity": qty, "reason": None, "condition": None} for pid, qty in ordered.items()]

        normalized = []
        for entry in items:
            product_id = str(entry["product_id"])
            quantity = entry.get("quantity") or 0
            if product_id not in ordered:
                raise ReturnNotAllowed(f"Product {product_id} is not part of this order", field="items")
            if quantity < 1 or quantity > ordered[product_id]:
                raise ReturnNotAllowed(
                    f"Return quantity for product {product_id} must be between 1 and {ordered[product_id]}",
                    field="items",
                )
            condition = entry.get("condition")
            if condition is not None:
                try:
                    condition = ItemCondition(condition).value
                except ValueError:
                    raise ReturnNotAllowed(f"Unknown item condition: {condition}", field="items") from None
            normalized.append(
                {
                    "product_id": product_id,
                    "quantity": quantity,
                    "reason": entry.get("reason"),
                    "condition": condition,
                }
            )
        return normalized

    def request_return(self, items=None, reason=None, actor=None, now=None):
        """Open a return request on a delivered order inside the return window.

        ``items`` lists {product_id, quantity, reason, condition}; when omitted
        every ordered line is returned in full.
        """
        now = now or utcnow()
        if not self.can_return_on(now):
            raise ReturnNotAllowed(
                f"Returns are only accepted for delivered orders within {settings.RETURN_WINDOW_DAYS} days"
            )

        returned = self._normalize_return_items(items)
        request = ReturnRequest(
            items=json.dumps(returned),
            reason=reason,
            status=ReturnStatus.REQUESTED.value,
            requested_at=now,
        )
        self.add_returns(request)
        self._log(self.status, f"Return requested: {reason}" if reason else "Return requested", actor, now)

        self.raise_(
            ReturnRequested(
                order_id=str(self.id),
                order_number=self.order_number,
                customer_id=str(self.customer_id),
                return_id=str(request.id),
                items=request.items,
                reason=reason,
                requested_at=now,
            )
        )
        return str(request.id)

    def update_return_status(self, return_id, new_status, actor=None):
        request = self.find_return(return_id)
        try:
            target = ReturnStatus(new_status)
        except ValueError:
            raise IllegalTransition(f"Unknown return status: {new_status}") from None

        current = ReturnStatus(request.status)
        if target not in _RETURN_TRANSITIONS[current]:
            raise IllegalTransition(f"Cannot move return from {current.value} to {target.value}")

        now = utcnow()
        request.status = target.value
        request.processed_at = now
        request.processed_by = actor
        self.updated_at = now

        self.raise_(
            ReturnStatusUpdated(
                order_id=str(self.id),
                order_number=self.order_number,
                customer_id=str(self.customer_id),
                return_id=str(request.id),
                previous_status=current.value,
                new_status=target.value,
                processed_by=actor,
                updated_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Fulfilment details & notes
    # -------------------------------------------------------------------
    def record_shipping_details(self, carrier, tracking_number, tracking_url=None, estimated_delivery=None, actor=None):
        if OrderStatus(self.status) not in _SHIPPABLE_STATES:
            raise IllegalTransition(
                f"Shipping details can only be recorded for processing or shipped orders, not {self.status}"
            )

        now = utcnow()
        self._replace_shipping(
            carrier=carrier,
            tracking_number=tracking_number,
            tracking_url=tracking_url,
            estimated_delivery=estimated_delivery,
        )
        self._log(self.status, f"Shipped via {carrier}, tracking {tracking_number}", actor, now)

        self.raise_(
            ShippingDetailsRecorded(
                order_id=str(self.id),
                order_number=self.order_number,
                customer_id=str(self.customer_id),
                carrier=carrier,
                tracking_number=tracking_number,
                tracking_url=tracking_url,
                estimated_delivery=estimated_delivery,
                recorded_at=now,
            )
        )

    def add_timeline_note(self, note, actor=None):
        now = utcnow()
        self._log(self.status, note, actor, now)
        self.raise_(
            OrderNoteAdded(
                order_id=str(self.id),
                order_number=self.order_number,
                customer_id=str(self.customer_id),
                status=self.status,
                note=note,
                updated_by=actor,
                added_at=now,
            )
        )
