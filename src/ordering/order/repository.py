"""Repository for the Order aggregate."""

from datetime import datetime

from protean.exceptions import ObjectNotFoundError

from ordering.domain import ordering
from ordering.errors import NotFound
from ordering.order.order import Order
from ordering.pricing import to_cents
from ordering.utils.clock import as_utc

_BATCH_SIZE = 100


@ordering.repository(part_of=Order)
class OrderRepository:
    def load(self, order_id) -> Order:
        """Fetch an order by id, raising ``NotFound`` when it does not exist."""
        try:
            return self.get(order_id)
        except ObjectNotFoundError:
            raise NotFound(f"Order {order_id} not found", field="order_id") from None

    def load_for_customer(self, order_id, customer_id) -> Order:
        """Fetch an order owned by ``customer_id``; other customers' orders are reported as missing."""
        order = self.load(order_id)
        if str(order.customer_id) != str(customer_id):
            raise NotFound(f"Order {order_id} not found", field="order_id")
        return order

    def find_by_number(self, order_number: str) -> Order | None:
        return self._dao.query.filter(order_number=order_number).all().first

    def list_for_customer(self, customer_id, page: int = 1, limit: int = 10):
        """One page of a customer's orders, newest first.

        Returns a Protean ``ResultSet`` exposing ``items`` and ``total``.
        """
        page = max(page, 1)
        return (
            self._dao.query.filter(customer_id=str(customer_id))
            .order_by("-created_at")
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )

    def _all_orders(self):
        offset = 0
        while True:
            batch = self._dao.query.offset(offset).limit(_BATCH_SIZE).all()
            yield from batch.items
            offset += _BATCH_SIZE
            if offset >= batch.total:
                break

    def statistics(self, start: datetime | None = None, end: datetime | None = None) -> dict:
        """Count, revenue and basket size of orders created within [start, end]."""
        orders = [
            order
            for order in self._all_orders()
            if (start is None or as_utc(order.created_at) >= start) and (end is None or as_utc(order.created_at) <= end)
        ]
        revenue = to_cents(sum(order.pricing.total for order in orders))
        return {
            "total_orders": len(orders),
            "total_revenue": revenue,
            "average_order_value": to_cents(revenue / len(orders)) if orders else 0.0,
            "total_items": sum(order.total_items for order in orders),
        }
