import pytest
from protean import current_domain
from protean.integrations.pytest import DomainFixture

from ordering.catalogue import reset_catalogue, set_catalogue
from ordering.catalogue.fake_adapter import InMemoryCatalogue
from ordering.coupon import reset_coupon_book
from ordering.realtime import reset_realtime, set_realtime
from ordering.realtime.fake_adapter import InMemoryRealtime


@pytest.fixture(scope="session")
def ordering_bed():
    from ordering.domain import ordering
    from ordering.utils.db import drop_db, setup_db

    bed = DomainFixture(ordering)
    bed.setup()
    setup_db(ordering)
    yield bed
    drop_db(ordering)
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(ordering_bed):
    with ordering_bed.domain_context():
        yield

        for _, provider in current_domain.providers.items():
            provider._data_reset()
        current_domain.event_store.store._data_reset()


@pytest.fixture()
def catalogue():
    """In-memory catalogue seeded with a few products."""
    fake = InMemoryCatalogue()
    fake.add_product("prod-001", "Silk Scarf", 10.0, sku="SCARF-001", stock=50)
    fake.add_product("prod-002", "Leather Wallet", 25.0, sku="WALLET-002", stock=20)
    fake.add_product("prod-003", "Cashmere Sweater", 120.0, sku="SWEATER-003", stock=5)
    set_catalogue(fake)
    yield fake
    reset_catalogue()


@pytest.fixture()
def realtime():
    fake = InMemoryRealtime()
    set_realtime(fake)
    yield fake
    reset_realtime()


@pytest.fixture(autouse=True)
def _reset_adapters():
    yield
    reset_catalogue()
    reset_coupon_book()
    reset_realtime()


@pytest.fixture()
def shipping_address():
    return {
        "first_name": "Ada",
        "last_name": "Lovelace",
        "address_line1": "12 Analytical Way",
        "city": "London",
        "state": "Greater London",
        "postal_code": "N1 9GU",
        "country": "GB",
    }


@pytest.fixture()
def payment_method():
    return {"method_type": "credit_card", "last4": "4242", "brand": "visa"}


_PATH_TO_STATUS = {
    "pending": [],
    "confirmed": ["confirmed"],
    "processing": ["confirmed", "processing"],
    "shipped": ["confirmed", "processing", "shipped"],
    "delivered": ["confirmed", "processing", "shipped", "delivered"],
    "cancelled": ["cancelled"],
    "returned": ["confirmed", "processing", "shipped", "returned"],
    "refunded": ["confirmed", "processing", "shipped", "returned", "refunded"],
}


@pytest.fixture()
def make_order(shipping_address, payment_method):
    """Factory placing an order directly on the aggregate (no persistence)."""
    default_payment_method = payment_method
    from ordering.order.order import Order

    def _make(items=None, order_number="LUX2405230001", customer_id="cust-001", payment_method=None, **kwargs):
        if items is None:
            items = [{"product_id": "prod-001", "name": "Silk Scarf", "sku": "SCARF-001", "price": 10.0, "quantity": 2}]
        return Order.place(
            order_number=order_number,
            customer_id=customer_id,
            items_data=items,
            shipping_address=shipping_address,
            payment_method=payment_method or default_payment_method,
            **kwargs,
        )

    return _make


@pytest.fixture()
def order_at_status(make_order):
    """Factory returning an order advanced through legal transitions to ``status``, events cleared."""

    def _at(status, **kwargs):
        order = make_order(**kwargs)
        for step in _PATH_TO_STATUS[status]:
            order.update_status(step)
        order._events.clear()
        return order

    return _at
