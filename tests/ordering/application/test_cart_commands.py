"""Application tests for cart commands processed through the domain."""

from datetime import timedelta

import pytest
from ordering.cart.cart import Cart
from ordering.cart.coupons import ApplyCoupon, RemoveCoupon
from ordering.cart.items import AddToCart, RemoveFromCart, UpdateCartItem
from ordering.cart.management import ClearCart, ExpireCart, PurgeExpiredCarts, RefreshCart
from ordering.errors import InsufficientStock, InvalidQuantity, NotFound
from ordering.utils.clock import utcnow
from protean import current_domain
from protean.exceptions import ObjectNotFoundError


def _cart_for(user_id="user-001"):
    return current_domain.repository_for(Cart).find_by_user(user_id)


def _add(product_id="prod-001", quantity=1, user_id="user-001", **variant):
    return current_domain.process(
        AddToCart(user_id=user_id, product_id=product_id, quantity=quantity, **variant),
        asynchronous=False,
    )


class TestAddToCart:
    def test_first_add_creates_cart(self, catalogue):
        cart_id = _add(quantity=2)

        cart = _cart_for()
        assert str(cart.id) == cart_id
        assert cart.total_items == 2
        assert cart.items[0].price == 10.0
        assert cart.subtotal == 20.0

    def test_one_cart_per_user(self, catalogue):
        first = _add("prod-001")
        second = _add("prod-002")

        assert first == second
        assert len(_cart_for().items) == 2

    def test_price_locked_on_first_add(self, catalogue):
        _add("prod-001", 1)
        catalogue.add_product("prod-001", "Silk Scarf", 12.0, stock=50)
        _add("prod-001", 1)

        cart = _cart_for()
        assert len(cart.items) == 1
        assert cart.items[0].quantity == 2
        assert cart.items[0].price == 10.0

    def test_variants_are_separate_lines(self, catalogue):
        _add("prod-001", 1, variant_name="Color", variant_option="Red")
        _add("prod-001", 1, variant_name="Color", variant_option="Blue")

        assert len(_cart_for().items) == 2

    def test_unknown_product(self, catalogue):
        with pytest.raises(NotFound) as exc:
            _add("prod-999")
        assert exc.value.messages == {"product_id": ["Product prod-999 not found"]}
        assert _cart_for() is None

    def test_insufficient_stock(self, catalogue):
        with pytest.raises(InsufficientStock):
            _add("prod-003", 6)

    def test_inactive_product(self, catalogue):
        catalogue.set_status("prod-002", "inactive")
        with pytest.raises(InsufficientStock):
            _add("prod-002")

    def test_quantity_above_limit(self, catalogue):
        catalogue.add_product("prod-004", "Socks", 2.0, stock=500)
        with pytest.raises(InvalidQuantity):
            _add("prod-004", 101)


class TestUpdateAndRemove:
    def test_update_sets_exact_quantity(self, catalogue):
        _add("prod-001", 1)
        current_domain.process(
            UpdateCartItem(user_id="user-001", product_id="prod-001", quantity=4),
            asynchronous=False,
        )
        assert _cart_for().items[0].quantity == 4

    def test_update_to_zero_removes(self, catalogue):
        _add("prod-001", 1)
        current_domain.process(
            UpdateCartItem(user_id="user-001", product_id="prod-001", quantity=0),
            asynchronous=False,
        )
        cart = _cart_for()
        assert cart.items == []
        assert cart.subtotal == 0.0

    def test_update_checks_stock(self, catalogue):
        _add("prod-003", 1)
        with pytest.raises(InsufficientStock):
            current_domain.process(
                UpdateCartItem(user_id="user-001", product_id="prod-003", quantity=9),
                asynchronous=False,
            )
        assert _cart_for().items[0].quantity == 1

    def test_remove(self, catalogue):
        _add("prod-001", 1)
        _add("prod-002", 1)
        current_domain.process(RemoveFromCart(user_id="user-001", product_id="prod-001"), asynchronous=False)

        cart = _cart_for()
        assert [str(i.product_id) for i in cart.items] == ["prod-002"]
        assert cart.subtotal == 25.0


class TestCartCoupons:
    def test_apply_and_remove(self, catalogue):
        _add("prod-003", 1)
        current_domain.process(ApplyCoupon(user_id="user-001", coupon_code="save20"), asynchronous=False)

        cart = _cart_for()
        assert cart.estimated_discount == 24.0
        assert [c.code for c in cart.applied_coupons] == ["SAVE20"]

        current_domain.process(RemoveCoupon(user_id="user-001", coupon_code="SAVE20"), asynchronous=False)
        assert _cart_for().applied_coupons == []


class TestRefreshCart:
    def test_creates_empty_cart(self, catalogue):
        cart_id = current_domain.process(RefreshCart(user_id="user-002"), asynchronous=False)

        cart = current_domain.repository_for(Cart).get(cart_id)
        assert str(cart.user_id) == "user-002"
        assert cart.items == []

    def test_prunes_unavailable_products(self, catalogue):
        _add("prod-001", 1)
        _add("prod-002", 1)
        _add("prod-003", 1)
        catalogue.set_status("prod-002", "inactive")
        del catalogue.products["prod-003"]

        current_domain.process(RefreshCart(user_id="user-001"), asynchronous=False)

        cart = _cart_for()
        assert [str(i.product_id) for i in cart.items] == ["prod-001"]
        assert cart.subtotal == 10.0


class TestClearCart:
    def test_clear(self, catalogue):
        _add("prod-003", 1)
        current_domain.process(ApplyCoupon(user_id="user-001", coupon_code="WELCOME10"), asynchronous=False)

        current_domain.process(ClearCart(user_id="user-001"), asynchronous=False)

        cart = _cart_for()
        assert cart.items == []
        assert cart.applied_coupons == []
        assert cart.estimated_total == 0.0


class TestPurgeExpiredCarts:
    def test_purges_only_expired_non_empty_carts(self, catalogue):
        _add("prod-001", 1, user_id="user-old")
        _add("prod-001", 1, user_id="user-new")
        current_domain.process(RefreshCart(user_id="user-empty"), asynchronous=False)

        purged = current_domain.process(
            PurgeExpiredCarts(as_of=utcnow() + timedelta(days=31)),
            asynchronous=False,
        )

        # Every cart expires 30 days after its last activity
        assert purged == 2
        assert _cart_for("user-old").items == []
        assert _cart_for("user-new").items == []

    def test_nothing_expired(self, catalogue):
        _add("prod-001", 1)

        purged = current_domain.process(PurgeExpiredCarts(), asynchronous=False)

        assert purged == 0
        assert len(_cart_for().items) == 1

    def test_second_purge_is_noop(self, catalogue):
        _add("prod-001", 1)
        as_of = utcnow() + timedelta(days=31)

        assert current_domain.process(PurgeExpiredCarts(as_of=as_of), asynchronous=False) == 1
        assert current_domain.process(PurgeExpiredCarts(as_of=as_of), asynchronous=False) == 0

    def test_each_expired_cart_is_emptied(self, catalogue):
        for user_id in ("user-a", "user-b", "user-c"):
            _add("prod-001", 2, user_id=user_id)
        _add("prod-003", 1, user_id="user-b")
        current_domain.process(ApplyCoupon(user_id="user-b", coupon_code="SAVE20"), asynchronous=False)

        purged = current_domain.process(
            PurgeExpiredCarts(as_of=utcnow() + timedelta(days=31)),
            asynchronous=False,
        )

        assert purged == 3
        for user_id in ("user-a", "user-b", "user-c"):
            cart = _cart_for(user_id)
            assert cart.items == []
            assert cart.applied_coupons == []
            assert cart.estimated_total == 0.0

    def test_carts_still_active_are_kept(self, catalogue):
        _add("prod-001", 1, user_id="user-idle")
        _add("prod-002", 1, user_id="user-active")

        repo = current_domain.repository_for(Cart)
        idle = repo.find_by_user("user-idle")
        idle.expires_at = utcnow() - timedelta(days=1)
        repo.add(idle)

        assert current_domain.process(PurgeExpiredCarts(), asynchronous=False) == 1
        assert _cart_for("user-idle").items == []
        assert len(_cart_for("user-active").items) == 1


class TestExpireCart:
    def test_expire_single_cart(self, catalogue):
        cart_id = _add("prod-001", 2)

        current_domain.process(ExpireCart(cart_id=cart_id), asynchronous=False)

        cart = _cart_for()
        assert cart.items == []
        assert cart.estimated_total == 0.0

    def test_unknown_cart(self):
        with pytest.raises(ObjectNotFoundError):
            current_domain.process(ExpireCart(cart_id="cart-404"), asynchronous=False)
