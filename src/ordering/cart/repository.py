"""Repository for the Cart aggregate."""

from datetime import datetime

from ordering.cart.cart import Cart
from ordering.domain import ordering

_BATCH_SIZE = 100


@ordering.repository(part_of=Cart)
class CartRepository:
    def find_by_user(self, user_id) -> Cart | None:
        return self._dao.query.filter(user_id=str(user_id)).all().first

    def get_or_create_for_user(self, user_id) -> Cart:
        """Return the user's cart, creating a fresh one when none exists yet.

        A newly created cart is not persisted here; callers add it once they
        are done mutating it.
        """
        cart = self.find_by_user(user_id)
        if cart is None:
            cart = Cart.create(user_id=str(user_id))
        return cart

    def find_expired(self, as_of: datetime) -> list[Cart]:
        """Carts whose inactivity expiry is at or before ``as_of``."""
        expired = []
        offset = 0
        while True:
            batch = self._dao.query.offset(offset).limit(_BATCH_SIZE).all()
            expired.extend(cart for cart in batch.items if cart.is_expired(as_of))
            offset += _BATCH_SIZE
            if offset >= batch.total:
                break
        return expired
