"""Cart management: commands and handler.

Handles loading a user's cart (creating it lazily and dropping lines whose
products are no longer sellable), clearing it, and expiring idle carts.
"""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, String
from protean.utils.globals import current_domain

from ordering.cart.cart import Cart
from ordering.catalogue import get_catalogue
from ordering.domain import ordering
from ordering.utils.clock import as_utc, utcnow

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Cart")
class RefreshCart:
    """Load the user's cart, creating it if needed and pruning unavailable products."""

    user_id = Identifier(required=True)


@ordering.command(part_of="Cart")
class ClearCart:
    user_id = Identifier(required=True)
    reason = String(max_length=50, default="cleared")


@ordering.command(part_of="Cart")
class ExpireCart:
    """Empty a single cart that passed its inactivity expiry."""

    cart_id = Identifier(required=True)


@ordering.command(part_of="Cart")
class PurgeExpiredCarts:
    """Empty every cart whose expiry is at or before ``as_of``.

    Meant to be triggered periodically by an external scheduler.
    """

    as_of = DateTime()  # Optional: defaults to now


@ordering.command_handler(part_of=Cart)
class ManageCartHandler:
    @handle(RefreshCart)
    def refresh_cart(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.get_or_create_for_user(command.user_id)

        catalogue = get_catalogue()
        unavailable = [
            item.product_id
            for item in cart.items
            if (product := catalogue.get_product(item.product_id)) is None or not product.is_active
        ]
        if unavailable:
            logger.info(
                "cart_unavailable_items_removed",
                user_id=str(command.user_id),
                product_ids=[str(pid) for pid in unavailable],
            )
        cart.remove_unavailable_items(unavailable)
        repo.add(cart)
        return str(cart.id)

    @handle(ClearCart)
    def clear_cart(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.get_or_create_for_user(command.user_id)
        cart.clear(reason=command.reason or "cleared")
        repo.add(cart)
        return str(cart.id)

    @handle(ExpireCart)
    def expire_cart(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.get(command.cart_id)
        cart.expire()
        repo.add(cart)

    @handle(PurgeExpiredCarts)
    def purge_expired_carts(self, command):
        as_of = as_utc(command.as_of) if command.as_of else utcnow()
        repo = current_domain.repository_for(Cart)
        expired = [cart for cart in repo.find_expired(as_of) if not cart.is_empty]

        if not expired:
            logger.info("No expired carts found", as_of=as_of.isoformat())
            return 0

        # Expire in place. A nested ExpireCart would be overwritten by the copies loaded here
        purged = 0
        for cart in expired:
            try:
                cart.expire()
                repo.add(cart)
                purged += 1
            except ValidationError as exc:
                logger.warning("Failed to expire cart", cart_id=str(cart.id), error=str(exc))

        logger.info("Expired cart purge complete", purged_count=purged)
        return purged
