"""Cart item management: commands and handler.

Carts are addressed by their owner: every command names the user, and the
handler loads (or lazily creates) that user's single cart.
"""

import structlog
from protean import handle
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from ordering.cart.cart import Cart, variant_from
from ordering.catalogue import get_catalogue
from ordering.domain import ordering

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Cart")
class AddToCart:
    user_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True)
    variant_name = String(max_length=100)
    variant_option = String(max_length=100)


@ordering.command(part_of="Cart")
class UpdateCartItem:
    user_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True)
    variant_name = String(max_length=100)
    variant_option = String(max_length=100)


@ordering.command(part_of="Cart")
class RemoveFromCart:
    user_id = Identifier(required=True)
    product_id = Identifier(required=True)
    variant_name = String(max_length=100)
    variant_option = String(max_length=100)


@ordering.command_handler(part_of=Cart)
class ManageCartItemsHandler:
    @handle(AddToCart)
    def add_to_cart(self, command):
        product = get_catalogue().require_sellable(command.product_id, command.quantity)

        repo = current_domain.repository_for(Cart)
        cart = repo.get_or_create_for_user(command.user_id)
        cart.add_item(
            product_id=product.product_id,
            quantity=command.quantity,
            price=product.price,
            variant=variant_from(command.variant_name, command.variant_option),
        )
        repo.add(cart)

        logger.info(
            "cart_item_added",
            user_id=str(command.user_id),
            product_id=product.product_id,
            quantity=command.quantity,
        )
        return str(cart.id)

    @handle(UpdateCartItem)
    def update_cart_item(self, command):
        if command.quantity > 0:
            get_catalogue().require_sellable(command.product_id, command.quantity)

        repo = current_domain.repository_for(Cart)
        cart = repo.get_or_create_for_user(command.user_id)
        cart.update_item_quantity(
            product_id=command.product_id,
            quantity=command.quantity,
            variant=variant_from(command.variant_name, command.variant_option),
        )
        repo.add(cart)
        return str(cart.id)

    @handle(RemoveFromCart)
    def remove_from_cart(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.get_or_create_for_user(command.user_id)
        variant = variant_from(command.variant_name, command.variant_option)
        cart.remove_item(product_id=command.product_id, variant=variant)
        repo.add(cart)
        return str(cart.id)
