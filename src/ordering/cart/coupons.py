"""Cart coupon management: commands and handler."""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from ordering.cart.cart import Cart
from ordering.coupon import get_coupon_book
from ordering.domain import ordering

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Cart")
class ApplyCoupon:
    user_id = Identifier(required=True)
    coupon_code = String(required=True, max_length=50)


@ordering.command(part_of="Cart")
class RemoveCoupon:
    user_id = Identifier(required=True)
    coupon_code = String(required=True, max_length=50)


@ordering.command_handler(part_of=Cart)
class CartCouponsHandler:
    @handle(ApplyCoupon)
    def apply_coupon(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.get_or_create_for_user(command.user_id)
        cart.apply_coupon(command.coupon_code, get_coupon_book())
        repo.add(cart)

        logger.info(
            "cart_coupon_applied",
            user_id=str(command.user_id),
            coupon_code=command.coupon_code,
            discount=cart.estimated_discount,
        )
        return str(cart.id)

    @handle(RemoveCoupon)
    def remove_coupon(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.get_or_create_for_user(command.user_id)
        cart.remove_coupon(command.coupon_code)
        repo.add(cart)
        return str(cart.id)
