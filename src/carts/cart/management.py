"""Whole-cart operations: clearing and guest sync."""

import json

from protean import handle
from protean.fields import Identifier, Text
from protean.utils.globals import current_domain

from carts.cart.cart import AccountCart
from carts.cart.lookup import cart_for
from carts.domain import carts


@carts.command(part_of="AccountCart")
class ClearCart:
    user_id = Identifier(required=True)


@carts.command(part_of="AccountCart")
class SyncGuestCart:
    """Merge a signed-in shopper's guest cart into their account cart."""

    user_id = Identifier(required=True)
    guest_lines = Text(required=True)  # JSON: list of {product_id, quantity, customization?, product?}


@carts.command_handler(part_of=AccountCart)
class ManageCartHandler:
    @handle(ClearCart)
    def clear_cart(self, command):
        cart = cart_for(command.user_id)
        cart.clear()
        current_domain.repository_for(AccountCart).add(cart)

    @handle(SyncGuestCart)
    def sync_guest_cart(self, command):
        cart = cart_for(command.user_id)
        guest_lines = (
            json.loads(command.guest_lines) if isinstance(command.guest_lines, str) else command.guest_lines
        )
        cart.sync_guest_lines(guest_lines)
        current_domain.repository_for(AccountCart).add(cart)
