"""Cart line management: commands and handler."""

import json

from protean import handle
from protean.fields import Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from carts.cart.cart import AccountCart
from carts.cart.lookup import cart_for
from carts.domain import carts


def _loads(value):
    if value is None or isinstance(value, dict):
        return value
    return json.loads(value)


@carts.command(part_of="AccountCart")
class AddCartLine:
    user_id = Identifier(required=True)
    product_id = String(required=True, max_length=255)
    quantity = Integer(required=True, min_value=1)
    customization = Text()  # JSON object
    product = Text()  # JSON product snapshot


@carts.command(part_of="AccountCart")
class UpdateCartLine:
    user_id = Identifier(required=True)
    line_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    customization = Text()
    product = Text()


@carts.command(part_of="AccountCart")
class RemoveCartLine:
    user_id = Identifier(required=True)
    line_id = Identifier(required=True)


@carts.command_handler(part_of=AccountCart)
class ManageCartLinesHandler:
    @handle(AddCartLine)
    def add_cart_line(self, command):
        cart = cart_for(command.user_id)
        line_id = cart.add_line(
            product_id=command.product_id,
            quantity=command.quantity,
            customization=_loads(command.customization),
            product=_loads(command.product),
        )
        current_domain.repository_for(AccountCart).add(cart)
        return line_id

    @handle(UpdateCartLine)
    def update_cart_line(self, command):
        cart = cart_for(command.user_id)
        cart.update_line(
            line_id=command.line_id,
            quantity=command.quantity,
            customization=_loads(command.customization),
            product=_loads(command.product),
        )
        current_domain.repository_for(AccountCart).add(cart)
        return str(command.line_id)

    @handle(RemoveCartLine)
    def remove_cart_line(self, command):
        cart = cart_for(command.user_id)
        cart.remove_line(line_id=command.line_id)
        current_domain.repository_for(AccountCart).add(cart)
