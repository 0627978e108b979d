"""Domain events for the AccountCart aggregate."""

from protean.fields import Identifier, Integer

from carts.domain import carts


@carts.event(part_of="AccountCart")
class CartLineAdded:
    """A product was added to the cart, or merged into an existing line."""

    __version__ = 1

    cart_id = Identifier(required=True)
    user_id = Identifier(required=True)
    line_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True)


@carts.event(part_of="AccountCart")
class CartLineUpdated:
    """A cart line's quantity or customization changed."""

    __version__ = 1

    cart_id = Identifier(required=True)
    line_id = Identifier(required=True)
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)


@carts.event(part_of="AccountCart")
class CartLineRemoved:
    __version__ = 1

    cart_id = Identifier(required=True)
    line_id = Identifier(required=True)


@carts.event(part_of="AccountCart")
class CartCleared:
    __version__ = 1

    cart_id = Identifier(required=True)
    lines_removed = Integer(required=True)


@carts.event(part_of="AccountCart")
class GuestCartSynced:
    """A signed-in shopper's guest cart was merged into their account cart."""

    __version__ = 1

    cart_id = Identifier(required=True)
    user_id = Identifier(required=True)
    lines_merged = Integer(required=True)
