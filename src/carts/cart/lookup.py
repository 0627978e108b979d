"""Finding a shopper's cart by the user it belongs to."""

from protean.utils.globals import current_domain

from carts.cart.cart import AccountCart


def find_cart(user_id) -> AccountCart | None:
    repo = current_domain.repository_for(AccountCart)
    results = repo._dao.query.filter(user_id=str(user_id)).all()
    if not results.items:
        return None
    return repo.get(results.items[0].id)


def cart_for(user_id) -> AccountCart:
    """Return the shopper's cart, or a new empty one the caller must persist."""
    cart = find_cart(user_id)
    if cart is None:
        cart = AccountCart.create(user_id=str(user_id))
    return cart
