"""Carts bounded context: the authoritative, account-held shopping cart.

Serves the ``/cart`` routes the storefront checkout consumes. Guest carts are
kept on the client and uploaded through ``sync`` when the shopper signs in.
"""

from protean.domain import Domain

from checkout.utils.logging import configure_logging, get_logger

configure_logging()

logger = get_logger(__name__)

carts = Domain(name="carts")
