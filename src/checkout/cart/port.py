"""Cart and catalog collaborator ports.

``CartApi`` is the authoritative, server-held tier; it is only reachable for
an identified user. ``CatalogApi`` is the read-only product feed used for
stock checks and cart cleanup. Adapters raise ``CollaboratorUnavailable``
when the collaborator cannot be reached.
"""

from abc import ABC, abstractmethod

from checkout.model.cart import CartLineItem, ProductSnapshot
from checkout.model.customization import Customization


class CartApi(ABC):
    """Abstract authoritative cart interface."""

    @abstractmethod
    async def get_cart(self, user_id: str) -> list[CartLineItem]: ...

    @abstractmethod
    async def add_item(
        self,
        user_id: str,
        product_id: str,
        quantity: int,
        customization: Customization | None = None,
    ) -> CartLineItem:
        """Add (or merge) an item and return the persisted line item."""
        ...

    @abstractmethod
    async def update_item(
        self,
        user_id: str,
        item_id: str,
        quantity: int,
        customization: Customization | None = None,
    ) -> CartLineItem: ...

    @abstractmethod
    async def remove_item(self, user_id: str, item_id: str) -> None: ...

    @abstractmethod
    async def clear_cart(self, user_id: str) -> None: ...

    @abstractmethod
    async def sync_cart(self, user_id: str, items: list[CartLineItem]) -> list[CartLineItem]:
        """Upload guest items and return the merged, server-assigned cart."""
        ...


class CatalogApi(ABC):
    """Abstract read-only catalog interface."""

    @abstractmethod
    async def get_product(self, product_id: str) -> ProductSnapshot | None:
        """Return the product with per-variant stock, or ``None`` if it no longer exists."""
        ...

    @abstractmethod
    async def list_products(self) -> list[ProductSnapshot]: ...
