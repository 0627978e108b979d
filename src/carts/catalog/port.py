"""Product catalog port: where the cart service gets product snapshots.

Every line the cart returns embeds the product as it was at the time of the
last change, so the storefront can render the cart without a second lookup.
"""

from abc import ABC, abstractmethod


class ProductCatalog(ABC):
    """Abstract interface for product lookups."""

    @abstractmethod
    def get_product(self, product_id: str) -> dict | None:
        """Return the product snapshot, or ``None`` if the product is unknown.

        Returns:
            dict with keys: id, title, price, image, status, variants
        """
        ...
