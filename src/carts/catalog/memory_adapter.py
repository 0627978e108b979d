"""In-memory product catalog for development and testing."""

from carts.catalog.port import ProductCatalog


class InMemoryCatalog(ProductCatalog):
    def __init__(self):
        self.products: dict[str, dict] = {}

    def put(self, product_id: str, title: str, price: float, stock: int = 10, image: str | None = None) -> dict:
        """Register a product with a single variant holding ``stock`` units."""
        product = {
            "id": str(product_id),
            "title": title,
            "price": price,
            "image": image,
            "status": "active",
            "variants": [{"id": f"{product_id}-default", "name": "Default", "stock": stock}],
        }
        self.products[str(product_id)] = product
        return product

    def reset(self):
        self.products.clear()

    def get_product(self, product_id: str) -> dict | None:
        return self.products.get(str(product_id))
