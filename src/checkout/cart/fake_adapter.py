"""Configurable fake cart and catalog collaborators for development and testing.

Both fakes keep their state in memory, record every call, and can be told to
fail (``configure``) or to take time (``latency``) so that in-flight and
ordering behaviour can be exercised.
"""

import asyncio
from itertools import count

from checkout.cart.port import CartApi, CatalogApi
from checkout.exceptions import CollaboratorUnavailable
from checkout.model.cart import CartLineItem, ProductSnapshot, Variant
from checkout.model.customization import Customization


class FakeCatalog(CatalogApi):
    def __init__(self, products: list[ProductSnapshot] | None = None) -> None:
        self.products: dict[str, ProductSnapshot] = {str(p.id): p for p in products or []}
        self.should_succeed = True
        self.failure_reason = "Catalog unavailable"
        self.latency = 0.0
        self.calls: list[dict] = []

    def configure(self, should_succeed: bool, failure_reason: str = "Catalog unavailable") -> None:
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def put(self, product_id: str, price: float = 10.0, stock: int = 10, title: str | None = None) -> ProductSnapshot:
        product = ProductSnapshot(
            id=product_id,
            title=title or f"Product {product_id}",
            price=price,
            variants=[Variant(id=f"{product_id}-v1", stock=stock)],
        )
        self.products[str(product_id)] = product
        return product

    async def _call(self, method: str, **kwargs) -> None:
        self.calls.append({"method": method, **kwargs})
        if self.latency:
            await asyncio.sleep(self.latency)
        if not self.should_succeed:
            raise CollaboratorUnavailable(method, self.failure_reason)

    async def get_product(self, product_id: str) -> ProductSnapshot | None:
        await self._call("get_product", product_id=product_id)
        return self.products.get(str(product_id))

    async def list_products(self) -> list[ProductSnapshot]:
        await self._call("list_products")
        return list(self.products.values())


class FakeCartApi(CartApi):
    """In-memory authoritative cart, merging the way the cart service does."""

    def __init__(self, catalog: FakeCatalog | None = None) -> None:
        self.catalog = catalog
        self.carts: dict[str, list[CartLineItem]] = {}
        self.should_succeed = True
        self.failure_reason = "Cart service unavailable"
        self.latency = 0.0
        self.calls: list[dict] = []
        self._ids = count(1)

    def configure(self, should_succeed: bool, failure_reason: str = "Cart service unavailable") -> None:
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def calls_to(self, method: str) -> list[dict]:
        return [c for c in self.calls if c["method"] == method]

    async def _call(self, method: str, **kwargs) -> None:
        self.calls.append({"method": method, **kwargs})
        if self.latency:
            await asyncio.sleep(self.latency)
        if not self.should_succeed:
            raise CollaboratorUnavailable(method, self.failure_reason)

    def _snapshot(self, product_id: str) -> ProductSnapshot | None:
        if self.catalog is None:
            return None
        return self.catalog.products.get(str(product_id))

    def _merge(self, user_id: str, product_id: str, quantity: int, customization: Customization | None) -> CartLineItem:
        lines = self.carts.setdefault(user_id, [])
        for index, line in enumerate(lines):
            if line.same_slot(product_id, customization):
                merged = line.model_copy(update={"quantity": line.quantity + quantity})
                lines[index] = merged
                return merged
        line = CartLineItem(
            id=next(self._ids),
            product_id=str(product_id),
            quantity=quantity,
            customization=customization,
            server_snapshot=self._snapshot(product_id),
        )
        lines.append(line)
        return line

    async def get_cart(self, user_id: str) -> list[CartLineItem]:
        await self._call("get_cart", user_id=user_id)
        return list(self.carts.get(user_id, []))

    async def add_item(self, user_id, product_id, quantity, customization=None) -> CartLineItem:
        await self._call("add_item", user_id=user_id, product_id=product_id, quantity=quantity)
        return self._merge(user_id, product_id, quantity, customization)

    async def update_item(self, user_id, item_id, quantity, customization=None) -> CartLineItem:
        await self._call("update_item", user_id=user_id, item_id=item_id, quantity=quantity)
        lines = self.carts.get(user_id, [])
        for index, line in enumerate(lines):
            if str(line.id) == str(item_id):
                update = {"quantity": quantity}
                if customization is not None:
                    update["customization"] = customization
                lines[index] = line.model_copy(update=update)
                return lines[index]
        raise CollaboratorUnavailable("update_item", "Cart item not found", status_code=404)

    async def remove_item(self, user_id, item_id) -> None:
        await self._call("remove_item", user_id=user_id, item_id=item_id)
        self.carts[user_id] = [line for line in self.carts.get(user_id, []) if str(line.id) != str(item_id)]

    async def clear_cart(self, user_id) -> None:
        await self._call("clear_cart", user_id=user_id)
        self.carts[user_id] = []

    async def sync_cart(self, user_id, items) -> list[CartLineItem]:
        await self._call("sync_cart", user_id=user_id, count=len(items))
        for item in items:
            self._merge(user_id, item.product_id, item.quantity, item.customization)
        return list(self.carts[user_id]) if user_id in self.carts else []
