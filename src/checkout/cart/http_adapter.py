"""HTTP adapters for the cart service and the product catalog."""

from checkout.cart.port import CartApi, CatalogApi
from checkout.exceptions import CollaboratorUnavailable
from checkout.http import EnvelopeClient
from checkout.model.cart import CartLineItem, ProductSnapshot

USER_HEADER = "X-User-Id"


def _customization_payload(customization) -> dict | None:
    return customization.to_wire() if customization is not None else None


def _line_items(data, operation: str) -> list[CartLineItem]:
    if not isinstance(data, list):
        raise CollaboratorUnavailable(operation, "Expected a list of cart items")
    return [CartLineItem.model_validate(item) for item in data]


class HttpCartApi(CartApi):
    def __init__(self, client: EnvelopeClient) -> None:
        self.client = client

    def _headers(self, user_id: str) -> dict[str, str]:
        return {USER_HEADER: str(user_id)}

    async def get_cart(self, user_id: str) -> list[CartLineItem]:
        data = await self.client.request("GET", "/cart", operation="get_cart", headers=self._headers(user_id))
        return _line_items(data or [], "get_cart")

    async def add_item(self, user_id, product_id, quantity, customization=None) -> CartLineItem:
        data = await self.client.request(
            "POST",
            "/cart",
            operation="add_item",
            headers=self._headers(user_id),
            json={
                "productId": str(product_id),
                "quantity": quantity,
                "customization": _customization_payload(customization),
            },
        )
        return CartLineItem.model_validate(data)

    async def update_item(self, user_id, item_id, quantity, customization=None) -> CartLineItem:
        data = await self.client.request(
            "PUT",
            f"/cart/{item_id}",
            operation="update_item",
            headers=self._headers(user_id),
            json={"quantity": quantity, "customization": _customization_payload(customization)},
        )
        return CartLineItem.model_validate(data)

    async def remove_item(self, user_id, item_id) -> None:
        await self.client.request("DELETE", f"/cart/{item_id}", operation="remove_item", headers=self._headers(user_id))

    async def clear_cart(self, user_id) -> None:
        await self.client.request("DELETE", "/cart", operation="clear_cart", headers=self._headers(user_id))

    async def sync_cart(self, user_id, items) -> list[CartLineItem]:
        data = await self.client.request(
            "POST",
            "/cart/sync",
            operation="sync_cart",
            headers=self._headers(user_id),
            json={"items": [item.to_wire() for item in items]},
        )
        return _line_items(data or [], "sync_cart")


class HttpCatalogApi(CatalogApi):
    def __init__(self, client: EnvelopeClient) -> None:
        self.client = client

    async def get_product(self, product_id: str) -> ProductSnapshot | None:
        data = await self.client.request(
            "GET", f"/products/{product_id}", operation="get_product", allow_not_found=True
        )
        return ProductSnapshot.model_validate(data) if data else None

    async def list_products(self) -> list[ProductSnapshot]:
        data = await self.client.request("GET", "/products", operation="list_products")
        if isinstance(data, dict):
            data = data.get("products", [])
        return [ProductSnapshot.model_validate(p) for p in data or []]
