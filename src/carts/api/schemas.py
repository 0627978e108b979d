"""Pydantic request/response schemas for the Carts API.

These are external contracts (anti-corruption layer), separate from the
internal Protean commands. Field names are camelCase on the wire, and every
response uses the storefront's ``{success, data, message}`` envelope.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------
class AddCartItemRequest(WireModel):
    product_id: str
    quantity: int = Field(ge=1, default=1)
    customization: dict[str, Any] | None = None

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={"examples": [{"productId": "prod-001", "quantity": 2, "customization": None}]},
    )


class UpdateCartItemRequest(WireModel):
    quantity: int = Field(ge=1)
    customization: dict[str, Any] | None = None


class SyncCartItem(WireModel):
    product_id: str
    quantity: int = Field(ge=1)
    customization: dict[str, Any] | None = None


class SyncCartRequest(WireModel):
    items: list[SyncCartItem] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------
class CartItemSchema(WireModel):
    id: str
    product_id: str
    quantity: int
    customization: dict[str, Any] | None = None
    review_status: str
    product: dict[str, Any] | None = None


class CartResponse(WireModel):
    success: bool = True
    data: list[CartItemSchema] = Field(default_factory=list)
    message: str | None = None


class CartItemResponse(WireModel):
    success: bool = True
    data: CartItemSchema
    message: str | None = None


class StatusResponse(WireModel):
    success: bool = True
    data: None = None
    message: str | None = None
