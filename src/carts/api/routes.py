"""FastAPI routes for the Carts domain.

The caller's identity comes from the ``X-User-Id`` header; requests without
one are rejected with 401.
"""

import json

from fastapi import APIRouter, Depends, Header, HTTPException
from protean.utils.globals import current_domain

from carts.api.schemas import (
    AddCartItemRequest,
    CartItemResponse,
    CartItemSchema,
    CartResponse,
    StatusResponse,
    SyncCartRequest,
    UpdateCartItemRequest,
)
from carts.cart.lines import AddCartLine, RemoveCartLine, UpdateCartLine
from carts.cart.lookup import find_cart
from carts.cart.management import ClearCart, SyncGuestCart
from carts.catalog import get_catalog
from carts.domain import logger

cart_router = APIRouter(prefix="/cart", tags=["cart"])


def require_user(x_user_id: str | None = Header(default=None)) -> str:
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Sign in to use your saved cart")
    return x_user_id


def _dumps(value) -> str | None:
    return json.dumps(value) if value else None


def _line_schema(line) -> CartItemSchema:
    return CartItemSchema(
        id=str(line.id),
        product_id=str(line.product_id),
        quantity=line.quantity,
        customization=line.customization_data(),
        review_status=line.review_status,
        product=line.product_data(),
    )


def _cart_lines(user_id: str) -> list[CartItemSchema]:
    cart = find_cart(user_id)
    return [_line_schema(line) for line in cart.lines] if cart else []


def _cart_line(user_id: str, line_id: str) -> CartItemSchema:
    line = next((item for item in _cart_lines(user_id) if item.id == str(line_id)), None)
    if line is None:
        raise HTTPException(status_code=404, detail="Cart item not found")
    return line


@cart_router.get("", response_model=CartResponse)
async def get_cart(user_id: str = Depends(require_user)) -> CartResponse:
    return CartResponse(data=_cart_lines(user_id))


@cart_router.post("", status_code=201, response_model=CartItemResponse)
async def add_cart_item(body: AddCartItemRequest, user_id: str = Depends(require_user)) -> CartItemResponse:
    command = AddCartLine(
        user_id=user_id,
        product_id=body.product_id,
        quantity=body.quantity,
        customization=_dumps(body.customization),
        product=_dumps(get_catalog().get_product(body.product_id)),
    )
    line_id = current_domain.process(command, asynchronous=False)
    return CartItemResponse(data=_cart_line(user_id, line_id), message="Item added to cart")


@cart_router.put("/{item_id}", response_model=CartItemResponse)
async def update_cart_item(
    item_id: str, body: UpdateCartItemRequest, user_id: str = Depends(require_user)
) -> CartItemResponse:
    existing = _cart_line(user_id, item_id)
    command = UpdateCartLine(
        user_id=user_id,
        line_id=item_id,
        quantity=body.quantity,
        customization=_dumps(body.customization),
        product=_dumps(get_catalog().get_product(existing.product_id)),
    )
    current_domain.process(command, asynchronous=False)
    return CartItemResponse(data=_cart_line(user_id, item_id), message="Cart item updated")


@cart_router.delete("/{item_id}", response_model=StatusResponse)
async def remove_cart_item(item_id: str, user_id: str = Depends(require_user)) -> StatusResponse:
    _cart_line(user_id, item_id)
    current_domain.process(RemoveCartLine(user_id=user_id, line_id=item_id), asynchronous=False)
    return StatusResponse(message="Item removed from cart")


@cart_router.delete("", response_model=StatusResponse)
async def clear_cart(user_id: str = Depends(require_user)) -> StatusResponse:
    current_domain.process(ClearCart(user_id=user_id), asynchronous=False)
    return StatusResponse(message="Cart cleared")


@cart_router.post("/sync", response_model=CartResponse)
async def sync_cart(body: SyncCartRequest, user_id: str = Depends(require_user)) -> CartResponse:
    catalog = get_catalog()
    guest_lines = [
        {
            "product_id": item.product_id,
            "quantity": item.quantity,
            "customization": item.customization,
            "product": catalog.get_product(item.product_id),
        }
        for item in body.items
    ]
    current_domain.process(SyncGuestCart(user_id=user_id, guest_lines=json.dumps(guest_lines)), asynchronous=False)
    logger.info("Guest cart synced", user_id=user_id, item_count=len(guest_lines))
    return CartResponse(data=_cart_lines(user_id), message="Cart synced")
