from fastapi import APIRouter, Depends

from storefront.api.errors import http_error
from storefront.dependencies import get_cart
from storefront.models.schemas import AddItemRequest, CartResponse, SetQuantityRequest
from storefront.services.cart import CartSession

router = APIRouter(prefix="/api/cart", tags=["cart"])


def _respond(cart: CartSession, ok: bool) -> CartResponse:
    notifications = cart.notifier.drain()
    if not ok:
        raise http_error(cart.last_error, notifications)
    return CartResponse(session_id=cart.session_id, cart=cart.view, notifications=notifications)


@router.get("", response_model=CartResponse)
async def get_cart_view(cart: CartSession = Depends(get_cart)):
    return _respond(cart, await cart.load())


@router.post("/items", response_model=CartResponse, status_code=201)
async def add_item(body: AddItemRequest, cart: CartSession = Depends(get_cart)):
    return _respond(cart, await cart.add_item(body.product_id, body.quantity))


@router.patch("/items/{line_id}", response_model=CartResponse)
async def set_item_quantity(
    line_id: str,
    body: SetQuantityRequest,
    cart: CartSession = Depends(get_cart),
):
    return _respond(cart, await cart.set_quantity(line_id, body.quantity))


@router.delete("/items/{line_id}", response_model=CartResponse)
async def remove_item(line_id: str, cart: CartSession = Depends(get_cart)):
    return _respond(cart, await cart.remove_item(line_id))


@router.delete("", response_model=CartResponse)
async def clear_cart(cart: CartSession = Depends(get_cart)):
    return _respond(cart, await cart.clear())
