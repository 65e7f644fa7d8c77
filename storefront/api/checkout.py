from fastapi import APIRouter, Depends

from storefront.api.errors import http_error
from storefront.config import settings
from storefront.dependencies import get_cart
from storefront.models.schemas import CheckoutForm, OrderSummary
from storefront.services.cart import CartSession
from storefront.services.checkout import CheckoutError, confirm_payment

router = APIRouter(prefix="/api/checkout", tags=["checkout"])


@router.post("", response_model=OrderSummary, status_code=201)
async def checkout(form: CheckoutForm, cart: CartSession = Depends(get_cart)):
    try:
        order = await confirm_payment(cart, form, delay=settings.CHECKOUT_DELAY_SECONDS)
    except CheckoutError:
        raise http_error(cart.last_error, cart.notifier.drain(), status_code=422)
    order.notifications = cart.notifier.drain()
    return order
