"""Checkout form handling with a simulated payment step.

No payment provider is contacted: a valid form waits a fixed delay, then the
cart is cleared and an order summary returned.
"""
import asyncio
import re
import uuid

from storefront.logger import get_logger
from storefront.models.schemas import CheckoutForm, OrderSummary
from storefront.services.cart import CartSession

logger = get_logger("checkout")


def format_card_number(value: str) -> str:
    digits = re.sub(r"\D", "", value)[:16]
    return " ".join(digits[i:i + 4] for i in range(0, len(digits), 4))


def format_expiry_date(value: str) -> str:
    digits = re.sub(r"\D", "", value)[:4]
    if len(digits) >= 2:
        return f"{digits[:2]}/{digits[2:]}"
    return digits


def format_cvv(value: str) -> str:
    return re.sub(r"\D", "", value)[:4]


def normalize_form(form: CheckoutForm) -> CheckoutForm:
    return form.model_copy(update={
        "card_number": format_card_number(form.card_number),
        "expiry_date": format_expiry_date(form.expiry_date),
        "cvv": format_cvv(form.cvv),
    })


def validate_form(form: CheckoutForm) -> str | None:
    """Return the message for the first invalid field, or None."""
    if not form.email or "@" not in form.email:
        return "Por favor ingresa un email válido"
    if len(form.card_number.replace(" ", "")) < 13:
        return "Por favor ingresa un número de tarjeta válido"
    if len(form.expiry_date) < 5:
        return "Por favor ingresa una fecha de vencimiento válida"
    if len(form.cvv) < 3:
        return "Por favor ingresa un CVV válido"
    if not form.cardholder_name.strip():
        return "Por favor ingresa el nombre del titular"
    return None


class CheckoutError(Exception):
    pass


async def confirm_payment(cart: CartSession, form: CheckoutForm, delay: float = 2.0) -> OrderSummary:
    """Validate, simulate the payment and empty the cart.

    Raises CheckoutError when the form is invalid, the cart is empty or the
    cart could not be cleared; a notification has been raised in every case.
    """
    form = normalize_form(form)
    problem = validate_form(form)
    if problem:
        cart.notifier.error("Error", problem)
        raise CheckoutError(problem)

    if not await cart.load():
        raise CheckoutError("cart could not be loaded")
    if not cart.view.lines:
        cart.notifier.error("Error", "El carrito está vacío")
        raise CheckoutError("empty cart")

    total_items, total_price = cart.total_items, cart.total_price
    await asyncio.sleep(delay)

    if not await cart.clear():
        raise CheckoutError("cart could not be cleared")

    reference = uuid.uuid4().hex[:12].upper()
    logger.info(
        "session %s: order %s paid, %d items, %.2f EUR",
        cart.session_id, reference, total_items, total_price,
    )
    cart.notifier.info("¡Pago exitoso!", "Tu pedido ha sido procesado correctamente")
    return OrderSummary(reference=reference, total_items=total_items, total_price=total_price)
