import pytest

from storefront.models.schemas import CheckoutForm
from storefront.services.cart import CartSession
from storefront.services.checkout import (
    CheckoutError,
    confirm_payment,
    format_card_number,
    format_cvv,
    format_expiry_date,
    validate_form,
)
from storefront.services.notifications import Notifier

VALID = CheckoutForm(
    email="ana@example.com",
    card_number="4111 1111 1111 1111",
    expiry_date="12/29",
    cvv="123",
    cardholder_name="Ana Pérez",
)


def test_formatting_helpers():
    assert format_card_number("4111-1111 1111 11112222") == "4111 1111 1111 1111"
    assert format_card_number("4111") == "4111"
    assert format_expiry_date("1229") == "12/29"
    assert format_expiry_date("1") == "1"
    assert format_cvv("12a345") == "1234"


@pytest.mark.parametrize(
    "changes, message",
    [
        ({"email": "ana.example.com"}, "Por favor ingresa un email válido"),
        ({"card_number": "4111 1111"}, "Por favor ingresa un número de tarjeta válido"),
        ({"expiry_date": "12/"}, "Por favor ingresa una fecha de vencimiento válida"),
        ({"cvv": "12"}, "Por favor ingresa un CVV válido"),
        ({"cardholder_name": "   "}, "Por favor ingresa el nombre del titular"),
    ],
)
def test_validation_messages(changes, message):
    assert validate_form(VALID.model_copy(update=changes)) == message


def test_valid_form():
    assert validate_form(VALID) is None


async def test_confirm_payment_clears_cart(db_path):
    cart = CartSession(db_path, "buyer", Notifier())
    await cart.add_item("p-phone", 2)
    await cart.add_item("p-charger", 1)
    cart.notifier.drain()

    order = await confirm_payment(cart, VALID, delay=0)

    assert order.total_items == 3
    assert order.total_price == pytest.approx(23.5)
    assert len(order.reference) == 12
    assert await cart.load()
    assert cart.total_items == 0
    assert cart.notifier.drain()[-1].title == "¡Pago exitoso!"


async def test_invalid_form_leaves_cart_alone(db_path):
    cart = CartSession(db_path, "buyer", Notifier())
    await cart.add_item("p-phone")
    cart.notifier.drain()

    with pytest.raises(CheckoutError):
        await confirm_payment(cart, VALID.model_copy(update={"cvv": "1"}), delay=0)

    assert len(cart.notifier.drain()) == 1
    assert await cart.load()
    assert cart.total_items == 1


async def test_empty_cart_cannot_be_paid(db_path):
    cart = CartSession(db_path, "nobody", Notifier())

    with pytest.raises(CheckoutError):
        await confirm_payment(cart, VALID, delay=0)

    assert cart.notifier.drain()[-1].description == "El carrito está vacío"
