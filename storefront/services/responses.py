"""Canned answers used when the assistant endpoint cannot be reached."""
from typing import Callable

from storefront.models.schemas import IntentLabel, Product
from storefront.services.intent import classify_intent

NO_PRODUCT_RESPONSE = "Lo siento, no tengo información específica disponible en este momento."


def _price(p: Product) -> str:
    return f"El precio de {p.name} es €{p.price:.2f}."


def _characteristics(p: Product) -> str:
    return (
        f"{p.name}: {p.description}. Precio: €{p.price:.2f}. "
        f"Categoría: {p.category or 'General'}."
    )


def _recommend(p: Product) -> str:
    return (
        f"Te recomiendo considerar {p.name} que cuesta €{p.price:.2f}. "
        f"Es una excelente opción en la categoría {p.category or 'general'}."
    )


def _compare(p: Product) -> str:
    return (
        f"{p.name} es una excelente opción en la categoría {p.category or 'general'}. "
        "Para comparaciones detalladas, inténtalo de nuevo cuando el asistente esté disponible."
    )


def _general(p: Product) -> str:
    return f"Sobre {p.name}: {p.description}. ¿Te gustaría saber algo específico?"


FORMATTERS: dict[IntentLabel, Callable[[Product], str]] = {
    IntentLabel.COMPARE: _compare,
    IntentLabel.RECOMMEND: _recommend,
    IntentLabel.BUY: _price,
    IntentLabel.CHARACTERISTICS: _characteristics,
    IntentLabel.PRICE: _price,
    IntentLabel.GENERAL: _general,
}


def fallback_response(query: str, product: Product | None) -> str:
    if product is None:
        return NO_PRODUCT_RESPONSE
    intent = classify_intent(query).intent
    return FORMATTERS[intent](product)
