"""Keyword-based intent classification for shopper queries.

Each label owns a list of trigger substrings. The label with the most hits in
the lower-cased query wins, earlier labels win ties, and a query with no hits is
``general``. Category and brand terms found in the query are reported as
entities and raise the confidence.
"""
from storefront.models.schemas import IntentLabel, IntentResult

INTENT_PATTERNS: dict[IntentLabel, tuple[str, ...]] = {
    IntentLabel.COMPARE: ("diferencia", "compar", "versus", "vs", "mejor que", "cuál es mejor"),
    IntentLabel.RECOMMEND: (
        "recomienda", "sugerir", "alternativa", "similar", "parecido", "qué me recomiendas",
    ),
    IntentLabel.BUY: ("comprar", "precio", "cuesta", "vale", "coste", "añadir al carrito"),
    IntentLabel.CHARACTERISTICS: (
        "características", "especificaciones", "detalles", "información", "qué tiene",
    ),
    IntentLabel.PRICE: ("precio", "cuesta", "vale", "coste", "barato", "caro", "oferta"),
}

PRODUCT_TERMS: tuple[str, ...] = (
    "iphone", "samsung", "xiaomi", "huawei", "google pixel",
    "laptop", "macbook", "dell", "hp", "lenovo", "asus",
    "cámara", "canon", "nikon", "sony", "gopro",
    "auriculares", "airpods", "beats", "bose",
    "televisor", "tv", "lg", "panasonic", "tcl",
)

CONFIDENCE_FLOOR = 0.3
CONFIDENCE_CEILING = 0.9


def classify_intent(query: str) -> IntentResult:
    text = query.lower()

    intent = IntentLabel.GENERAL
    triggers: list[str] = []
    for label, patterns in INTENT_PATTERNS.items():
        hits = [pattern for pattern in patterns if pattern in text]
        if len(hits) > len(triggers):
            triggers = hits
            intent = label

    entities = [term for term in PRODUCT_TERMS if term in text]
    confidence = min(
        CONFIDENCE_CEILING, len(triggers) * 0.3 + len(entities) * 0.2 + CONFIDENCE_FLOOR
    )
    return IntentResult(
        intent=intent, triggers=triggers, entities=entities, confidence=round(confidence, 2)
    )
