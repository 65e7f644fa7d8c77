from storefront.logger import get_logger
from storefront.models import database as store
from storefront.models.schemas import RecommendedProduct
from storefront.services.errors import StoreUnavailable
from storefront.services.notifications import Notifier

logger = get_logger("recommendations")


def recommendation_reason(similarity: float, category: str | None) -> str:
    percentage = round(similarity * 100)
    if similarity > 0.8:
        return f"🌟 {percentage}% de similitud - Características muy parecidas"
    if similarity > 0.7:
        return f"⭐ Alternativa popular en {category or 'esta categoría'}"
    return f"💡 Mejor relación calidad-precio con {percentage}% de similitud"


async def recommend_for_product(
    db_path: str,
    product_id: str,
    notifier: Notifier,
    match_threshold: float = 0.6,
    match_count: int = 4,
) -> list[RecommendedProduct]:
    try:
        similar = await store.find_similar_products(db_path, product_id, match_threshold, match_count)
    except StoreUnavailable as e:
        logger.error("similar products for %s: %s", product_id, e)
        notifier.error(
            "Error en recomendaciones",
            "No se pudieron generar recomendaciones para este producto",
        )
        return []
    return [
        RecommendedProduct(**p, reason=recommendation_reason(p["similarity"], p.get("category")))
        for p in similar
    ]
