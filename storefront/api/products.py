from fastapi import APIRouter, Depends, HTTPException, Query

from storefront.config import settings
from storefront.dependencies import get_db_path
from storefront.models import database as store
from storefront.models.schemas import (
    EmbeddingRequest,
    MatchRequest,
    Product,
    RecommendedProduct,
    SimilarProduct,
)
from storefront.services.errors import StoreUnavailable
from storefront.services.notifications import Notifier
from storefront.services.recommendations import recommend_for_product

router = APIRouter(prefix="/api/products", tags=["products"])


def _unavailable(e: StoreUnavailable) -> HTTPException:
    return HTTPException(status_code=503, detail=f"No se pudieron cargar los productos: {e}")


@router.get("", response_model=list[Product])
async def list_catalog(
    category: str | None = Query(default=None),
    db_path: str = Depends(get_db_path),
):
    try:
        return await store.list_products(db_path, category)
    except StoreUnavailable as e:
        raise _unavailable(e)


@router.get("/{product_id}", response_model=Product)
async def get_product_detail(product_id: str, db_path: str = Depends(get_db_path)):
    try:
        product = await store.get_product(db_path, product_id)
    except StoreUnavailable as e:
        raise _unavailable(e)
    if product is None:
        raise HTTPException(status_code=404, detail="Producto no encontrado")
    return product


@router.get("/{product_id}/recommendations", response_model=list[RecommendedProduct])
async def get_recommendations(product_id: str, db_path: str = Depends(get_db_path)):
    notifier = Notifier()
    recommendations = await recommend_for_product(
        db_path,
        product_id,
        notifier,
        match_threshold=settings.SIMILARITY_THRESHOLD,
        match_count=settings.SIMILARITY_MATCH_COUNT,
    )
    failures = notifier.drain()
    if failures:
        raise HTTPException(status_code=503, detail=failures[-1].description)
    return recommendations


@router.put("/{product_id}/embedding", status_code=204)
async def put_embedding(
    product_id: str,
    body: EmbeddingRequest,
    db_path: str = Depends(get_db_path),
):
    try:
        found = await store.save_embedding(db_path, product_id, body.embedding)
    except StoreUnavailable as e:
        raise _unavailable(e)
    if not found:
        raise HTTPException(status_code=404, detail="Producto no encontrado")


@router.post("/match", response_model=list[SimilarProduct])
async def match_catalog(body: MatchRequest, db_path: str = Depends(get_db_path)):
    try:
        return await store.match_products(db_path, body.embedding, body.match_threshold, body.match_count)
    except StoreUnavailable as e:
        raise _unavailable(e)
