from fastapi import APIRouter, Depends, HTTPException

from storefront.config import settings
from storefront.dependencies import get_db_path
from storefront.logger import get_logger
from storefront.models.schemas import DashboardMetrics
from storefront.services.errors import StoreUnavailable
from storefront.services.metrics import dashboard_metrics

router = APIRouter(prefix="/api/admin", tags=["admin"])

logger = get_logger("admin")


@router.get("/metrics", response_model=DashboardMetrics)
async def get_metrics(db_path: str = Depends(get_db_path)):
    try:
        return await dashboard_metrics(
            db_path,
            active_minutes=settings.ACTIVE_SESSION_MINUTES,
            popular_days=settings.POPULAR_PRODUCTS_DAYS,
        )
    except StoreUnavailable as e:
        logger.error("dashboard metrics: %s", e)
        raise HTTPException(status_code=503, detail="No se pudieron cargar las métricas")
