from fastapi import APIRouter
from storefront.api.admin import router as admin_router
from storefront.api.assistant import router as assistant_router
from storefront.api.cart import router as cart_router
from storefront.api.checkout import router as checkout_router
from storefront.api.products import router as products_router

router = APIRouter()
router.include_router(products_router)
router.include_router(cart_router)
router.include_router(checkout_router)
router.include_router(assistant_router)
router.include_router(admin_router)
