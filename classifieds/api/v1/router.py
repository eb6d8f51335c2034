from fastapi import APIRouter

from classifieds.api.v1.endpoints.health import router as health_router
from classifieds.api.v1.endpoints.auth import router as auth_router
from classifieds.api.v1.endpoints.listings import router as listings_router
from classifieds.api.v1.endpoints.me import router as me_router
from classifieds.api.v1.endpoints.ai import router as ai_router


router = APIRouter(prefix="/v1")
router.include_router(health_router, tags=["health"])
router.include_router(auth_router, tags=["auth"])
router.include_router(listings_router, tags=["listings"])
router.include_router(me_router, tags=["me"])
router.include_router(ai_router, tags=["ai"])
