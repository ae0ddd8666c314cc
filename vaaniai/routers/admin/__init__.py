"""
Admin back-office endpoints for VaaniAI.
"""

from fastapi import APIRouter

from .analytics import router as analytics_router
from .config import router as config_router
from .messages import router as messages_router
from .users import router as users_router

router = APIRouter(prefix="/admin", tags=["admin"])

router.include_router(analytics_router)
router.include_router(config_router)
router.include_router(users_router)
router.include_router(messages_router)
