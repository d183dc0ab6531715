"""API v1 routes."""

from fastapi import APIRouter

from app.api.v1 import auth, health
from app.core.config import settings

router = APIRouter()
router.include_router(health.router, prefix="/health", tags=["health"])
router.include_router(auth.router, prefix=settings.AUTH_PREFIX, tags=["auth"])
