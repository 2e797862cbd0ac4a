"""
API v1 package.

Contains versioned API routes for registration and password
verification flows.
"""

from fastapi import APIRouter

from src.api.v1.password import router as password_router
from src.api.v1.routes import router as registration_router

router = APIRouter()
router.include_router(registration_router)
router.include_router(password_router)

__all__ = ["router"]
