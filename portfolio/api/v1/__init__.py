"""API v1 routes."""

from fastapi import APIRouter

from portfolio.api.v1 import auth, contact, health

router = APIRouter()
router.include_router(health.router, prefix="/health", tags=["health"])
router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(contact.router, prefix="/contact", tags=["contact"])
