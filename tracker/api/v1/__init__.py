"""API v1 routes."""

from fastapi import APIRouter

from tracker.api.v1 import auth, health, users

router = APIRouter()
router.include_router(health.router, prefix="/health", tags=["health"])
router.include_router(auth.router, prefix="/user", tags=["auth"])
router.include_router(users.router, prefix="/user", tags=["user"])
