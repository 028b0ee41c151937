from fastapi import APIRouter

from callrelay.api import auth, health, notifications

api_router = APIRouter()
api_router.include_router(health.router, tags=["health"])
api_router.include_router(auth.router, tags=["auth"])
api_router.include_router(notifications.router, tags=["notifications"])
