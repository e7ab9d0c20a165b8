from fastapi import APIRouter

from .users import router as users_router
from .health import router as health_router

api_router = APIRouter()
api_router.include_router(users_router)
api_router.include_router(health_router)

__all__ = ["api_router"]
