"""API sub-routers assembled into a single api_router."""

from fastapi import APIRouter

from sqlterm.api.routers.ai import router as ai_router
from sqlterm.api.routers.auth import router as auth_router
from sqlterm.api.routers.health import router as health_router
from sqlterm.api.routers.sql import router as sql_router

api_router = APIRouter()

api_router.include_router(auth_router, prefix="/auth", tags=["auth"])
api_router.include_router(sql_router, prefix="/sql", tags=["sql"])
api_router.include_router(ai_router, prefix="/ai", tags=["ai"])
api_router.include_router(health_router, tags=["health"])
