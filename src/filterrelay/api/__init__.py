"""API route aggregation.

All routers registered here get mounted in main.py under /api/v1.
The WebSocket routes live in filterrelay.realtime and mount at the root.
"""

from fastapi import APIRouter

from filterrelay.api.health import router as health_router
from filterrelay.api.introspection import router as introspection_router
from filterrelay.api.publish import router as publish_router

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(health_router, tags=["health"])
api_router.include_router(publish_router, tags=["publish"])
api_router.include_router(introspection_router, tags=["introspection"])
