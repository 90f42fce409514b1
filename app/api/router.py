"""
API router, mounted under /api.
"""
from fastapi import APIRouter

from app.api.endpoints import auth, filters, health, keys, resources, site_config

api_router = APIRouter()

# Health check endpoint (no prefix, so it's /api/health)
api_router.include_router(health.router, tags=["health"])

api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(keys.router, prefix="/keys", tags=["keys"])
api_router.include_router(resources.router, prefix="/resources", tags=["resources"])
api_router.include_router(filters.router, prefix="/filters", tags=["filters"])
api_router.include_router(filters.tag_router, prefix="/tag-dictionary", tags=["filters"])
api_router.include_router(site_config.router, prefix="/config", tags=["config"])
