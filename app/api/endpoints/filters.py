"""
Category filter and tag dictionary endpoints.
"""
import logging

from fastapi import APIRouter, Depends

from app.api.endpoints.resources import get_resource_service, serialize_entries
from app.core.auth import AuthContext, require_admin_privilege
from app.core.exceptions import NotFound
from app.schemas.resource import FilterIn
from app.services.resource_service import ResourceService

logger = logging.getLogger(__name__)

router = APIRouter()
tag_router = APIRouter()


@router.get("/{category}")
async def list_filters(
    category: str,
    service: ResourceService = Depends(get_resource_service),
):
    return {"success": True, "filters": serialize_entries(service.list_filters(category))}


@router.post("")
async def save_filter(
    body: FilterIn,
    _auth: AuthContext = Depends(require_admin_privilege),
    service: ResourceService = Depends(get_resource_service),
):
    """Add a filter, or relabel an existing tag (admin only)."""
    filters = service.upsert_filter(body.category, body.label, body.tag)
    return {"success": True, "filters": serialize_entries(filters)}


@router.delete("/{category}/{tag}")
async def delete_filter(
    category: str,
    tag: str,
    _auth: AuthContext = Depends(require_admin_privilege),
    service: ResourceService = Depends(get_resource_service),
):
    if not service.delete_filter(category, tag):
        raise NotFound("Filter not found")
    return {"success": True, "message": "Filter deleted"}


@tag_router.post("")
async def save_tag(
    body: FilterIn,
    _auth: AuthContext = Depends(require_admin_privilege),
    service: ResourceService = Depends(get_resource_service),
):
    tags = service.upsert_tag(body.category, body.label, body.tag)
    return {"success": True, "tagDictionary": serialize_entries(tags)}


@tag_router.delete("/{category}/{tag}")
async def delete_tag(
    category: str,
    tag: str,
    _auth: AuthContext = Depends(require_admin_privilege),
    service: ResourceService = Depends(get_resource_service),
):
    if not service.delete_tag(category, tag):
        raise NotFound("Tag not found")
    return {"success": True, "message": "Tag dictionary entry deleted"}
