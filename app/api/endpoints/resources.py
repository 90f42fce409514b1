"""
Gallery resource endpoints.

Reads are public and filtered by the caller's visibility; writes need admin
privilege (admin token or admin-role key).
"""
import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Body, Depends, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.core.auth import AuthContext, get_optional_privilege, require_admin_privilege
from app.core.config import settings
from app.core.database import get_db
from app.core.exceptions import BadRequest, NotFound
from app.core.roles import Privilege
from app.models.resource import Resource
from app.schemas.resource import BatchResult, FilterOut, ResourceIn, ResourceOut
from app.services.resource_service import ResourceService
from app.services.visibility import (
    VisibilityPolicy,
    apply_visibility,
    compute_visibility,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def get_resource_service(db: Session = Depends(get_db)) -> ResourceService:
    return ResourceService(db)


def serialize_resource(resource: Resource) -> Dict[str, Any]:
    return ResourceOut.model_validate(resource).model_dump(by_alias=True, mode="json")


def serialize_entries(entries) -> List[Dict[str, str]]:
    return [FilterOut.model_validate(e).model_dump() for e in entries]


@router.get("/{category}")
async def get_category_resources(
    category: str,
    request: Request,
    privilege: Privilege = Depends(get_optional_privilege),
    service: ResourceService = Depends(get_resource_service),
):
    """
    Resources of one category, limited to what the caller may see.

    Admin-only categories answer 403 with an empty payload of the usual shape.
    """
    decision = compute_visibility(category, privilege, VisibilityPolicy.from_settings(settings))
    if decision.forbidden:
        logger.warning(f"Forbidden: admin-only category ({request.method} {request.url.path})")
        return JSONResponse(
            status_code=status.HTTP_403_FORBIDDEN,
            content={
                "success": False,
                "message": "This category is only available to administrators",
                "filters": [],
                "resources": [],
            },
        )

    items = service.list_by_category(category)
    visible = apply_visibility(items, decision)
    return {
        "success": True,
        "filters": serialize_entries(service.list_filters(category)),
        "tagDictionary": serialize_entries(service.list_tags(category)),
        "resources": [serialize_resource(r) for r in visible],
        "total": len(items),
        "percentage": decision.percentage,
    }


@router.get("")
async def get_all_resources(
    privilege: Privilege = Depends(get_optional_privilege),
    service: ResourceService = Depends(get_resource_service),
):
    """All categories the caller may read, each limited by its visibility."""
    policy = VisibilityPolicy.from_settings(settings)
    resources: List[Dict[str, Any]] = []
    filters: Dict[str, List[Dict[str, str]]] = {}
    tag_dictionary: Dict[str, List[Dict[str, str]]] = {}

    grouped = service.list_all()
    categories = list(dict.fromkeys(list(settings.CATEGORIES) + list(grouped)))
    for category in categories:
        decision = compute_visibility(category, privilege, policy)
        if decision.forbidden:
            continue
        visible = apply_visibility(grouped.get(category, []), decision)
        resources.extend(serialize_resource(r) for r in visible)
        filters[category] = serialize_entries(service.list_filters(category))
        tag_dictionary[category] = serialize_entries(service.list_tags(category))

    return {
        "success": True,
        "filters": filters,
        "tagDictionary": tag_dictionary,
        "resources": resources,
    }


@router.post("")
async def save_resource(
    body: ResourceIn,
    _auth: AuthContext = Depends(require_admin_privilege),
    service: ResourceService = Depends(get_resource_service),
):
    """Create or replace a resource (admin only)."""
    resource = service.upsert(body)
    return {"success": True, "resource": serialize_resource(resource)}


@router.post("/batch")
async def save_resources_batch(
    payload: Any = Body(...),
    _auth: AuthContext = Depends(require_admin_privilege),
    service: ResourceService = Depends(get_resource_service),
):
    """
    Create or replace many resources. Accepts a list or `{"resources": [...]}`.

    Returns 400 only when every item failed.
    """
    items = payload.get("resources") if isinstance(payload, dict) else payload
    if not isinstance(items, list) or not items:
        raise BadRequest("Resources array is required and cannot be empty")

    result: BatchResult = service.batch_upsert(items)
    body = {
        "success": result.success > 0,
        "message": f"Saved {result.success} resource(s), {result.failed} failed",
        "results": result.model_dump(),
    }
    if result.success == 0:
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=body)
    return body


@router.delete("/{resource_id}")
async def delete_resource(
    resource_id: str,
    _auth: AuthContext = Depends(require_admin_privilege),
    service: ResourceService = Depends(get_resource_service),
):
    """Delete a resource (admin only)."""
    if not service.delete(resource_id):
        raise NotFound("Resource not found")
    return {"success": True, "message": "Resource deleted"}
