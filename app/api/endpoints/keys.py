"""
Access key endpoints: redemption (public) and management (admin token).
"""
import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.core.auth import AuthContext, get_token_service, require_admin_token
from app.core.database import get_db
from app.core.exceptions import NotFound
from app.core.roles import KeyRole
from app.core.security import get_client_ip
from app.schemas.access_key import (
    AccessKeyGenerateRequest,
    AccessKeyGenerateResponse,
    AccessKeyListResponse,
    AccessKeyRenameRequest,
    AccessKeyVerifyRequest,
    AccessKeyVerifyResponse,
    KeyInfoResponse,
)
from app.schemas.auth import SuccessResponse
from app.services.access_key_service import AccessKeyService
from app.services.rate_limiter import limit_login_attempts
from app.services.token_service import TokenService

logger = logging.getLogger(__name__)

router = APIRouter()


def get_access_key_service(db: Session = Depends(get_db)) -> AccessKeyService:
    return AccessKeyService(db)


# Plain def: redemption may wait on the redemption lock and on database retries
@router.post("/verify", response_model=AccessKeyVerifyResponse, dependencies=[Depends(limit_login_attempts)])
def verify_access_key(
    body: AccessKeyVerifyRequest,
    request: Request,
    service: TokenService = Depends(get_token_service),
):
    """
    Redeem an access key for a starlight token bound to the caller's IP.

    401 for unknown or expired keys, 403 if the key is active on another device.
    """
    token, info = service.redeem_access_key(body.code, get_client_ip(request))
    return AccessKeyVerifyResponse(token=token.token, keyInfo=KeyInfoResponse.from_key(info))


@router.post("/generate", response_model=AccessKeyGenerateResponse)
async def generate_access_key(
    body: AccessKeyGenerateRequest,
    _auth: AuthContext = Depends(require_admin_token),
    service: AccessKeyService = Depends(get_access_key_service),
):
    """Generate a new access key (admin only)."""
    key = service.generate(
        username=body.username,
        duration_days=body.durationInDays,
        role=KeyRole(body.userType),
        percentage=body.percentage,
    )
    return AccessKeyGenerateResponse(key=KeyInfoResponse.from_key(key))


@router.get("", response_model=AccessKeyListResponse)
async def list_access_keys(
    _auth: AuthContext = Depends(require_admin_token),
    service: AccessKeyService = Depends(get_access_key_service),
):
    """List unexpired access keys (admin only)."""
    keys = service.list_active()
    return AccessKeyListResponse(keys=[KeyInfoResponse.from_key(k) for k in keys])


# Plain def: revocation shares the redemption lock
@router.delete("/{code}", response_model=SuccessResponse)
def revoke_access_key(
    code: str,
    _auth: AuthContext = Depends(require_admin_token),
    service: AccessKeyService = Depends(get_access_key_service),
):
    """Delete an access key and end every session opened with it (admin only)."""
    if not service.revoke(code):
        raise NotFound("Key not found")
    return SuccessResponse(message="Key revoked")


@router.put("/{code}", response_model=AccessKeyGenerateResponse)
async def rename_access_key(
    code: str,
    body: AccessKeyRenameRequest,
    _auth: AuthContext = Depends(require_admin_token),
    service: AccessKeyService = Depends(get_access_key_service),
):
    """Set the display name of an access key (admin only)."""
    key = service.rename(code, body.name)
    if key is None:
        raise NotFound("Key not found")
    return AccessKeyGenerateResponse(key=KeyInfoResponse.from_key(key))
