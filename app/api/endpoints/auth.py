"""
Admin login, token verification and password management endpoints.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.core.auth import (
    AuthContext,
    get_bearer_token,
    get_current_auth,
    get_token_service,
    require_admin_token,
)
from app.core.database import get_db
from app.core.exceptions import InvalidCredential, Unauthorized
from app.core.roles import Anonymous, TokenKind
from app.core.security import get_client_ip, hash_password
from app.schemas.access_key import KeyInfoResponse
from app.schemas.auth import (
    GenerateHashRequest,
    GenerateHashResponse,
    LoginRequest,
    LoginResponse,
    SuccessResponse,
    UpdatePasswordRequest,
    VerifyResponse,
)
from app.services.password_service import PasswordService
from app.services.rate_limiter import limit_login_attempts
from app.services.token_service import TokenService

logger = logging.getLogger(__name__)

router = APIRouter()


# Plain def routes run in the threadpool; bcrypt would block the event loop
@router.post("/login", response_model=LoginResponse, dependencies=[Depends(limit_login_attempts)])
def login(
    body: LoginRequest,
    request: Request,
    db: Session = Depends(get_db),
    service: TokenService = Depends(get_token_service),
):
    """
    Exchange the admin password for a non-expiring admin token.
    """
    client_ip = get_client_ip(request)
    if not PasswordService(db).verify(body.password):
        logger.warning(f"Failed admin login from {client_ip}")
        raise InvalidCredential()

    token = service.issue_admin_token(client_ip)
    return LoginResponse(token=token.token)


@router.post("/verify", response_model=VerifyResponse, response_model_exclude_none=True)
async def verify_token(
    request: Request,
    auth: AuthContext = Depends(get_current_auth),
    service: TokenService = Depends(get_token_service),
):
    """
    Check a bearer token. Starlight tokens also get the live key info.
    """
    if isinstance(auth.privilege, Anonymous):
        # Starlight token whose key is gone
        logger.warning(f"Unauthorized: orphaned token ({request.method} {request.url.path})")
        raise Unauthorized()

    key_info = None
    if auth.token.kind == TokenKind.STARLIGHT:
        key = service.key_for(auth.token)
        key_info = KeyInfoResponse.from_key(key)

    return VerifyResponse(
        tokenType=auth.token.kind.value,
        isAdmin=auth.is_admin,
        keyInfo=key_info,
    )


@router.post("/logout", response_model=SuccessResponse, response_model_exclude_none=True)
async def logout(
    token: Optional[str] = Depends(get_bearer_token),
    service: TokenService = Depends(get_token_service),
):
    """Revoke the presented token. Always succeeds."""
    service.revoke(token)
    return SuccessResponse()


@router.post("/update-password", response_model=SuccessResponse)
def update_password(
    body: UpdatePasswordRequest,
    _auth: AuthContext = Depends(require_admin_token),
    db: Session = Depends(get_db),
):
    """Rotate the admin password (admin token only)."""
    PasswordService(db).update(body.currentPassword, body.newPassword)
    return SuccessResponse(message="Password updated")


@router.post("/generate-password-hash", response_model=GenerateHashResponse)
def generate_password_hash(
    body: GenerateHashRequest,
    _auth: AuthContext = Depends(require_admin_token),
):
    """
    Hash a password without storing it, for use as ADMIN_PASSWORD_HASH.
    """
    return GenerateHashResponse(hash=hash_password(body.newPassword))
