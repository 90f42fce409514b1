"""
Bearer token authentication and admin gating for API endpoints.
"""
import logging
from typing import Optional

from fastapi import Depends, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.exceptions import Forbidden, Unauthorized
from app.core.roles import Admin, Privilege, TokenKind
from app.services.token_service import TokenService, TokenSnapshot

logger = logging.getLogger(__name__)

# Missing and malformed headers are handled here, not by FastAPI
bearer_scheme = HTTPBearer(auto_error=False)


class AuthContext:
    """Authenticated caller: the verified token and the privilege it resolves to."""
    def __init__(self, token: TokenSnapshot, privilege: Privilege):
        self.token = token
        self.privilege = privilege

    @property
    def is_admin(self) -> bool:
        return isinstance(self.privilege, Admin)


def get_token_service(db: Session = Depends(get_db)) -> TokenService:
    return TokenService(db)


def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
) -> Optional[str]:
    """Raw token value from `Authorization: Bearer <token>`, if present."""
    if credentials is None or not credentials.credentials:
        return None
    return credentials.credentials.strip()


def get_current_auth(
    request: Request,
    token: Optional[str] = Depends(get_bearer_token),
    service: TokenService = Depends(get_token_service),
) -> AuthContext:
    """
    Require a live bearer token.

    Missing and invalid tokens get the same 401 so responses do not reveal
    which tokens exist.

    Raises:
        Unauthorized: if the token is missing, unknown or expired
    """
    if not token:
        logger.warning(f"Unauthorized: no token ({request.method} {request.url.path})")
        raise Unauthorized()

    snapshot = service.verify(token)
    if snapshot is None:
        logger.warning(f"Unauthorized: invalid token ({request.method} {request.url.path})")
        raise Unauthorized()

    return AuthContext(snapshot, service.privilege_for(snapshot))


def get_optional_privilege(
    token: Optional[str] = Depends(get_bearer_token),
    service: TokenService = Depends(get_token_service),
) -> Privilege:
    """Privilege for public reads: a missing or invalid token is just anonymous."""
    return service.resolve_privilege(token)


def require_admin_token(
    request: Request,
    auth: AuthContext = Depends(get_current_auth),
) -> AuthContext:
    """
    Require a password-login admin token (key management, password changes).

    Raises:
        Forbidden: for starlight tokens, including admin-role keys
    """
    if auth.token.kind != TokenKind.ADMIN:
        logger.warning(f"Forbidden: admin token required ({request.method} {request.url.path})")
        raise Forbidden()
    return auth


def require_admin_privilege(
    request: Request,
    auth: AuthContext = Depends(get_current_auth),
) -> AuthContext:
    """
    Require admin privilege by either path: admin token or admin-role key.

    Raises:
        Forbidden: for user-role key holders
    """
    if not auth.is_admin:
        logger.warning(f"Forbidden: admin privilege required ({request.method} {request.url.path})")
        raise Forbidden()
    return auth
