"""
Credential store: persistence of bearer tokens.

Methods only stage changes on the session; the caller owns the transaction
(see `TokenService`).
"""
import logging
from datetime import datetime
from typing import Callable, List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.core.roles import TokenKind
from app.core.security import generate_token
from app.models.bearer_token import BearerToken
from app.models.types import utcnow

logger = logging.getLogger(__name__)


class CredentialStore:
    """Repository over the `tokens` table."""

    def __init__(self, db: Session, clock: Callable[[], datetime] = utcnow):
        self.db = db
        self.clock = clock

    def _live(self, now: datetime):
        return self.db.query(BearerToken).filter(
            or_(BearerToken.expires_at.is_(None), BearerToken.expires_at > now)
        )

    def add(
        self,
        kind: TokenKind,
        ip_address: Optional[str] = None,
        access_key_code: Optional[str] = None,
        expires_at: Optional[datetime] = None,
    ) -> BearerToken:
        record = BearerToken(
            token=generate_token(),
            kind=kind.value,
            ip_address=ip_address,
            access_key_code=access_key_code,
            created_at=self.clock(),
            expires_at=expires_at,
        )
        self.db.add(record)
        self.db.flush()
        return record

    def get_live(self, token: str) -> Optional[BearerToken]:
        """The token row if it exists and has not expired."""
        if not token:
            return None
        return self._live(self.clock()).filter(BearerToken.token == token).first()

    def live_for_key(self, access_key_code: str) -> List[BearerToken]:
        return (
            self._live(self.clock())
            .filter(
                BearerToken.access_key_code == access_key_code,
                BearerToken.kind == TokenKind.STARLIGHT.value,
            )
            .all()
        )

    def delete(self, token: str) -> bool:
        deleted = self.db.query(BearerToken).filter(BearerToken.token == token).delete(
            synchronize_session=False
        )
        return deleted > 0

    def delete_many(self, tokens: List[BearerToken]) -> int:
        ids = [t.id for t in tokens]
        if not ids:
            return 0
        return self.db.query(BearerToken).filter(BearerToken.id.in_(ids)).delete(
            synchronize_session=False
        )

    def delete_for_key(self, access_key_code: str) -> int:
        return (
            self.db.query(BearerToken)
            .filter(
                BearerToken.access_key_code == access_key_code,
                BearerToken.kind == TokenKind.STARLIGHT.value,
            )
            .delete(synchronize_session=False)
        )

    def delete_expired(self) -> int:
        return (
            self.db.query(BearerToken)
            .filter(BearerToken.expires_at.is_not(None), BearerToken.expires_at <= self.clock())
            .delete(synchronize_session=False)
        )
