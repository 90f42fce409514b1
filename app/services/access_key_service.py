"""
Admin operations on access keys: generate, list, rename, revoke.
"""
import logging
from datetime import datetime
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from app.core.database import run_with_retry
from app.core.roles import KeyRole
from app.core.security import normalize_access_code
from app.models.access_key import AccessKey
from app.models.types import utcnow
from app.services.access_key_registry import AccessKeyRegistry
from app.services.token_service import TokenService

logger = logging.getLogger(__name__)


class AccessKeyService:
    def __init__(self, db: Session, clock: Callable[[], datetime] = utcnow):
        self.db = db
        self.registry = AccessKeyRegistry(db, clock)
        self.token_service = TokenService(db, clock)

    def generate(
        self,
        username: str,
        duration_days: int,
        role: KeyRole = KeyRole.USER,
        percentage: int = 100,
    ) -> AccessKey:
        def unit():
            key = self.registry.create(username, duration_days, role, percentage)
            self.db.commit()
            return key

        key = run_with_retry(self.db, unit)
        logger.info(
            f"Access key generated: {key.code[:6]}..., user={key.username}, "
            f"role={key.role}, percentage={key.percentage}, days={duration_days}"
        )
        return key

    def list_active(self) -> List[AccessKey]:
        """Unexpired keys; expired ones are deleted on the way."""
        def unit():
            keys = self.registry.list_active()
            self.db.commit()
            return keys

        return run_with_retry(self.db, unit)

    def rename(self, code: str, name: str) -> Optional[AccessKey]:
        """Change the display name only; outstanding tokens stay valid."""
        def unit():
            key = self.registry.rename(code, name)
            self.db.commit()
            return key

        return run_with_retry(self.db, unit)

    def revoke(self, code: str) -> bool:
        """
        Delete a key and force its holder offline.

        The key and its tokens go in one transaction, under the same lock as
        redemption, so no token outlives its key.
        """
        tokens_revoked = self.token_service.revoke_key(code)
        if tokens_revoked is None:
            return False
        logger.info(f"Access key revoked: {normalize_access_code(code)[:6]}... ({tokens_revoked} session(s) ended)")
        return True
