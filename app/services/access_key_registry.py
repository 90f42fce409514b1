"""
Access-key registry: persistence of shareable access codes.

Like the credential store, methods stage changes and leave the commit to the
caller.
"""
import logging
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from app.core.roles import KeyRole
from app.core.security import generate_access_code, normalize_access_code
from app.models.access_key import AccessKey
from app.models.types import utcnow

logger = logging.getLogger(__name__)


class AccessKeyRegistry:
    """Repository over the `access_keys` table."""

    def __init__(self, db: Session, clock: Callable[[], datetime] = utcnow):
        self.db = db
        self.clock = clock

    def create(
        self,
        username: str,
        duration_days: int,
        role: KeyRole = KeyRole.USER,
        percentage: int = 100,
    ) -> AccessKey:
        """Create a key expiring `duration_days` from now; percentage is clamped to 0..100."""
        now = self.clock()
        code = generate_access_code()
        while self.find(code) is not None:
            code = generate_access_code()

        key = AccessKey(
            code=code,
            username=username or "Anonymous",
            role=KeyRole(role).value,
            percentage=max(0, min(100, int(percentage))),
            duration_days=duration_days,
            created_at=now,
            expires_at=now + timedelta(days=duration_days),
        )
        self.db.add(key)
        self.db.flush()
        return key

    def find(self, code: str) -> Optional[AccessKey]:
        """Look a key up by code (trimmed, case-insensitive). Expired keys are returned too."""
        normalized = normalize_access_code(code)
        if not normalized:
            return None
        return self.db.query(AccessKey).filter(AccessKey.code == normalized).first()

    def lock_for_update(self, code: str) -> bool:
        """
        Take the write lock on a key row for the rest of the transaction.

        Issued as a no-op UPDATE so it opens a write transaction on SQLite and
        row-locks on server databases. Returns False if no such key exists.
        """
        normalized = normalize_access_code(code)
        locked = (
            self.db.query(AccessKey)
            .filter(AccessKey.code == normalized)
            .update({AccessKey.code: AccessKey.code}, synchronize_session=False)
        )
        return locked > 0

    def list_active(self) -> List[AccessKey]:
        """All unexpired keys, newest first. Purges expired keys as a side effect."""
        self.delete_expired()
        return (
            self.db.query(AccessKey)
            .filter(AccessKey.expires_at > self.clock())
            .order_by(AccessKey.created_at.desc())
            .all()
        )

    def delete(self, code: str) -> bool:
        deleted = (
            self.db.query(AccessKey)
            .filter(AccessKey.code == normalize_access_code(code))
            .delete(synchronize_session=False)
        )
        return deleted > 0

    def rename(self, code: str, name: str) -> Optional[AccessKey]:
        key = self.find(code)
        if key is None:
            return None
        key.name = name
        self.db.flush()
        return key

    def delete_expired(self) -> int:
        return (
            self.db.query(AccessKey)
            .filter(AccessKey.expires_at < self.clock())
            .delete(synchronize_session=False)
        )
