"""
Token issuance and verification.

Turns a verified admin password or a redeemed access key into a bearer
token, verifies tokens on every request and resolves the caller's
privilege. Every public method is one transaction run through
`run_with_retry`, so a "database is locked" failure can be retried safely.
"""
import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.database import run_with_retry
from app.core.exceptions import (
    IssuanceFailed,
    InvalidKey,
    KeyExpired,
    KeyInUseElsewhere,
    StoreUnavailable,
)
from app.core.roles import (
    Admin,
    AdminVia,
    Anonymous,
    KeyHolder,
    KeyRole,
    Privilege,
    TokenKind,
)
from app.core.security import normalize_access_code
from app.models.access_key import AccessKey
from app.models.bearer_token import BearerToken
from app.models.types import utcnow
from app.services.access_key_registry import AccessKeyRegistry
from app.services.credential_store import CredentialStore

logger = logging.getLogger(__name__)

# Fixed pool of locks striped by code, so concurrent redemptions of one code
# in this process run one at a time. Codes that never existed add nothing.
REDEEM_LOCK_STRIPES = 64
_redeem_locks: List[threading.Lock] = [threading.Lock() for _ in range(REDEEM_LOCK_STRIPES)]


def _redeem_lock(code: str) -> threading.Lock:
    return _redeem_locks[hash(code) % REDEEM_LOCK_STRIPES]


@dataclass(frozen=True)
class KeyInfo:
    """Read-only snapshot of an access key, returned to the key holder."""
    code: str
    username: str
    name: Optional[str]
    role: str
    percentage: int
    duration_days: int
    created_at: datetime
    expires_at: datetime

    @classmethod
    def from_key(cls, key: AccessKey) -> "KeyInfo":
        return cls(
            code=key.code,
            username=key.username,
            name=key.name,
            role=key.role or KeyRole.USER.value,
            percentage=100 if key.percentage is None else key.percentage,
            duration_days=key.duration_days,
            created_at=key.created_at,
            expires_at=key.expires_at,
        )


@dataclass(frozen=True)
class TokenSnapshot:
    """Detached copy of a bearer token row."""
    token: str
    kind: TokenKind
    ip_address: Optional[str]
    access_key_code: Optional[str]
    created_at: datetime
    expires_at: Optional[datetime]

    @classmethod
    def from_row(cls, row: BearerToken) -> "TokenSnapshot":
        return cls(
            token=row.token,
            kind=TokenKind(row.kind),
            ip_address=row.ip_address,
            access_key_code=row.access_key_code,
            created_at=row.created_at,
            expires_at=row.expires_at,
        )


class TokenService:
    """Issues, verifies and revokes bearer tokens."""

    def __init__(self, db: Session, clock: Callable[[], datetime] = utcnow):
        """
        Args:
            db: Database session, owned by the caller
            clock: Returns the current UTC time; injected for expiry tests
        """
        self.db = db
        self.clock = clock
        self.tokens = CredentialStore(db, clock)
        self.keys = AccessKeyRegistry(db, clock)

    def _commit(self, operation):
        def unit():
            result = operation()
            self.db.commit()
            return result
        return run_with_retry(self.db, unit)

    # -- Issuance --

    def issue_admin_token(self, caller_ip: str) -> TokenSnapshot:
        """
        Mint a non-expiring admin token. The password must already be verified.

        Raises:
            IssuanceFailed: if the token could not be stored
        """
        try:
            row = self._commit(
                lambda: self.tokens.add(TokenKind.ADMIN, ip_address=caller_ip, expires_at=None)
            )
        except StoreUnavailable:
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to store admin token: {e}", exc_info=True)
            raise IssuanceFailed() from e

        logger.info(f"Admin token issued for {caller_ip}")
        return TokenSnapshot.from_row(row)

    def redeem_access_key(self, code: str, caller_ip: str) -> Tuple[TokenSnapshot, KeyInfo]:
        """
        Exchange an access-key code for a starlight token bound to `caller_ip`.

        A key may be live on one IP at a time. Redeeming again from the same
        IP replaces that IP's previous token.

        Raises:
            InvalidKey: unknown code
            KeyExpired: the key has expired (and is deleted)
            KeyInUseElsewhere: another IP holds a live token for the key
        """
        normalized = normalize_access_code(code)
        if not normalized:
            raise InvalidKey()

        def unit():
            # Write-lock the key first so the live-token check below and the
            # insert see the same state in every process
            if not self.keys.lock_for_update(normalized):
                raise InvalidKey()
            key = self.keys.find(normalized)

            if key.is_expired(self.clock()):
                self.keys.delete(key.code)
                self.tokens.delete_for_key(key.code)
                self.db.commit()
                raise KeyExpired()

            live = self.tokens.live_for_key(key.code)
            if any(t.ip_address != caller_ip for t in live):
                raise KeyInUseElsewhere()

            self.tokens.delete_many([t for t in live if t.ip_address == caller_ip])

            row = self.tokens.add(
                TokenKind.STARLIGHT,
                ip_address=caller_ip,
                access_key_code=key.code,
                expires_at=key.expires_at,
            )
            self.db.commit()
            return TokenSnapshot.from_row(row), KeyInfo.from_key(key)

        with _redeem_lock(normalized):
            try:
                token, info = run_with_retry(self.db, unit)
            except (InvalidKey, KeyInUseElsewhere):
                self.db.rollback()
                raise

        logger.info(f"Starlight access granted: key={info.code[:6]}..., ip={caller_ip}, role={info.role}")
        return token, info

    # -- Verification --

    def verify(self, token: Optional[str]) -> Optional[TokenSnapshot]:
        """The stored token if it exists and has not expired. Never mutates state."""
        if not token:
            return None
        row = run_with_retry(self.db, lambda: self.tokens.get_live(token))
        return TokenSnapshot.from_row(row) if row else None

    def key_for(self, token: TokenSnapshot) -> Optional[AccessKey]:
        """Live access key behind a starlight token, read fresh on every call."""
        if token.kind != TokenKind.STARLIGHT or not token.access_key_code:
            return None
        key = run_with_retry(self.db, lambda: self.keys.find(token.access_key_code))
        if key is None or key.is_expired(self.clock()):
            return None
        return key

    def resolve_privilege(self, token: Optional[str]) -> Privilege:
        """Classify the caller behind a token value."""
        snapshot = self.verify(token)
        if snapshot is None:
            return Anonymous()
        return self.privilege_for(snapshot)

    def privilege_for(self, snapshot: TokenSnapshot) -> Privilege:
        if snapshot.kind == TokenKind.ADMIN:
            return Admin(via=AdminVia.PASSWORD)

        key = self.key_for(snapshot)
        if key is None:
            # Starlight token whose key was revoked or expired
            return Anonymous()
        info = KeyInfo.from_key(key)
        if info.role == KeyRole.ADMIN.value:
            return Admin(via=AdminVia.KEY, key_code=info.code, percentage=info.percentage)
        return KeyHolder(key_code=info.code, percentage=info.percentage)

    def resolve_admin_privilege(self, token: Optional[str]) -> bool:
        return isinstance(self.resolve_privilege(token), Admin)

    # -- Revocation and cleanup --

    def revoke(self, token: Optional[str]) -> None:
        """Delete one token (logout). Unknown tokens are ignored."""
        if not token:
            return
        self._commit(lambda: self.tokens.delete(token))

    def revoke_all_for_key(self, code: str) -> int:
        """Delete every starlight token bound to `code`."""
        normalized = normalize_access_code(code)
        with _redeem_lock(normalized):
            count = self._commit(lambda: self.tokens.delete_for_key(normalized))
        logger.info(f"Revoked {count} token(s) for key {normalized[:6]}...")
        return count

    def revoke_key(self, code: str) -> Optional[int]:
        """
        Delete an access key together with its starlight tokens, in one transaction.

        Returns the number of tokens deleted, or None if the key does not exist.
        """
        normalized = normalize_access_code(code)

        def unit():
            if not self.keys.delete(normalized):
                self.db.rollback()
                return None
            count = self.tokens.delete_for_key(normalized)
            self.db.commit()
            return count

        with _redeem_lock(normalized):
            return run_with_retry(self.db, unit)

    def sweep_expired(self) -> Tuple[int, int]:
        """Delete every expired token and access key. Returns (tokens, keys)."""
        def unit():
            return self.tokens.delete_expired(), self.keys.delete_expired()

        tokens_deleted, keys_deleted = self._commit(unit)
        if tokens_deleted or keys_deleted:
            logger.info(f"Expiry sweep removed {tokens_deleted} token(s) and {keys_deleted} key(s)")
        return tokens_deleted, keys_deleted
