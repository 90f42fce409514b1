"""
Admin password verification and rotation.

The bcrypt hash is resolved in order: database, `ADMIN_PASSWORD_HASH`, then a
hash of `DEFAULT_ADMIN_PASSWORD`. Whichever is used first is persisted so
later rotations only touch the database.
"""
import logging

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.database import run_with_retry
from app.core.exceptions import InvalidCredential
from app.core.security import hash_password, is_valid_password_hash, verify_password
from app.services.settings_store import SettingsStore

logger = logging.getLogger(__name__)

PASSWORD_HASH_KEY = "admin_password_hash"
MIN_PASSWORD_LENGTH = 6


class PasswordService:
    def __init__(self, db: Session):
        self.db = db
        self.store = SettingsStore(db)

    def current_hash(self) -> str:
        def unit():
            stored = self.store.get(PASSWORD_HASH_KEY)
            if is_valid_password_hash(stored):
                return stored

            if is_valid_password_hash(settings.ADMIN_PASSWORD_HASH):
                resolved = settings.ADMIN_PASSWORD_HASH
            else:
                logger.warning(
                    "No admin password hash configured, falling back to DEFAULT_ADMIN_PASSWORD. "
                    "Set ADMIN_PASSWORD_HASH or change the password."
                )
                resolved = hash_password(settings.DEFAULT_ADMIN_PASSWORD)

            self.store.set(PASSWORD_HASH_KEY, resolved)
            self.db.commit()
            return resolved

        return run_with_retry(self.db, unit)

    def verify(self, password: str) -> bool:
        if not password:
            return False
        return verify_password(password, self.current_hash())

    def update(self, current_password: str, new_password: str) -> None:
        """
        Replace the admin password.

        Raises:
            InvalidCredential: if `current_password` is wrong
        """
        if not self.verify(current_password):
            raise InvalidCredential("Current password is incorrect")

        new_hash = hash_password(new_password)

        def unit():
            self.store.set(PASSWORD_HASH_KEY, new_hash)
            self.db.commit()

        run_with_retry(self.db, unit)
        logger.info("Admin password updated")
