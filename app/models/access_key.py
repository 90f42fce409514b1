"""Access key database model (the access-key registry)."""
from sqlalchemy import Column, Integer, String, CheckConstraint

from app.core.database import Base
from app.core.roles import KeyRole
from app.models.types import UTCDateTime, utcnow


class AccessKey(Base):
    """Shareable, time-limited code that can be redeemed for a starlight token."""
    __tablename__ = "access_keys"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(64), unique=True, nullable=False, index=True)

    # Labels, not used for authentication
    username = Column(String(255), nullable=False, default="Anonymous")
    name = Column(String(255), nullable=True)

    role = Column(String(20), nullable=False, default=KeyRole.USER.value)  # "user" or "admin"
    percentage = Column(Integer, nullable=False, default=100)
    duration_days = Column(Integer, nullable=False)

    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    expires_at = Column(UTCDateTime, nullable=False, index=True)

    __table_args__ = (
        CheckConstraint("percentage >= 0 AND percentage <= 100", name="ck_access_keys_percentage"),
    )

    def is_expired(self, now) -> bool:
        return now > self.expires_at
