"""Bearer token database model (the credential store)."""
from sqlalchemy import Column, Integer, String, Index

from app.core.database import Base
from app.core.roles import TokenKind
from app.models.types import UTCDateTime, utcnow


class BearerToken(Base):
    """Session token presented as `Authorization: Bearer <token>`."""
    __tablename__ = "tokens"

    id = Column(Integer, primary_key=True, index=True)
    token = Column(String(128), unique=True, nullable=False, index=True)
    kind = Column(String(20), nullable=False, default=TokenKind.ADMIN.value)  # "admin" or "starlight"

    # Binding
    ip_address = Column(String(45), nullable=True, index=True)  # IPv4 or IPv6
    access_key_code = Column(String(64), nullable=True, index=True)  # starlight tokens only

    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    expires_at = Column(UTCDateTime, nullable=True, index=True)  # NULL: lives until logout

    __table_args__ = (
        Index("ix_tokens_key_ip", "access_key_code", "ip_address"),
    )

    def is_live(self, now) -> bool:
        return self.expires_at is None or self.expires_at > now
