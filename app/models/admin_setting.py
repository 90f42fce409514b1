"""Key/value store for admin settings (password hash, site header)."""
from sqlalchemy import Column, Integer, String, Text

from app.core.database import Base
from app.models.types import UTCDateTime, utcnow


class AdminSetting(Base):
    __tablename__ = "admin_settings"

    id = Column(Integer, primary_key=True, index=True)
    key = Column(String(255), unique=True, nullable=False, index=True)
    value = Column(Text, nullable=False)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)
