"""
Gallery resource model.
"""
from sqlalchemy import Column, Integer, String, Text, Boolean, JSON

from app.core.database import Base
from app.models.types import UTCDateTime, utcnow


class Resource(Base):
    """A curated external link or document shown in a category."""
    __tablename__ = "resources"

    id = Column(String(128), primary_key=True)  # Client-supplied identifier
    title = Column(String(500), nullable=False)
    description = Column(Text, nullable=False, default="")
    category = Column(String(100), nullable=False, index=True)
    tags = Column(JSON, nullable=False, default=list)
    image_url = Column(String(1000), nullable=False, default="")
    link = Column(String(1000), nullable=False, default="")
    featured = Column(Boolean, nullable=False, default=False)

    content_type = Column(String(20), nullable=False, default="link")  # "link" or "document"
    content = Column(Text, nullable=False, default="")  # Markdown body for documents
    menu = Column(String(100), nullable=False, default="")  # Secondary menu within a category
    sort_order = Column(Integer, nullable=False, default=0)

    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)
