"""
Category filter and tag dictionary models.
"""
from sqlalchemy import Column, Integer, String, UniqueConstraint

from app.core.database import Base


class Filter(Base):
    """Menu button shown above a category."""
    __tablename__ = "filters"

    id = Column(Integer, primary_key=True, index=True)
    category = Column(String(100), nullable=False, index=True)
    label = Column(String(255), nullable=False)
    tag = Column(String(255), nullable=False)
    sort_order = Column(Integer, nullable=False, default=0)

    __table_args__ = (UniqueConstraint("category", "tag", name="uq_filters_category_tag"),)


class TagDictionaryEntry(Base):
    """Display label for a tag within a category."""
    __tablename__ = "tag_dictionary"

    id = Column(Integer, primary_key=True, index=True)
    category = Column(String(100), nullable=False, index=True)
    label = Column(String(255), nullable=False)
    tag = Column(String(255), nullable=False)
    sort_order = Column(Integer, nullable=False, default=0)

    __table_args__ = (UniqueConstraint("category", "tag", name="uq_tag_dictionary_category_tag"),)
