"""Schemas for gallery resources, filters and the tag dictionary."""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Accepts snake_case or camelCase input; serializes as camelCase."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ResourceIn(CamelModel):
    """Request schema for creating or replacing a resource."""
    id: str = Field(..., min_length=1, max_length=128)
    title: str = Field(..., min_length=1, max_length=500)
    category: str = Field(..., min_length=1, max_length=100)
    description: str = ""
    tags: List[str] = Field(default_factory=list)
    image_url: str = ""
    link: str = ""
    featured: bool = False
    content_type: str = "link"
    content: str = ""
    menu: str = ""
    sort_order: int = 0
    created_at: Optional[datetime] = None

    @field_validator("tags", mode="before")
    @classmethod
    def coerce_tags(cls, v):
        """Anything but a list of tags becomes an empty list."""
        if not isinstance(v, list):
            return []
        return [str(tag) for tag in v]

    @field_validator("content_type")
    @classmethod
    def validate_content_type(cls, v: str) -> str:
        if v not in ("link", "document"):
            raise ValueError("contentType must be 'link' or 'document'")
        return v


class ResourceOut(CamelModel):
    id: str
    title: str
    description: str
    category: str
    tags: List[str]
    image_url: str
    link: str
    featured: bool
    content_type: str
    content: str
    menu: str
    sort_order: int
    created_at: datetime
    updated_at: datetime


class FilterIn(BaseModel):
    category: str = Field(..., min_length=1)
    label: str = Field(..., min_length=1)
    tag: str = Field(..., min_length=1)


class FilterOut(BaseModel):
    label: str
    tag: str

    model_config = {"from_attributes": True}


class BatchItemError(BaseModel):
    index: int
    message: str


class BatchResult(BaseModel):
    total: int
    success: int
    failed: int
    errors: List[BatchItemError]

