"""Schemas for the site header configuration."""
from typing import Dict, Optional

from pydantic import BaseModel, Field


class HeaderConfig(BaseModel):
    avatar: str = Field(..., min_length=1, max_length=255)
    title: str = Field(..., min_length=1, max_length=255)
    avatarImage: Optional[str] = None
    contactImage: Optional[str] = None
    cooperationImage: Optional[str] = None
    categorySubtitles: Optional[Dict[str, Optional[str]]] = None


class HeaderConfigResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
    config: HeaderConfig
