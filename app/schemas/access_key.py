"""Schemas for access key management."""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.core.config import settings
from app.core.roles import normalize_role


class AccessKeyGenerateRequest(BaseModel):
    """Request schema for generating a new access key."""
    durationInDays: int = Field(default=settings.KEY_DEFAULT_DURATION_DAYS)
    username: str = Field(default="Anonymous", max_length=255)
    userType: str = Field(default="user", description="Role: user or admin")
    percentage: Optional[int] = Field(default=100, description="Disclosure percentage (0-100)")

    @field_validator("durationInDays")
    @classmethod
    def validate_duration(cls, v: int) -> int:
        if v < 1 or v > settings.KEY_MAX_DURATION_DAYS:
            raise ValueError(f"durationInDays must be between 1 and {settings.KEY_MAX_DURATION_DAYS}")
        return v

    @field_validator("username", mode="before")
    @classmethod
    def default_username(cls, v):
        if v is None or (isinstance(v, str) and not v.strip()):
            return "Anonymous"
        return v.strip() if isinstance(v, str) else v

    @field_validator("userType")
    @classmethod
    def validate_user_type(cls, v: str) -> str:
        """Normalize and validate role."""
        return normalize_role(v)

    @field_validator("percentage")
    @classmethod
    def validate_percentage(cls, v: Optional[int]) -> int:
        if v is None:
            return 100
        if v < 0 or v > 100:
            raise ValueError("percentage must be between 0 and 100")
        return v


class AccessKeyRenameRequest(BaseModel):
    name: str = Field(..., max_length=255)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("name is required")
        return v.strip()


class AccessKeyVerifyRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=64)


class KeyInfoResponse(BaseModel):
    """Access key as returned to admins and to the key holder."""
    code: str
    username: str
    name: Optional[str] = None
    userType: str
    percentage: int
    duration: int
    createdAt: datetime
    expiresAt: datetime

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_key(cls, key) -> "KeyInfoResponse":
        """Build from an AccessKey row or a KeyInfo snapshot."""
        return cls(
            code=key.code,
            username=key.username,
            name=key.name,
            userType=key.role,
            percentage=100 if key.percentage is None else key.percentage,
            duration=key.duration_days,
            createdAt=key.created_at,
            expiresAt=key.expires_at,
        )


class AccessKeyGenerateResponse(BaseModel):
    success: bool = True
    key: KeyInfoResponse


class AccessKeyListResponse(BaseModel):
    success: bool = True
    keys: List[KeyInfoResponse]


class AccessKeyVerifyResponse(BaseModel):
    success: bool = True
    message: str = "Access Granted"
    token: str
    keyInfo: KeyInfoResponse
