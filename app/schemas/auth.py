"""Schemas for admin login, token verification and password management."""
from typing import Optional

from pydantic import BaseModel, Field

from app.schemas.access_key import KeyInfoResponse
from app.services.password_service import MIN_PASSWORD_LENGTH


class LoginRequest(BaseModel):
    password: str = Field(..., min_length=1)


class LoginResponse(BaseModel):
    success: bool = True
    token: str


class VerifyResponse(BaseModel):
    success: bool = True
    tokenType: str
    isAdmin: bool
    keyInfo: Optional[KeyInfoResponse] = None


class SuccessResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None


class UpdatePasswordRequest(BaseModel):
    currentPassword: str = Field(..., min_length=1)
    newPassword: str = Field(..., min_length=MIN_PASSWORD_LENGTH)


class GenerateHashRequest(BaseModel):
    newPassword: str = Field(..., min_length=MIN_PASSWORD_LENGTH)


class GenerateHashResponse(BaseModel):
    success: bool = True
    hash: str
    note: str = "Set this value as ADMIN_PASSWORD_HASH to use it as the default password"
