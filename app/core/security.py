"""
Secrets, password hashing and client identification helpers.
"""
import secrets
from typing import Optional

import bcrypt
from fastapi import Request

BCRYPT_PREFIX = "$2"


def generate_token() -> str:
    """Generate an opaque bearer token (64 hex chars)."""
    return secrets.token_hex(32)


def generate_access_code() -> str:
    """Generate a shareable access-key code (32 uppercase hex chars)."""
    return secrets.token_hex(16).upper()


def normalize_access_code(code: str) -> str:
    return (code or "").strip().upper()


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt()
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Constant-time bcrypt comparison; a malformed hash never matches."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


def is_valid_password_hash(value: Optional[str]) -> bool:
    """Shape check for a bcrypt hash ($2a$/$2b$/$2y$, 60 chars)."""
    return bool(value) and isinstance(value, str) and value.startswith(BCRYPT_PREFIX) and len(value) >= 59


def get_client_ip(request: Request) -> str:
    """
    Client IP for token binding and rate limiting.

    Honors X-Forwarded-For and X-Real-IP, since the API normally runs behind
    a reverse proxy.
    """
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first
    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()
    if request.client:
        return request.client.host
    return "unknown"
