"""
Token kinds, access-key roles and the caller privilege model.

A caller reaches admin privilege by one of two paths:
- password login, which mints an `admin` token
- redeeming an access key whose role is `admin`, which mints a `starlight` token

`Privilege` makes that explicit so call sites never re-check token kind and
key role separately.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Set, Union


class TokenKind(str, Enum):
    """Kinds of bearer token."""
    ADMIN = "admin"
    STARLIGHT = "starlight"


class KeyRole(str, Enum):
    """Roles an access key grants to whoever redeems it."""
    USER = "user"
    ADMIN = "admin"


class AdminVia(str, Enum):
    """How a caller obtained admin privilege."""
    PASSWORD = "password"
    KEY = "key"


VALID_KEY_ROLES: Set[str] = {r.value for r in KeyRole}


def normalize_role(role: str) -> str:
    """
    Normalize an access-key role string.

    Raises:
        ValueError: if the role is not one of the known key roles
    """
    role_lower = (role or "").lower().strip()
    if role_lower not in VALID_KEY_ROLES:
        raise ValueError(f"role must be one of: {', '.join(sorted(VALID_KEY_ROLES))}")
    return role_lower


@dataclass(frozen=True)
class Anonymous:
    """No token, or a token that failed verification."""


@dataclass(frozen=True)
class KeyHolder:
    """Caller holding a user-role access key."""
    key_code: str
    percentage: int


@dataclass(frozen=True)
class Admin:
    """Caller with admin privilege, by password or by admin-role key."""
    via: AdminVia
    key_code: Optional[str] = None
    percentage: Optional[int] = None


Privilege = Union[Anonymous, KeyHolder, Admin]


def is_admin(privilege: Privilege) -> bool:
    return isinstance(privilege, Admin)


def is_authenticated(privilege: Privilege) -> bool:
    return not isinstance(privilege, Anonymous)


def key_percentage(privilege: Privilege) -> Optional[int]:
    """Disclosure percentage carried by the caller's access key, if any."""
    if isinstance(privilege, (KeyHolder, Admin)):
        return privilege.percentage
    return None
