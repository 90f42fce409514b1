"""
Visibility resolver.

Decides, for one category and one caller, whether the category may be read
and how much of it is disclosed. Everything here is pure: callers fetch the
items, then apply the decision with `apply_visibility`.
"""
import math
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Iterable, List, Optional, Sequence, TypeVar

from app.core.roles import Privilege, is_admin, is_authenticated, key_percentage

T = TypeVar("T")


class Disclosure(str, Enum):
    FULL = "full"
    PARTIAL = "partial"
    FORBIDDEN = "forbidden"


@dataclass(frozen=True)
class VisibilityDecision:
    disclosure: Disclosure
    percentage: int = 100

    @property
    def forbidden(self) -> bool:
        return self.disclosure == Disclosure.FORBIDDEN

    def visible_count(self, total: int) -> int:
        """Number of leading items to show out of `total`."""
        if self.disclosure == Disclosure.FORBIDDEN:
            return 0
        if self.disclosure == Disclosure.FULL:
            return total
        return math.ceil(total * self.percentage / 100)


FULL = VisibilityDecision(Disclosure.FULL, 100)
FORBIDDEN = VisibilityDecision(Disclosure.FORBIDDEN, 0)


def partial(percentage: int) -> VisibilityDecision:
    if percentage >= 100:
        return FULL
    return VisibilityDecision(Disclosure.PARTIAL, max(0, percentage))


@dataclass(frozen=True)
class VisibilityPolicy:
    """Which categories are admin-only and which are percentage-controlled."""
    admin_only: frozenset
    percentage_controlled: frozenset
    guest_percentage: int = 20

    @classmethod
    def from_settings(cls, settings) -> "VisibilityPolicy":
        return cls(
            admin_only=frozenset(settings.ADMIN_ONLY_CATEGORIES),
            percentage_controlled=frozenset(settings.PERCENTAGE_CONTROLLED_CATEGORIES),
            guest_percentage=settings.GUEST_PERCENTAGE,
        )


def compute_visibility(
    category: str,
    privilege: Privilege,
    policy: VisibilityPolicy,
) -> VisibilityDecision:
    """
    Resolve the disclosure level of `category` for a caller.

    | kind                  | anonymous         | no key percentage | key percentage P |
    |-----------------------|-------------------|-------------------|------------------|
    | open                  | full              | full              | full             |
    | percentage-controlled | guest_percentage  | full              | P (full at 100)  |
    | admin-only            | forbidden         | admin only        | admin only       |
    """
    if category in policy.admin_only:
        return FULL if is_admin(privilege) else FORBIDDEN

    if category not in policy.percentage_controlled:
        return FULL

    if not is_authenticated(privilege):
        return partial(policy.guest_percentage)

    percentage: Optional[int] = key_percentage(privilege)
    if percentage is None:
        return FULL
    return partial(percentage)


_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def canonical_sort_key(resource):
    """Featured first, then newest first, then title."""
    created = resource.created_at or _EPOCH
    return (
        0 if resource.featured else 1,
        -created.timestamp(),
        (resource.title or "").lower(),
    )


def canonical_order(resources: Iterable[T]) -> List[T]:
    return sorted(resources, key=canonical_sort_key)


def apply_visibility(resources: Sequence[T], decision: VisibilityDecision) -> List[T]:
    """
    Leading slice of `resources` (already in canonical order) allowed by `decision`.

    The same percentage always exposes the same prefix, and a smaller
    percentage exposes a prefix of what a larger one exposes.
    """
    items = list(resources)
    return items[: decision.visible_count(len(items))]
