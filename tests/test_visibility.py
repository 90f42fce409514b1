"""
Tests for the visibility resolver.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import pytest

from app.core.roles import Admin, AdminVia, Anonymous, KeyHolder
from app.services.visibility import (
    FORBIDDEN,
    FULL,
    Disclosure,
    VisibilityPolicy,
    apply_visibility,
    canonical_order,
    compute_visibility,
    partial,
)

POLICY = VisibilityPolicy(
    admin_only=frozenset({"Learning"}),
    percentage_controlled=frozenset({"星芒学社", "图库"}),
    guest_percentage=20,
)

BASE_TIME = datetime(2025, 1, 1, tzinfo=timezone.utc)


@dataclass
class Item:
    title: str
    featured: bool = False
    created_at: datetime = BASE_TIME


def make_items(n):
    return [Item(title=f"item {i}", created_at=BASE_TIME + timedelta(days=i)) for i in range(n)]


NON_ADMINS = [
    Anonymous(),
    KeyHolder(key_code="USERKEY", percentage=100),
    KeyHolder(key_code="USERKEY", percentage=0),
]

ADMINS = [
    Admin(via=AdminVia.PASSWORD),
    Admin(via=AdminVia.KEY, key_code="ADMINKEY", percentage=100),
    Admin(via=AdminVia.KEY, key_code="ADMINKEY", percentage=10),
]


@pytest.mark.parametrize("privilege", NON_ADMINS)
def test_admin_only_category_forbidden_without_admin(privilege):
    assert compute_visibility("Learning", privilege, POLICY) == FORBIDDEN


@pytest.mark.parametrize("privilege", ADMINS)
def test_admin_only_category_full_for_admins(privilege):
    decision = compute_visibility("Learning", privilege, POLICY)
    assert not decision.forbidden
    assert decision == FULL


@pytest.mark.parametrize("privilege", NON_ADMINS + ADMINS)
def test_open_category_is_full_for_everyone(privilege):
    assert compute_visibility("AIGC", privilege, POLICY) == FULL


def test_anonymous_gets_guest_percentage():
    decision = compute_visibility("图库", Anonymous(), POLICY)
    assert decision.disclosure == Disclosure.PARTIAL
    assert decision.percentage == 20


def test_password_admin_sees_controlled_category_in_full():
    assert compute_visibility("星芒学社", Admin(via=AdminVia.PASSWORD), POLICY) == FULL


@pytest.mark.parametrize(
    "percentage, expected",
    [
        (0, partial(0)),
        (35, partial(35)),
        (100, FULL),
    ],
)
def test_key_percentage_drives_controlled_category(percentage, expected):
    privilege = KeyHolder(key_code="K", percentage=percentage)
    assert compute_visibility("星芒学社", privilege, POLICY) == expected


def test_admin_key_percentage_also_applies():
    privilege = Admin(via=AdminVia.KEY, key_code="K", percentage=50)
    assert compute_visibility("图库", privilege, POLICY) == partial(50)


@pytest.mark.parametrize(
    "total, percentage, expected",
    [
        (10, 20, 2),
        (10, 25, 3),
        (7, 20, 2),
        (1, 1, 1),
        (0, 50, 0),
        (10, 0, 0),
    ],
)
def test_visible_count_rounds_up(total, percentage, expected):
    assert partial(percentage).visible_count(total) == expected


def test_canonical_order_featured_then_newest_then_title():
    old_featured = Item("Zed", featured=True, created_at=BASE_TIME)
    new_plain = Item("beta", created_at=BASE_TIME + timedelta(days=5))
    same_time_a = Item("alpha", created_at=BASE_TIME + timedelta(days=1))
    same_time_b = Item("Bravo", created_at=BASE_TIME + timedelta(days=1))

    ordered = canonical_order([same_time_b, new_plain, old_featured, same_time_a])

    assert ordered == [old_featured, new_plain, same_time_a, same_time_b]


def test_smaller_percentage_is_prefix_of_larger():
    items = canonical_order(make_items(23))

    previous = []
    for percentage in range(0, 101, 5):
        shown = apply_visibility(items, partial(percentage))
        assert len(shown) >= len(previous)
        assert shown[: len(previous)] == previous
        previous = shown

    assert previous == items


def test_anonymous_sees_first_two_of_ten():
    items = canonical_order(make_items(10))
    decision = compute_visibility("图库", Anonymous(), POLICY)

    shown = apply_visibility(items, decision)

    assert shown == items[:2]
    # Newest first
    assert [i.title for i in shown] == ["item 9", "item 8"]


def test_forbidden_shows_nothing():
    assert apply_visibility(make_items(5), FORBIDDEN) == []
