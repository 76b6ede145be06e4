import pytest

from comanda.models import User
from comanda.roles import (
    has_role,
    ORDER_PLACERS,
    ORDER_HANDLERS,
    CASH_HANDLERS,
    STOCK_MANAGERS,
)


def _user(role, is_active=True):
    return User(name=role, email=f"{role}@x.test", role=role, is_active=is_active)


@pytest.mark.parametrize(
    "role,group,expected",
    [
        ("admin", CASH_HANDLERS, True),
        ("cashier", CASH_HANDLERS, True),
        ("waiter", CASH_HANDLERS, False),
        ("kitchen", ORDER_HANDLERS, True),
        ("customer", ORDER_HANDLERS, False),
        ("customer", ORDER_PLACERS, True),
        ("kitchen", ORDER_PLACERS, False),
        ("cashier", STOCK_MANAGERS, False),
    ],
)
def test_capability_groups(role, group, expected):
    assert has_role(_user(role), group) is expected


def test_single_role_string():
    assert has_role(_user("waiter"), "waiter") is True
    assert has_role(_user("waiter"), "admin") is False


def test_inactive_or_missing_user_has_no_roles():
    assert has_role(_user("admin", is_active=False), {"admin"}) is False
    assert has_role(None, {"admin"}) is False
