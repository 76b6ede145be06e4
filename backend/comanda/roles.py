# Overview: Staff roles and the capability check consulted before any core operation.

ROLE_ADMIN = "admin"
ROLE_WAITER = "waiter"
ROLE_KITCHEN = "kitchen"
ROLE_CASHIER = "cashier"
ROLE_CUSTOMER = "customer"

VALID_ROLES = [ROLE_ADMIN, ROLE_WAITER, ROLE_KITCHEN, ROLE_CASHIER, ROLE_CUSTOMER]

# Capability groups used by the routes
ORDER_PLACERS = frozenset({ROLE_ADMIN, ROLE_WAITER, ROLE_CASHIER, ROLE_CUSTOMER})
ORDER_HANDLERS = frozenset({ROLE_ADMIN, ROLE_WAITER, ROLE_KITCHEN, ROLE_CASHIER})
CASH_HANDLERS = frozenset({ROLE_ADMIN, ROLE_CASHIER})
STOCK_VIEWERS = frozenset({ROLE_ADMIN, ROLE_KITCHEN})
STOCK_MANAGERS = frozenset({ROLE_ADMIN})


def has_role(user, allowed_roles) -> bool:
    """True when the user is active and holds one of the allowed roles."""
    if user is None or not getattr(user, "is_active", False):
        return False
    if isinstance(allowed_roles, str):
        allowed_roles = {allowed_roles}
    return user.role in allowed_roles
