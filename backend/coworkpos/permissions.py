# Overview: Closed set of user roles and the level each one grants.
"""
Role model.

Roles are strictly ordered: a role satisfies every requirement at or below its
own level. Routes declare the minimum role they need with
@require_role(Role.ADMIN) etc. (see decorators.py).

- cashier:     sales (entries, subscriptions, café), read-only views
- admin:       catalogue, stock, ingredients, recipes, expenses, users, reports
- super_admin: everything, including editing or deleting recorded sales
"""
from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    CASHIER = "cashier"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"


ROLE_LEVELS: dict[Role, int] = {
    Role.CASHIER: 10,
    Role.ADMIN: 20,
    Role.SUPER_ADMIN: 30,
}

_missing = set(Role) - set(ROLE_LEVELS)
if _missing:
    raise RuntimeError(f"ROLE_LEVELS is missing roles: {sorted(r.value for r in _missing)}")

ROLE_VALUES = tuple(r.value for r in Role)


def parse_role(value: str | Role) -> Role:
    """Raises ValueError for anything outside the closed role set."""
    if isinstance(value, Role):
        return value
    try:
        return Role(value)
    except ValueError:
        raise ValueError(f"role must be one of: {', '.join(ROLE_VALUES)}")


def role_satisfies(actual: str | Role, required: Role) -> bool:
    try:
        actual_role = parse_role(actual)
    except ValueError:
        return False
    return ROLE_LEVELS[actual_role] >= ROLE_LEVELS[required]
