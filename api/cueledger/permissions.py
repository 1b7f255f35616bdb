"""Role-based capabilities for admin entry points.

Every admin route asks ``has_capability`` instead of checking role names.
"""
from enum import Enum


class Role(str, Enum):
    USER = 'user'
    EMPLOYEE = 'employee'
    MODERATOR = 'moderator'
    MANAGER = 'manager'
    ADMIN = 'admin'
    SUPER_ADMIN = 'super_admin'


class Capability(str, Enum):
    VIEW_FINANCES = 'view_finances'
    APPROVE_WITHDRAWALS = 'approve_withdrawals'
    ADJUST_BALANCE = 'adjust_balance'
    BLOCK_WALLETS = 'block_wallets'
    MANAGE_SETTINGS = 'manage_settings'
    VIEW_LOGS = 'view_logs'


CAPABILITIES: dict[Capability, frozenset[Role]] = {
    Capability.VIEW_FINANCES: frozenset({Role.MANAGER, Role.ADMIN, Role.SUPER_ADMIN}),
    Capability.APPROVE_WITHDRAWALS: frozenset({
        Role.EMPLOYEE, Role.MANAGER, Role.ADMIN, Role.SUPER_ADMIN,
    }),
    Capability.ADJUST_BALANCE: frozenset({Role.SUPER_ADMIN}),
    Capability.BLOCK_WALLETS: frozenset({
        Role.MODERATOR, Role.MANAGER, Role.ADMIN, Role.SUPER_ADMIN,
    }),
    Capability.MANAGE_SETTINGS: frozenset({Role.MANAGER, Role.ADMIN, Role.SUPER_ADMIN}),
    Capability.VIEW_LOGS: frozenset({
        Role.EMPLOYEE, Role.MODERATOR, Role.MANAGER, Role.ADMIN, Role.SUPER_ADMIN,
    }),
}


def parse_roles(raw: str | None) -> set[Role]:
    """Comma-separated role names; unknown names are ignored."""
    roles = set()
    for name in (raw or '').split(','):
        name = name.strip().lower()
        if name in Role._value2member_map_:
            roles.add(Role(name))
    return roles


def has_capability(roles, capability: Capability) -> bool:
    allowed = CAPABILITIES.get(Capability(capability), frozenset())
    return any(role in allowed for role in roles)
