from cueledger.permissions import Capability, Role, has_capability, parse_roles


def test_parse_roles_ignores_unknown():
    assert parse_roles('Admin, intern ,employee') == {Role.ADMIN, Role.EMPLOYEE}
    assert parse_roles(None) == set()


def test_super_admin_has_everything():
    for capability in Capability:
        assert has_capability({Role.SUPER_ADMIN}, capability)


def test_employee_can_approve_but_not_adjust():
    roles = {Role.EMPLOYEE}
    assert has_capability(roles, Capability.APPROVE_WITHDRAWALS)
    assert not has_capability(roles, Capability.ADJUST_BALANCE)
    assert not has_capability(roles, Capability.MANAGE_SETTINGS)


def test_plain_user_has_nothing():
    for capability in Capability:
        assert not has_capability({Role.USER}, capability)
    assert not has_capability(set(), Capability.VIEW_LOGS)
