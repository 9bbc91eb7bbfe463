"""
Unit tests for the role/operation access policy.
"""

from uuid import uuid4

import pytest

from inventory_kernel.domain.access_policy import (
    DEFAULT_PERMISSIONS,
    AccessPolicy,
    Operation,
)
from inventory_kernel.domain.actor import ActorContext, Role
from inventory_kernel.exceptions import UnauthorizedError


def _actor(*roles):
    return ActorContext(actor_id=uuid4(), roles=frozenset(roles))


# (role, operations it may perform)
EXPECTED = {
    Role.SUPER_ADMIN: set(Operation),
    Role.MASTER_INVENTORY_HANDLER: set(Operation) - {Operation.MANAGE_USERS},
    Role.STOCK_IN_MANAGER: {
        Operation.STOCK_IN,
        Operation.VIEW_OWN_TRANSACTIONS,
        Operation.SEARCH_PRODUCTS,
        Operation.VIEW_STORAGE,
    },
    Role.STOCK_OUT_MANAGER: {
        Operation.STOCK_OUT,
        Operation.VIEW_OWN_TRANSACTIONS,
        Operation.SEARCH_PRODUCTS,
        Operation.VIEW_STORAGE,
    },
    Role.STORAGE_MANAGEMENT: {
        Operation.MANAGE_STORAGE,
        Operation.VIEW_OWN_TRANSACTIONS,
        Operation.SEARCH_PRODUCTS,
        Operation.VIEW_STORAGE,
    },
    Role.ATTENDANCE_CHECKER: {
        Operation.VIEW_OWN_TRANSACTIONS,
        Operation.SEARCH_PRODUCTS,
        Operation.VIEW_STORAGE,
    },
}


class TestDefaultPolicyTable:
    @pytest.mark.parametrize("role", list(Role))
    def test_role_permissions(self, role):
        policy = AccessPolicy()
        actor = _actor(role)
        allowed = {op for op in Operation if policy.is_allowed(actor, op)}
        assert allowed == EXPECTED[role]

    def test_every_operation_is_covered(self):
        assert set(DEFAULT_PERMISSIONS) == set(Operation)


class TestRequire:
    def test_denial_is_generic(self):
        actor = _actor(Role.STOCK_IN_MANAGER)
        with pytest.raises(UnauthorizedError) as exc_info:
            AccessPolicy().require(actor, Operation.STOCK_OUT)
        assert str(exc_info.value) == "Insufficient permissions"
        assert exc_info.value.operation == "stock_out"

    def test_any_role_grants(self):
        actor = _actor(Role.ATTENDANCE_CHECKER, Role.STOCK_OUT_MANAGER)
        AccessPolicy().require(actor, Operation.STOCK_OUT)

    def test_no_roles_is_denied(self):
        with pytest.raises(UnauthorizedError):
            AccessPolicy().require(_actor(), Operation.SEARCH_PRODUCTS)

    def test_unknown_role_grants_nothing(self):
        actor = ActorContext(actor_id=uuid4(), roles=frozenset({"janitor"}))
        with pytest.raises(UnauthorizedError):
            AccessPolicy().require(actor, Operation.SEARCH_PRODUCTS)

    def test_denial_is_logged(self, captured_logs):
        actor = _actor(Role.ATTENDANCE_CHECKER)
        with pytest.raises(UnauthorizedError):
            AccessPolicy().require(actor, Operation.VIEW_DASHBOARD)
        denied = [r for r in captured_logs() if r["message"] == "access_denied"]
        assert denied
        assert denied[0]["operation"] == "view_dashboard"

    def test_custom_table(self):
        policy = AccessPolicy({Operation.STOCK_IN: frozenset({Role.ATTENDANCE_CHECKER})})
        assert policy.is_allowed(_actor(Role.ATTENDANCE_CHECKER), Operation.STOCK_IN)
        assert not policy.is_allowed(_actor(Role.SUPER_ADMIN), Operation.STOCK_IN)
        assert policy.allowed_roles(Operation.STOCK_OUT) == frozenset()


class TestActorContext:
    def test_roles_normalized_to_strings(self):
        actor = ActorContext(actor_id=uuid4(), roles=[Role.SUPER_ADMIN, "stock_in_manager"])
        assert actor.roles == frozenset({"super_admin", "stock_in_manager"})
        assert actor.has_role(Role.SUPER_ADMIN)
        assert actor.has_role("stock_in_manager")

    def test_single_string_role(self):
        actor = ActorContext(actor_id=uuid4(), roles="super_admin")
        assert actor.roles == frozenset({"super_admin"})
