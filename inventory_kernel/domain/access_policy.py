"""
Access policy -- static (role, operation) permission table.

Responsibility:
    Single place that decides whether an actor may perform a kernel
    operation.  Every service and selector calls ``require()`` before it
    touches the store.

Invariants enforced:
    - Denial raises UnauthorizedError with the generic message
      "Insufficient permissions".
    - An actor holding several roles is allowed if ANY role allows.
"""

from enum import Enum

from inventory_kernel.domain.actor import ActorContext, Role
from inventory_kernel.exceptions import UnauthorizedError
from inventory_kernel.logging_config import get_logger

logger = get_logger("domain.access_policy")


class Operation(str, Enum):
    """Operations gated by the access policy."""

    STOCK_IN = "stock_in"
    STOCK_OUT = "stock_out"
    VIEW_TRANSACTIONS = "view_transactions"
    VIEW_OWN_TRANSACTIONS = "view_own_transactions"
    MANAGE_PRODUCTS = "manage_products"
    SEARCH_PRODUCTS = "search_products"
    VIEW_DASHBOARD = "view_dashboard"
    VIEW_STORAGE = "view_storage"
    MANAGE_STORAGE = "manage_storage"
    MANAGE_USERS = "manage_users"


_ALL_ROLES = frozenset(Role)

DEFAULT_PERMISSIONS: dict[Operation, frozenset[Role]] = {
    Operation.STOCK_IN: frozenset(
        {Role.SUPER_ADMIN, Role.STOCK_IN_MANAGER, Role.MASTER_INVENTORY_HANDLER}
    ),
    Operation.STOCK_OUT: frozenset(
        {Role.SUPER_ADMIN, Role.STOCK_OUT_MANAGER, Role.MASTER_INVENTORY_HANDLER}
    ),
    Operation.VIEW_TRANSACTIONS: frozenset(
        {Role.SUPER_ADMIN, Role.MASTER_INVENTORY_HANDLER}
    ),
    Operation.VIEW_OWN_TRANSACTIONS: _ALL_ROLES,
    Operation.MANAGE_PRODUCTS: frozenset(
        {Role.SUPER_ADMIN, Role.MASTER_INVENTORY_HANDLER}
    ),
    Operation.SEARCH_PRODUCTS: _ALL_ROLES,
    Operation.VIEW_DASHBOARD: frozenset(
        {Role.SUPER_ADMIN, Role.MASTER_INVENTORY_HANDLER}
    ),
    Operation.VIEW_STORAGE: _ALL_ROLES,
    Operation.MANAGE_STORAGE: frozenset(
        {Role.SUPER_ADMIN, Role.MASTER_INVENTORY_HANDLER, Role.STORAGE_MANAGEMENT}
    ),
    Operation.MANAGE_USERS: frozenset({Role.SUPER_ADMIN}),
}


class AccessPolicy:
    """
    Role-to-operation permission table.

    Contract:
        Pure lookup; no store access.  The default table is the production
        policy; tests may pass a custom mapping.
    """

    def __init__(self, permissions: dict[Operation, frozenset[Role]] | None = None):
        table = permissions if permissions is not None else DEFAULT_PERMISSIONS
        self._permissions = {
            op: frozenset(role.value for role in roles) for op, roles in table.items()
        }

    def allowed_roles(self, operation: Operation) -> frozenset[str]:
        return self._permissions.get(operation, frozenset())

    def is_allowed(self, actor: ActorContext, operation: Operation) -> bool:
        return bool(actor.roles & self.allowed_roles(operation))

    def require(self, actor: ActorContext, operation: Operation) -> None:
        """
        Raise UnauthorizedError unless the actor may perform ``operation``.
        """
        if self.is_allowed(actor, operation):
            return
        logger.warning(
            "access_denied",
            extra={
                "actor_id": str(actor.actor_id),
                "operation": operation.value,
                "roles": sorted(actor.roles),
            },
        )
        raise UnauthorizedError(operation.value, str(actor.actor_id))
