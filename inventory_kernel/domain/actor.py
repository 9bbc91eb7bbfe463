"""
Actor identity and roles.

Every kernel call receives the acting user explicitly as an ActorContext;
there is no ambient "current user".  Roles come from the users table and are
resolved by UserService.actor_context().
"""

from dataclasses import dataclass, field
from enum import Enum
from uuid import UUID


class Role(str, Enum):
    """Role names stored on users."""

    SUPER_ADMIN = "super_admin"
    STOCK_IN_MANAGER = "stock_in_manager"
    STOCK_OUT_MANAGER = "stock_out_manager"
    MASTER_INVENTORY_HANDLER = "master_inventory_handler"
    ATTENDANCE_CHECKER = "attendance_checker"
    STORAGE_MANAGEMENT = "storage_management"

    @classmethod
    def values(cls) -> frozenset[str]:
        return frozenset(role.value for role in cls)


@dataclass(frozen=True)
class ActorContext:
    """
    Who is making a request.

    Contract:
        ``roles`` is the full role set of the user at the time the context
        was built.  Unknown role strings are kept and simply grant nothing.
    """

    actor_id: UUID
    roles: frozenset[str] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        roles = self.roles
        if isinstance(roles, str):
            roles = (roles,)
        object.__setattr__(
            self,
            "roles",
            frozenset(r.value if isinstance(r, Role) else str(r) for r in roles),
        )

    def has_role(self, role: Role | str) -> bool:
        value = role.value if isinstance(role, Role) else role
        return value in self.roles
