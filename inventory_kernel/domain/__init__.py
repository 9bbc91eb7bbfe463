"""Pure domain layer: actors, access policy, clock, values and DTOs."""

from inventory_kernel.domain.access_policy import AccessPolicy, Operation
from inventory_kernel.domain.actor import ActorContext, Role
from inventory_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from inventory_kernel.domain.values import MovementType, ParsedQuantity, parse_quantity

__all__ = [
    "AccessPolicy",
    "ActorContext",
    "Clock",
    "DeterministicClock",
    "MovementType",
    "Operation",
    "ParsedQuantity",
    "Role",
    "SystemClock",
    "parse_quantity",
]
