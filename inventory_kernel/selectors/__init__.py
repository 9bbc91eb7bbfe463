"""Read-only selectors: ledger queries and dashboard aggregates."""

from inventory_kernel.selectors.dashboard_selector import DashboardSelector
from inventory_kernel.selectors.transaction_selector import (
    TransactionQuery,
    TransactionSelector,
)

__all__ = [
    "DashboardSelector",
    "TransactionQuery",
    "TransactionSelector",
]
