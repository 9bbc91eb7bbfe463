"""
Inventory Kernel - stock ledger core

A small-business inventory backend built around an append-only stock ledger:
- Atomic stock-in / stock-out with row-level locking
- Immutable transaction history
- Role-gated access policy
- Decimal balances that always reconcile with the ledger
"""

__version__ = "0.1.0"
