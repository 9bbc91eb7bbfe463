"""Kernel services: the stock ledger and the catalog services."""

from inventory_kernel.services.product_service import ProductService
from inventory_kernel.services.stock_ledger_service import StockLedgerService
from inventory_kernel.services.storage_service import StorageService
from inventory_kernel.services.user_service import UserService

__all__ = [
    "ProductService",
    "StockLedgerService",
    "StorageService",
    "UserService",
]
