"""Persistence models for the inventory kernel."""

from inventory_kernel.models.product import Product
from inventory_kernel.models.session_record import SessionRecord
from inventory_kernel.models.stock_transaction import StockTransaction
from inventory_kernel.models.storage import (
    StorageDimension,
    StorageDimensionType,
    StorageLocation,
)
from inventory_kernel.models.user import User

__all__ = [
    "Product",
    "SessionRecord",
    "StockTransaction",
    "StorageDimension",
    "StorageDimensionType",
    "StorageLocation",
    "User",
]
