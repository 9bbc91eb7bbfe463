"""
Module: inventory_kernel.exceptions
Responsibility: Every failure the kernel reports, as a typed exception with a
    machine-readable ``code`` and structured attributes.  Callers branch on
    the type or the code, never on the message:

        try:
            ledger.record_stock_out(product_id, "5", actor)
        except InsufficientStockError as e:
            render(code=e.code, available=e.available, requested=e.requested)

Architecture position: Kernel, leaf.  Imports nothing from the kernel.

Hierarchy (code in brackets):

    InventoryKernelError
      ValidationError [VALIDATION_ERROR]
        InvalidQuantityError [INVALID_QUANTITY]
      NotFoundError
        ProductNotFoundError [PRODUCT_NOT_FOUND]
        UserNotFoundError [USER_NOT_FOUND]
        StorageLocationNotFoundError [STORAGE_LOCATION_NOT_FOUND]
        StorageDimensionNotFoundError [STORAGE_DIMENSION_NOT_FOUND]
      InactiveError
        ProductInactiveError [PRODUCT_INACTIVE]
      InsufficientStockError [INSUFFICIENT_STOCK]
      UnauthorizedError [UNAUTHORIZED]
      ConflictError
        DuplicateProductError [DUPLICATE_PRODUCT]
        DuplicateUserError [DUPLICATE_USER]
        DuplicateStorageLocationError [DUPLICATE_STORAGE_LOCATION]
        UserReferencedError [USER_REFERENCED]
      ConcurrencyError [CONCURRENCY_ERROR]
        StockBusyError [STOCK_BUSY], retryable
      ImmutabilityError
        ImmutabilityViolationError [IMMUTABILITY_VIOLATION]
      StoreError [STORE_ERROR]

Invariants enforced:
    - UnauthorizedError's message is always "Insufficient permissions";
      the denied operation is an attribute, for logs only.
    - StoreError keeps the SQLAlchemy exception on ``.original`` and is
      raised ``from`` it.
    - ConcurrencyError and its subclasses set ``retryable = True``.
"""

from decimal import Decimal


class InventoryKernelError(Exception):
    """
    Base exception for all inventory kernel errors.

    All subclasses must have a `code` class attribute
    for machine-readable error identification.
    """

    code: str = "INVENTORY_KERNEL_ERROR"
    retryable: bool = False


# Validation


class ValidationError(InventoryKernelError):
    """Malformed input: missing field, bad type, bad value."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid {field}: {reason}")


class InvalidQuantityError(ValidationError):
    """Quantity is not a positive decimal number."""

    code: str = "INVALID_QUANTITY"

    def __init__(self, value: object, reason: str):
        self.value = str(value)
        super().__init__("quantity", f"{reason} (got {value!r})")


# Not found


class NotFoundError(InventoryKernelError):
    """Base exception for missing referenced records."""

    code: str = "NOT_FOUND"


class ProductNotFoundError(NotFoundError):
    """Product with given ID was not found."""

    code: str = "PRODUCT_NOT_FOUND"

    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__(f"Product not found: {product_id}")


class UserNotFoundError(NotFoundError):
    """User with given ID was not found."""

    code: str = "USER_NOT_FOUND"

    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(f"User not found: {user_id}")


class StorageLocationNotFoundError(NotFoundError):
    """Storage location with given ID was not found."""

    code: str = "STORAGE_LOCATION_NOT_FOUND"

    def __init__(self, location_id: str):
        self.location_id = location_id
        super().__init__(f"Storage location not found: {location_id}")


class StorageDimensionNotFoundError(NotFoundError):
    """Storage dimension with given ID was not found."""

    code: str = "STORAGE_DIMENSION_NOT_FOUND"

    def __init__(self, dimension_id: str):
        self.dimension_id = dimension_id
        super().__init__(f"Storage dimension not found: {dimension_id}")


# Inactive


class InactiveError(InventoryKernelError):
    """Base exception for soft-deleted records."""

    code: str = "INACTIVE"


class ProductInactiveError(InactiveError):
    """Product is soft-deleted and cannot move stock."""

    code: str = "PRODUCT_INACTIVE"

    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__(f"Product is inactive: {product_id}")


# Stock


class InsufficientStockError(InventoryKernelError):
    """Stock-out would drive the balance below zero."""

    code: str = "INSUFFICIENT_STOCK"

    def __init__(self, product_id: str, available: Decimal, requested: Decimal):
        self.product_id = product_id
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient stock for product {product_id}. "
            f"Available: {available}, Requested: {requested}"
        )


# Access


class UnauthorizedError(InventoryKernelError):
    """Actor's roles do not permit the operation."""

    code: str = "UNAUTHORIZED"

    def __init__(self, operation: str, actor_id: str | None = None):
        self.operation = operation
        self.actor_id = actor_id
        super().__init__("Insufficient permissions")


# Conflict


class ConflictError(InventoryKernelError):
    """Base exception for uniqueness and reference conflicts."""

    code: str = "CONFLICT"


class DuplicateProductError(ConflictError):
    """An active product with the same name already exists."""

    code: str = "DUPLICATE_PRODUCT"

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"An active product named '{name}' already exists")


class DuplicateUserError(ConflictError):
    """Username or email already taken."""

    code: str = "DUPLICATE_USER"

    def __init__(self, username: str):
        self.username = username
        super().__init__(f"Username or email already exists: {username}")


class DuplicateStorageLocationError(ConflictError):
    """Storage location name already taken."""

    code: str = "DUPLICATE_STORAGE_LOCATION"

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Storage location already exists: {name}")


class UserReferencedError(ConflictError):
    """User has ledger history and cannot be deleted."""

    code: str = "USER_REFERENCED"

    def __init__(self, user_id: str, transaction_count: int):
        self.user_id = user_id
        self.transaction_count = transaction_count
        super().__init__(
            f"Cannot delete user {user_id}: {transaction_count} stock "
            "transaction(s) reference this user. Deactivate the user instead."
        )


# Concurrency


class ConcurrencyError(InventoryKernelError):
    """Base exception for lock contention; always retryable."""

    code: str = "CONCURRENCY_ERROR"
    retryable: bool = True


class StockBusyError(ConcurrencyError):
    """Timed out waiting for the product row lock."""

    code: str = "STOCK_BUSY"

    def __init__(self, product_id: str, reason: str = "lock wait timed out"):
        self.product_id = product_id
        self.reason = reason
        super().__init__(
            f"Product {product_id} is busy ({reason}); retry the request"
        )


# Immutability


class ImmutabilityError(InventoryKernelError):
    """Base exception for immutability-related errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """
    Attempted to modify or delete an immutable record.

    Stock transactions are append-only, and a product's balance may only
    change through a stock movement.
    """

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )


# Store


class StoreError(InventoryKernelError):
    """Underlying storage failure not otherwise categorized."""

    code: str = "STORE_ERROR"

    def __init__(self, operation: str, original: BaseException):
        self.operation = operation
        self.original = original
        super().__init__(f"Store failure during {operation}: {original}")
