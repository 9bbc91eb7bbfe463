"""
BaseService -- abstract base for the catalog services.

Responsibility:
    Common constructor for services that write catalog data (products,
    users, storage): a caller-owned ``Session``, an injected ``Clock`` for
    audit timestamps, and the ``AccessPolicy`` consulted before any store
    access.

Architecture position:
    Kernel > Services.

Invariants enforced:
    - Catalog services flush within the caller's transaction and never
      commit.  Single writes run inside a SAVEPOINT so a uniqueness
      violation leaves the caller's transaction usable.
    - The stock ledger service is the one exception: it owns its atomic
      unit (see stock_ledger_service.py).
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from inventory_kernel.db.base import Base
from inventory_kernel.domain.access_policy import AccessPolicy
from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.exceptions import ValidationError

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for catalog services.

    Contract:
        Accepts a SQLAlchemy ``Session`` from the caller and uses
        ``session.flush()`` to persist changes within the active
        transaction.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
        - Does NOT provide report queries -- those belong in selectors/.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        policy: AccessPolicy | None = None,
    ):
        self.session = session
        self._clock = clock or SystemClock()
        self._policy = policy or AccessPolicy()

    @staticmethod
    def _required_text(field_name: str, value: object) -> str:
        """Stripped, non-blank string; ValidationError for anything else."""
        if value is None:
            value = ""
        if not isinstance(value, str):
            raise ValidationError(field_name, "must be a string")
        value = value.strip()
        if not value:
            raise ValidationError(field_name, "must not be blank")
        return value
