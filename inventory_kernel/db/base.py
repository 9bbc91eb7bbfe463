"""
Module: inventory_kernel.db.base
Responsibility: Declarative base and shared column types for the inventory
    tables: portable UUID keys, UTC timestamps, the ledger's integer key and
    the audit columns every catalog row carries.
Architecture position: Kernel > DB.  Imported by every model; imports only
    db/types.

Invariants enforced:
    - Catalog rows (products, users, storage) get a uuid4 key.  Ledger rows
      override it with a store-assigned, monotonically increasing integer.
    - Mapped ``Decimal`` attributes are LedgerQuantity; stock math never
      touches float.
    - Every timestamp is written and read back as aware UTC on both
      PostgreSQL and SQLite.
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import ClassVar
from uuid import UUID as PyUUID, uuid4

from sqlalchemy import BigInteger, DateTime, Integer, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

from inventory_kernel.db.types import QUANTITY_TYPE


class UUIDString(TypeDecorator):
    """UUID kept as its 36-character string so SQLite and PostgreSQL agree."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return None if value is None else str(value)

    def process_result_value(self, value, dialect):
        return None if value is None else PyUUID(value)


class UTCDateTime(TypeDecorator):
    """
    Aware-UTC datetime column.

    Naive values are taken to be UTC.  SQLite stores them naive; PostgreSQL
    results are converted to UTC whatever the session time zone is.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        value = (value if value.tzinfo else value.replace(tzinfo=UTC)).astimezone(UTC)
        return value.replace(tzinfo=None) if dialect.name == "sqlite" else value

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return value.replace(tzinfo=UTC) if value.tzinfo is None else value.astimezone(UTC)


class Base(DeclarativeBase):
    type_annotation_map: ClassVar[dict] = {
        Decimal: QUANTITY_TYPE,
        datetime: UTCDateTime(),
        PyUUID: UUIDString(),
        int: BigInteger,
    }

    id: Mapped[PyUUID] = mapped_column(UUIDString(), primary_key=True, default=uuid4)


class TrackedBase(Base):
    """
    Catalog row with who/when audit columns.

    Services stamp created_at / updated_at from the injected Clock; the
    server defaults only cover raw SQL inserts.  created_by_id is empty for
    the bootstrap super admin.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(server_default=func.now(), onupdate=func.now())
    created_by_id: Mapped[PyUUID | None] = mapped_column(UUIDString())
    updated_by_id: Mapped[PyUUID | None] = mapped_column(UUIDString())


# SQLite only autoincrements a column declared exactly INTEGER PRIMARY KEY
LedgerId = BigInteger().with_variant(Integer(), "sqlite")
