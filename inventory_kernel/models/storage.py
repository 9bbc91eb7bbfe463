"""
Module: inventory_kernel.models.storage
Responsibility: ORM persistence for the storage taxonomy: named locations and
    the rows, decks and sections inside them.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - Location names are unique.
    - A dimension name is unique per (location, type).
    - Deleting a location deletes its dimensions (ON DELETE CASCADE plus ORM
      cascade).
"""

from enum import Enum
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from inventory_kernel.db.base import TrackedBase, UUIDString


class StorageDimensionType(str, Enum):
    """Kinds of subdivision inside a storage location."""

    ROW = "row"
    DECK = "deck"
    SECTION = "section"


class StorageLocation(TrackedBase):
    """A warehouse, room or shelf unit that products are placed in."""

    __tablename__ = "storage_locations"

    __table_args__ = (
        UniqueConstraint("name", name="uq_storage_locations_name"),
    )

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    description: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
    )

    dimensions: Mapped[list["StorageDimension"]] = relationship(
        back_populates="location",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<StorageLocation {self.name}>"


class StorageDimension(TrackedBase):
    """A row, deck or section within a storage location."""

    __tablename__ = "storage_dimensions"

    __table_args__ = (
        UniqueConstraint(
            "location_id", "type", "name", name="uq_storage_dimensions_location_type_name"
        ),
        Index("idx_storage_dimensions_location", "location_id"),
    )

    location_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("storage_locations.id", ondelete="CASCADE"),
        nullable=False,
    )

    type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
    )

    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    location: Mapped[StorageLocation] = relationship(back_populates="dimensions")

    def __repr__(self) -> str:
        return f"<StorageDimension {self.type}:{self.name}>"
