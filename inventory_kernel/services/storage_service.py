"""
Service layer for the storage taxonomy.

Storage locations and their row / deck / section dimensions are reference
data for product placement.  Products keep placement as free text, so
deleting a location never touches a product.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from inventory_kernel.domain.access_policy import Operation
from inventory_kernel.domain.actor import ActorContext
from inventory_kernel.domain.dtos import StorageDimensionInfo, StorageLocationInfo
from inventory_kernel.exceptions import (
    ConflictError,
    DuplicateStorageLocationError,
    StorageDimensionNotFoundError,
    StorageLocationNotFoundError,
    ValidationError,
)
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.storage import (
    StorageDimension,
    StorageDimensionType,
    StorageLocation,
)
from inventory_kernel.services.base import BaseService

logger = get_logger("services.storage")


class StorageService(BaseService[StorageLocation]):
    """
    Service for storage locations and dimensions.

    Reads require view_storage (every role); writes require manage_storage.
    A deactivated location drops out of the default listing but keeps its
    dimensions.
    """

    def _get_location(self, location_id: UUID) -> StorageLocation:
        location = self.session.get(StorageLocation, location_id)
        if location is None:
            raise StorageLocationNotFoundError(str(location_id))
        return location

    # -------------------------------------------------------------------------
    # Locations
    # -------------------------------------------------------------------------

    def create_location(
        self,
        name: str,
        actor: ActorContext,
        description: str | None = None,
    ) -> StorageLocationInfo:
        self._policy.require(actor, Operation.MANAGE_STORAGE)

        name = self._required_text("name", name)

        now = self._clock.now()
        location = StorageLocation(
            name=name,
            description=description,
            is_active=True,
            created_at=now,
            updated_at=now,
            created_by_id=actor.actor_id,
            updated_by_id=actor.actor_id,
        )
        self.session.add(location)
        try:
            with self.session.begin_nested():
                self.session.flush()
        except IntegrityError as exc:
            raise DuplicateStorageLocationError(name) from exc

        logger.info("storage_location_created", extra={"location_id": str(location.id)})
        return StorageLocationInfo.from_model(location)

    def list_locations(
        self, actor: ActorContext, active_only: bool = True
    ) -> list[StorageLocationInfo]:
        self._policy.require(actor, Operation.VIEW_STORAGE)

        stmt = select(StorageLocation)
        if active_only:
            stmt = stmt.where(StorageLocation.is_active.is_(True))
        stmt = stmt.order_by(StorageLocation.name)
        return [
            StorageLocationInfo.from_model(loc)
            for loc in self.session.execute(stmt).scalars()
        ]

    def deactivate_location(
        self, location_id: UUID, actor: ActorContext
    ) -> StorageLocationInfo:
        """Hide a location from the default listing.  Nothing is deleted."""
        self._policy.require(actor, Operation.MANAGE_STORAGE)

        location = self._get_location(location_id)
        location.is_active = False
        location.updated_at = self._clock.now()
        location.updated_by_id = actor.actor_id
        self.session.flush()

        logger.info("storage_location_deactivated", extra={"location_id": str(location_id)})
        return StorageLocationInfo.from_model(location)

    def delete_location(self, location_id: UUID, actor: ActorContext) -> None:
        """Delete a location together with all of its dimensions."""
        self._policy.require(actor, Operation.MANAGE_STORAGE)

        location = self._get_location(location_id)
        dimension_count = len(location.dimensions)
        self.session.delete(location)
        self.session.flush()

        logger.info(
            "storage_location_deleted",
            extra={"location_id": str(location_id), "dimensions_removed": dimension_count},
        )

    # -------------------------------------------------------------------------
    # Dimensions
    # -------------------------------------------------------------------------

    def create_dimension(
        self,
        location_id: UUID,
        dimension_type: StorageDimensionType | str,
        name: str,
        actor: ActorContext,
    ) -> StorageDimensionInfo:
        self._policy.require(actor, Operation.MANAGE_STORAGE)

        try:
            dimension_type = StorageDimensionType(dimension_type)
        except ValueError:
            raise ValidationError(
                "type", f"must be one of {[t.value for t in StorageDimensionType]}"
            ) from None

        name = self._required_text("name", name)

        location = self._get_location(location_id)
        now = self._clock.now()
        dimension = StorageDimension(
            location_id=location.id,
            type=dimension_type.value,
            name=name,
            created_at=now,
            updated_at=now,
            created_by_id=actor.actor_id,
            updated_by_id=actor.actor_id,
        )
        self.session.add(dimension)
        try:
            with self.session.begin_nested():
                self.session.flush()
        except IntegrityError as exc:
            raise ConflictError(
                f"{dimension_type.value} '{name}' already exists in this location"
            ) from exc

        logger.info(
            "storage_dimension_created",
            extra={"location_id": str(location_id), "dimension_id": str(dimension.id)},
        )
        return StorageDimensionInfo.from_model(dimension)

    def list_dimensions(
        self,
        actor: ActorContext,
        location_id: UUID | None = None,
        dimension_type: StorageDimensionType | str | None = None,
    ) -> list[StorageDimensionInfo]:
        self._policy.require(actor, Operation.VIEW_STORAGE)

        stmt = select(StorageDimension)
        if location_id is not None:
            stmt = stmt.where(StorageDimension.location_id == location_id)
        if dimension_type is not None:
            stmt = stmt.where(
                StorageDimension.type == StorageDimensionType(dimension_type).value
            )
        stmt = stmt.order_by(StorageDimension.type, StorageDimension.name)
        return [
            StorageDimensionInfo.from_model(d)
            for d in self.session.execute(stmt).scalars()
        ]

    def delete_dimension(self, dimension_id: UUID, actor: ActorContext) -> None:
        self._policy.require(actor, Operation.MANAGE_STORAGE)

        dimension = self.session.get(StorageDimension, dimension_id)
        if dimension is None:
            raise StorageDimensionNotFoundError(str(dimension_id))
        self.session.delete(dimension)
        self.session.flush()

        logger.info("storage_dimension_deleted", extra={"dimension_id": str(dimension_id)})
