import logging
from typing import List, Optional

from .. import schemas
from ..errors import ValidationError
from ..rules import VehicleStatus
from .base import UNKNOWN_CATEGORY, EntityService

logger = logging.getLogger(__name__)


class VehicleCategoryService(EntityService):
    collection = "vehicle_categories"
    schema = schemas.VehicleCategory


class VehicleService(EntityService):
    collection = "vehicles"
    schema = schemas.Vehicle

    async def present(self, records: List[dict]) -> list:
        categories = await self.lookup("vehicle_categories", (r.get("categoryid") for r in records))
        vehicles = []
        for record in records:
            category = categories.get(record.get("categoryid"))
            vehicles.append(self.build(
                record,
                category_name=category["name"] if category else UNKNOWN_CATEGORY
            ))
        return vehicles

    async def before_update(self, current, changes: dict) -> dict:
        if "status" in changes:
            raise ValidationError("Vehicle status changes only through reservations, check-in or maintenance")
        return changes

    async def available(self) -> list:
        return await self.list(status=VehicleStatus.AVAILABLE.value)

    async def set_status(self, vehicle_id: str, status: VehicleStatus, **fields):
        """Workflow-only status change, optionally with other fields such as mileage."""
        changes = {"status": VehicleStatus(status).value, **fields}
        with self.failure("save", vehicle_id):
            record = await self.store.update(self.collection, vehicle_id, self.to_storage(changes))
        logger.info(f"Vehicle {vehicle_id} status set to {changes['status']}")
        return self.build(record)

    async def reserve(self, vehicle_id: str) -> Optional[schemas.Vehicle]:
        """Move an available vehicle to reserved in one conditional write.

        Returns ``None`` when the vehicle was no longer available.
        """
        with self.failure("save", vehicle_id):
            record = await self.store.update_where(
                self.collection,
                vehicle_id,
                {"status": VehicleStatus.RESERVED.value},
                {"status": VehicleStatus.AVAILABLE.value}
            )
        if record is None:
            logger.warning(f"Vehicle {vehicle_id} could not be reserved, it is no longer available")
            return None
        logger.info(f"Vehicle {vehicle_id} reserved")
        return self.build(record)
