import logging
from typing import List

from .. import schemas
from ..errors import RentalConsoleError
from ..rules import MaintenanceStatus, VehicleStatus
from .base import UNKNOWN_TECHNICIAN, UNKNOWN_VEHICLE, EntityService, person_name, vehicle_description
from .vehicles import VehicleService

logger = logging.getLogger(__name__)

OPEN_STATUSES = (MaintenanceStatus.SCHEDULED.value, MaintenanceStatus.IN_PROGRESS.value)


class MaintenanceService(EntityService):
    collection = "maintenance_records"
    schema = schemas.MaintenanceRecord
    status_kind = "maintenance"

    def __init__(self, store, vehicles: VehicleService = None):
        super().__init__(store)
        self.vehicles = vehicles or VehicleService(store)

    async def present(self, records: List[dict]) -> list:
        vehicles = await self.lookup("vehicles", (r.get("vehicleid") for r in records))
        technicians = await self.lookup("employees", (r.get("technicianid") for r in records))

        maintenance = []
        for record in records:
            vehicle = vehicles.get(record.get("vehicleid"))
            technician = technicians.get(record.get("technicianid"))
            maintenance.append(self.build(
                record,
                vehicle_info=vehicle_description(vehicle) if vehicle else UNKNOWN_VEHICLE,
                technician_name=person_name(technician) if technician else UNKNOWN_TECHNICIAN
            ))
        return maintenance

    async def update_vehicle_status(self, vehicle_id: str, status: VehicleStatus) -> bool:
        """Best-effort vehicle status side effect; failures are logged, not raised."""
        if not vehicle_id:
            return False
        try:
            await self.vehicles.set_status(vehicle_id, status)
            return True
        except RentalConsoleError as e:
            logger.warning(f"Failed to update vehicle {vehicle_id} status to {status.value}: {e}")
            return False

    async def after_create(self, created):
        if created.status in OPEN_STATUSES:
            await self.update_vehicle_status(created.vehicle_id, VehicleStatus.MAINTENANCE)

    async def after_update(self, current, updated, changes: dict):
        if updated.vehicle_id != current.vehicle_id:
            # the hold moves with the record
            if current.status in OPEN_STATUSES:
                await self.update_vehicle_status(current.vehicle_id, VehicleStatus.AVAILABLE)
            if updated.status in OPEN_STATUSES:
                await self.update_vehicle_status(updated.vehicle_id, VehicleStatus.MAINTENANCE)
            return

        if "status" not in changes or changes["status"] == current.status:
            return
        if updated.status == MaintenanceStatus.COMPLETED.value:
            await self.update_vehicle_status(updated.vehicle_id, VehicleStatus.AVAILABLE)
        else:
            await self.update_vehicle_status(updated.vehicle_id, VehicleStatus.MAINTENANCE)

    async def after_delete(self, deleted):
        await self.update_vehicle_status(deleted.vehicle_id, VehicleStatus.AVAILABLE)
