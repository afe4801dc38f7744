import logging
from datetime import datetime
from typing import List

from .. import rules, schemas
from ..errors import ValidationError
from ..rules import RentalStatus
from .base import UNKNOWN_CUSTOMER, UNKNOWN_VEHICLE, EntityService, person_name, vehicle_description

logger = logging.getLogger(__name__)

CHECKIN_STATUSES = (RentalStatus.ACTIVE.value, RentalStatus.OVERDUE.value)


class RentalService(EntityService):
    collection = "rentals"
    schema = schemas.Rental
    status_kind = "rental"

    def __init__(self, store, clock=rules.utcnow):
        super().__init__(store)
        self.clock = clock

    async def present(self, records: List[dict]) -> list:
        customers = await self.lookup("customers", (r.get("customerid") for r in records))
        vehicles = await self.lookup("vehicles", (r.get("vehicleid") for r in records))
        now = self.clock()

        rentals = []
        for record in records:
            customer = customers.get(record.get("customerid"))
            vehicle = vehicles.get(record.get("vehicleid"))
            rental = self.build(
                record,
                customer_name=person_name(customer) if customer else UNKNOWN_CUSTOMER,
                vehicle_info=vehicle_description(vehicle) if vehicle else UNKNOWN_VEHICLE
            )
            rental.display_status = rules.rental_display_status(
                rental.status, rental.expected_return_date, now
            )
            rentals.append(rental)
        return rentals

    async def before_create(self, fields: dict) -> dict:
        rules.rental_days(fields["checkout_date"], fields["expected_return_date"])
        return fields

    async def before_update(self, current, changes: dict) -> dict:
        if changes.get("status") == RentalStatus.COMPLETED.value and current.status != RentalStatus.COMPLETED.value:
            raise ValidationError(f"Rental {current.id} is completed through check-in, not a plain update")

        checkout_mileage = changes.get("checkout_mileage", current.checkout_mileage)
        return_mileage = changes.get("return_mileage", current.return_mileage)
        if return_mileage is not None and return_mileage < checkout_mileage:
            raise ValidationError(
                f"Return mileage {return_mileage} is below checkout mileage {checkout_mileage}"
            )
        return changes

    async def overdue(self) -> list:
        rentals = await self.list(status=RentalStatus.ACTIVE.value)
        return [rental for rental in rentals if rental.display_status == RentalStatus.OVERDUE.value]

    def validate_check_in(self, rental: schemas.Rental, return_mileage: int):
        if rental.status not in CHECKIN_STATUSES:
            raise ValidationError(f"Rental {rental.id} is {rental.status}, only active rentals can be checked in")
        if return_mileage < rental.checkout_mileage:
            raise ValidationError(
                f"Return mileage {return_mileage} is below checkout mileage {rental.checkout_mileage}"
            )

    async def check_in(self, rental_id: str, return_mileage: int, employee_id: str = None,
                       returned_at: datetime = None):
        """Record the vehicle's return and complete the rental."""
        rental = await self.fetch(rental_id)
        self.validate_check_in(rental, return_mileage)

        changes = {
            "status": RentalStatus.COMPLETED.value,
            "actual_return_date": returned_at or self.clock(),
            "return_mileage": return_mileage,
            "checkin_employee_id": employee_id,
        }
        with self.failure("save", rental_id):
            record = await self.store.update(self.collection, rental_id, self.to_storage(changes))
        logger.info(f"Rental {rental_id} checked in at {return_mileage} km")
        return (await self.present([record]))[0]

    async def undo_check_in(self, previous: schemas.Rental):
        changes = {
            "status": previous.status,
            "actual_return_date": previous.actual_return_date,
            "return_mileage": previous.return_mileage,
            "checkin_employee_id": previous.checkin_employee_id,
        }
        with self.failure("save", previous.id):
            await self.store.update(self.collection, previous.id, self.to_storage(changes))
        logger.info(f"Rental {previous.id} check-in reverted")
