import logging
from typing import List

from .. import rules, schemas
from ..rules import ReservationStatus
from .base import (
    UNKNOWN_CATEGORY,
    UNKNOWN_CUSTOMER,
    EntityService,
    person_name,
    vehicle_description,
)

logger = logging.getLogger(__name__)


class ReservationService(EntityService):
    collection = "reservations"
    schema = schemas.Reservation
    status_kind = "reservation"

    async def present(self, records: List[dict]) -> list:
        customers = await self.lookup("customers", (r.get("customerid") for r in records))
        categories = await self.lookup("vehicle_categories", (r.get("categoryid") for r in records))
        vehicles = await self.lookup("vehicles", (r.get("vehicleid") for r in records))

        reservations = []
        for record in records:
            customer = customers.get(record.get("customerid"))
            category = categories.get(record.get("categoryid"))
            vehicle = vehicles.get(record.get("vehicleid"))
            reservations.append(self.build(
                record,
                customer_name=person_name(customer) if customer else UNKNOWN_CUSTOMER,
                category_name=category["name"] if category else UNKNOWN_CATEGORY,
                # an unassigned reservation has no vehicle to describe
                vehicle_info=vehicle_description(vehicle) if vehicle else None
            ))
        return reservations

    async def before_create(self, fields: dict) -> dict:
        rules.rental_days(fields["pickup_date"], fields["return_date"])
        fields.setdefault("reservation_date", rules.utcnow())
        return fields

    async def before_update(self, current, changes: dict) -> dict:
        if "pickup_date" in changes or "return_date" in changes:
            rules.rental_days(
                changes.get("pickup_date") or current.pickup_date,
                changes.get("return_date") or current.return_date
            )
        return changes

    async def complete(self, reservation_id: str):
        """Close the reservation once its rental is checked in."""
        current = await self.fetch(reservation_id)
        if current.status in (ReservationStatus.COMPLETED.value, ReservationStatus.CANCELLED.value):
            return current
        with self.failure("save", reservation_id):
            record = await self.store.update(
                self.collection, reservation_id, {"status": ReservationStatus.COMPLETED.value}
            )
        logger.info(f"Reservation {reservation_id} completed")
        return (await self.present([record]))[0]

