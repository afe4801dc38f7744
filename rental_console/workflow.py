"""Multi-record business transactions run as sagas.

The record store has no transactions across calls, so each workflow runs its
steps one after another and remembers how to undo the ones that succeeded.
When a step fails the recorded compensations run newest first and the failure
is raised as ``WorkflowStepFailed``.
"""
import logging
from datetime import timedelta

from . import rules, schemas
from .errors import ValidationError, WorkflowStepFailed
from .rules import INVOICE_DUE_DAYS, InvoiceStatus, RentalStatus, ReservationStatus, VehicleStatus

logger = logging.getLogger(__name__)


class Saga:
    def __init__(self, name: str, compensate: bool = True):
        self.name = name
        self.compensate = compensate
        self.completed = []
        self._undo = []

    async def run(self, number: int, step_name: str, action, compensation=None):
        """Await ``action()``; on success remember ``compensation(result)``."""
        try:
            result = await action()
        except Exception as e:
            logger.error(f"{self.name} step {number} ({step_name}) failed: {e}")
            compensated, errors = await self.rollback()
            raise WorkflowStepFailed(
                self.name, number, step_name, e,
                completed=self.completed,
                compensated=compensated,
                compensation_errors=errors
            ) from e

        self.completed.append(step_name)
        if compensation is not None:
            self._undo.append((step_name, compensation, result))
        return result

    async def rollback(self):
        compensated, errors = [], []
        if not self.compensate:
            return compensated, errors

        for step_name, compensation, result in reversed(self._undo):
            try:
                await compensation(result)
            except Exception as e:
                # keep undoing the rest, the caller gets the list
                logger.error(f"{self.name}: could not undo '{step_name}': {e}")
                errors.append((step_name, str(e)))
            else:
                logger.info(f"{self.name}: undid '{step_name}'")
                compensated.append(step_name)
        self._undo = []
        return compensated, errors


class BookingWorkflow:
    """Reservation, vehicle hold, rental and invoice for one booking."""

    name = "booking"

    def __init__(self, console, pricing, compensate: bool = True, clock=rules.utcnow):
        self.console = console
        self.pricing = pricing
        self.compensate = compensate
        self.clock = clock

    async def book(self, request: schemas.BookingRequest, employee_id: str = None) -> schemas.BookingResult:
        console = self.console

        # everything that can be checked is checked before the first write;
        # day count and fees are steps 4 and 5 of the booking, computed here
        days = rules.rental_days(request.pickup_date, request.return_date)
        await console.customers.fetch(request.customer_id)
        vehicle = await console.vehicles.fetch(request.vehicle_id)
        if vehicle.status != VehicleStatus.AVAILABLE.value:
            raise ValidationError(f"Vehicle {vehicle.id} is {vehicle.status}, not available")

        category = None
        if vehicle.category_id:
            category = (await console.categories.fetch(vehicle.category_id)).model_dump()
        fees = self.pricing.quote(days, category)
        now = self.clock()

        saga = Saga(self.name, self.compensate)

        reservation = await saga.run(
            1, "create reservation",
            lambda: console.reservations.create({
                "customer_id": request.customer_id,
                "category_id": vehicle.category_id,
                "vehicle_id": vehicle.id,
                "reservation_date": now,
                "pickup_date": request.pickup_date,
                "return_date": request.return_date,
                "status": ReservationStatus.CONFIRMED.value,
                "employee_id": employee_id,
            }),
            lambda created: console.reservations.delete(created.id)
        )

        reserved = await saga.run(
            2, "reserve vehicle",
            lambda: self._reserve(vehicle.id),
            lambda held: console.vehicles.set_status(held.id, VehicleStatus.AVAILABLE)
        )

        rental = await saga.run(
            3, "create rental",
            lambda: console.rentals.create({
                "reservation_id": reservation.id,
                "customer_id": request.customer_id,
                "vehicle_id": vehicle.id,
                "checkout_employee_id": employee_id,
                "checkout_date": request.pickup_date,
                "expected_return_date": request.return_date,
                "checkout_mileage": vehicle.mileage,
                "status": RentalStatus.ACTIVE.value,
            }),
            lambda created: console.rentals.delete(created.id)
        )

        invoice = await saga.run(
            6, "create invoice",
            lambda: console.invoices.create({
                **fees,
                "rental_id": rental.id,
                "customer_id": request.customer_id,
                "invoice_date": now,
                "due_date": now + timedelta(days=INVOICE_DUE_DAYS),
                "status": InvoiceStatus.ISSUED.value,
            })
        )

        logger.info(
            f"Booked vehicle {vehicle.id} for customer {request.customer_id}: "
            f"reservation {reservation.id}, rental {rental.id}, invoice {invoice.id} ({invoice.total_amount:.2f})"
        )
        return schemas.BookingResult(
            reservation=reservation,
            vehicle=reserved,
            rental=rental,
            invoice=invoice,
            rental_days=days
        )

    async def _reserve(self, vehicle_id: str):
        reserved = await self.console.vehicles.reserve(vehicle_id)
        if reserved is None:
            raise ValidationError(f"Vehicle {vehicle_id} was taken by another booking")
        return reserved


class CheckInWorkflow:
    """Complete a rental, release its vehicle and close its reservation."""

    name = "check-in"

    def __init__(self, console, compensate: bool = True, clock=rules.utcnow):
        self.console = console
        self.compensate = compensate
        self.clock = clock

    async def check_in(self, rental_id: str, return_mileage: int,
                       employee_id: str = None) -> schemas.CheckInResult:
        console = self.console

        previous = await console.rentals.fetch(rental_id)
        console.rentals.validate_check_in(previous, return_mileage)
        vehicle_before = await console.vehicles.fetch(previous.vehicle_id)

        saga = Saga(self.name, self.compensate)

        rental = await saga.run(
            1, "complete rental",
            lambda: console.rentals.check_in(rental_id, return_mileage, employee_id, self.clock()),
            lambda _: console.rentals.undo_check_in(previous)
        )

        vehicle = await saga.run(
            2, "release vehicle",
            lambda: console.vehicles.set_status(
                previous.vehicle_id, VehicleStatus.AVAILABLE, mileage=return_mileage
            ),
            lambda _: console.vehicles.set_status(
                vehicle_before.id, vehicle_before.status, mileage=vehicle_before.mileage
            )
        )

        reservation = None
        if previous.reservation_id:
            reservation = await saga.run(
                3, "complete reservation",
                lambda: console.reservations.complete(previous.reservation_id)
            )

        logger.info(f"Rental {rental_id} checked in, vehicle {vehicle.id} available at {return_mileage} km")
        return schemas.CheckInResult(rental=rental, vehicle=vehicle, reservation=reservation)
