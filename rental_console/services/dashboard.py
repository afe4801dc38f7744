from datetime import datetime

from .. import rules, schemas
from ..rules import PaymentStatus, ReservationStatus, RentalStatus, VehicleStatus

RECENT_RENTALS = 5


class DashboardService:
    """Headline counts and revenue for the console's landing page."""

    def __init__(self, vehicles, reservations, rentals, payments, clock=rules.utcnow):
        self.vehicles = vehicles
        self.reservations = reservations
        self.rentals = rentals
        self.payments = payments
        self.clock = clock

    async def summary(self) -> schemas.DashboardSummary:
        now = self.clock()
        today = now.date()

        rentals = await self.rentals.list()
        active = [r for r in rentals if r.status in (RentalStatus.ACTIVE.value, RentalStatus.OVERDUE.value)]
        overdue = [r for r in active if r.display_status == RentalStatus.OVERDUE.value]

        reservations = await self.reservations.list(status=ReservationStatus.CONFIRMED.value)
        upcoming = [r for r in reservations if r.pickup_date > now]

        vehicles = await self.vehicles.list()
        in_maintenance = [v for v in vehicles if v.status == VehicleStatus.MAINTENANCE.value]
        available = [v for v in vehicles if v.status == VehicleStatus.AVAILABLE.value]

        payments = await self.payments.list(status=PaymentStatus.COMPLETED.value)
        today_revenue = 0.0
        month_revenue = 0.0
        for payment in payments:
            if payment.payment_date is None:
                continue
            if payment.payment_date.year == today.year and payment.payment_date.month == today.month:
                month_revenue += payment.amount
                if payment.payment_date.date() == today:
                    today_revenue += payment.amount

        recent = sorted(rentals, key=lambda r: r.checkout_date or datetime.min, reverse=True)

        return schemas.DashboardSummary(
            active_rentals=len(active),
            overdue_rentals=len(overdue),
            upcoming_reservations=len(upcoming),
            vehicles_in_maintenance=len(in_maintenance),
            available_vehicles=len(available),
            today_revenue=round(today_revenue, 2),
            month_revenue=round(month_revenue, 2),
            recent_rentals=recent[:RECENT_RENTALS]
        )
