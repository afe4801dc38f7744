from .. import rules
from ..store import RecordStore
from ..workflow import BookingWorkflow, CheckInWorkflow
from .base import EntityService
from .customers import CustomerService
from .dashboard import DashboardService
from .employees import EmployeeService
from .invoices import InvoiceService
from .maintenance import MaintenanceService
from .payments import PaymentService
from .rentals import RentalService
from .reservations import ReservationService
from .vehicles import VehicleCategoryService, VehicleService


class Console:
    """All services of the console wired to one record store."""

    def __init__(self, store: RecordStore, pricing=None, compensate: bool = True,
                 clock=rules.utcnow):
        self.store = store
        self.clock = clock
        self.pricing = pricing or rules.pricing_policy()

        self.customers = CustomerService(store)
        self.categories = VehicleCategoryService(store)
        self.vehicles = VehicleService(store)
        self.reservations = ReservationService(store)
        self.rentals = RentalService(store, clock=clock)
        self.invoices = InvoiceService(store, clock=clock)
        self.payments = PaymentService(store, invoices=self.invoices)
        self.maintenance = MaintenanceService(store, vehicles=self.vehicles)
        self.employees = EmployeeService(store)
        self.dashboard = DashboardService(
            self.vehicles, self.reservations, self.rentals, self.payments, clock=clock
        )

        self.booking = BookingWorkflow(self, self.pricing, compensate=compensate, clock=clock)
        self.check_in = CheckInWorkflow(self, compensate=compensate, clock=clock)


__all__ = [
    "Console",
    "EntityService",
    "CustomerService",
    "DashboardService",
    "EmployeeService",
    "InvoiceService",
    "MaintenanceService",
    "PaymentService",
    "RentalService",
    "ReservationService",
    "VehicleCategoryService",
    "VehicleService",
]
