"""Status state machines, overdue derivation and invoice pricing."""
import math
from datetime import datetime, timedelta, timezone
from enum import Enum

from .errors import ValidationError

FEE_FIELDS = (
    "base_fee",
    "insurance_fee",
    "extra_mileage_fee",
    "fuel_fee",
    "damage_fee",
    "late_fee",
    "tax_amount",
)

TOTAL_TOLERANCE = 1e-6
INVOICE_DUE_DAYS = 30


class VehicleStatus(str, Enum):
    AVAILABLE = "available"
    RENTED = "rented"
    MAINTENANCE = "maintenance"
    RESERVED = "reserved"


class ReservationStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class RentalStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class MaintenanceStatus(str, Enum):
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class InvoiceStatus(str, Enum):
    DRAFT = "draft"
    ISSUED = "issued"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentMethod(str, Enum):
    CREDIT = "credit"
    DEBIT = "debit"
    CASH = "cash"
    BANK_TRANSFER = "bank_transfer"


TRANSITIONS = {
    "reservation": {
        ReservationStatus.PENDING: {ReservationStatus.CONFIRMED, ReservationStatus.CANCELLED},
        ReservationStatus.CONFIRMED: {ReservationStatus.COMPLETED, ReservationStatus.CANCELLED},
    },
    "rental": {
        RentalStatus.ACTIVE: {RentalStatus.COMPLETED, RentalStatus.CANCELLED, RentalStatus.OVERDUE},
        RentalStatus.OVERDUE: {RentalStatus.COMPLETED, RentalStatus.CANCELLED},
    },
    "maintenance": {
        MaintenanceStatus.SCHEDULED: {MaintenanceStatus.IN_PROGRESS, MaintenanceStatus.COMPLETED},
        MaintenanceStatus.IN_PROGRESS: {MaintenanceStatus.COMPLETED},
    },
    "invoice": {
        InvoiceStatus.DRAFT: {InvoiceStatus.ISSUED, InvoiceStatus.CANCELLED},
        InvoiceStatus.ISSUED: {InvoiceStatus.PAID, InvoiceStatus.OVERDUE, InvoiceStatus.CANCELLED},
        InvoiceStatus.OVERDUE: {InvoiceStatus.PAID, InvoiceStatus.CANCELLED},
    },
    "payment": {
        PaymentStatus.PENDING: {PaymentStatus.COMPLETED, PaymentStatus.FAILED},
        PaymentStatus.FAILED: {PaymentStatus.PENDING},
        PaymentStatus.COMPLETED: {PaymentStatus.REFUNDED},
    },
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def naive_utc(value: datetime) -> datetime:
    if value is not None and value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def can_transition(kind: str, current, new) -> bool:
    current, new = str(getattr(current, "value", current)), str(getattr(new, "value", new))
    if current == new:
        return True
    allowed = TRANSITIONS[kind].get(current, set())
    return new in {status.value for status in allowed}


def check_transition(kind: str, current, new):
    if not can_transition(kind, current, new):
        raise ValidationError(
            f"Cannot change {kind} status from '{getattr(current, 'value', current)}' "
            f"to '{getattr(new, 'value', new)}'"
        )


def rental_display_status(status, expected_return_date: datetime, now: datetime = None) -> str:
    """Active rentals past their expected return are shown as overdue.

    The stored status is left alone; only check-in moves it.
    """
    status = getattr(status, "value", status)
    now = naive_utc(now) if now is not None else utcnow()
    expected = naive_utc(expected_return_date)
    if status == RentalStatus.ACTIVE.value and expected is not None and now > expected:
        return RentalStatus.OVERDUE.value
    return status


def invoice_display_status(status, due_date: datetime, now: datetime = None) -> str:
    status = getattr(status, "value", status)
    now = naive_utc(now) if now is not None else utcnow()
    due = naive_utc(due_date)
    if status == InvoiceStatus.ISSUED.value and due is not None and now > due:
        return InvoiceStatus.OVERDUE.value
    return status


def rental_days(pickup_date: datetime, return_date: datetime) -> int:
    """Whole rental days, partial days rounded up."""
    span = naive_utc(return_date) - naive_utc(pickup_date)
    if span <= timedelta(0):
        raise ValidationError("Return date must be after pickup date")
    return max(1, math.ceil(span / timedelta(days=1)))


def invoice_total(fees: dict) -> float:
    return sum(float(fees.get(field) or 0.0) for field in FEE_FIELDS)


def check_invoice_total(fees: dict, total_amount: float):
    expected = invoice_total(fees)
    if abs(expected - float(total_amount)) > TOTAL_TOLERANCE:
        raise ValidationError(
            f"Invoice total {total_amount} does not match the sum of its fees ({expected:.2f})"
        )


class FixedRatePricing:
    """Flat daily rates regardless of the vehicle's category."""

    name = "fixed"

    def __init__(self, daily_rate: float = 50.0, daily_insurance: float = 15.0,
                 tax_rate: float = 0.13):
        self.daily_rate = daily_rate
        self.daily_insurance = daily_insurance
        self.tax_rate = tax_rate

    def rates(self, category: dict = None):
        return self.daily_rate, self.daily_insurance

    def quote(self, days: int, category: dict = None) -> dict:
        daily_rate, daily_insurance = self.rates(category)
        base_fee = days * daily_rate
        insurance_fee = days * daily_insurance
        fees = {
            "base_fee": base_fee,
            "insurance_fee": insurance_fee,
            "extra_mileage_fee": 0.0,
            "fuel_fee": 0.0,
            "damage_fee": 0.0,
            "late_fee": 0.0,
            "tax_amount": round((base_fee + insurance_fee) * self.tax_rate, 2),
        }
        fees["total_amount"] = invoice_total(fees)
        return fees


class CategoryRatePricing(FixedRatePricing):
    """Daily rates taken from the vehicle category's rate table."""

    name = "category"

    def rates(self, category: dict = None):
        if not category:
            raise ValidationError("Category rates are required for category pricing")
        return float(category["base_rental_rate"]), float(category["insurance_rate"])


def pricing_policy(name: str = None):
    from . import config

    name = name or config.PRICING
    if name == "category":
        return CategoryRatePricing()
    if name == "fixed":
        return FixedRatePricing()
    raise ValueError(f"Unknown pricing policy '{name}'")
