from datetime import date, datetime
from typing import ClassVar, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .rules import (
    InvoiceStatus,
    MaintenanceStatus,
    PaymentMethod,
    PaymentStatus,
    RentalStatus,
    ReservationStatus,
    VehicleStatus,
    naive_utc,
)


class ConsoleModel(BaseModel):
    # Python attributes are snake_case, JSON is camelCase like the browser console expects
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
        use_enum_values=True,
        validate_default=True,
    )


class NaiveDatetimeModel(ConsoleModel):
    @field_validator("*", mode="after")
    @classmethod
    def ensure_naive_datetime(cls, v):
        # Store everything as naive UTC
        if isinstance(v, datetime):
            return naive_utc(v)
        return v


class UpdateModel(NaiveDatetimeModel):
    """Partial update; fields left out stay as they are.

    Names in ``not_null`` may be omitted but not sent as an explicit null.
    """
    not_null: ClassVar[Tuple[str, ...]] = ()

    @model_validator(mode="after")
    def reject_cleared_fields(self):
        cleared = [name for name in self.not_null if name in self.model_fields_set and getattr(self, name) is None]
        if cleared:
            raise ValueError(f"{', '.join(cleared)} cannot be null")
        return self


def blank_if_none(v):
    # nullable text columns may read back as None
    return "" if v is None else v


# --- Customers ---

class CustomerBase(NaiveDatetimeModel):
    first_name: str
    last_name: str
    email: str = ""
    phone: str = ""
    address: str = ""
    date_of_birth: Optional[date] = None
    license_number: str = ""
    license_expiry: Optional[date] = None
    customer_type: str = "Individual"

    @field_validator("email", "phone", "address", "license_number", mode="before")
    @classmethod
    def blank_text(cls, v):
        return blank_if_none(v)

    @field_validator("customer_type", mode="before")
    @classmethod
    def default_customer_type(cls, v):
        return v or "Individual"


class CustomerCreate(CustomerBase):
    pass


class CustomerUpdate(UpdateModel):
    not_null = ("first_name", "last_name", "email", "phone", "address", "license_number", "customer_type")

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    date_of_birth: Optional[date] = None
    license_number: Optional[str] = None
    license_expiry: Optional[date] = None
    customer_type: Optional[str] = None


class Customer(CustomerBase):
    id: str
    created_at: Optional[datetime] = None
    full_name: str = ""


# --- Vehicle categories ---

class VehicleCategoryBase(ConsoleModel):
    name: str
    description: str = ""
    base_rental_rate: float = Field(0.0, ge=0)
    insurance_rate: float = Field(0.0, ge=0)

    @field_validator("description", mode="before")
    @classmethod
    def blank_description(cls, v):
        return blank_if_none(v)


class VehicleCategoryCreate(VehicleCategoryBase):
    pass


class VehicleCategoryUpdate(UpdateModel):
    not_null = ("name", "description", "base_rental_rate", "insurance_rate")

    name: Optional[str] = None
    description: Optional[str] = None
    base_rental_rate: Optional[float] = Field(None, ge=0)
    insurance_rate: Optional[float] = Field(None, ge=0)


class VehicleCategory(VehicleCategoryBase):
    id: str


# --- Vehicles ---

class VehicleBase(ConsoleModel):
    vin: str
    make: str
    model: str
    year: int = Field(..., ge=1900, le=2100)
    color: str = ""
    license_plate: str
    mileage: int = Field(0, ge=0)
    category_id: Optional[str] = None
    image_url: Optional[str] = None

    @field_validator("color", mode="before")
    @classmethod
    def blank_color(cls, v):
        return blank_if_none(v)


class VehicleCreate(VehicleBase):
    status: VehicleStatus = VehicleStatus.AVAILABLE


class VehicleUpdate(UpdateModel):
    # no status here, workflows move it
    model_config = ConfigDict(extra="forbid")
    not_null = ("vin", "make", "model", "year", "color", "license_plate", "mileage")

    vin: Optional[str] = None
    make: Optional[str] = None
    model: Optional[str] = None
    year: Optional[int] = Field(None, ge=1900, le=2100)
    color: Optional[str] = None
    license_plate: Optional[str] = None
    mileage: Optional[int] = Field(None, ge=0)
    category_id: Optional[str] = None
    image_url: Optional[str] = None


class Vehicle(VehicleBase):
    id: str
    status: VehicleStatus
    category_name: Optional[str] = None


# --- Reservations ---

class ReservationBase(NaiveDatetimeModel):
    customer_id: str
    category_id: Optional[str] = None
    vehicle_id: Optional[str] = None
    pickup_date: datetime
    return_date: datetime
    status: ReservationStatus = ReservationStatus.PENDING
    employee_id: Optional[str] = None


class ReservationCreate(ReservationBase):
    reservation_date: Optional[datetime] = None


class ReservationUpdate(UpdateModel):
    not_null = ("customer_id", "pickup_date", "return_date", "status")

    customer_id: Optional[str] = None
    category_id: Optional[str] = None
    vehicle_id: Optional[str] = None
    pickup_date: Optional[datetime] = None
    return_date: Optional[datetime] = None
    status: Optional[ReservationStatus] = None
    employee_id: Optional[str] = None


class Reservation(ReservationBase):
    id: str
    reservation_date: Optional[datetime] = None
    customer_name: Optional[str] = None
    category_name: Optional[str] = None
    vehicle_info: Optional[str] = None


class BookingRequest(NaiveDatetimeModel):
    customer_id: str
    vehicle_id: str
    pickup_date: datetime
    return_date: datetime


# --- Rentals ---

class RentalBase(NaiveDatetimeModel):
    reservation_id: Optional[str] = None
    customer_id: str
    vehicle_id: str
    checkout_employee_id: Optional[str] = None
    checkin_employee_id: Optional[str] = None
    checkout_date: datetime
    expected_return_date: datetime
    actual_return_date: Optional[datetime] = None
    checkout_mileage: int = Field(0, ge=0)
    return_mileage: Optional[int] = Field(None, ge=0)
    status: RentalStatus = RentalStatus.ACTIVE


class RentalCreate(RentalBase):
    pass


class RentalUpdate(UpdateModel):
    not_null = (
        "customer_id", "vehicle_id", "checkout_date", "expected_return_date", "checkout_mileage", "status"
    )

    reservation_id: Optional[str] = None
    customer_id: Optional[str] = None
    vehicle_id: Optional[str] = None
    checkout_employee_id: Optional[str] = None
    checkin_employee_id: Optional[str] = None
    checkout_date: Optional[datetime] = None
    expected_return_date: Optional[datetime] = None
    actual_return_date: Optional[datetime] = None
    checkout_mileage: Optional[int] = Field(None, ge=0)
    return_mileage: Optional[int] = Field(None, ge=0)
    status: Optional[RentalStatus] = None


class Rental(RentalBase):
    id: str
    display_status: Optional[str] = None
    customer_name: Optional[str] = None
    vehicle_info: Optional[str] = None


class CheckInRequest(ConsoleModel):
    return_mileage: int = Field(..., ge=0)


# --- Invoices ---

class InvoiceFees(ConsoleModel):
    base_fee: float = Field(0.0, ge=0)
    insurance_fee: float = Field(0.0, ge=0)
    extra_mileage_fee: float = Field(0.0, ge=0)
    fuel_fee: float = Field(0.0, ge=0)
    damage_fee: float = Field(0.0, ge=0)
    late_fee: float = Field(0.0, ge=0)
    tax_amount: float = Field(0.0, ge=0)


class InvoiceCreate(InvoiceFees, NaiveDatetimeModel):
    rental_id: Optional[str] = None
    customer_id: Optional[str] = None
    invoice_date: Optional[datetime] = None
    due_date: Optional[datetime] = None
    total_amount: Optional[float] = None
    status: InvoiceStatus = InvoiceStatus.DRAFT


class InvoiceUpdate(UpdateModel):
    # fees and total are fixed once the invoice exists
    model_config = ConfigDict(extra="forbid")
    not_null = ("due_date", "status")

    due_date: Optional[datetime] = None
    status: Optional[InvoiceStatus] = None


class Invoice(InvoiceFees, NaiveDatetimeModel):
    id: str
    rental_id: Optional[str] = None
    customer_id: Optional[str] = None
    invoice_date: Optional[datetime] = None
    due_date: Optional[datetime] = None
    total_amount: float
    status: InvoiceStatus
    display_status: Optional[str] = None
    customer_name: Optional[str] = None
    rental_info: Optional[str] = None


# --- Payments ---

class PaymentBase(NaiveDatetimeModel):
    invoice_id: Optional[str] = None
    customer_id: Optional[str] = None
    payment_date: Optional[datetime] = None
    amount: float = Field(..., gt=0)
    payment_method: PaymentMethod
    transaction_reference: str = ""
    status: PaymentStatus = PaymentStatus.PENDING
    processed_by: Optional[str] = None

    @field_validator("transaction_reference", mode="before")
    @classmethod
    def blank_reference(cls, v):
        return blank_if_none(v)


class PaymentCreate(PaymentBase):
    pass


class PaymentUpdate(UpdateModel):
    not_null = ("amount", "payment_method", "transaction_reference", "status")

    invoice_id: Optional[str] = None
    customer_id: Optional[str] = None
    payment_date: Optional[datetime] = None
    amount: Optional[float] = Field(None, gt=0)
    payment_method: Optional[PaymentMethod] = None
    transaction_reference: Optional[str] = None
    status: Optional[PaymentStatus] = None
    processed_by: Optional[str] = None


class Payment(PaymentBase):
    id: str
    customer_name: Optional[str] = None
    invoice_info: Optional[str] = None


# --- Maintenance ---

class MaintenanceBase(NaiveDatetimeModel):
    vehicle_id: str
    maintenance_type: str
    description: str = ""
    technician_id: Optional[str] = None
    maintenance_date: Optional[datetime] = None
    mileage: int = Field(0, ge=0)
    cost: float = Field(0.0, ge=0)
    status: MaintenanceStatus = MaintenanceStatus.SCHEDULED

    @field_validator("description", mode="before")
    @classmethod
    def blank_description(cls, v):
        return blank_if_none(v)


class MaintenanceCreate(MaintenanceBase):
    pass


class MaintenanceUpdate(UpdateModel):
    not_null = ("vehicle_id", "maintenance_type", "description", "mileage", "cost", "status")

    vehicle_id: Optional[str] = None
    maintenance_type: Optional[str] = None
    description: Optional[str] = None
    technician_id: Optional[str] = None
    maintenance_date: Optional[datetime] = None
    mileage: Optional[int] = Field(None, ge=0)
    cost: Optional[float] = Field(None, ge=0)
    status: Optional[MaintenanceStatus] = None


class MaintenanceRecord(MaintenanceBase):
    id: str
    vehicle_info: Optional[str] = None
    technician_name: Optional[str] = None


# --- Employees ---

class EmployeeBase(ConsoleModel):
    first_name: str
    last_name: str
    email: EmailStr
    role: Literal["manager", "agent", "technician", "accountant"] = "agent"


class EmployeeCreate(EmployeeBase):
    password: str = Field(..., min_length=6)


class EmployeeLogin(ConsoleModel):
    email: EmailStr
    password: str


class Employee(EmployeeBase):
    id: str


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


# --- Workflow results ---

class BookingResult(ConsoleModel):
    reservation: Reservation
    vehicle: Vehicle
    rental: Rental
    invoice: Invoice
    rental_days: int


class CheckInResult(ConsoleModel):
    rental: Rental
    vehicle: Optional[Vehicle] = None
    reservation: Optional[Reservation] = None


class DashboardSummary(ConsoleModel):
    active_rentals: int = 0
    overdue_rentals: int = 0
    upcoming_reservations: int = 0
    vehicles_in_maintenance: int = 0
    available_vehicles: int = 0
    today_revenue: float = 0.0
    month_revenue: float = 0.0
    recent_rentals: List[Rental] = []
