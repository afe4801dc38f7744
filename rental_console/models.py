from sqlalchemy import Column, Integer, DateTime, Date, String, Float, Text
from uuid import uuid4

from .database import Base
from .rules import utcnow

# Column names follow the hosted schema (lower case, no separators); the
# services rename them to snake_case attributes.


def new_id():
    return str(uuid4())


class Customer(Base):
    __tablename__ = "customers"

    id = Column(String, primary_key=True, default=new_id)
    firstname = Column(String, nullable=False)
    lastname = Column(String, nullable=False)
    email = Column(String, index=True, default="")
    phone = Column(String, default="")
    address = Column(Text, default="")
    dateofbirth = Column(Date, nullable=True)
    licensenumber = Column(String, default="")
    licenseexpiry = Column(Date, nullable=True)
    customertype = Column(String, default="Individual")
    createdat = Column(DateTime, default=utcnow)


class VehicleCategory(Base):
    __tablename__ = "vehicle_categories"

    id = Column(String, primary_key=True, default=new_id)
    name = Column(String, nullable=False)
    description = Column(Text, default="")
    baserentalrate = Column(Float, default=0.0)
    insurancerate = Column(Float, default=0.0)


class Vehicle(Base):
    __tablename__ = "vehicles"

    id = Column(String, primary_key=True, default=new_id)
    vin = Column(String, index=True)
    make = Column(String, nullable=False)
    model = Column(String, nullable=False)
    year = Column(Integer)
    color = Column(String, default="")
    licenseplate = Column(String, index=True)
    mileage = Column(Integer, default=0)
    status = Column(String, default="available", index=True)  # available, rented, maintenance, reserved
    categoryid = Column(String, index=True, nullable=True)
    imageurl = Column(String, nullable=True)


class Reservation(Base):
    __tablename__ = "reservations"

    id = Column(String, primary_key=True, default=new_id)
    customerid = Column(String, index=True)
    categoryid = Column(String, index=True, nullable=True)
    vehicleid = Column(String, index=True, nullable=True)
    reservationdate = Column(DateTime, default=utcnow)
    pickupdate = Column(DateTime)
    returndate = Column(DateTime)
    status = Column(String, default="pending")  # pending, confirmed, cancelled, completed
    employeeid = Column(String, nullable=True)


class Rental(Base):
    __tablename__ = "rentals"

    id = Column(String, primary_key=True, default=new_id)
    reservationid = Column(String, index=True, nullable=True)
    customerid = Column(String, index=True)
    vehicleid = Column(String, index=True)
    checkoutemployeeid = Column(String, nullable=True)
    checkinemployeeid = Column(String, nullable=True)
    checkoutdate = Column(DateTime)
    expectedreturndate = Column(DateTime)
    actualreturndate = Column(DateTime, nullable=True)
    checkoutmileage = Column(Integer, default=0)
    returnmileage = Column(Integer, nullable=True)
    status = Column(String, default="active")  # active, completed, overdue, cancelled


class Invoice(Base):
    __tablename__ = "invoices"

    id = Column(String, primary_key=True, default=new_id)
    rentalid = Column(String, index=True, nullable=True)
    customerid = Column(String, index=True, nullable=True)
    invoicedate = Column(DateTime, default=utcnow)
    duedate = Column(DateTime)
    basefee = Column(Float, default=0.0)
    insurancefee = Column(Float, default=0.0)
    extramileagefee = Column(Float, default=0.0)
    fuelfee = Column(Float, default=0.0)
    damagefee = Column(Float, default=0.0)
    latefee = Column(Float, default=0.0)
    taxamount = Column(Float, default=0.0)
    totalamount = Column(Float, default=0.0)
    status = Column(String, default="draft")  # draft, issued, paid, overdue, cancelled


class Payment(Base):
    __tablename__ = "payments"

    id = Column(String, primary_key=True, default=new_id)
    invoiceid = Column(String, index=True, nullable=True)
    customerid = Column(String, index=True, nullable=True)
    paymentdate = Column(DateTime, default=utcnow)
    amount = Column(Float, nullable=False)
    paymentmethod = Column(String)  # credit, debit, cash, bank_transfer
    transactionreference = Column(String, default="")
    status = Column(String, default="pending")  # pending, completed, failed, refunded
    processedby = Column(String, nullable=True)


class MaintenanceRecord(Base):
    __tablename__ = "maintenance_records"

    id = Column(String, primary_key=True, default=new_id)
    vehicleid = Column(String, index=True, nullable=True)
    maintenancetype = Column(String)
    description = Column(Text, default="")
    technicianid = Column(String, nullable=True)
    maintenancedate = Column(DateTime, default=utcnow)
    mileage = Column(Integer, default=0)
    cost = Column(Float, default=0.0)
    status = Column(String, default="scheduled")  # scheduled, in-progress, completed


class Employee(Base):
    __tablename__ = "employees"

    id = Column(String, primary_key=True, default=new_id)
    firstname = Column(String, nullable=False)
    lastname = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    role = Column(String, default="agent")  # manager, agent, technician, accountant
    passwordhash = Column(String, nullable=True)


COLLECTIONS = {
    model.__tablename__: model
    for model in (
        Customer, VehicleCategory, Vehicle, Reservation, Rental,
        Invoice, Payment, MaintenanceRecord, Employee,
    )
}
