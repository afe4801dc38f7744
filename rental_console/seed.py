"""Demo data for a fresh console.

    python -m rental_console.seed
"""
import asyncio
import logging
from datetime import date

from . import config, database
from .services import Console
from .store import RecordStore, SqlRecordStore, make_store

logger = logging.getLogger(__name__)

CATEGORIES = [
    {"name": "Economy", "description": "Small, fuel-efficient cars", "base_rental_rate": 25, "insurance_rate": 5},
    {"name": "Compact", "description": "Compact cars", "base_rental_rate": 30, "insurance_rate": 6},
    {"name": "SUV", "description": "Sport Utility Vehicles", "base_rental_rate": 45, "insurance_rate": 9},
    {"name": "Luxury", "description": "High-end luxury vehicles", "base_rental_rate": 75, "insurance_rate": 15},
    {"name": "Premium", "description": "Premium vehicles", "base_rental_rate": 60, "insurance_rate": 12},
]

# (category name, vehicle fields)
VEHICLES = [
    ("Compact", {"vin": "VIN12345678", "make": "Toyota", "model": "Camry", "year": 2022, "color": "Silver",
                 "license_plate": "ABC123", "mileage": 15600, "status": "available"}),
    ("SUV", {"vin": "VIN87654321", "make": "Honda", "model": "CR-V", "year": 2023, "color": "Blue",
             "license_plate": "XYZ789", "mileage": 8200, "status": "available"}),
    ("Luxury", {"vin": "VIN11223344", "make": "Ford", "model": "Mustang", "year": 2021, "color": "Red",
                "license_plate": "MUS001", "mileage": 20300, "status": "maintenance"}),
    ("SUV", {"vin": "VIN55667788", "make": "Chevrolet", "model": "Equinox", "year": 2022, "color": "White",
             "license_plate": "EQX234", "mileage": 12400, "status": "rented"}),
    ("Premium", {"vin": "VIN99001122", "make": "BMW", "model": "3 Series", "year": 2023, "color": "Black",
                 "license_plate": "BMW456", "mileage": 5600, "status": "available"}),
    ("Premium", {"vin": "VIN33445566", "make": "Audi", "model": "A4", "year": 2022, "color": "Gray",
                 "license_plate": "AUD789", "mileage": 18500, "status": "maintenance"}),
]

CUSTOMERS = [
    {"first_name": "John", "last_name": "Doe", "email": "john.doe@email.com", "phone": "+1-555-0101",
     "address": "123 Main St, City, State 12345", "date_of_birth": date(1985, 6, 15),
     "license_number": "DL123456789", "license_expiry": date(2027, 6, 15), "customer_type": "individual"},
    {"first_name": "Jane", "last_name": "Smith", "email": "jane.smith@email.com", "phone": "+1-555-0102",
     "address": "456 Oak Ave, City, State 12345", "date_of_birth": date(1990, 3, 22),
     "license_number": "DL987654321", "license_expiry": date(2028, 3, 22), "customer_type": "individual"},
    {"first_name": "Bob", "last_name": "Johnson", "email": "bob.johnson@email.com", "phone": "+1-555-0103",
     "address": "789 Pine St, City, State 12345", "date_of_birth": date(1982, 11, 8),
     "license_number": "DL456789123", "license_expiry": date(2027, 11, 8), "customer_type": "corporate"},
]

ADMIN_EMAIL = "admin@system.com"


async def seed_database(store: RecordStore, admin_password: str = None) -> bool:
    """Insert the demo records unless the store already has vehicles.

    Returns True when data was inserted.
    """
    console = Console(store)

    if await console.vehicles.list():
        logger.info("Database already has data, skipping seeding")
        return False

    categories = {}
    for category in CATEGORIES:
        created = await console.categories.create(category)
        categories[created.name] = created.id
    logger.info(f"Created {len(categories)} vehicle categories")

    for category_name, vehicle in VEHICLES:
        await console.vehicles.create({**vehicle, "category_id": categories[category_name]})
    logger.info(f"Created {len(VEHICLES)} vehicles")

    for customer in CUSTOMERS:
        await console.customers.create(customer)
    logger.info(f"Created {len(CUSTOMERS)} customers")

    if await console.employees.find_by_email(ADMIN_EMAIL) is None:
        await console.employees.create({
            "first_name": "System",
            "last_name": "Admin",
            "email": ADMIN_EMAIL,
            "role": "manager",
            "password": admin_password or config.ADMIN_PASSWORD,
        })
        logger.info(f"Created manager account {ADMIN_EMAIL}")

    return True


async def main():
    store = make_store()
    if isinstance(store, SqlRecordStore):
        await database.create_tables()
    await seed_database(store)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(main())
