from datetime import date, datetime

import pytest
from sqlalchemy.pool import StaticPool

from rental_console import database
from rental_console.errors import StoreError
from rental_console.rules import FixedRatePricing
from rental_console.schemas import BookingRequest
from rental_console.services import Console
from rental_console.store import RecordStore, SqlRecordStore

NOW = datetime(2025, 6, 1, 9, 0, 0)


def fixed_clock():
    return NOW


class FailingStore(RecordStore):
    """Wraps a store and raises StoreError for chosen (operation, collection) pairs."""

    def __init__(self, inner: RecordStore, fail_on=()):
        self.inner = inner
        self.fail_on = set(fail_on)
        self.calls = []

    def _check(self, operation, collection):
        self.calls.append((operation, collection))
        if (operation, collection) in self.fail_on:
            raise StoreError(f"{operation} refused", collection=collection)

    async def get_all(self, collection, filters=None):
        self._check("get_all", collection)
        return await self.inner.get_all(collection, filters)

    async def get_by_id(self, collection, record_id):
        self._check("get_by_id", collection)
        return await self.inner.get_by_id(collection, record_id)

    async def get_many(self, collection, ids):
        self._check("get_many", collection)
        return await self.inner.get_many(collection, ids)

    async def create(self, collection, fields):
        self._check("create", collection)
        return await self.inner.create(collection, fields)

    async def update(self, collection, record_id, fields):
        self._check("update", collection)
        return await self.inner.update(collection, record_id, fields)

    async def update_where(self, collection, record_id, fields, expected):
        self._check("update_where", collection)
        return await self.inner.update_where(collection, record_id, fields, expected)

    async def delete(self, collection, record_id):
        self._check("delete", collection)
        return await self.inner.delete(collection, record_id)


@pytest.fixture
async def engine():
    engine = database.make_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
        echo=False
    )
    await database.create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def store(engine):
    return SqlRecordStore(database.make_session_factory(engine))


@pytest.fixture
def console(store):
    return Console(store, pricing=FixedRatePricing(), clock=fixed_clock)


@pytest.fixture
def failing_console(store):
    """Factory: a console whose store refuses the given operations."""

    def make(*fail_on, compensate=True, pricing=None):
        failing = FailingStore(store, fail_on)
        return Console(failing, pricing=pricing or FixedRatePricing(), compensate=compensate,
                       clock=fixed_clock), failing

    return make


@pytest.fixture
async def customer(console):
    return await console.customers.create({
        "first_name": "John",
        "last_name": "Doe",
        "email": "john.doe@email.com",
        "phone": "+1-555-0101",
        "date_of_birth": date(1985, 6, 15),
        "license_number": "DL123456789",
    })


@pytest.fixture
async def category(console):
    return await console.categories.create({
        "name": "SUV",
        "description": "Sport Utility Vehicles",
        "base_rental_rate": 45,
        "insurance_rate": 9,
    })


@pytest.fixture
async def vehicle(console, category):
    return await console.vehicles.create({
        "vin": "VIN87654321",
        "make": "Honda",
        "model": "CR-V",
        "year": 2023,
        "color": "Blue",
        "license_plate": "XYZ789",
        "mileage": 8200,
        "category_id": category.id,
    })


@pytest.fixture
def booking_request(customer, vehicle):
    return BookingRequest(
        customer_id=customer.id,
        vehicle_id=vehicle.id,
        pickup_date=datetime(2025, 6, 1),
        return_date=datetime(2025, 6, 4)
    )
