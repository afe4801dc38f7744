from datetime import datetime
from uuid import uuid4

import pytest
from aiohttp import test_utils, web

from rental_console.errors import NotFoundError, StoreError
from rental_console.rest_store import RestRecordStore
from rental_console.rules import FixedRatePricing
from rental_console.schemas import BookingRequest
from rental_console.services import Console

API_KEY = "anon-key"


def matches(row: dict, params) -> bool:
    for field, condition in params.items():
        if field == "select":
            continue
        operator, _, value = condition.partition(".")
        current = row.get(field)
        if operator == "eq" and str(current) != value:
            return False
        if operator == "is" and value == "null" and current is not None:
            return False
        if operator == "in":
            wanted = {item.strip('"') for item in value.strip("()").split(",")}
            if str(current) not in wanted:
                return False
    return True


def fake_postgrest(tables: dict, log: list):
    """Minimal PostgREST: flat eq/is/in filters, representation on writes."""

    async def handle(request):
        log.append((request.method, request.match_info["table"], dict(request.query)))
        if request.headers.get("apikey") != API_KEY:
            return web.json_response({"message": "Invalid API key"}, status=401)

        name = request.match_info["table"]
        if name == "broken":
            return web.json_response({"message": "relation does not exist"}, status=500)
        rows = tables.setdefault(name, [])
        selected = [row for row in rows if matches(row, request.query)]

        if request.method == "GET":
            return web.json_response(selected)
        if request.method == "POST":
            row = await request.json()
            row.setdefault("id", str(uuid4()))
            rows.append(row)
            return web.json_response([row], status=201)
        if request.method == "PATCH":
            changes = await request.json()
            for row in selected:
                row.update(changes)
            return web.json_response(selected)
        if request.method == "DELETE":
            tables[name] = [row for row in rows if row not in selected]
            return web.json_response(selected)
        return web.json_response({"message": "method not allowed"}, status=405)

    app = web.Application()
    app.router.add_route("*", "/rest/v1/{table}", handle)
    return app


@pytest.fixture
async def server():
    tables, log = {}, []
    test_server = test_utils.TestServer(fake_postgrest(tables, log))
    await test_server.start_server()
    test_server.tables = tables
    test_server.log = log
    yield test_server
    await test_server.close()


@pytest.fixture
def rest_store(server):
    return RestRecordStore(str(server.make_url("/")), API_KEY, timeout=5)


async def test_crud(rest_store):
    created = await rest_store.create("customers", {"firstname": "Ada", "lastname": "Lovelace"})
    assert created["id"]

    assert await rest_store.get_by_id("customers", created["id"]) == created
    assert await rest_store.get_by_id("customers", "missing") is None

    updated = await rest_store.update("customers", created["id"], {"phone": "555"})
    assert updated["phone"] == "555"

    await rest_store.delete("customers", created["id"])
    assert await rest_store.get_all("customers") == []


async def test_filters_and_batch_get(rest_store, server):
    first = await rest_store.create("vehicles", {"make": "A", "status": "available", "imageurl": None})
    second = await rest_store.create("vehicles", {"make": "B", "status": "rented", "imageurl": "x"})

    rented = await rest_store.get_all("vehicles", {"status": "rented"})
    assert [v["id"] for v in rented] == [second["id"]]

    without_image = await rest_store.get_all("vehicles", {"imageurl": None})
    assert [v["id"] for v in without_image] == [first["id"]]
    assert server.log[-1][2]["imageurl"] == "is.null"

    both = await rest_store.get_many("vehicles", [first["id"], second["id"], None])
    assert {v["id"] for v in both} == {first["id"], second["id"]}
    assert server.log[-1][2]["id"].startswith("in.(")


async def test_datetimes_sent_as_iso_strings(rest_store):
    created = await rest_store.create("reservations", {"pickupdate": datetime(2025, 6, 1, 10, 30)})
    assert created["pickupdate"] == "2025-06-01T10:30:00"


async def test_missing_records_raise_not_found(rest_store):
    with pytest.raises(NotFoundError):
        await rest_store.update("customers", "missing", {"phone": "555"})
    with pytest.raises(NotFoundError):
        await rest_store.delete("customers", "missing")
    with pytest.raises(NotFoundError):
        await rest_store.update_where("vehicles", "missing", {"status": "reserved"}, {"status": "available"})


async def test_update_where(rest_store):
    vehicle = await rest_store.create("vehicles", {"make": "A", "status": "available"})

    reserved = await rest_store.update_where("vehicles", vehicle["id"], {"status": "reserved"},
                                             {"status": "available"})
    assert reserved["status"] == "reserved"
    assert await rest_store.update_where("vehicles", vehicle["id"], {"status": "reserved"},
                                         {"status": "available"}) is None


async def test_http_errors_become_store_errors(rest_store, server):
    with pytest.raises(StoreError, match="HTTP 500"):
        await rest_store.get_all("broken")

    wrong_key = RestRecordStore(str(server.make_url("/")), "wrong-key")
    with pytest.raises(StoreError, match="HTTP 401"):
        await wrong_key.get_all("customers")


async def test_unreachable_store():
    store = RestRecordStore("http://127.0.0.1:1", API_KEY, timeout=2)
    with pytest.raises(StoreError, match="unavailable|timeout"):
        await store.get_all("customers")


async def test_booking_over_rest(rest_store, server):
    console = Console(rest_store, pricing=FixedRatePricing())
    customer = await console.customers.create({"first_name": "Ada", "last_name": "Lovelace"})
    category = await console.categories.create({"name": "Compact", "base_rental_rate": 30, "insurance_rate": 6})
    vehicle = await console.vehicles.create({
        "vin": "VIN1", "make": "Toyota", "model": "Camry", "year": 2022,
        "license_plate": "ABC123", "mileage": 15600, "status": "available", "category_id": category.id
    })

    result = await console.booking.book(BookingRequest(
        customer_id=customer.id,
        vehicle_id=vehicle.id,
        pickup_date=datetime(2025, 6, 1),
        return_date=datetime(2025, 6, 4)
    ))

    assert result.invoice.total_amount == pytest.approx(220.35)
    assert server.tables["vehicles"][0]["status"] == "reserved"
    assert server.tables["rentals"][0]["reservationid"] == result.reservation.id
    assert result.rental.customer_name == "Ada Lovelace"
