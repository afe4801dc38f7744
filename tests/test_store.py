from datetime import datetime

import pytest

from rental_console.errors import NotFoundError, StoreError


async def test_create_assigns_id_and_defaults(store):
    record = await store.create("vehicles", {
        "vin": "VIN1", "make": "Toyota", "model": "Camry", "year": 2022, "licenseplate": "ABC123"
    })
    assert record["id"]
    assert record["status"] == "available"
    assert await store.get_by_id("vehicles", record["id"]) == record


async def test_get_by_id_missing_returns_none(store):
    assert await store.get_by_id("customers", "nope") is None


async def test_get_all_filters_by_equality(store):
    await store.create("vehicles", {"vin": "1", "make": "A", "model": "X", "year": 2020, "licenseplate": "P1"})
    await store.create("vehicles", {"vin": "2", "make": "B", "model": "Y", "year": 2021, "licenseplate": "P2",
                                    "status": "rented"})

    assert len(await store.get_all("vehicles")) == 2
    rented = await store.get_all("vehicles", {"status": "rented"})
    assert [v["vin"] for v in rented] == ["2"]
    assert await store.get_all("vehicles", {"status": "maintenance"}) == []


async def test_get_many(store):
    first = await store.create("customers", {"firstname": "Ada", "lastname": "Lovelace"})
    second = await store.create("customers", {"firstname": "Alan", "lastname": "Turing"})
    await store.create("customers", {"firstname": "Grace", "lastname": "Hopper"})

    records = await store.get_many("customers", [first["id"], second["id"], None, "missing"])
    assert {r["id"] for r in records} == {first["id"], second["id"]}
    assert await store.get_many("customers", []) == []


async def test_update_and_delete(store):
    created = await store.create("customers", {"firstname": "Ada", "lastname": "Lovelace"})

    updated = await store.update("customers", created["id"], {"phone": "555"})
    assert updated["phone"] == "555"
    assert updated["firstname"] == "Ada"

    await store.delete("customers", created["id"])
    assert await store.get_by_id("customers", created["id"]) is None


async def test_update_and_delete_missing_raise_not_found(store):
    with pytest.raises(NotFoundError):
        await store.update("customers", "missing", {"phone": "555"})
    with pytest.raises(NotFoundError):
        await store.delete("customers", "missing")


async def test_update_where_applies_only_when_expected_matches(store):
    vehicle = await store.create("vehicles", {
        "vin": "1", "make": "A", "model": "X", "year": 2020, "licenseplate": "P1"
    })

    reserved = await store.update_where("vehicles", vehicle["id"], {"status": "reserved"},
                                        {"status": "available"})
    assert reserved["status"] == "reserved"

    # second caller loses
    again = await store.update_where("vehicles", vehicle["id"], {"status": "reserved"},
                                     {"status": "available"})
    assert again is None
    assert (await store.get_by_id("vehicles", vehicle["id"]))["status"] == "reserved"

    with pytest.raises(NotFoundError):
        await store.update_where("vehicles", "missing", {"status": "reserved"}, {"status": "available"})


async def test_datetimes_round_trip(store):
    pickup = datetime(2025, 6, 1, 10, 30)
    record = await store.create("reservations", {
        "customerid": "c1", "pickupdate": pickup, "returndate": datetime(2025, 6, 4)
    })
    assert record["pickupdate"] == pickup
    assert record["status"] == "pending"


async def test_unknown_collection_and_field(store):
    with pytest.raises(StoreError, match="Unknown collection"):
        await store.get_all("spaceships")
    with pytest.raises(StoreError, match="colour"):
        await store.create("vehicles", {"colour": "red"})
    with pytest.raises(StoreError):
        await store.get_all("vehicles", {"colour": "red"})
