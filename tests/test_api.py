import pytest
from httpx import ASGITransport, AsyncClient

from rental_console.images import PLACEHOLDER_IMAGE_URL, VehicleImageStore
from rental_console.main import app

from test_images import FakeS3Client, configured_store


@pytest.fixture
async def client(console):
    app.state.console = console
    app.state.images = VehicleImageStore(endpoint_url="", access_key_id="", secret_access_key="")
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.state.console = None
    app.state.images = None


async def login(client, console, role, email):
    await console.employees.create({
        "first_name": role.capitalize(), "last_name": "User", "email": email,
        "role": role, "password": "secret1"
    })
    response = await client.post("/login", json={"email": email, "password": "secret1"})
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture
async def manager(client, console):
    return await login(client, console, "manager", "manager@example.com")


@pytest.fixture
async def accountant(client, console):
    return await login(client, console, "accountant", "accountant@example.com")


async def test_health_needs_no_auth(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["store"]["status"] == "connected"


async def test_requests_without_token_rejected(client):
    response = await client.get("/customers")
    assert response.status_code in (401, 403)


async def test_invalid_token_rejected(client):
    response = await client.get("/customers", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401


async def test_wrong_password(client, console, manager):
    response = await client.post("/login", json={"email": "manager@example.com", "password": "wrong-one"})
    assert response.status_code == 401


async def test_me(client, manager):
    response = await client.get("/employees/me", headers=manager)
    assert response.status_code == 200
    body = response.json()
    assert body["role"] == "manager"
    assert "passwordHash" not in body


async def test_only_managers_create_employees(client, manager, accountant):
    new_agent = {"firstName": "Ann", "lastName": "Agent", "email": "ann@example.com",
                 "role": "agent", "password": "secret1"}

    response = await client.post("/employees", json=new_agent, headers=accountant)
    assert response.status_code == 403

    response = await client.post("/employees", json=new_agent, headers=manager)
    assert response.status_code == 201

    response = await client.post("/employees", json=new_agent, headers=manager)
    assert response.status_code == 400


async def test_role_sections(client, accountant):
    assert (await client.get("/customers", headers=accountant)).status_code == 403
    assert (await client.get("/invoices", headers=accountant)).status_code == 200
    assert (await client.get("/dashboard/summary", headers=accountant)).status_code == 200


async def test_customer_crud_camel_case(client, manager):
    response = await client.post("/customers", json={"firstName": "Ada", "lastName": "Lovelace"},
                                 headers=manager)
    assert response.status_code == 201
    customer = response.json()
    assert customer["fullName"] == "Ada Lovelace"

    response = await client.put(f"/customers/{customer['id']}", json={"phone": "555"}, headers=manager)
    assert response.json()["phone"] == "555"

    response = await client.delete(f"/customers/{customer['id']}", headers=manager)
    assert response.status_code == 200
    assert response.json()["deleted"] == [["customers", customer["id"]]]

    response = await client.get(f"/customers/{customer['id']}", headers=manager)
    assert response.status_code == 404


async def test_vehicle_status_filter_and_no_status_edits(client, manager, vehicle):
    response = await client.get("/vehicles", params={"status": "available"}, headers=manager)
    assert [v["id"] for v in response.json()] == [vehicle.id]
    assert response.json()[0]["categoryName"] == "SUV"

    response = await client.get("/vehicles", params={"status": "rented"}, headers=manager)
    assert response.json() == []

    response = await client.put(f"/vehicles/{vehicle.id}", json={"status": "rented"}, headers=manager)
    assert response.status_code == 422


async def test_book_and_check_in(client, manager, customer, vehicle):
    response = await client.post("/reservations/book", json={
        "customerId": customer.id,
        "vehicleId": vehicle.id,
        "pickupDate": "2025-06-01T00:00:00",
        "returnDate": "2025-06-04T00:00:00",
    }, headers=manager)
    assert response.status_code == 201
    booking = response.json()
    assert booking["rentalDays"] == 3
    assert booking["invoice"]["totalAmount"] == pytest.approx(220.35)
    assert booking["vehicle"]["status"] == "reserved"

    me = (await client.get("/employees/me", headers=manager)).json()
    assert booking["rental"]["checkoutEmployeeId"] == me["id"]

    response = await client.post(f"/rentals/{booking['rental']['id']}/check-in",
                                 json={"returnMileage": 8500}, headers=manager)
    assert response.status_code == 200
    assert response.json()["rental"]["status"] == "completed"
    assert response.json()["vehicle"]["mileage"] == 8500


async def test_booking_unavailable_vehicle_is_bad_request(client, manager, console, customer, vehicle):
    await console.vehicles.set_status(vehicle.id, "maintenance")
    response = await client.post("/reservations/book", json={
        "customerId": customer.id,
        "vehicleId": vehicle.id,
        "pickupDate": "2025-06-01T00:00:00",
        "returnDate": "2025-06-04T00:00:00",
    }, headers=manager)
    assert response.status_code == 400


async def test_payment_stamped_with_processor(client, manager, console, customer):
    invoice = await console.invoices.create({"customer_id": customer.id, "base_fee": 50, "status": "issued"})
    response = await client.post("/payments", json={
        "invoiceId": invoice.id, "amount": 50, "paymentMethod": "cash", "status": "completed"
    }, headers=manager)
    assert response.status_code == 201
    me = (await client.get("/employees/me", headers=manager)).json()
    assert response.json()["processedBy"] == me["id"]
    assert (await console.invoices.get(invoice.id)).status == "paid"


async def test_dashboard_summary(client, manager, console, booking_request):
    await console.booking.book(booking_request)
    response = await client.get("/dashboard/summary", headers=manager)
    assert response.status_code == 200
    summary = response.json()
    assert summary["activeRentals"] == 1
    assert summary["availableVehicles"] == 0
    assert len(summary["recentRentals"]) == 1


async def test_image_upload_without_storage_uses_placeholder(client, manager, vehicle):
    response = await client.post(
        f"/vehicles/{vehicle.id}/image",
        files={"image": ("car.jpg", b"\xff\xd8\xff", "image/jpeg")},
        headers=manager
    )
    assert response.status_code == 200
    assert response.json()["imageUrl"] == PLACEHOLDER_IMAGE_URL


async def test_image_upload_rejects_non_images(client, manager, vehicle):
    response = await client.post(
        f"/vehicles/{vehicle.id}/image",
        files={"image": ("notes.txt", b"hello", "text/plain")},
        headers=manager
    )
    assert response.status_code == 400


async def test_store_failure_is_bad_gateway(client, manager, console, failing_console):
    broken, _ = failing_console(("get_all", "customers"))
    app.state.console = broken
    response = await client.get("/customers", headers=manager)
    assert response.status_code == 502
    assert response.json()["detail"].startswith("Could not load customers")


async def upload_photo(client, headers, vehicle_id):
    response = await client.post(
        f"/vehicles/{vehicle_id}/image",
        files={"image": ("car.jpg", b"\xff\xd8\xff", "image/jpeg")},
        headers=headers
    )
    assert response.status_code == 200
    return response.json()["imageUrl"]


async def test_deleting_vehicle_removes_its_photo(client, manager, vehicle):
    s3 = FakeS3Client()
    app.state.images = configured_store(s3)

    image_url = await upload_photo(client, manager, vehicle.id)
    assert image_url.startswith("https://cdn.example.com/vehicles/")

    response = await client.delete(f"/vehicles/{vehicle.id}", headers=manager)
    assert response.status_code == 200
    assert response.json()["deleted"] == [["vehicles", vehicle.id]]
    assert s3.deleted == [("cars", s3.uploads[0][1])]
    assert (await client.get(f"/vehicles/{vehicle.id}", headers=manager)).status_code == 404


async def test_new_photo_replaces_old_one(client, manager, vehicle):
    s3 = FakeS3Client()
    app.state.images = configured_store(s3)

    await upload_photo(client, manager, vehicle.id)
    await upload_photo(client, manager, vehicle.id)

    assert len(s3.uploads) == 2
    assert s3.deleted == [("cars", s3.uploads[0][1])]


async def test_deleting_missing_vehicle_is_not_found(client, manager):
    response = await client.delete("/vehicles/missing", headers=manager)
    assert response.status_code == 404
