from io import BytesIO

import pandas as pd
import pytest
from fastapi.testclient import TestClient

from flight_booking.web import create_app


def _passenger(passport, seat_class="Economy"):
    return {
        "name": "Web Traveler",
        "phone": "+1-555-0100",
        "date_of_birth": "1988-03-04",
        "passport_number": passport,
        "nationality": "US",
        "gender": "Male",
        "seat_class": seat_class,
    }


USER = {"X-User-Id": "5"}
ADMIN = {"X-User-Id": "1", "X-User-Role": "admin"}


@pytest.fixture
def client(service):
    return TestClient(create_app(service))


def test_booking_flow(client, make_flight):
    flight_id = make_flight(economy=3, business=1)

    response = client.post(
        f"/flights/{flight_id}/bookings",
        json={"passengers": [_passenger("WEB00001"), _passenger("WEB00002", "Business")]},
        headers=USER,
    )

    assert response.status_code == 201
    payload = response.json()
    assert [b["seat_number"] for b in payload["bookings"]] == ["1E", "1B"]
    assert payload["total_fare"] == "400.00"
    inventory = client.get(f"/flights/{flight_id}/inventory").json()
    assert inventory == {"Economy": 2, "Business": 0, "First Class": 1}

    booking_id = payload["bookings"][0]["id"]
    cancelled = client.post(f"/bookings/{booking_id}/cancel", headers=USER)
    assert cancelled.json()["status"] == "Cancelled"
    mine = client.get("/bookings", headers=USER).json()
    assert mine["total"] == 2
    assert mine["pages"] == 1


def test_sold_out_class_is_a_conflict(client, make_flight):
    flight_id = make_flight(business=0)

    response = client.post(
        f"/flights/{flight_id}/bookings",
        json={"passengers": [_passenger("WEB00003", "Business")]},
        headers=USER,
    )

    assert response.status_code == 409
    assert response.json() == {
        "detail": "No seats available in Business class.",
        "error": "InsufficientInventory",
    }


def test_invalid_draft_lists_errors(client, make_flight):
    flight_id = make_flight()

    response = client.post(
        f"/flights/{flight_id}/bookings",
        json={"passengers": [_passenger("bad!"), _passenger("BAD!")]},
        headers=USER,
    )

    assert response.status_code == 422
    assert response.json()["errors"] == [
        "Invalid passport number format for passenger 1.",
        "Invalid passport number format for passenger 2.",
        "Duplicate passport number detected for passenger 2.",
    ]


def test_cap_reports_remaining(client, make_flight):
    flight_id = make_flight(economy=10)
    passengers = [_passenger(f"CAP0000{i}") for i in range(3)]
    client.post(f"/flights/{flight_id}/bookings", json={"passengers": passengers}, headers=USER)

    response = client.post(
        f"/flights/{flight_id}/bookings",
        json={"passengers": [_passenger("CAP00010"), _passenger("CAP00011")]},
        headers=USER,
    )

    assert response.status_code == 409
    assert response.json()["remaining"] == 1
    assert response.json()["detail"] == "You can only book 1 more ticket(s) for this flight."


def test_identity_and_roles(client, make_flight):
    flight_id = make_flight()

    assert client.get("/bookings").status_code == 401
    assert client.post(f"/admin/flights/{flight_id}/cancel", headers=USER).status_code == 403
    assert client.get("/bookings/999", headers=USER).status_code == 404


def test_admin_queue_and_status_changes(client, make_flight):
    flight_id = make_flight(economy=4)
    created = client.post(
        f"/flights/{flight_id}/bookings",
        json={"passengers": [_passenger("ADM00001"), _passenger("ADM00002")]},
        headers=USER,
    ).json()
    first_id = created["bookings"][0]["id"]

    queue = client.get("/admin/bookings", params={"status": "Pending"}, headers=ADMIN).json()
    assert [b["id"] for b in queue["items"]] == [b["id"] for b in created["bookings"]]

    confirmed = client.post(f"/admin/bookings/{first_id}/status", params={"status": "Confirmed"}, headers=ADMIN)
    assert confirmed.json()["status"] == "Confirmed"
    again = client.post(f"/admin/bookings/{first_id}/status", params={"status": "Confirmed"}, headers=ADMIN)
    assert again.status_code == 409
    assert again.json()["error"] == "InvalidTransition"

    cancelled = client.post(f"/admin/flights/{flight_id}/cancel", headers=ADMIN).json()
    assert cancelled["cancelled_bookings"] == 2
    assert client.get(f"/flights/{flight_id}/inventory").json()["Economy"] == 4
    reopen = client.post(f"/admin/flights/{flight_id}/status", params={"status": "Scheduled"}, headers=ADMIN)
    assert reopen.status_code == 409


def test_manifest_downloads(client, make_flight):
    flight_id = make_flight()
    client.post(
        f"/flights/{flight_id}/bookings",
        json={"passengers": [_passenger("MAN00001"), _passenger("MAN00002", "First Class")]},
        headers=USER,
    )

    csv_response = client.get(f"/admin/flights/{flight_id}/manifest/csv", headers=ADMIN)
    assert csv_response.status_code == 200
    assert csv_response.text.splitlines()[0] == "Booking,Passenger,Passport,Class,Seat,Fare,Status,Booked At"

    xlsx_response = client.get(f"/admin/flights/{flight_id}/manifest/xlsx", headers=ADMIN)
    assert xlsx_response.status_code == 200
    frame = pd.read_excel(BytesIO(xlsx_response.content), sheet_name="Manifest")
    assert list(frame["Seat"]) == ["1E", "1F"]

    assert client.get(f"/admin/flights/{flight_id}/manifest/csv", headers=USER).status_code == 403
