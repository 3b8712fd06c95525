import json
from datetime import timedelta

import pytest
from django.utils import timezone

from parking.models import Booking, ParkingSpot
from tests.conftest import at


@pytest.fixture
def guest_client(client, guest):
    client.force_login(guest)
    return client


@pytest.fixture
def owner_client(client, owner):
    client.force_login(owner)
    return client


def _window(start, end):
    return {"start": start.isoformat(), "end": end.isoformat()}


@pytest.mark.django_db
def test_anonymous_requests_get_401(client):
    response = client.get("/api/bookings/")

    assert response.status_code == 401
    assert response.json() == {"error": "Authentication required."}


def test_reserve_returns_codes_to_guest(guest_client, spot, vehicle):
    response = guest_client.post(
        "/api/bookings/",
        {"spot_id": spot.pk, "vehicle_id": vehicle.pk, **_window(at(9), at(10))},
    )

    assert response.status_code == 201
    body = response.json()
    assert body["status"] == Booking.STATUS_PENDING
    assert body["total_cost"] == "10.00"
    assert len(body["pin"]) == 4
    assert body["qr_code"]


def test_reserve_with_date_and_times(guest_client, spot, vehicle):
    response = guest_client.post(
        "/api/bookings/",
        {
            "spot_id": spot.pk,
            "vehicle_id": vehicle.pk,
            "date": "2030-01-15",
            "start_time": "22:00",
            "end_time": "02:00",
        },
    )

    assert response.status_code == 201
    booking = Booking.objects.get()
    assert booking.end_time - booking.start_time == timedelta(hours=4)


def test_full_window_answers_409_with_free_slots(guest_client, spot, vehicle, make_booking):
    make_booking(spot, at(9), at(11))

    response = guest_client.post(
        "/api/bookings/",
        {"spot_id": spot.pk, "vehicle_id": vehicle.pk, **_window(at(10), at(12))},
    )

    assert response.status_code == 409
    assert response.json() == {
        "error": "This time slot is no longer available, 0 slot(s) remain, please adjust",
        "free_slots": 0,
    }


def test_inverted_window_is_400(guest_client, spot, vehicle):
    response = guest_client.post(
        "/api/bookings/",
        {"spot_id": spot.pk, "vehicle_id": vehicle.pk, **_window(at(10), at(9))},
    )

    assert response.status_code == 400
    assert "after its start" in response.json()["error"]


def test_request_id_replay_returns_same_booking(guest_client, spot, vehicle):
    data = {
        "spot_id": spot.pk,
        "vehicle_id": vehicle.pk,
        "request_id": "6f1c1f4e-5a3b-4c7e-9d0a-2b8e1f3c4d5e",
        **_window(at(9), at(10)),
    }

    first = guest_client.post("/api/bookings/", data)
    second = guest_client.post("/api/bookings/", data)

    assert first.status_code == second.status_code == 201
    assert first.json()["id"] == second.json()["id"]
    assert Booking.objects.count() == 1


def test_availability_suggests_next_window(guest_client, spot, make_booking):
    make_booking(spot, at(9), at(11))

    response = guest_client.get(
        f"/api/spots/{spot.pk}/availability/", _window(at(10), at(11))
    )

    assert response.status_code == 200
    body = response.json()
    assert body["free_slots"] == 0
    assert body["next_available"] == {
        "start": at(11).isoformat(),
        "end": at(12).isoformat(),
    }


def test_availability_unknown_spot_is_404(guest_client):
    response = guest_client.get("/api/spots/999/availability/", _window(at(9), at(10)))

    assert response.status_code == 404


def test_owner_sees_booking_without_codes(client, owner, spot, make_booking):
    make_booking(spot, at(9), at(10))
    client.force_login(owner)

    results = client.get("/api/bookings/").json()["results"]

    assert len(results) == 1
    assert "pin" not in results[0]
    assert "qr_code" not in results[0]


def test_owner_verifies_payment(client, owner, spot, make_booking):
    booking = make_booking(
        spot,
        at(9),
        at(10),
        status=Booking.STATUS_PENDING,
        payment_deadline=timezone.now() + timedelta(minutes=10),
    )
    client.force_login(owner)

    response = client.post(f"/api/bookings/{booking.pk}/verify-payment/")

    assert response.status_code == 200
    assert response.json()["status"] == Booking.STATUS_CONFIRMED


def test_bad_entry_code_is_generic(owner_client, spot, make_booking):
    make_booking(spot, at(9), at(10), pin="4321")

    unknown = owner_client.post(f"/api/spots/{spot.pk}/entry/", {"code": "0000"})
    early = owner_client.post(f"/api/spots/{spot.pk}/entry/", {"code": "4321"})

    assert unknown.status_code == early.status_code == 400
    assert unknown.json() == early.json() == {"error": "Invalid or expired code"}


@pytest.mark.parametrize("path", ["entry", "exit"])
def test_malformed_code_looks_like_unknown_code(owner_client, spot, path):
    url = f"/api/spots/{spot.pk}/{path}/"

    bodies = [
        owner_client.post(url, {"code": code})
        for code in ("", "9" * 80, "0000")
    ]

    assert [r.status_code for r in bodies] == [400, 400, 400]
    assert all(r.json() == {"error": "Invalid or expired code"} for r in bodies)


def test_entry_admits_current_booking(owner_client, spot, make_booking):
    now = timezone.now()
    booking = make_booking(
        spot, now - timedelta(minutes=5), now + timedelta(hours=1), pin="4321"
    )

    response = owner_client.post(f"/api/spots/{spot.pk}/entry/", {"code": "4321"})

    assert response.status_code == 200
    assert response.json()["id"] == booking.pk
    assert response.json()["status"] == Booking.STATUS_ACTIVE


def test_only_owner_can_scan(guest_client, spot, make_booking):
    make_booking(spot, at(9), at(10), pin="4321")

    response = guest_client.post(f"/api/spots/{spot.pk}/entry/", {"code": "4321"})

    assert response.status_code == 404


def test_create_and_deactivate_spot(owner_client):
    response = owner_client.post(
        "/api/spots/",
        {
            "name": "Harbour Lot",
            "address": "1 Quay Street",
            "total_slots": 5,
            "price": "4.50",
            "price_type": "hour",
            "amenities": json.dumps(["ev"]),
        },
    )

    assert response.status_code == 201
    spot_id = response.json()["id"]
    assert response.json()["amenities"] == ["ev"]

    response = owner_client.post(f"/api/spots/{spot_id}/deactivate/")

    assert response.json()["is_active"] is False
    assert ParkingSpot.objects.get(pk=spot_id).is_active is False


def test_update_spot_changes_only_posted_fields(owner_client, make_spot):
    spot = make_spot(total_slots=2, price="3.00", amenities=["covered"])

    response = owner_client.post(f"/api/spots/{spot.pk}/", {"price": "6.00"})

    assert response.status_code == 200
    spot.refresh_from_db()
    assert str(spot.price) == "6.00"
    assert spot.amenities == ["covered"]
    assert spot.total_slots == 2


def test_owner_creates_block_over_http(owner_client, spot):
    response = owner_client.post(
        f"/api/spots/{spot.pk}/blocks/",
        {"status": "maintenance", "reason": "Resurfacing", **_window(at(12), at(14))},
    )

    assert response.status_code == 201
    assert response.json()["status"] == "maintenance"
    assert response.json()["date"] == "2030-01-15"


def test_download_pass_is_guest_only(client, guest, owner, spot, make_booking):
    booking = make_booking(spot, at(9), at(10))

    client.force_login(owner)
    assert client.get(f"/api/bookings/{booking.pk}/pass/").status_code == 404

    client.force_login(guest)
    response = client.get(f"/api/bookings/{booking.pk}/pass/")
    assert response.status_code == 200
    assert response["Content-Type"] == "application/pdf"
    assert b"".join(response.streaming_content).startswith(b"%PDF")


def test_register_vehicle(guest_client):
    response = guest_client.post("/api/vehicles/", {"license_plate": " ab-12 cd "})

    assert response.status_code == 201
    assert response.json()["license_plate"] == "AB-12 CD"
