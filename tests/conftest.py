from datetime import datetime, timedelta, timezone as dt_timezone
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model

from parking.models import AvailabilityBlock, Booking, ParkingSpot, Vehicle

DAY = datetime(2030, 1, 15, tzinfo=dt_timezone.utc)


def at(hour, minute=0, days=0):
    """An instant on the fixed test day (2030-01-15, UTC)."""
    return DAY + timedelta(days=days, hours=hour, minutes=minute)


@pytest.fixture
def now():
    return at(6)


@pytest.fixture
def make_user(db):
    def _make_user(username, email=""):
        return get_user_model().objects.create_user(
            username=username, email=email or f"{username}@example.com", password="pw"
        )

    return _make_user


@pytest.fixture
def owner(make_user):
    return make_user("owner")


@pytest.fixture
def guest(make_user):
    return make_user("guest")


@pytest.fixture
def other_guest(make_user):
    return make_user("other-guest")


@pytest.fixture
def make_spot(owner):
    def _make_spot(total_slots=1, price="10.00", price_type="hour", **extra):
        return ParkingSpot.objects.create(
            owner=extra.pop("owner", owner),
            name=extra.pop("name", "Central Plaza"),
            total_slots=total_slots,
            price=Decimal(price),
            price_type=price_type,
            **extra,
        )

    return _make_spot


@pytest.fixture
def spot(make_spot):
    return make_spot(total_slots=1)


@pytest.fixture
def vehicle(guest):
    return Vehicle.objects.create(owner=guest, license_plate="ABC-123")


@pytest.fixture
def other_vehicle(other_guest):
    return Vehicle.objects.create(owner=other_guest, license_plate="XYZ-789")


@pytest.fixture
def make_booking(guest, vehicle):
    """Insert a booking row directly, bypassing the capacity check."""
    counter = {"n": 0}

    def _make_booking(spot, start, end, status=Booking.STATUS_CONFIRMED, **extra):
        counter["n"] += 1
        return Booking.objects.create(
            spot=spot,
            guest=extra.pop("guest", guest),
            vehicle=extra.pop("vehicle", vehicle),
            start_time=start,
            end_time=end,
            status=status,
            qr_code=extra.pop("qr_code", f"qr-token-{counter['n']}"),
            pin=extra.pop("pin", f"{1000 + counter['n']}"),
            **extra,
        )

    return _make_booking


@pytest.fixture
def make_block(db):
    def _make_block(spot, start, end, status=AvailabilityBlock.STATUS_BLOCKED, **extra):
        return AvailabilityBlock.objects.create(
            spot=spot, start_time=start, end_time=end, status=status, **extra
        )

    return _make_block
