import logging
from datetime import timedelta
from io import StringIO
from unittest import mock

import pytest
from django.core.management import call_command
from django.utils import timezone

from parking.exceptions import ConflictError
from parking.models import Booking, Notification
from services.availability import AvailabilityResolver
from services.expiry import ExpirySweeper
from services.reservations import BookingManager
from tests.conftest import at


def test_unpaid_booking_expires_and_frees_capacity(spot, guest, vehicle, now):
    booking = BookingManager.reserve(spot.pk, guest, vehicle.pk, at(9), at(10), now=now)
    with pytest.raises(ConflictError):
        BookingManager.reserve(spot.pk, guest, vehicle.pk, at(9), at(10), now=now)

    later = now + timedelta(minutes=16)
    result = ExpirySweeper.run(now=later)

    booking.refresh_from_db()
    assert result == {"expired": 1, "completed": 0}
    assert booking.status == Booking.STATUS_CANCELLED
    assert booking.cancelled_at == later
    assert AvailabilityResolver.check_availability(spot.pk, at(9), at(10), now=later) == 1
    assert BookingManager.reserve(spot.pk, guest, vehicle.pk, at(9), at(10), now=later)


def test_booking_within_deadline_is_kept(spot, guest, vehicle, now):
    booking = BookingManager.reserve(spot.pk, guest, vehicle.pk, at(9), at(10), now=now)

    assert ExpirySweeper.expire_pending(now=now + timedelta(minutes=14)) == 0

    booking.refresh_from_db()
    assert booking.status == Booking.STATUS_PENDING


def test_confirmed_booking_is_never_expired(spot, make_booking, now):
    booking = make_booking(
        spot,
        at(9),
        at(10),
        status=Booking.STATUS_CONFIRMED,
        payment_deadline=now - timedelta(minutes=30),
    )

    assert ExpirySweeper.expire_pending(now=now) == 0

    booking.refresh_from_db()
    assert booking.status == Booking.STATUS_CONFIRMED


def test_elapsed_active_booking_is_completed(spot, make_booking):
    booking = make_booking(spot, at(9), at(10), status=Booking.STATUS_ACTIVE)

    assert ExpirySweeper.complete_elapsed(now=at(10)) == 1

    booking.refresh_from_db()
    assert booking.status == Booking.STATUS_COMPLETED


def test_expiry_notifies_guest(
    spot, guest, vehicle, now, django_capture_on_commit_callbacks
):
    booking = BookingManager.reserve(spot.pk, guest, vehicle.pk, at(9), at(10), now=now)

    with django_capture_on_commit_callbacks(execute=True):
        ExpirySweeper.expire_pending(now=now + timedelta(minutes=20))

    assert Notification.objects.filter(
        user=guest, booking=booking, kind="booking_expired"
    ).exists()


def test_expire_bookings_command(spot, make_booking):
    make_booking(
        spot,
        at(9),
        at(10),
        status=Booking.STATUS_PENDING,
        payment_deadline=timezone.now() - timedelta(minutes=1),
    )
    out = StringIO()

    call_command("expire_bookings", stdout=out)

    assert "Expired 1 unpaid booking(s)" in out.getvalue()
    assert Booking.objects.get().status == Booking.STATUS_CANCELLED


def test_sweep_loop_survives_a_failed_pass(caplog):
    out = StringIO()
    passes = [RuntimeError("database is locked"), {"expired": 2, "completed": 0}]

    with mock.patch.object(ExpirySweeper, "run", side_effect=passes):
        with mock.patch(
            "parking.management.commands.expire_bookings.time.sleep",
            side_effect=[None, KeyboardInterrupt],
        ):
            with caplog.at_level(logging.ERROR):
                call_command("expire_bookings", "--loop", "--interval", "1", stdout=out)

    assert "Expiry sweep failed: database is locked" in caplog.text
    assert "Expired 2 unpaid booking(s)" in out.getvalue()
    assert "Sweep loop stopped" in out.getvalue()
