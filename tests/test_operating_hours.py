from datetime import time

import pytest

from parking.exceptions import ConflictError, ValidationError
from parking.utils.operating_hours import OperatingHours
from services.availability import AvailabilityResolver
from services.reservations import BookingManager
from services.spots import SpotManager
from tests.conftest import DAY, at

# The fixed test day, 2030-01-15, is a Tuesday
OFFICE_HOURS = {
    day: {"open": "09:00", "close": "17:00", "closed": False}
    for day in ("monday", "tuesday", "wednesday", "thursday", "friday")
}
ALL_DAY = {"open": "00:00", "close": "23:59", "closed": False}


def test_empty_hours_are_always_open():
    hours = OperatingHours({})

    assert hours.always_open
    assert hours.covers(at(3), at(4))
    assert hours.openings(at(0), at(0, days=7)) == []


def test_window_inside_and_outside_hours():
    hours = OperatingHours(OFFICE_HOURS)

    assert hours.covers(at(9), at(17))
    assert not hours.covers(at(3), at(4))
    assert not hours.covers(at(16), at(18))


def test_overnight_hours_cover_window_across_midnight():
    hours = OperatingHours({"tuesday": {"open": "22:00", "close": "06:00"}})

    assert hours.covers(at(23), at(1, days=1))
    assert not hours.covers(at(5, days=1), at(7, days=1))


def test_all_day_hours_join_across_midnight():
    both = OperatingHours({"tuesday": ALL_DAY, "wednesday": ALL_DAY})
    tuesday_only = OperatingHours({"tuesday": ALL_DAY})

    assert both.covers(at(22), at(2, days=1))
    assert not tuesday_only.covers(at(22), at(2, days=1))


def test_closed_day_has_no_hours():
    hours = OperatingHours(
        {"tuesday": {"open": "09:00", "close": "17:00", "closed": True}}
    )

    assert not hours.covers(at(10), at(11))


def test_openings_lists_each_opening_time():
    hours = OperatingHours(OFFICE_HOURS)

    # Tuesday through Friday; Saturday and Sunday are closed
    assert hours.openings(at(0), at(0, days=5)) == [
        at(9), at(9, days=1), at(9, days=2), at(9, days=3)
    ]


@pytest.mark.parametrize(
    "raw",
    [
        {"someday": ALL_DAY},
        {"monday": {"open": "9am", "close": "17:00"}},
        {"monday": {"open": "09:00", "close": "09:00"}},
        {"monday": "09:00-17:00"},
        ["monday"],
    ],
)
def test_malformed_hours_are_rejected(raw):
    with pytest.raises(ValidationError):
        OperatingHours.parse(raw)


def test_spot_outside_hours_has_no_capacity(make_spot, now):
    spot = make_spot(total_slots=2, operating_hours=OFFICE_HOURS)

    assert AvailabilityResolver.check_availability(spot.pk, at(3), at(4), now=now) == 0
    assert AvailabilityResolver.check_availability(spot.pk, at(10), at(11), now=now) == 2


def test_midnight_window_needs_hours_on_both_days(make_spot, now):
    open_late = make_spot(
        total_slots=1, operating_hours={"tuesday": ALL_DAY, "wednesday": ALL_DAY}
    )
    shut_wednesday = make_spot(total_slots=1, operating_hours={"tuesday": ALL_DAY})

    assert AvailabilityResolver.check_availability_for_date(
        open_late.pk, DAY.date(), time(22, 0), time(2, 0), now=now
    ) == 1
    assert AvailabilityResolver.check_availability_for_date(
        shut_wednesday.pk, DAY.date(), time(22, 0), time(2, 0), now=now
    ) == 0


def test_reserve_outside_hours_conflicts(make_spot, guest, vehicle, now):
    spot = make_spot(total_slots=1, operating_hours=OFFICE_HOURS)

    with pytest.raises(ConflictError):
        BookingManager.reserve(spot.pk, guest, vehicle.pk, at(3), at(4), now=now)


def test_next_available_waits_for_opening(make_spot, make_booking, now):
    spot = make_spot(total_slots=1, operating_hours=OFFICE_HOURS)
    make_booking(spot, at(9), at(10))

    assert AvailabilityResolver.next_available(spot.pk, at(3), at(4), now=now) == (
        at(10),
        at(11),
    )
    # A window that would run past closing moves to the next opening
    assert AvailabilityResolver.next_available(spot.pk, at(16), at(18), now=now) == (
        at(9, days=1),
        at(11, days=1),
    )


def test_spot_hours_are_validated_on_save(owner):
    with pytest.raises(ValidationError):
        SpotManager.create_spot(
            owner, name="Night Lot", total_slots=1, operating_hours={"monday": "late"}
        )

    spot = SpotManager.create_spot(
        owner, name="Office Lot", total_slots=1, operating_hours=OFFICE_HOURS
    )
    assert spot.opening_hours.covers(at(9), at(10))
