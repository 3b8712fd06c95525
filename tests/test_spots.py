from decimal import Decimal

import pytest

from parking.exceptions import ConflictError, UnauthorizedError, ValidationError
from parking.models import Booking
from services.billing import BillingService
from services.spots import SpotManager
from tests.conftest import at


def test_create_spot(owner):
    spot = SpotManager.create_spot(
        owner, name="Riverside", total_slots=4, price=Decimal("5.00"), amenities=["ev"]
    )

    assert spot.pk is not None
    assert spot.owner == owner
    assert spot.price_type == "hour"
    assert spot.is_active


def test_create_spot_needs_a_slot(owner):
    with pytest.raises(ValidationError):
        SpotManager.create_spot(owner, name="Nowhere", total_slots=0)


def test_update_spot_is_owner_only(spot, guest):
    with pytest.raises(UnauthorizedError):
        SpotManager.update_spot(guest, spot.pk, price=Decimal("1.00"))


def test_capacity_cannot_drop_below_commitments(make_spot, owner, make_booking, now):
    spot = make_spot(total_slots=3)
    make_booking(spot, at(9), at(12))
    make_booking(spot, at(10), at(11))

    with pytest.raises(ConflictError):
        SpotManager.update_spot(owner, spot.pk, now=now, total_slots=1)

    updated = SpotManager.update_spot(owner, spot.pk, now=now, total_slots=2)
    assert updated.total_slots == 2


def test_capacity_cannot_drop_below_block_override(make_spot, owner, make_block, now):
    spot = make_spot(total_slots=3)
    block = make_block(spot, at(12), at(14), available_slots=3)

    with pytest.raises(ValidationError):
        SpotManager.update_spot(owner, spot.pk, now=now, total_slots=1)

    spot.refresh_from_db()
    block.refresh_from_db()
    assert spot.total_slots == 3
    assert block.available_slots <= spot.total_slots

    block.available_slots = 1
    block.save()
    assert SpotManager.update_spot(owner, spot.pk, now=now, total_slots=1).total_slots == 1


def test_capacity_ignores_finished_bookings(make_spot, owner, make_booking, now):
    spot = make_spot(total_slots=2)
    make_booking(spot, at(1), at(2), status=Booking.STATUS_COMPLETED)
    make_booking(spot, at(9), at(10), status=Booking.STATUS_CANCELLED)

    assert SpotManager.update_spot(owner, spot.pk, now=now, total_slots=1).total_slots == 1


def test_deactivate_keeps_history(spot, owner, make_booking):
    booking = make_booking(spot, at(9), at(10))

    deactivated = SpotManager.deactivate_spot(owner, spot.pk)

    assert deactivated.is_active is False
    assert Booking.objects.filter(pk=booking.pk, spot=spot).exists()


def test_search_lists_spots_with_free_slots(make_spot, make_booking, now):
    full = make_spot(total_slots=1, name="Full", price="3.00")
    open_spot = make_spot(total_slots=2, name="Open", price="4.00", amenities=["ev"])
    make_spot(total_slots=5, name="Pricey", price="50.00")
    make_spot(total_slots=5, name="Closed", price="1.00", is_active=False)
    make_booking(full, at(9), at(12))
    make_booking(open_spot, at(9), at(12))

    results = SpotManager.search_spots(at(10), at(11), max_price=Decimal("10"), now=now)

    assert [(spot.name, free) for spot, free in results] == [("Open", 1)]


def test_search_filters_by_amenities(make_spot, now):
    make_spot(total_slots=1, name="Plain")
    make_spot(total_slots=1, name="Charging", amenities=["ev", "covered"])

    results = SpotManager.search_spots(at(10), at(11), amenities=["ev"], now=now)

    assert [spot.name for spot, _ in results] == ["Charging"]


@pytest.mark.parametrize(
    "price_type, start, end, expected",
    [
        ("hour", at(9), at(9, 1), Decimal("10.00")),
        ("hour", at(9), at(11), Decimal("20.00")),
        ("day", at(9), at(9, days=1), Decimal("10.00")),
        ("day", at(9), at(10, days=1), Decimal("20.00")),
        ("month", at(9), at(9, days=31), Decimal("20.00")),
    ],
)
def test_billing_by_price_type(make_spot, price_type, start, end, expected):
    spot = make_spot(price="10.00", price_type=price_type)

    assert BillingService.calculate_total(spot, start, end) == expected
