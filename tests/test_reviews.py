import pytest

from parking.exceptions import (
    ConflictError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from parking.models import Booking
from services.favorites import FavoriteService
from services.reviews import ReviewService
from tests.conftest import at


@pytest.fixture
def finished_booking(spot, make_booking):
    return make_booking(spot, at(9), at(10), status=Booking.STATUS_COMPLETED)


def test_guest_reviews_the_owner(finished_booking, guest, owner):
    review = ReviewService.create_review(guest, finished_booking.pk, 4, " Easy access ")

    assert review.reviewee == owner
    assert review.is_host_review is False
    assert review.comment == "Easy access"


def test_owner_reviews_the_guest(finished_booking, guest, owner):
    review = ReviewService.create_review(owner, finished_booking.pk, 5)

    assert review.reviewee == guest
    assert review.is_host_review is True


def test_one_review_per_booking_and_author(finished_booking, guest):
    ReviewService.create_review(guest, finished_booking.pk, 4)

    with pytest.raises(ConflictError):
        ReviewService.create_review(guest, finished_booking.pk, 2)


def test_only_completed_bookings_can_be_reviewed(spot, guest, make_booking):
    booking = make_booking(spot, at(9), at(10))

    with pytest.raises(ConflictError):
        ReviewService.create_review(guest, booking.pk, 4)


def test_strangers_cannot_review(finished_booking, other_guest):
    with pytest.raises(UnauthorizedError):
        ReviewService.create_review(other_guest, finished_booking.pk, 1)


@pytest.mark.parametrize("rating", [0, 6])
def test_rating_out_of_range(finished_booking, guest, rating):
    with pytest.raises(ValidationError):
        ReviewService.create_review(guest, finished_booking.pk, rating)


def test_spot_rating_counts_guest_reviews_only(spot, guest, owner, make_booking):
    first = make_booking(spot, at(9), at(10), status=Booking.STATUS_COMPLETED)
    second = make_booking(spot, at(11), at(12), status=Booking.STATUS_COMPLETED)
    ReviewService.create_review(guest, first.pk, 5)
    ReviewService.create_review(guest, second.pk, 2)
    ReviewService.create_review(owner, first.pk, 1)

    assert ReviewService.reviews_for_spot(spot.pk).count() == 3
    assert ReviewService.rating_summary(spot.pk) == {"count": 2, "average": 3.5}


@pytest.mark.django_db
def test_reviews_for_unknown_spot():
    with pytest.raises(NotFoundError):
        ReviewService.reviews_for_spot(404)


def test_toggle_favorite(make_spot, guest):
    spot = make_spot(name="Riverside")
    make_spot(name="Elsewhere")

    assert FavoriteService.toggle(guest, spot.pk) is True
    assert list(FavoriteService.favorites_for(guest)) == [spot]

    assert FavoriteService.toggle(guest, spot.pk) is False
    assert not FavoriteService.favorites_for(guest).exists()


def test_review_and_favorite_endpoints(client, guest, spot, finished_booking):
    client.force_login(guest)

    created = client.post(
        f"/api/bookings/{finished_booking.pk}/review/", {"rating": 4, "comment": "Fine"}
    )
    listed = client.get(f"/api/spots/{spot.pk}/reviews/").json()
    starred = client.post(f"/api/spots/{spot.pk}/favorite/").json()
    favorites = client.get("/api/favorites/").json()["results"]

    assert created.status_code == 201
    assert listed["summary"] == {"count": 1, "average": 4.0}
    assert [r["rating"] for r in listed["results"]] == [4]
    assert starred == {"spot_id": spot.pk, "is_favorite": True}
    assert [s["id"] for s in favorites] == [spot.pk]
