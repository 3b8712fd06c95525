import logging

from django.db import IntegrityError, transaction
from django.db.models import Avg, Count

from parking.exceptions import (
    ConflictError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from parking.models import Booking, Review
from services.availability import get_spot

logger = logging.getLogger(__name__)


class ReviewService:
    """Ratings exchanged after a stay.

    The guest rates the spot's owner and the owner rates the guest, once each
    per completed booking.
    """

    MIN_RATING = 1
    MAX_RATING = 5

    @classmethod
    def create_review(cls, author, booking_id, rating, comment=""):
        try:
            booking = Booking.objects.select_related("spot").get(pk=booking_id)
        except Booking.DoesNotExist:
            raise NotFoundError(f"Booking {booking_id} not found.")

        if author.pk == booking.guest_id:
            reviewee_id, is_host_review = booking.spot.owner_id, False
        elif author.pk == booking.spot.owner_id:
            reviewee_id, is_host_review = booking.guest_id, True
        else:
            logger.warning(f"User {author.pk} tried to review booking {booking.pk}")
            raise UnauthorizedError()

        if booking.status != Booking.STATUS_COMPLETED:
            raise ConflictError("Only completed bookings can be reviewed.")
        if not isinstance(rating, int) or not cls.MIN_RATING <= rating <= cls.MAX_RATING:
            raise ValidationError(
                f"Rating must be between {cls.MIN_RATING} and {cls.MAX_RATING}."
            )

        try:
            with transaction.atomic():
                review = Review.objects.create(
                    booking=booking,
                    reviewer=author,
                    reviewee_id=reviewee_id,
                    rating=rating,
                    comment=(comment or "").strip(),
                    is_host_review=is_host_review,
                )
        except IntegrityError:
            raise ConflictError("You already reviewed this booking.")

        logger.info(f"Review {review.pk} ({rating}/5) left on booking {booking.pk}")
        return review

    @staticmethod
    def reviews_for_spot(spot_id):
        spot = get_spot(spot_id)
        return Review.objects.filter(booking__spot=spot).select_related("reviewer")

    @classmethod
    def rating_summary(cls, spot_id):
        """Average guest rating of a spot; host reviews rate guests, not spots."""
        summary = cls.reviews_for_spot(spot_id).filter(is_host_review=False).aggregate(
            count=Count("pk"), average=Avg("rating")
        )
        if summary["average"] is not None:
            summary["average"] = round(summary["average"], 2)
        return summary
