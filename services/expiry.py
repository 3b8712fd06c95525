import logging

from django.db import transaction
from django.utils import timezone

from parking.models import Booking
from services.availability import get_spot
from services.notifications import NotificationDispatcher

logger = logging.getLogger(__name__)


class ExpirySweeper:
    """Periodic cleanup that keeps abandoned bookings from starving capacity.

    Pending bookings past their payment deadline are cancelled, and active
    bookings whose window has elapsed are completed. Each booking is handled
    in its own transaction under its spot's lock.
    """

    @classmethod
    def run(cls, now=None):
        now = now or timezone.now()
        return {
            "expired": cls.expire_pending(now),
            "completed": cls.complete_elapsed(now),
        }

    @classmethod
    def expire_pending(cls, now=None):
        now = now or timezone.now()
        due = Booking.objects.filter(
            status=Booking.STATUS_PENDING, payment_deadline__lte=now
        ).values_list("pk", "spot_id")

        expired = 0
        for booking_id, spot_id in list(due):
            booking = cls._expire_one(booking_id, spot_id, now)
            if booking is not None:
                expired += 1
                NotificationDispatcher.booking_expired(booking)
        if expired:
            logger.info(f"Expired {expired} unpaid booking(s)")
        return expired

    @staticmethod
    @transaction.atomic
    def _expire_one(booking_id, spot_id, now):
        get_spot(spot_id, lock=True)
        booking = Booking.objects.select_for_update().get(pk=booking_id)
        # Payment may have been verified since the sweep listed it
        if booking.status != Booking.STATUS_PENDING or booking.payment_deadline > now:
            return None
        booking.transition_to(
            Booking.STATUS_CANCELLED, now, reason="Payment not confirmed in time"
        )
        booking.save()
        logger.info(f"Booking {booking.pk} expired unpaid at spot {spot_id}")
        return booking

    @classmethod
    def complete_elapsed(cls, now=None):
        now = now or timezone.now()
        due = Booking.objects.filter(
            status=Booking.STATUS_ACTIVE, end_time__lte=now
        ).values_list("pk", "spot_id")

        completed = 0
        for booking_id, spot_id in list(due):
            booking = cls._complete_one(booking_id, spot_id, now)
            if booking is not None:
                completed += 1
                NotificationDispatcher.booking_completed(booking)
        if completed:
            logger.info(f"Completed {completed} elapsed booking(s)")
        return completed

    @staticmethod
    @transaction.atomic
    def _complete_one(booking_id, spot_id, now):
        get_spot(spot_id, lock=True)
        booking = Booking.objects.select_for_update().get(pk=booking_id)
        if booking.status != Booking.STATUS_ACTIVE:
            return None
        booking.transition_to(Booking.STATUS_COMPLETED, now)
        booking.save()
        return booking
