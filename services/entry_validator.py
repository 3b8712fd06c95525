import logging

from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from parking.exceptions import EntryExpiredError, InvalidCodeError, NotYetActiveError
from parking.models import Booking
from services.availability import get_spot
from services.notifications import NotificationDispatcher

logger = logging.getLogger(__name__)


class EntryValidator:
    """Validates scanned QR tokens and typed PINs at a spot's gate.

    Codes are only matched against bookings of the spot being scanned, so a
    PIN shared with a booking elsewhere can never admit the wrong vehicle.
    """

    @classmethod
    def validate_entry(cls, spot_id, code, now=None):
        now = now or timezone.now()
        code = (code or "").strip()
        with transaction.atomic():
            spot = get_spot(spot_id, lock=True)
            candidates = cls._matching(spot, code, Booking.STATUS_CONFIRMED)

            current = [b for b in candidates if b.start_time <= now < b.end_time]
            if current:
                booking = current[0]
                booking.transition_to(Booking.STATUS_ACTIVE, now)
                booking.save()
                logger.info(f"Entry granted for booking {booking.pk} at spot {spot.pk}")
                return booking

        if any(b.start_time > now for b in candidates):
            logger.warning(f"Early entry attempt at spot {spot_id}")
            raise NotYetActiveError()
        if candidates:
            logger.warning(f"Entry attempt with an elapsed booking at spot {spot_id}")
            raise EntryExpiredError()
        logger.warning(f"Unknown entry code at spot {spot_id}")
        raise InvalidCodeError()

    @classmethod
    def validate_exit(cls, spot_id, code, now=None):
        now = now or timezone.now()
        code = (code or "").strip()
        with transaction.atomic():
            spot = get_spot(spot_id, lock=True)
            candidates = cls._matching(spot, code, Booking.STATUS_ACTIVE)
            if not candidates:
                logger.warning(f"Unknown exit code at spot {spot_id}")
                raise InvalidCodeError()
            booking = candidates[0]
            booking.transition_to(Booking.STATUS_COMPLETED, now)
            booking.save()

        logger.info(f"Exit recorded for booking {booking.pk} at spot {spot_id}")
        NotificationDispatcher.booking_completed(booking)
        return booking

    @staticmethod
    def _matching(spot, code, status):
        if not code:
            return []
        return list(
            Booking.objects.select_for_update()
            .filter(spot=spot, status=status)
            .filter(Q(qr_code=code) | Q(pin=code))
            .order_by("start_time")
        )
