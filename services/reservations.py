import logging
from datetime import timedelta

from django.db import IntegrityError, transaction
from django.db.models import Q
from django.utils import timezone

from config import PAYMENT_TIMEOUT_MINUTES
from parking.exceptions import (
    ConflictError,
    ExpiredError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from parking.models import Booking, Vehicle
from parking.services import TokenService
from parking.utils.time_utils import validate_window
from services.availability import AvailabilityResolver, get_spot
from services.billing import BillingService
from services.notifications import NotificationDispatcher

logger = logging.getLogger(__name__)


class BookingManager:
    """Reserves capacity and drives bookings through their lifecycle.

    Every method that changes what a booking claims runs in one transaction
    holding the spot row lock, so check-then-insert on a spot is indivisible.
    """

    # =============================================
    # Reservation
    # =============================================

    @classmethod
    def reserve(
        cls,
        spot_id,
        guest,
        vehicle_id,
        start,
        end,
        request_id=None,
        payment_method="",
        now=None,
    ):
        now = now or timezone.now()
        start, end = validate_window(start, end)
        if end <= now:
            raise ValidationError("The requested window has already ended.")

        if request_id is not None:
            existing = Booking.objects.filter(guest=guest, request_id=request_id).first()
            if existing:
                logger.info(
                    f"Replayed request {request_id}: returning booking {existing.pk}"
                )
                return existing

        vehicle = cls._get_vehicle(guest, vehicle_id)

        try:
            booking = cls._commit_reservation(
                spot_id, guest, vehicle, start, end, request_id, payment_method, now
            )
        except IntegrityError:
            # Same request_id submitted twice concurrently; the other one won
            if request_id is None:
                raise
            existing = Booking.objects.filter(guest=guest, request_id=request_id).first()
            if existing is None:
                raise
            return existing

        logger.info(
            f"Booking {booking.pk} reserved at spot {spot_id} for guest {guest.pk} "
            f"({start.isoformat()} - {end.isoformat()})"
        )
        NotificationDispatcher.booking_created(booking)
        return booking

    @staticmethod
    @transaction.atomic
    def _commit_reservation(
        spot_id, guest, vehicle, start, end, request_id, payment_method, now
    ):
        spot = get_spot(spot_id, lock=True)

        free = AvailabilityResolver.free_capacity(spot, start, end, now=now)
        if free < 1:
            logger.warning(
                f"Reservation conflict at spot {spot_id} for guest {guest.pk}: "
                f"no free slot over {start.isoformat()} - {end.isoformat()}"
            )
            raise ConflictError(free_slots=free)

        # Cars still parked past their window keep their PIN until they exit
        live_pins = set(
            Booking.objects.claiming(now)
            .filter(spot=spot)
            .filter(
                Q(start_time__lt=end, end_time__gt=start)
                | Q(status=Booking.STATUS_ACTIVE)
            )
            .values_list("pin", flat=True)
        )

        return Booking.objects.create(
            spot=spot,
            guest=guest,
            vehicle=vehicle,
            start_time=start,
            end_time=end,
            total_cost=BillingService.calculate_total(spot, start, end),
            payment_method=payment_method or "",
            qr_code=TokenService.generate_qr_code(),
            pin=TokenService.issue_pin(live_pins),
            request_id=request_id,
            payment_deadline=now + timedelta(minutes=PAYMENT_TIMEOUT_MINUTES),
        )

    @staticmethod
    def _get_vehicle(guest, vehicle_id):
        try:
            return Vehicle.objects.get(pk=vehicle_id, owner=guest, is_active=True)
        except (Vehicle.DoesNotExist, ValueError, TypeError):
            logger.warning(f"Guest {guest.pk} tried to book with vehicle {vehicle_id}")
            raise NotFoundError("Vehicle not found.")

    # =============================================
    # Lifecycle
    # =============================================

    @classmethod
    def verify_payment(cls, booking_id, actor, now=None):
        """Owner confirms payment: pending -> confirmed.

        A booking whose payment deadline has passed is cancelled instead and
        ExpiredError is raised once that cancellation is committed.
        """
        now = now or timezone.now()
        expired = False
        with transaction.atomic():
            booking = cls._lock_booking(booking_id)
            cls._require_owner(booking, actor)
            if booking.status == Booking.STATUS_CONFIRMED and (
                booking.payment_status == Booking.PAYMENT_VERIFIED
            ):
                return booking
            if (
                booking.status == Booking.STATUS_PENDING
                and booking.payment_deadline
                and booking.payment_deadline <= now
            ):
                booking.transition_to(
                    Booking.STATUS_CANCELLED, now, reason="Payment deadline passed"
                )
                expired = True
            else:
                booking.transition_to(Booking.STATUS_CONFIRMED, now)
                booking.payment_status = Booking.PAYMENT_VERIFIED
            booking.save()

        if expired:
            logger.warning(f"Payment for booking {booking.pk} verified after deadline")
            NotificationDispatcher.booking_expired(booking)
            raise ExpiredError(
                "The payment deadline for this booking has passed; it was released."
            )

        logger.info(f"Booking {booking.pk} confirmed by owner {actor.pk}")
        NotificationDispatcher.booking_confirmed(booking)
        return booking

    @classmethod
    def reject_payment(cls, booking_id, actor, reason="Payment rejected", now=None):
        now = now or timezone.now()
        with transaction.atomic():
            booking = cls._lock_booking(booking_id)
            cls._require_owner(booking, actor)
            if booking.status != Booking.STATUS_PENDING:
                raise ConflictError(
                    f"Payment for booking #{booking.pk} can no longer be rejected."
                )
            booking.payment_status = Booking.PAYMENT_REJECTED
            booking.transition_to(Booking.STATUS_CANCELLED, now, reason=reason)
            booking.save()

        logger.info(f"Payment for booking {booking.pk} rejected by owner {actor.pk}")
        NotificationDispatcher.booking_cancelled(booking)
        return booking

    @classmethod
    def cancel(cls, booking_id, actor, reason="", now=None):
        """Cancel for the guest or the spot owner, releasing the claimed slot.

        Completed or already-cancelled bookings are returned unchanged.
        """
        now = now or timezone.now()
        with transaction.atomic():
            booking = cls._lock_booking(booking_id)
            if actor.pk not in (booking.guest_id, booking.spot.owner_id):
                logger.warning(f"User {actor.pk} tried to cancel booking {booking.pk}")
                raise UnauthorizedError()
            if booking.is_terminal:
                return booking
            if booking.status == Booking.STATUS_ACTIVE:
                raise ConflictError(
                    "This booking is in progress and can no longer be cancelled."
                )
            booking.transition_to(
                Booking.STATUS_CANCELLED, now, reason=reason or "Cancelled by user"
            )
            booking.save()

        logger.info(f"Booking {booking.pk} cancelled by user {actor.pk}")
        NotificationDispatcher.booking_cancelled(booking)
        return booking

    @classmethod
    def complete(cls, booking_id, actor, now=None):
        now = now or timezone.now()
        with transaction.atomic():
            booking = cls._lock_booking(booking_id)
            cls._require_owner(booking, actor)
            if booking.status == Booking.STATUS_COMPLETED:
                return booking
            booking.transition_to(Booking.STATUS_COMPLETED, now)
            booking.save()

        logger.info(f"Booking {booking.pk} completed by owner {actor.pk}")
        NotificationDispatcher.booking_completed(booking)
        return booking

    @staticmethod
    def bookings_for(user):
        return Booking.objects.involving(user).select_related("spot", "vehicle")

    # =============================================
    # Helpers
    # =============================================

    @staticmethod
    def _lock_booking(booking_id):
        """Lock the booking's spot, then the booking itself.

        Always taking the spot first keeps lock order identical to reserve().
        """
        spot_id = (
            Booking.objects.filter(pk=booking_id)
            .values_list("spot_id", flat=True)
            .first()
        )
        if spot_id is None:
            raise NotFoundError(f"Booking {booking_id} not found.")
        spot = get_spot(spot_id, lock=True)
        booking = Booking.objects.select_for_update().get(pk=booking_id)
        booking.spot = spot
        return booking

    @staticmethod
    def _require_owner(booking, actor):
        if booking.spot.owner_id != actor.pk:
            logger.warning(
                f"User {actor.pk} is not the owner of spot {booking.spot_id} "
                f"(booking {booking.pk})"
            )
            raise UnauthorizedError()
