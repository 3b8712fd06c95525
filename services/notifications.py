import logging

from django.conf import settings
from django.core.mail import EmailMessage
from django.db import transaction

from config import NOTIFY_BY_EMAIL
from parking.exceptions import NotFoundError
from parking.models import Notification

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """Fire-and-forget notices about booking lifecycle changes.

    Delivery is deferred until the surrounding transaction commits and its
    failures are only logged, so a broken mail server can never roll back or
    fail a booking.
    """

    @classmethod
    def dispatch(cls, user, kind, title, message, booking=None):
        transaction.on_commit(
            lambda: cls._deliver(user, kind, title, message, booking)
        )

    @staticmethod
    def _deliver(user, kind, title, message, booking):
        try:
            Notification.objects.create(
                user=user, booking=booking, kind=kind, title=title, message=message
            )
            if NOTIFY_BY_EMAIL and user.email:
                EmailMessage(
                    f"Parking - {title}", message, settings.DEFAULT_FROM_EMAIL, [user.email]
                ).send()
        except Exception as e:
            logger.error(
                f"Failed to deliver {kind} notification to user {user.pk}: {e}",
                exc_info=True,
            )

    # =============================================
    # Booking lifecycle notices
    # =============================================

    @classmethod
    def booking_created(cls, booking):
        window = _describe_window(booking)
        cls.dispatch(
            booking.guest,
            "booking_created",
            "Booking received",
            f"Your booking at {booking.spot} for {window} is awaiting payment.",
            booking,
        )
        cls.dispatch(
            booking.spot.owner,
            "booking_created",
            "New booking",
            f"Someone booked {booking.spot} for {window}.",
            booking,
        )

    @classmethod
    def booking_confirmed(cls, booking):
        cls.dispatch(
            booking.guest,
            "booking_confirmed",
            "Payment confirmed",
            f"Payment for booking #{booking.pk} at {booking.spot} was verified.",
            booking,
        )

    @classmethod
    def booking_cancelled(cls, booking):
        message = f"Booking #{booking.pk} at {booking.spot} was cancelled."
        if booking.cancel_reason:
            message += f" Reason: {booking.cancel_reason}."
        for user in (booking.guest, booking.spot.owner):
            cls.dispatch(user, "booking_cancelled", "Booking cancelled", message, booking)

    @classmethod
    def booking_expired(cls, booking):
        cls.dispatch(
            booking.guest,
            "booking_expired",
            "Booking expired",
            f"Booking #{booking.pk} at {booking.spot} was released because "
            "payment was not confirmed in time.",
            booking,
        )

    @classmethod
    def booking_completed(cls, booking):
        cls.dispatch(
            booking.guest,
            "booking_completed",
            "Parking session ended",
            f"Your parking session at {booking.spot} is complete.",
            booking,
        )

    # =============================================
    # Inbox
    # =============================================

    @staticmethod
    def list_for(user, unread_only=False):
        notifications = Notification.objects.filter(user=user)
        if unread_only:
            notifications = notifications.filter(is_read=False)
        return notifications

    @staticmethod
    def mark_read(user, notification_id):
        try:
            notification = Notification.objects.get(pk=notification_id, user=user)
        except Notification.DoesNotExist:
            raise NotFoundError("Notification not found.")
        if not notification.is_read:
            notification.is_read = True
            notification.save(update_fields=["is_read"])
        return notification


def _describe_window(booking):
    return (
        f"{booking.start_time:%d %b %Y, %I:%M %p} - "
        f"{booking.end_time:%d %b %Y, %I:%M %p}"
    )
