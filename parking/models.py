from django.conf import settings
from django.db import models
from django.db.models import F, Q
from django.utils import timezone

from config import PRICE_TYPE_DAY, PRICE_TYPE_HOUR, PRICE_TYPE_MONTH
from parking.exceptions import ConflictError
from parking.utils.operating_hours import OperatingHours


class ParkingSpot(models.Model):
    PRICE_TYPE_CHOICES = (
        (PRICE_TYPE_HOUR, "Per Hour"),
        (PRICE_TYPE_DAY, "Per Day"),
        (PRICE_TYPE_MONTH, "Per Month"),
    )

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="parking_spots",
    )
    name = models.CharField(max_length=200)
    address = models.CharField(max_length=255, blank=True)
    latitude = models.FloatField(null=True, blank=True)
    longitude = models.FloatField(null=True, blank=True)
    total_slots = models.PositiveIntegerField(default=1)
    price = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    price_type = models.CharField(
        max_length=10, choices=PRICE_TYPE_CHOICES, default=PRICE_TYPE_HOUR
    )
    amenities = models.JSONField(default=list, blank=True)
    operating_hours = models.JSONField(default=dict, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.CheckConstraint(
                condition=Q(total_slots__gte=1), name="spot_total_slots_positive"
            ),
        ]

    def __str__(self):
        return self.name

    @property
    def opening_hours(self):
        return OperatingHours(self.operating_hours)


class Vehicle(models.Model):
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="vehicles"
    )
    license_plate = models.CharField(max_length=15)
    make = models.CharField(max_length=50, blank=True)
    model = models.CharField(max_length=50, blank=True)
    color = models.CharField(max_length=30, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.license_plate


class AvailabilityBlockQuerySet(models.QuerySet):
    def overlapping(self, start, end):
        # Half-open: a block ending at 10:00 does not touch one starting at 10:00
        return self.filter(start_time__lt=end, end_time__gt=start)

    def reducing(self):
        return self.filter(status__in=AvailabilityBlock.REDUCING_STATUSES)


class AvailabilityBlock(models.Model):
    STATUS_AVAILABLE = "available"
    STATUS_BLOCKED = "blocked"
    STATUS_MAINTENANCE = "maintenance"
    STATUS_CHOICES = (
        (STATUS_AVAILABLE, "Available"),
        (STATUS_BLOCKED, "Blocked"),
        (STATUS_MAINTENANCE, "Maintenance"),
    )
    REDUCING_STATUSES = (STATUS_BLOCKED, STATUS_MAINTENANCE)

    spot = models.ForeignKey(
        ParkingSpot, on_delete=models.CASCADE, related_name="availability_blocks"
    )
    start_time = models.DateTimeField()
    end_time = models.DateTimeField()
    status = models.CharField(
        max_length=15, choices=STATUS_CHOICES, default=STATUS_BLOCKED
    )
    reason = models.CharField(max_length=255, blank=True)
    available_slots = models.PositiveIntegerField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = AvailabilityBlockQuerySet.as_manager()

    class Meta:
        ordering = ("start_time",)
        constraints = [
            models.CheckConstraint(
                condition=Q(start_time__lt=F("end_time")),
                name="block_start_before_end",
            ),
        ]
        indexes = [
            models.Index(
                fields=["spot", "start_time", "end_time"], name="block_spot_window_idx"
            )
        ]

    def __str__(self):
        return f"{self.spot} {self.status} {self.start_time:%Y-%m-%d %H:%M}"

    @property
    def date(self):
        return timezone.localdate(self.start_time)

    def slot_reduction(self, total_slots):
        """Slots withheld from booking while this block is in force."""
        if self.status not in self.REDUCING_STATUSES:
            return 0
        if self.available_slots is None:
            return total_slots
        return max(total_slots - self.available_slots, 0)


class BookingQuerySet(models.QuerySet):
    def overlapping(self, start, end):
        return self.filter(start_time__lt=end, end_time__gt=start)

    def claiming(self, now=None):
        """Bookings that hold a slot: confirmed, active, or pending and unexpired."""
        now = now or timezone.now()
        unexpired_pending = Q(status=Booking.STATUS_PENDING) & (
            Q(payment_deadline__isnull=True) | Q(payment_deadline__gt=now)
        )
        return self.filter(
            Q(status__in=(Booking.STATUS_CONFIRMED, Booking.STATUS_ACTIVE))
            | unexpired_pending
        )

    def involving(self, user):
        return self.filter(Q(guest=user) | Q(spot__owner=user))


class Booking(models.Model):
    STATUS_PENDING = "pending"
    STATUS_CONFIRMED = "confirmed"
    STATUS_ACTIVE = "active"
    STATUS_COMPLETED = "completed"
    STATUS_CANCELLED = "cancelled"
    STATUS_CHOICES = (
        (STATUS_PENDING, "Pending"),
        (STATUS_CONFIRMED, "Confirmed"),
        (STATUS_ACTIVE, "Active"),
        (STATUS_COMPLETED, "Completed"),
        (STATUS_CANCELLED, "Cancelled"),
    )
    TERMINAL_STATUSES = (STATUS_COMPLETED, STATUS_CANCELLED)
    TRANSITIONS = {
        STATUS_PENDING: (STATUS_CONFIRMED, STATUS_CANCELLED),
        STATUS_CONFIRMED: (STATUS_ACTIVE, STATUS_CANCELLED),
        STATUS_ACTIVE: (STATUS_COMPLETED,),
    }

    PAYMENT_PENDING = "pending"
    PAYMENT_VERIFIED = "verified"
    PAYMENT_REJECTED = "rejected"
    PAYMENT_STATUS_CHOICES = (
        (PAYMENT_PENDING, "Pending"),
        (PAYMENT_VERIFIED, "Verified"),
        (PAYMENT_REJECTED, "Rejected"),
    )
    PAYMENT_METHOD_CHOICES = (
        ("qr_code", "QR Payment"),
        ("bank_transfer", "Bank Transfer"),
    )

    spot = models.ForeignKey(
        ParkingSpot, on_delete=models.PROTECT, related_name="bookings"
    )
    guest = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name="bookings"
    )
    vehicle = models.ForeignKey(
        Vehicle,
        on_delete=models.PROTECT,
        related_name="bookings",
        null=True,
        blank=True,
    )
    start_time = models.DateTimeField()
    end_time = models.DateTimeField()
    total_cost = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    status = models.CharField(
        max_length=10, choices=STATUS_CHOICES, default=STATUS_PENDING
    )
    payment_status = models.CharField(
        max_length=10, choices=PAYMENT_STATUS_CHOICES, default=PAYMENT_PENDING
    )
    payment_method = models.CharField(
        max_length=20, choices=PAYMENT_METHOD_CHOICES, blank=True
    )
    qr_code = models.CharField(max_length=64, unique=True)
    pin = models.CharField(max_length=8)
    request_id = models.UUIDField(null=True, blank=True)
    payment_deadline = models.DateTimeField(null=True, blank=True)
    confirmed_at = models.DateTimeField(null=True, blank=True)
    activated_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancel_reason = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = BookingQuerySet.as_manager()

    class Meta:
        ordering = ("-created_at",)
        constraints = [
            models.CheckConstraint(
                condition=Q(start_time__lt=F("end_time")),
                name="booking_start_before_end",
            ),
            models.UniqueConstraint(
                fields=["guest", "request_id"],
                condition=Q(request_id__isnull=False),
                name="booking_unique_guest_request",
            ),
        ]
        indexes = [
            models.Index(
                fields=["spot", "start_time", "end_time"],
                name="booking_spot_window_idx",
            ),
            models.Index(
                fields=["status", "payment_deadline"],
                name="booking_status_deadline_idx",
            ),
        ]

    def __str__(self):
        return f"Booking #{self.pk}"

    @property
    def is_terminal(self):
        return self.status in self.TERMINAL_STATUSES

    def can_transition_to(self, status):
        return status in self.TRANSITIONS.get(self.status, ())

    def transition_to(self, status, now=None, reason=""):
        """Move along the lifecycle, stamping the matching timestamp field.

        Raises ConflictError for any move the lifecycle does not allow,
        including every move out of a terminal state.
        """
        if not self.can_transition_to(status):
            raise ConflictError(
                f"Booking #{self.pk} cannot move from {self.status} to {status}."
            )
        now = now or timezone.now()
        self.status = status
        if status == self.STATUS_CONFIRMED:
            self.confirmed_at = now
        elif status == self.STATUS_ACTIVE:
            self.activated_at = now
        elif status == self.STATUS_COMPLETED:
            self.completed_at = now
        elif status == self.STATUS_CANCELLED:
            self.cancelled_at = now
            self.cancel_reason = reason


class Notification(models.Model):
    KIND_CHOICES = (
        ("booking_created", "Booking Created"),
        ("booking_confirmed", "Booking Confirmed"),
        ("booking_cancelled", "Booking Cancelled"),
        ("booking_expired", "Booking Expired"),
        ("booking_completed", "Booking Completed"),
    )

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="notifications",
    )
    booking = models.ForeignKey(
        Booking,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="notifications",
    )
    kind = models.CharField(max_length=30, choices=KIND_CHOICES)
    title = models.CharField(max_length=120)
    message = models.TextField()
    is_read = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("-created_at",)

    def __str__(self):
        return f"{self.kind} for {self.user}"


class Review(models.Model):
    booking = models.ForeignKey(
        Booking, on_delete=models.CASCADE, related_name="reviews"
    )
    reviewer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="reviews_written",
    )
    reviewee = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="reviews_received",
    )
    rating = models.PositiveSmallIntegerField()
    comment = models.TextField(blank=True)
    # Written by the spot owner about the guest
    is_host_review = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("-created_at",)
        constraints = [
            models.CheckConstraint(
                condition=Q(rating__gte=1, rating__lte=5), name="review_rating_range"
            ),
            models.UniqueConstraint(
                fields=["booking", "reviewer"], name="review_unique_booking_reviewer"
            ),
        ]

    def __str__(self):
        return f"{self.rating}/5 on booking #{self.booking_id}"


class Favorite(models.Model):
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="favorites"
    )
    spot = models.ForeignKey(
        ParkingSpot, on_delete=models.CASCADE, related_name="favorited_by"
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["user", "spot"], name="favorite_unique_user_spot"
            ),
        ]

    def __str__(self):
        return f"{self.user} likes {self.spot}"
