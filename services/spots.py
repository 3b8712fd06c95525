import logging

from django.db import transaction
from django.utils import timezone

from parking.exceptions import ConflictError, UnauthorizedError, ValidationError
from parking.models import AvailabilityBlock, Booking, ParkingSpot
from parking.utils.operating_hours import OperatingHours
from parking.utils.time_utils import validate_window
from services.availability import AvailabilityResolver, get_spot
from services.interval_index import Interval, IntervalIndex

logger = logging.getLogger(__name__)


class SpotManager:
    EDITABLE_FIELDS = (
        "name",
        "address",
        "latitude",
        "longitude",
        "total_slots",
        "price",
        "price_type",
        "amenities",
        "operating_hours",
        "is_active",
    )

    @classmethod
    def create_spot(cls, owner, **fields):
        cls._check_fields(fields)
        spot = ParkingSpot(owner=owner, **fields)
        cls._validate(spot)
        spot.save()
        logger.info(f"Spot {spot.pk} created by owner {owner.pk}")
        return spot

    @classmethod
    @transaction.atomic
    def update_spot(cls, owner, spot_id, now=None, **changes):
        cls._check_fields(changes)
        spot = get_spot(spot_id, lock=True)
        cls._require_owner(spot, owner)

        new_total = changes.get("total_slots")
        if new_total is not None and new_total < spot.total_slots:
            committed = cls._peak_future_claims(spot, now or timezone.now())
            if committed > new_total:
                raise ConflictError(
                    f"{committed} slot(s) are already committed; capacity cannot "
                    f"drop to {new_total}.",
                    free_slots=0,
                )
            oversized = list(
                AvailabilityBlock.objects.filter(
                    spot=spot, available_slots__gt=new_total
                ).values_list("pk", flat=True)
            )
            if oversized:
                raise ValidationError(
                    f"Block(s) {', '.join(map(str, oversized))} leave more than "
                    f"{new_total} slot(s) available; edit them first."
                )

        for field, value in changes.items():
            setattr(spot, field, value)
        cls._validate(spot)
        spot.save()
        logger.info(f"Spot {spot.pk} updated: {', '.join(sorted(changes))}")
        return spot

    @classmethod
    def deactivate_spot(cls, owner, spot_id):
        """Soft delete: spots keep their booking history and are never removed."""
        return cls.update_spot(owner, spot_id, is_active=False)

    @staticmethod
    def search_spots(start, end, max_price=None, amenities=None, now=None):
        """Active spots with at least one free slot over [start, end)."""
        start, end = validate_window(start, end)
        spots = ParkingSpot.objects.filter(is_active=True)
        if max_price is not None:
            spots = spots.filter(price__lte=max_price)

        results = []
        for spot in spots.order_by("price", "pk"):
            if amenities and not set(amenities).issubset(spot.amenities or []):
                continue
            free = AvailabilityResolver.free_capacity(spot, start, end, now=now)
            if free > 0:
                results.append((spot, free))
        return results

    # =============================================
    # Helpers
    # =============================================

    @staticmethod
    def _peak_future_claims(spot, now):
        latest = (
            Booking.objects.claiming(now)
            .filter(spot=spot, end_time__gt=now)
            .order_by("-end_time")
            .values_list("end_time", flat=True)
            .first()
        )
        if latest is None:
            return 0
        bookings = (
            Booking.objects.claiming(now).filter(spot=spot).overlapping(now, latest)
        )
        index = IntervalIndex(Interval(b.start_time, b.end_time, 1, b) for b in bookings)
        return index.occupied_count(now, latest)

    @classmethod
    def _check_fields(cls, fields):
        unknown = set(fields) - set(cls.EDITABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown spot fields: {', '.join(sorted(unknown))}")

    @staticmethod
    def _require_owner(spot, owner):
        if spot.owner_id != owner.pk:
            logger.warning(f"User {owner.pk} is not the owner of spot {spot.pk}")
            raise UnauthorizedError()

    @staticmethod
    def _validate(spot):
        if spot.total_slots is None or int(spot.total_slots) < 1:
            raise ValidationError("A parking spot needs at least one slot.")
        if spot.price is not None and spot.price < 0:
            raise ValidationError("Price cannot be negative.")
        if spot.price_type not in dict(ParkingSpot.PRICE_TYPE_CHOICES):
            raise ValidationError(f"Unknown price type '{spot.price_type}'.")
        OperatingHours.parse(spot.operating_hours)
