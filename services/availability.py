import logging
from datetime import timedelta

from config import NEXT_AVAILABLE_HORIZON_HOURS
from parking.exceptions import NotFoundError
from parking.models import Booking, ParkingSpot
from parking.utils.time_utils import combine_window, validate_window
from services.interval_index import IntervalIndex

logger = logging.getLogger(__name__)


def get_spot(spot_id, lock=False):
    """Fetch a spot, optionally locking its row for the current transaction.

    The spot row is the per-spot mutex: every capacity change takes this lock
    first, so reservations on different spots never wait on each other.
    """
    queryset = ParkingSpot.objects.all()
    if lock:
        queryset = queryset.select_for_update()
    try:
        return queryset.get(pk=spot_id)
    except ParkingSpot.DoesNotExist:
        raise NotFoundError(f"Parking spot {spot_id} not found.")


class AvailabilityResolver:
    @staticmethod
    def free_capacity(spot, start, end, now=None, exclude_booking_id=None):
        if not spot.is_active or not spot.opening_hours.covers(start, end):
            return 0
        index = IntervalIndex.for_spot(
            spot, start, end, now=now, exclude_booking_id=exclude_booking_id
        )
        free = spot.total_slots - index.occupied_count(start, end)
        if free >= 0:
            return free

        claims = IntervalIndex(
            i for i in index.overlapping(start, end) if isinstance(i.source, Booking)
        ).occupied_count(start, end)
        if claims > spot.total_slots:
            logger.error(
                f"Negative free capacity ({free}) for spot {spot.pk} "
                f"over {start.isoformat()} - {end.isoformat()}: {claims} booking "
                f"claims on {spot.total_slots} slot(s); clamping to 0"
            )
        else:
            # An owner blocked slots that bookings already hold
            logger.debug(
                f"Blocks overlap existing bookings at spot {spot.pk} "
                f"over {start.isoformat()} - {end.isoformat()}"
            )
        return 0

    @classmethod
    def check_availability(cls, spot_id, start, end, now=None):
        """Free slots at `spot_id` for the whole of [start, end)."""
        start, end = validate_window(start, end)
        spot = get_spot(spot_id)
        return cls.free_capacity(spot, start, end, now=now)

    @classmethod
    def check_availability_for_date(cls, spot_id, date, start_time, end_time, now=None):
        start, end = combine_window(date, start_time, end_time)
        return cls.check_availability(spot_id, start, end, now=now)

    @staticmethod
    def next_available(spot_id, start, end, now=None):
        """Earliest window of the same length, at or after `start`, with a free slot.

        Returns a (start, end) tuple, or None when nothing opens up within the
        search horizon or the spot is inactive. Windows must fit inside the
        spot's opening hours.
        """
        start, end = validate_window(start, end)
        spot = get_spot(spot_id)
        if not spot.is_active:
            return None

        duration = end - start
        horizon = start + timedelta(hours=NEXT_AVAILABLE_HORIZON_HOURS)
        index = IntervalIndex.for_spot(spot, start, horizon + duration, now=now)
        hours = spot.opening_hours
        found = index.next_available(
            start,
            duration,
            spot.total_slots,
            candidates=hours.openings(start, horizon),
            accept=lambda candidate: hours.covers(candidate, candidate + duration),
        )
        if found is None or found > horizon:
            return None
        return found, found + duration
