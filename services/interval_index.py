"""Per-spot index of the intervals that hold parking capacity.

Bookings claim one slot each; blocked and maintenance windows withhold
``total_slots - available_slots`` slots. Every interval is half-open, so a
claim ending at 10:00 and another starting at 10:00 never overlap.
"""
import heapq
from bisect import bisect_left
from typing import List, NamedTuple, Optional

from parking.exceptions import NotFoundError
from parking.models import AvailabilityBlock, Booking, ParkingSpot


class Interval(NamedTuple):
    start: object
    end: object
    weight: int
    source: object = None


class IntervalIndex:
    def __init__(self, intervals):
        self._intervals: List[Interval] = sorted(
            (i for i in intervals if i.weight > 0 and i.start < i.end),
            key=lambda i: (i.start, i.end),
        )
        self._starts = [i.start for i in self._intervals]

    def __len__(self):
        return len(self._intervals)

    @classmethod
    def for_spot(cls, spot, start, end, now=None, exclude_booking_id=None):
        """Load the claims and reductions of `spot` that touch [start, end)."""
        bookings = Booking.objects.claiming(now).filter(spot=spot).overlapping(start, end)
        if exclude_booking_id is not None:
            bookings = bookings.exclude(pk=exclude_booking_id)
        intervals = [
            Interval(b.start_time, b.end_time, 1, b)
            for b in bookings.only("id", "start_time", "end_time")
        ]
        blocks = (
            AvailabilityBlock.objects.filter(spot=spot)
            .reducing()
            .overlapping(start, end)
        )
        intervals.extend(
            Interval(b.start_time, b.end_time, b.slot_reduction(spot.total_slots), b)
            for b in blocks
        )
        return cls(intervals)

    def overlapping(self, start, end):
        # Only intervals starting before `end` can overlap
        upper = bisect_left(self._starts, end)
        return [i for i in self._intervals[:upper] if i.end > start]

    def occupied_count(self, start, end):
        """Peak number of withheld slots at any instant of [start, end)."""
        events = []
        for interval in self.overlapping(start, end):
            events.append((max(interval.start, start), interval.weight))
            events.append((min(interval.end, end), -interval.weight))
        # At equal instants releases sort before claims (half-open intervals)
        events.sort(key=lambda event: (event[0], event[1]))

        occupied = peak = 0
        for _, delta in events:
            occupied += delta
            peak = max(peak, occupied)
        return peak

    def next_available(
        self, start, duration, capacity, needed=1, candidates=(), accept=None
    ) -> Optional[object]:
        """Soonest start >= `start` whose window of `duration` has `needed` free slots.

        Free capacity can only grow when some interval ends, so the candidates
        are `start` itself and every interval end after it, plus any extra
        `candidates` (such as opening times). `accept` can veto a candidate.
        """
        heap = [start]
        heap.extend(i.end for i in self._intervals if i.end > start)
        heap.extend(c for c in candidates if c > start)
        heapq.heapify(heap)

        previous = None
        while heap:
            candidate = heapq.heappop(heap)
            if candidate == previous:
                continue
            previous = candidate
            if accept is not None and not accept(candidate):
                continue
            if capacity - self.occupied_count(candidate, candidate + duration) >= needed:
                return candidate
        return None


def query(spot_id, start, end, now=None):
    """Occupied slot count for a spot over [start, end). Read-only."""
    try:
        spot = ParkingSpot.objects.get(pk=spot_id)
    except ParkingSpot.DoesNotExist:
        raise NotFoundError(f"Parking spot {spot_id} not found.")
    return IntervalIndex.for_spot(spot, start, end, now=now).occupied_count(start, end)
