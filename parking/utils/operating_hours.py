"""Weekly opening hours of a parking spot.

Stored on the spot as ``{"monday": {"open": "09:00", "close": "17:00",
"closed": false}, ...}``. An empty mapping means the spot never closes, and a
weekday missing from a non-empty mapping is closed. A close time of 23:59 runs
to midnight; a close time earlier than the open time runs into the next day.
"""
from datetime import datetime, time, timedelta

from django.utils import timezone

from parking.exceptions import ValidationError

DAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")
END_OF_DAY = time(23, 59)


def _parse_time(value, day, field):
    try:
        return datetime.strptime(value, "%H:%M").time()
    except (TypeError, ValueError):
        raise ValidationError(f"{day.capitalize()} {field} time must be HH:MM.")


class OperatingHours:
    def __init__(self, raw=None):
        self.raw = raw or {}
        self._days = self.parse(self.raw)

    @staticmethod
    def parse(raw):
        """Validate `raw`, returning {weekday number: (open, close)} for open days."""
        if not raw:
            return {}
        if not isinstance(raw, dict):
            raise ValidationError("Operating hours must map weekdays to open/close times.")
        unknown = set(raw) - set(DAYS)
        if unknown:
            raise ValidationError(f"Unknown weekdays: {', '.join(sorted(unknown))}")

        days = {}
        for number, day in enumerate(DAYS):
            hours = raw.get(day)
            if hours is None:
                continue
            if not isinstance(hours, dict):
                raise ValidationError(f"{day.capitalize()} hours must be a mapping.")
            if hours.get("closed"):
                continue
            opens = _parse_time(hours.get("open"), day, "open")
            closes = _parse_time(hours.get("close"), day, "close")
            if opens == closes:
                raise ValidationError(f"{day.capitalize()} opens and closes at {opens:%H:%M}.")
            days[number] = (opens, closes)
        return days

    @property
    def always_open(self):
        return not self.raw

    def covers(self, start, end):
        """True when all of [start, end) falls inside opening hours."""
        if self.always_open:
            return True
        reach = start
        for open_at, close_at in sorted(self._open_intervals(start, end)):
            if open_at > reach:
                return False
            reach = max(reach, close_at)
            if reach >= end:
                return True
        return False

    def openings(self, start, until):
        """Instants in [start, until] at which the spot opens."""
        if self.always_open:
            return []
        return sorted(
            open_at
            for open_at, _ in self._open_intervals(start, until)
            if start <= open_at <= until
        )

    def _open_intervals(self, start, end):
        # Starts a day early so last night's late hours are included
        tz = timezone.get_current_timezone()
        day = timezone.localtime(start, tz).date() - timedelta(days=1)
        last = timezone.localtime(end, tz).date()
        while day <= last:
            hours = self._days.get(day.weekday())
            if hours:
                opens, closes = hours
                close_day = day
                if closes == END_OF_DAY:
                    close_day, closes = day + timedelta(days=1), time(0)
                elif closes < opens:
                    close_day = day + timedelta(days=1)
                yield (
                    timezone.make_aware(datetime.combine(day, opens), tz),
                    timezone.make_aware(datetime.combine(close_day, closes), tz),
                )
            day += timedelta(days=1)
