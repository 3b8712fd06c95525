from datetime import datetime, timedelta
from math import ceil

from django.utils import timezone

from parking.exceptions import ValidationError


def calculate_hours(start, end):
    return ceil((end - start).total_seconds() / 3600)


def calculate_days(start, end):
    return ceil((end - start).total_seconds() / 86400)


def ensure_aware(value):
    if timezone.is_naive(value):
        return timezone.make_aware(value)
    return value


def validate_window(start, end):
    """Return the window as aware instants, rejecting empty or inverted ones."""
    if start is None or end is None:
        raise ValidationError("Both start and end are required.")
    start, end = ensure_aware(start), ensure_aware(end)
    if start >= end:
        raise ValidationError("The end of a booking window must be after its start.")
    return start, end


def combine_window(date, start_time, end_time):
    """Turn a (date, time-of-day, time-of-day) triple into absolute instants.

    An end time earlier than the start time is read as the next day, so a
    22:00-02:00 request spans midnight instead of being inverted.
    """
    if start_time == end_time:
        raise ValidationError("The booking window must not be empty.")
    start = ensure_aware(datetime.combine(date, start_time))
    end_day = date if end_time > start_time else date + timedelta(days=1)
    end = ensure_aware(datetime.combine(end_day, end_time))
    return start, end
