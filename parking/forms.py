from django import forms
import re
import logging

from .exceptions import ValidationError as ParkingValidationError
from .models import AvailabilityBlock, Booking, ParkingSpot, Vehicle
from .utils.operating_hours import OperatingHours
from .utils.time_utils import combine_window

# Get the logger instance
logger = logging.getLogger(__name__)


class TimeWindowForm(forms.Form):
    """A booking window given either as two instants or as date + times of day.

    `start`/`end` are absolute; `date`/`start_time`/`end_time` are combined
    into instants, rolling the end into the next day when it is earlier than
    the start.
    """

    start = forms.DateTimeField(required=False)
    end = forms.DateTimeField(required=False)
    date = forms.DateField(required=False)
    start_time = forms.TimeField(required=False)
    end_time = forms.TimeField(required=False)

    def clean(self):
        cleaned = super().clean()
        start, end = cleaned.get("start"), cleaned.get("end")
        date = cleaned.get("date")
        start_time, end_time = cleaned.get("start_time"), cleaned.get("end_time")

        if start and end:
            pass
        elif date and start_time and end_time:
            if start_time == end_time:
                raise forms.ValidationError("The booking window must not be empty.")
            start, end = combine_window(date, start_time, end_time)
        else:
            raise forms.ValidationError(
                "Provide either start and end, or date, start_time and end_time."
            )

        if start >= end:
            logger.warning(
                f"Form Validation Error: Inverted window {start.isoformat()} - "
                f"{end.isoformat()}"
            )
            raise forms.ValidationError("The end of the window must be after its start.")

        cleaned["start"], cleaned["end"] = start, end
        return cleaned


class ReservationForm(TimeWindowForm):
    spot_id = forms.IntegerField(min_value=1)
    vehicle_id = forms.IntegerField(min_value=1)
    request_id = forms.UUIDField(required=False)
    payment_method = forms.ChoiceField(
        choices=(("", "Unspecified"),) + Booking.PAYMENT_METHOD_CHOICES,
        required=False,
    )


class SpotSearchForm(TimeWindowForm):
    max_price = forms.DecimalField(min_value=0, required=False)
    amenities = forms.CharField(required=False)

    def clean_amenities(self):
        raw = self.cleaned_data.get("amenities") or ""
        return [item.strip() for item in raw.split(",") if item.strip()]


class AvailabilityBlockForm(TimeWindowForm):
    status = forms.ChoiceField(
        choices=AvailabilityBlock.STATUS_CHOICES,
        initial=AvailabilityBlock.STATUS_BLOCKED,
    )
    reason = forms.CharField(max_length=255, required=False)
    available_slots = forms.IntegerField(min_value=0, required=False)


class ParkingSpotForm(forms.ModelForm):
    class Meta:
        model = ParkingSpot
        fields = (
            "name",
            "address",
            "latitude",
            "longitude",
            "total_slots",
            "price",
            "price_type",
            "amenities",
            "operating_hours",
        )

    def clean_amenities(self):
        val = self.cleaned_data.get("amenities") or []
        if not isinstance(val, list) or not all(isinstance(a, str) for a in val):
            raise forms.ValidationError("Amenities must be a list of names.")
        return val

    def clean_operating_hours(self):
        val = self.cleaned_data.get("operating_hours") or {}
        try:
            OperatingHours.parse(val)
        except ParkingValidationError as e:
            raise forms.ValidationError(e.message)
        return val

    def clean_total_slots(self):
        val = self.cleaned_data.get("total_slots")
        if val is None or val < 1:
            raise forms.ValidationError("A parking spot needs at least one slot.")
        return val


class EntryCodeForm(forms.Form):
    code = forms.CharField(max_length=64)


class ReviewForm(forms.Form):
    rating = forms.IntegerField(min_value=1, max_value=5)
    comment = forms.CharField(max_length=1000, required=False)


class VehicleForm(forms.ModelForm):
    class Meta:
        model = Vehicle
        fields = ("license_plate", "make", "model", "color")

    def clean_license_plate(self):
        val = self.cleaned_data.get("license_plate").strip().upper()
        # Regular expression for a standard vehicle plate
        if not re.match(r"^[A-Z0-9- ]{3,15}$", val):
            # LOG: Audit trail for invalid input
            logger.warning(
                f"Form Validation Error: Invalid license plate entered: '{val}'"
            )

            # MESSAGE: Shown to the user
            raise forms.ValidationError(
                "Invalid format. Use 3-15 alphanumeric characters, spaces, or hyphens."
            )
        return val
