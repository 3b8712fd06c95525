import logging
from functools import wraps

from django.forms.models import model_to_dict
from django.http import FileResponse, JsonResponse
from django.utils import timezone
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from .exceptions import InvalidCodeError, NotFoundError, ValidationError
from .forms import (
    AvailabilityBlockForm,
    EntryCodeForm,
    ParkingSpotForm,
    ReservationForm,
    ReviewForm,
    SpotSearchForm,
    TimeWindowForm,
    VehicleForm,
)
from .models import Booking, ParkingSpot
from services.availability import AvailabilityResolver
from services.blocks import BlockManager
from services.entry_validator import EntryValidator
from services.favorites import FavoriteService
from services.notifications import NotificationDispatcher
from services.pdf_generator import generate_booking_pass_pdf
from services.reservations import BookingManager
from services.reviews import ReviewService
from services.spots import SpotManager

logger = logging.getLogger(__name__)


def api_login_required(view):
    """Like login_required, but answers 401 JSON instead of redirecting."""

    @wraps(view)
    def wrapper(request, *args, **kwargs):
        if not request.user.is_authenticated:
            return JsonResponse({"error": "Authentication required."}, status=401)
        return view(request, *args, **kwargs)

    return wrapper


# =============================================
# Parking Spots
# =============================================


@api_login_required
@require_http_methods(["GET", "POST"])
def spots(request):
    """GET searches spots free over a window; POST lists a new spot."""
    if request.method == "POST":
        form = ParkingSpotForm(request.POST)
        _require_valid(form)
        spot = SpotManager.create_spot(request.user, **form.cleaned_data)
        return JsonResponse(_spot_payload(spot), status=201)

    form = SpotSearchForm(request.GET)
    _require_valid(form)
    results = SpotManager.search_spots(
        form.cleaned_data["start"],
        form.cleaned_data["end"],
        max_price=form.cleaned_data.get("max_price"),
        amenities=form.cleaned_data.get("amenities"),
    )
    return JsonResponse(
        {"results": [_spot_payload(spot, free_slots=free) for spot, free in results]}
    )


@api_login_required
@require_POST
def update_spot(request, spot_id):
    spot = _get_spot_or_404(spot_id)
    data = model_to_dict(spot, fields=ParkingSpotForm.Meta.fields)
    json_fields = ParkingSpotForm().fields
    for field in ("amenities", "operating_hours"):
        data[field] = json_fields[field].prepare_value(getattr(spot, field))
    data.update(request.POST.dict())
    form = ParkingSpotForm(data)
    _require_valid(form)
    changes = {
        field: form.cleaned_data[field]
        for field in request.POST
        if field in ParkingSpotForm.Meta.fields
    }
    spot = SpotManager.update_spot(request.user, spot_id, **changes)
    return JsonResponse(_spot_payload(spot))


@api_login_required
@require_POST
def deactivate_spot(request, spot_id):
    spot = SpotManager.deactivate_spot(request.user, spot_id)
    return JsonResponse(_spot_payload(spot))


@api_login_required
@require_GET
def spot_availability(request, spot_id):
    form = TimeWindowForm(request.GET)
    _require_valid(form)
    start, end = form.cleaned_data["start"], form.cleaned_data["end"]
    free = AvailabilityResolver.check_availability(spot_id, start, end)
    payload = {
        "spot_id": spot_id,
        "start": start.isoformat(),
        "end": end.isoformat(),
        "free_slots": free,
    }
    if free == 0:
        window = AvailabilityResolver.next_available(spot_id, start, end)
        payload["next_available"] = (
            {"start": window[0].isoformat(), "end": window[1].isoformat()}
            if window
            else None
        )
    return JsonResponse(payload)


# =============================================
# Availability Blocks
# =============================================


@api_login_required
@require_http_methods(["GET", "POST"])
def spot_blocks(request, spot_id):
    if request.method == "POST":
        form = AvailabilityBlockForm(request.POST)
        _require_valid(form)
        block = BlockManager.create_block(
            request.user,
            spot_id,
            form.cleaned_data["start"],
            form.cleaned_data["end"],
            status=form.cleaned_data["status"],
            reason=form.cleaned_data.get("reason", ""),
            available_slots=form.cleaned_data.get("available_slots"),
        )
        return JsonResponse(_block_payload(block), status=201)

    blocks = BlockManager.list_blocks(spot_id, since=timezone.now())
    return JsonResponse({"results": [_block_payload(b) for b in blocks]})


@api_login_required
@require_POST
def update_block(request, block_id):
    form = AvailabilityBlockForm(request.POST)
    _require_valid(form)
    changes = {
        "start_time": form.cleaned_data["start"],
        "end_time": form.cleaned_data["end"],
        "status": form.cleaned_data["status"],
        "reason": form.cleaned_data.get("reason", ""),
        "available_slots": form.cleaned_data.get("available_slots"),
    }
    block = BlockManager.update_block(request.user, block_id, **changes)
    return JsonResponse(_block_payload(block))


@api_login_required
@require_POST
def delete_block(request, block_id):
    BlockManager.delete_block(request.user, block_id)
    return JsonResponse({"deleted": block_id})


# =============================================
# Vehicles
# =============================================


@api_login_required
@require_http_methods(["GET", "POST"])
def vehicles(request):
    if request.method == "POST":
        form = VehicleForm(request.POST)
        _require_valid(form)
        vehicle = form.save(commit=False)
        vehicle.owner = request.user
        vehicle.save()
        logger.info(f"Vehicle {vehicle.pk} registered for user {request.user.pk}")
        return JsonResponse(_vehicle_payload(vehicle), status=201)

    owned = request.user.vehicles.filter(is_active=True).order_by("pk")
    return JsonResponse({"results": [_vehicle_payload(v) for v in owned]})


# =============================================
# Bookings
# =============================================


@api_login_required
@require_http_methods(["GET", "POST"])
def bookings(request):
    """GET lists the caller's bookings; POST reserves a slot."""
    if request.method == "POST":
        form = ReservationForm(request.POST)
        _require_valid(form)
        booking = BookingManager.reserve(
            form.cleaned_data["spot_id"],
            request.user,
            form.cleaned_data["vehicle_id"],
            form.cleaned_data["start"],
            form.cleaned_data["end"],
            request_id=form.cleaned_data.get("request_id"),
            payment_method=form.cleaned_data.get("payment_method", ""),
        )
        return JsonResponse(_booking_payload(booking, request.user), status=201)

    own = BookingManager.bookings_for(request.user)
    return JsonResponse({"results": [_booking_payload(b, request.user) for b in own]})


@api_login_required
@require_POST
def verify_payment(request, booking_id):
    booking = BookingManager.verify_payment(booking_id, request.user)
    return JsonResponse(_booking_payload(booking, request.user))


@api_login_required
@require_POST
def reject_payment(request, booking_id):
    reason = request.POST.get("reason", "").strip() or "Payment rejected"
    booking = BookingManager.reject_payment(booking_id, request.user, reason=reason)
    return JsonResponse(_booking_payload(booking, request.user))


@api_login_required
@require_POST
def cancel_booking(request, booking_id):
    reason = request.POST.get("reason", "").strip()
    booking = BookingManager.cancel(booking_id, request.user, reason=reason)
    return JsonResponse(_booking_payload(booking, request.user))


@api_login_required
@require_POST
def complete_booking(request, booking_id):
    booking = BookingManager.complete(booking_id, request.user)
    return JsonResponse(_booking_payload(booking, request.user))


@api_login_required
@require_GET
def download_pass(request, booking_id):
    """Printable entry pass, for the guest only."""
    booking = (
        Booking.objects.select_related("spot", "vehicle")
        .filter(pk=booking_id, guest=request.user)
        .first()
    )
    if booking is None:
        raise NotFoundError(f"Booking {booking_id} not found.")
    return FileResponse(
        generate_booking_pass_pdf(booking),
        as_attachment=True,
        filename=f"ParkingPass_{booking.pk}.pdf",
        content_type="application/pdf",
    )


# =============================================
# Entry Validation
# =============================================


@api_login_required
@require_POST
def validate_entry(request, spot_id):
    _get_owned_spot(request, spot_id)
    booking = EntryValidator.validate_entry(spot_id, _scanned_code(request))
    return JsonResponse(_booking_payload(booking, request.user))


@api_login_required
@require_POST
def validate_exit(request, spot_id):
    _get_owned_spot(request, spot_id)
    booking = EntryValidator.validate_exit(spot_id, _scanned_code(request))
    return JsonResponse(_booking_payload(booking, request.user))


# =============================================
# Reviews & Favorites
# =============================================


@api_login_required
@require_POST
def review_booking(request, booking_id):
    form = ReviewForm(request.POST)
    _require_valid(form)
    review = ReviewService.create_review(
        request.user,
        booking_id,
        form.cleaned_data["rating"],
        comment=form.cleaned_data.get("comment", ""),
    )
    return JsonResponse(_review_payload(review), status=201)


@api_login_required
@require_GET
def spot_reviews(request, spot_id):
    reviews = ReviewService.reviews_for_spot(spot_id)
    return JsonResponse(
        {
            "summary": ReviewService.rating_summary(spot_id),
            "results": [_review_payload(r) for r in reviews],
        }
    )


@api_login_required
@require_POST
def toggle_favorite(request, spot_id):
    starred = FavoriteService.toggle(request.user, spot_id)
    return JsonResponse({"spot_id": spot_id, "is_favorite": starred})


@api_login_required
@require_GET
def favorites(request):
    spots = FavoriteService.favorites_for(request.user)
    return JsonResponse({"results": [_spot_payload(spot) for spot in spots]})


# =============================================
# Notifications
# =============================================


@api_login_required
@require_GET
def notifications(request):
    unread_only = request.GET.get("unread") in ("1", "true")
    items = NotificationDispatcher.list_for(request.user, unread_only=unread_only)
    return JsonResponse(
        {
            "results": [
                {
                    "id": n.pk,
                    "kind": n.kind,
                    "title": n.title,
                    "message": n.message,
                    "is_read": n.is_read,
                    "booking_id": n.booking_id,
                    "created_at": n.created_at.isoformat(),
                }
                for n in items
            ]
        }
    )


@api_login_required
@require_POST
def mark_notification_read(request, notification_id):
    notification = NotificationDispatcher.mark_read(request.user, notification_id)
    return JsonResponse({"id": notification.pk, "is_read": notification.is_read})


# =============================================
# Helper Functions
# =============================================


def _require_valid(form):
    if not form.is_valid():
        errors = "; ".join(
            f"{field}: {' '.join(messages)}" if field != "__all__" else " ".join(messages)
            for field, messages in form.errors.items()
        )
        raise ValidationError(errors)


def _scanned_code(request):
    form = EntryCodeForm(request.POST)
    if not form.is_valid():
        # Malformed codes get the same answer as unknown ones
        logger.warning(f"Malformed code scanned by user {request.user.pk}")
        raise InvalidCodeError()
    return form.cleaned_data["code"]


def _get_spot_or_404(spot_id):
    spot = ParkingSpot.objects.filter(pk=spot_id).first()
    if spot is None:
        raise NotFoundError(f"Parking spot {spot_id} not found.")
    return spot


def _get_owned_spot(request, spot_id):
    """Only the spot's owner (acting as attendant) may scan codes for it."""
    spot = _get_spot_or_404(spot_id)
    if spot.owner_id != request.user.pk:
        logger.warning(f"User {request.user.pk} tried to scan codes at spot {spot_id}")
        # Same answer as a bad code so scans cannot reveal which foreign spots exist
        raise NotFoundError(f"Parking spot {spot_id} not found.")
    return spot


def _spot_payload(spot, free_slots=None):
    payload = {
        "id": spot.pk,
        "owner_id": spot.owner_id,
        "name": spot.name,
        "address": spot.address,
        "latitude": spot.latitude,
        "longitude": spot.longitude,
        "total_slots": spot.total_slots,
        "price": str(spot.price),
        "price_type": spot.price_type,
        "amenities": spot.amenities,
        "operating_hours": spot.operating_hours,
        "is_active": spot.is_active,
    }
    if free_slots is not None:
        payload["free_slots"] = free_slots
    return payload


def _block_payload(block):
    return {
        "id": block.pk,
        "spot_id": block.spot_id,
        "date": block.date.isoformat(),
        "start_time": block.start_time.isoformat(),
        "end_time": block.end_time.isoformat(),
        "status": block.status,
        "reason": block.reason,
        "available_slots": block.available_slots,
    }


def _vehicle_payload(vehicle):
    return {
        "id": vehicle.pk,
        "license_plate": vehicle.license_plate,
        "make": vehicle.make,
        "model": vehicle.model,
        "color": vehicle.color,
    }


def _review_payload(review):
    return {
        "id": review.pk,
        "booking_id": review.booking_id,
        "reviewer_id": review.reviewer_id,
        "reviewee_id": review.reviewee_id,
        "rating": review.rating,
        "comment": review.comment,
        "is_host_review": review.is_host_review,
        "created_at": review.created_at.isoformat(),
    }


def _booking_payload(booking, viewer):
    payload = {
        "id": booking.pk,
        "spot_id": booking.spot_id,
        "guest_id": booking.guest_id,
        "vehicle_id": booking.vehicle_id,
        "start_time": booking.start_time.isoformat(),
        "end_time": booking.end_time.isoformat(),
        "total_cost": str(booking.total_cost),
        "status": booking.status,
        "payment_status": booking.payment_status,
        "payment_deadline": (
            booking.payment_deadline.isoformat() if booking.payment_deadline else None
        ),
    }
    # Entry codes are only shown to the guest who holds them
    if booking.guest_id == viewer.pk:
        payload["qr_code"] = booking.qr_code
        payload["pin"] = booking.pin
    return payload
