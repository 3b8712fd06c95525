from django.contrib import admin
from .models import (
    AvailabilityBlock,
    Booking,
    Favorite,
    Notification,
    ParkingSpot,
    Review,
    Vehicle,
)


@admin.register(Booking)
class BookingModelAdmin(admin.ModelAdmin):
    search_fields = ("id", "qr_code", "vehicle__license_plate", "guest__email")
    list_display = (
        "id",
        "spot",
        "guest",
        "vehicle",
        "start_time",
        "end_time",
        "status",
        "payment_status",
        "total_cost",
    )
    list_filter = ("status", "payment_status", "spot")
    # Lifecycle changes go through BookingManager
    readonly_fields = ("status", "payment_status", "qr_code", "pin", "request_id")


@admin.register(ParkingSpot)
class ParkingSpotModelAdmin(admin.ModelAdmin):
    search_fields = ("name", "address")
    list_display = ("id", "name", "owner", "total_slots", "price", "price_type", "is_active")
    list_filter = ("is_active", "price_type")


@admin.register(AvailabilityBlock)
class AvailabilityBlockModelAdmin(admin.ModelAdmin):
    list_display = ("id", "spot", "start_time", "end_time", "status", "available_slots")
    list_filter = ("status", "spot")


@admin.register(Review)
class ReviewModelAdmin(admin.ModelAdmin):
    list_display = ("id", "booking", "reviewer", "reviewee", "rating", "is_host_review")
    list_filter = ("rating", "is_host_review")


admin.site.register(Vehicle)
admin.site.register(Notification)
admin.site.register(Favorite)
