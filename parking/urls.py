from django.urls import path
from . import views

urlpatterns = [
    path("spots/", views.spots, name="spots"),
    path("spots/<int:spot_id>/", views.update_spot, name="update_spot"),
    path(
        "spots/<int:spot_id>/deactivate/",
        views.deactivate_spot,
        name="deactivate_spot",
    ),
    path(
        "spots/<int:spot_id>/availability/",
        views.spot_availability,
        name="spot_availability",
    ),
    path("spots/<int:spot_id>/blocks/", views.spot_blocks, name="spot_blocks"),
    path("spots/<int:spot_id>/entry/", views.validate_entry, name="validate_entry"),
    path("spots/<int:spot_id>/exit/", views.validate_exit, name="validate_exit"),
    path("spots/<int:spot_id>/reviews/", views.spot_reviews, name="spot_reviews"),
    path(
        "spots/<int:spot_id>/favorite/", views.toggle_favorite, name="toggle_favorite"
    ),
    path("blocks/<int:block_id>/", views.update_block, name="update_block"),
    path("blocks/<int:block_id>/delete/", views.delete_block, name="delete_block"),
    path("vehicles/", views.vehicles, name="vehicles"),
    path("bookings/", views.bookings, name="bookings"),
    path(
        "bookings/<int:booking_id>/verify-payment/",
        views.verify_payment,
        name="verify_payment",
    ),
    path(
        "bookings/<int:booking_id>/reject-payment/",
        views.reject_payment,
        name="reject_payment",
    ),
    path("bookings/<int:booking_id>/cancel/", views.cancel_booking, name="cancel_booking"),
    path(
        "bookings/<int:booking_id>/complete/",
        views.complete_booking,
        name="complete_booking",
    ),
    path("bookings/<int:booking_id>/pass/", views.download_pass, name="download_pass"),
    path(
        "bookings/<int:booking_id>/review/", views.review_booking, name="review_booking"
    ),
    path("favorites/", views.favorites, name="favorites"),
    path("notifications/", views.notifications, name="notifications"),
    path(
        "notifications/<int:notification_id>/read/",
        views.mark_notification_read,
        name="mark_notification_read",
    ),
]
