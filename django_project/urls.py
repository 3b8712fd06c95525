from django.contrib import admin
from django.http import JsonResponse
from django.urls import path, include


def not_found(request, exception=None):
    return JsonResponse({"error": "The requested resource was not found."}, status=404)


def server_error(request):
    return JsonResponse(
        {"error": "Something went wrong. Please try again later."}, status=500
    )


urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/", include("parking.urls")),
]

# Custom error handlers (used when DEBUG = False)
handler404 = "django_project.urls.not_found"
handler500 = "django_project.urls.server_error"
