import logging

from django.http import Http404, JsonResponse

from .exceptions import ParkingError

logger = logging.getLogger(__name__)


class ExceptionHandlingMiddleware:
    """Middleware that turns exceptions raised by views into JSON responses.

    - ParkingError subclasses map to their own status and public message.
    - Http404 is re-raised so Django's 404 handler is used.
    - Other exceptions are logged and answered with a generic 500 body.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        return self.get_response(request)

    def process_exception(self, request, exception):
        if isinstance(exception, Http404):
            # Let Django (and our handler404) handle Http404
            return None
        if isinstance(exception, ParkingError):
            logger.info(
                f"{request.method} {request.path} rejected with "
                f"{type(exception).__name__}: {exception.message}"
            )
            payload = {"error": exception.public_message}
            if getattr(exception, "free_slots", None) is not None:
                payload["free_slots"] = exception.free_slots
            return JsonResponse(payload, status=exception.status_code)

        logger.error(
            f"Unhandled error on {request.method} {request.path}: {exception}",
            exc_info=True,
        )
        return JsonResponse(
            {"error": "Something went wrong. Please try again later."}, status=500
        )
