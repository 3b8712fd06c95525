from .base import *

# SECURITY WARNING: don't run with debug turned on in production!
DEBUG = True

ALLOWED_HOSTS = ["localhost", "127.0.0.1", ".ngrok-free.app"]

# Booking notices are printed instead of mailed
EMAIL_BACKEND = "django.core.mail.backends.console.EmailBackend"

# Reservation and sweep decisions are logged at INFO
LOGGING["loggers"]["services"] = {
    "handlers": ["console"],
    "level": "DEBUG",
    "propagate": False,
}
