from decouple import config

# Booking lifecycle
PAYMENT_TIMEOUT_MINUTES = config("PAYMENT_TIMEOUT_MINUTES", default=15, cast=int)
SWEEP_INTERVAL_SECONDS = config("SWEEP_INTERVAL_SECONDS", default=60, cast=int)
NEXT_AVAILABLE_HORIZON_HOURS = config(
    "NEXT_AVAILABLE_HORIZON_HOURS", default=168, cast=int
)

# Entry codes
PIN_LENGTH = config("PIN_LENGTH", default=4, cast=int)
PIN_MAX_ATTEMPTS = config("PIN_MAX_ATTEMPTS", default=50, cast=int)
QR_TOKEN_BYTES = config("QR_TOKEN_BYTES", default=24, cast=int)
QR_BOX_SIZE = config("QR_BOX_SIZE", default=10, cast=int)
QR_BORDER = config("QR_BORDER", default=4, cast=int)

# Notifications
NOTIFY_BY_EMAIL = config("NOTIFY_BY_EMAIL", default=False, cast=bool)

PRICE_TYPE_HOUR = "hour"
PRICE_TYPE_DAY = "day"
PRICE_TYPE_MONTH = "month"
