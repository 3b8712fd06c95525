class ParkingError(Exception):
    """Base class for errors surfaced to API callers.

    Each subclass carries the HTTP status used by the exception middleware
    and a user-facing message.
    """

    status_code = 400
    default_message = "The request could not be processed."

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)

    @property
    def public_message(self):
        return self.message


class ValidationError(ParkingError):
    status_code = 400
    default_message = "Invalid request."


class NotFoundError(ParkingError):
    status_code = 404
    default_message = "The requested resource was not found."


class UnauthorizedError(ParkingError):
    status_code = 403
    default_message = "You are not allowed to modify this resource."


class ConflictError(ParkingError):
    status_code = 409

    def __init__(self, message=None, free_slots=None):
        self.free_slots = free_slots
        if message is None:
            remaining = free_slots if free_slots is not None else 0
            message = (
                "This time slot is no longer available, "
                f"{remaining} slot(s) remain, please adjust"
            )
        super().__init__(message)


class ExpiredError(ParkingError):
    status_code = 410
    default_message = "This booking has expired."


class EntryValidationError(ParkingError):
    """Entry scan rejected.

    The specific subclass is kept for logs only; callers always see the same
    message so a scan never reveals whether a code exists elsewhere.
    """

    status_code = 400
    default_message = "Invalid or expired code"

    @property
    def public_message(self):
        return EntryValidationError.default_message


class InvalidCodeError(EntryValidationError):
    pass


class NotYetActiveError(EntryValidationError):
    pass


class EntryExpiredError(EntryValidationError, ExpiredError):
    pass
