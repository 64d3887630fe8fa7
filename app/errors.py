# app/errors.py


class BookingError(Exception):
    """Base for domain errors; routes let these propagate to the app handler."""

    status_code = 400

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class NotFound(BookingError):
    status_code = 404


class InvalidRange(BookingError):
    """Requested time is outside the horizon, in the past or outside working hours."""

    status_code = 422


class SlotTaken(BookingError):
    """Commit-time re-validation found a conflict. Callers re-query, never retry blindly."""

    status_code = 409


class ValidationError(BookingError):
    status_code = 422
