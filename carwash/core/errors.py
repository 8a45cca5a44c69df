"""
Typed failures raised by the booking engine.

Each error carries a stable ``code`` that callers (the HTTP layer, the app)
translate into user-facing messages.
"""


class BookingError(Exception):
    code = "booking_error"

    def __init__(self, message: str = ""):
        super().__init__(message or self.code)
        self.message = message or self.code


class ShopNotFound(BookingError):
    code = "shop_not_found"


class ServiceNotFound(BookingError):
    code = "service_not_found"


class BookingNotFound(BookingError):
    code = "booking_not_found"


class InvalidFormat(BookingError):
    code = "invalid_format"


class SlotUnavailable(BookingError):
    code = "slot_unavailable"


class Unauthorized(BookingError):
    code = "unauthorized"


class AlreadyPaid(BookingError):
    code = "already_paid"


class TooLateToCancel(BookingError):
    code = "too_late_to_cancel"


class InvalidTransition(BookingError):
    code = "invalid_transition"


class FeedbackNotAllowed(BookingError):
    code = "feedback_not_allowed"
