# backend/chargeslot/errors.py
"""
Business-rule failures of the reservation engine.

Every error is a recoverable, per-request failure: it carries the HTTP status
it maps to and a message that is safe to show to the caller. Nothing here is
retried by the engine.
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse


class ReservationError(Exception):
    """Base class for engine errors surfaced to API callers."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "reservation_error"
    default_message: str = "Reservation request rejected"

    def __init__(self, message: str | None = None, status_code: int | None = None):
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


# ── Validation ──────────────────────────────────────────────────────────────


class InvalidOperatingHoursError(ReservationError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "invalid_operating_hours"
    default_message = "Opening time must be strictly before closing time"


# ── Missing entities ────────────────────────────────────────────────────────


class NotFoundError(ReservationError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"
    default_message = "Not found"


class StationNotFoundError(NotFoundError):
    code = "station_not_found"
    default_message = "Station not found"


class SlotNotFoundError(NotFoundError):
    code = "slot_not_found"
    default_message = "Time slot not found"


class BookingNotFoundError(NotFoundError):
    code = "booking_not_found"
    default_message = "Booking not found"


class UserNotFoundError(NotFoundError):
    code = "user_not_found"
    default_message = "User not found"


# ── Conflicting state ───────────────────────────────────────────────────────


class StationUnavailableError(ReservationError):
    status_code = status.HTTP_409_CONFLICT
    code = "station_unavailable"
    default_message = "Station is not available for booking"


class SlotUnavailableError(ReservationError):
    status_code = status.HTTP_409_CONFLICT
    code = "slot_unavailable"
    default_message = "Time slot is not available"


class OverlappingBookingError(ReservationError):
    status_code = status.HTTP_409_CONFLICT
    code = "overlapping_booking"
    default_message = "You already have a booking that overlaps this time slot"


class InvalidCancellationError(ReservationError):
    status_code = status.HTTP_409_CONFLICT
    code = "invalid_cancellation"
    default_message = "Booking cannot be cancelled"


class InvalidStateTransitionError(ReservationError):
    status_code = status.HTTP_409_CONFLICT
    code = "invalid_state_transition"
    default_message = "Booking status transition is not allowed"


class StationHasActiveBookingsError(ReservationError):
    status_code = status.HTTP_409_CONFLICT
    code = "station_has_active_bookings"
    default_message = "Station has active bookings"


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ReservationError)
    async def reservation_error_handler(request: Request, exc: ReservationError) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.message, "code": exc.code},
        )
