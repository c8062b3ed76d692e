# backend/chargeslot/services/state_machine.py
"""
Booking status lifecycle.

    Confirmed ──► Cancelled    (user/admin cancellation, terminal)
        │    ──► No-show       (slot ended without arrival, terminal)
        ▼
    Checked-in ──► Completed   (terminal)

Anything not in TRANSITIONS is rejected with InvalidStateTransitionError.
"""

from enum import Enum

from ..errors import InvalidStateTransitionError


class BookingStatus(str, Enum):
    CONFIRMED = "Confirmed"
    CANCELLED = "Cancelled"
    CHECKED_IN = "Checked-in"
    COMPLETED = "Completed"
    NO_SHOW = "No-show"


INITIAL_STATUS = BookingStatus.CONFIRMED

TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.CONFIRMED: frozenset({
        BookingStatus.CANCELLED,
        BookingStatus.CHECKED_IN,
        BookingStatus.NO_SHOW,
    }),
    BookingStatus.CHECKED_IN: frozenset({BookingStatus.COMPLETED}),
    BookingStatus.CANCELLED: frozenset(),
    BookingStatus.COMPLETED: frozenset(),
    BookingStatus.NO_SHOW: frozenset(),
}

# Bookings holding one unit of slot capacity
ACTIVE_STATUSES = frozenset({BookingStatus.CONFIRMED, BookingStatus.CHECKED_IN})
ACTIVE_STATUS_VALUES = tuple(s.value for s in ACTIVE_STATUSES)


def parse_status(value: str | BookingStatus) -> BookingStatus:
    try:
        return BookingStatus(value)
    except ValueError:
        raise InvalidStateTransitionError(f"Unknown booking status: {value!r}") from None


def is_terminal(status: str | BookingStatus) -> bool:
    return not TRANSITIONS[parse_status(status)]


def can_transition(current: str | BookingStatus, target: str | BookingStatus) -> bool:
    return parse_status(target) in TRANSITIONS[parse_status(current)]


def check_transition(current: str | BookingStatus, target: str | BookingStatus) -> BookingStatus:
    """
    Validate a transition against the table.

    Returns:
        The target status as BookingStatus.
    """
    source = parse_status(current)
    dest = parse_status(target)
    if dest not in TRANSITIONS[source]:
        raise InvalidStateTransitionError(
            f"Cannot change booking status from {source.value} to {dest.value}"
        )
    return dest
