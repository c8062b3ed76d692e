# backend/chargeslot/services/overlap.py
"""
Per-user overlap check.

Two intervals on the same date overlap when
    candidate_start < existing_end AND candidate_end > existing_start
so partial overlaps are caught, while back-to-back slots
([09:00, 10:00) then [10:00, 11:00)) are allowed.
"""

from sqlalchemy.orm import Session

from ..models import Bookings, TimeSlots
from .slots.config import time_str_to_minutes
from .state_machine import BookingStatus


def intervals_overlap(start_a: str, end_a: str, start_b: str, end_b: str) -> bool:
    """Half-open interval intersection on "HH:MM" strings."""
    return (
        time_str_to_minutes(start_a) < time_str_to_minutes(end_b)
        and time_str_to_minutes(end_a) > time_str_to_minutes(start_b)
    )


class OverlapGuard:
    """Read-only check run before capacity is reserved."""

    def __init__(self, db: Session):
        self.db = db

    def find_overlap(self, user_id: int, candidate: TimeSlots) -> Bookings | None:
        """First non-cancelled booking of the user intersecting the candidate slot."""
        rows = (
            self.db.query(Bookings, TimeSlots)
            .join(TimeSlots, Bookings.time_slot_id == TimeSlots.id)
            .filter(
                Bookings.user_id == user_id,
                Bookings.status != BookingStatus.CANCELLED.value,
                TimeSlots.date == candidate.date,
            )
            .all()
        )
        for booking, slot in rows:
            if intervals_overlap(candidate.start_time, candidate.end_time, slot.start_time, slot.end_time):
                return booking
        return None

    def overlaps(self, user_id: int, candidate: TimeSlots) -> bool:
        return self.find_overlap(user_id, candidate) is not None
