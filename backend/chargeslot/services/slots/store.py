# backend/chargeslot/services/slots/store.py
"""
Storage boundary for time slot capacity.

availableSpots is only ever changed through the two conditional updates below.
Each is one UPDATE statement whose WHERE clause carries the precondition, so
the check and the write happen at the same instant inside the database:

    try_reserve: ... SET available_spots = available_spots - 1
                 WHERE id = :id AND is_active = 1 AND available_spots > 0
    try_release: ... SET available_spots = available_spots + 1
                 WHERE id = :id AND available_spots < total_spots

A result of zero affected rows means the precondition no longer held.
"""

from datetime import date

from sqlalchemy import case, update
from sqlalchemy.orm import Session

from ...models import TimeSlots
from ..timeutil import utcnow_str

SLOT_AVAILABLE = "Available"
SLOT_BOOKED = "Booked"


class SlotStore:
    """Reads and atomic capacity mutations for time slots."""

    def __init__(self, db: Session):
        self.db = db

    # ── Read ─────────────────────────────────────────────────────────────

    def get(self, slot_id: int) -> TimeSlots | None:
        return self.db.get(TimeSlots, slot_id)

    def list_day(self, station_id: int, dt: date) -> list[TimeSlots]:
        """Active slots of a station for one date, ordered by start time."""
        return (
            self.db.query(TimeSlots)
            .filter(
                TimeSlots.station_id == station_id,
                TimeSlots.date == dt.isoformat(),
                TimeSlots.is_active == 1,
            )
            .order_by(TimeSlots.start_time)
            .all()
        )

    def has_day(self, station_id: int, dt: date) -> bool:
        """Whether any slot row (active or not) exists for the date."""
        return (
            self.db.query(TimeSlots.id)
            .filter(
                TimeSlots.station_id == station_id,
                TimeSlots.date == dt.isoformat(),
            )
            .first()
            is not None
        )

    # ── Atomic capacity mutations ────────────────────────────────────────

    def try_reserve(self, slot_id: int) -> bool:
        """
        Consume one unit of capacity.

        Returns:
            True if a spot was taken, False if the slot was full or inactive.
        """
        stmt = (
            update(TimeSlots)
            .where(
                TimeSlots.id == slot_id,
                TimeSlots.is_active == 1,
                TimeSlots.available_spots > 0,
            )
            .values(
                available_spots=TimeSlots.available_spots - 1,
                # right-hand sides see the pre-update row
                status=case(
                    (TimeSlots.available_spots <= 1, SLOT_BOOKED),
                    else_=SLOT_AVAILABLE,
                ),
                updated_at=utcnow_str(),
            )
            .execution_options(synchronize_session=False)
        )
        result = self.db.execute(stmt)
        self._expire(slot_id)
        return result.rowcount == 1

    def try_release(self, slot_id: int) -> bool:
        """
        Return one unit of capacity.

        Returns:
            True if a spot was returned, False if the slot was already full.
        """
        stmt = (
            update(TimeSlots)
            .where(
                TimeSlots.id == slot_id,
                TimeSlots.available_spots < TimeSlots.total_spots,
            )
            .values(
                available_spots=TimeSlots.available_spots + 1,
                status=SLOT_AVAILABLE,
                updated_at=utcnow_str(),
            )
            .execution_options(synchronize_session=False)
        )
        result = self.db.execute(stmt)
        self._expire(slot_id)
        return result.rowcount == 1

    def _expire(self, slot_id: int) -> None:
        """Drop the cached ORM copy so the next access reloads the row."""
        slot = self.db.identity_map.get(self.db.identity_key(TimeSlots, slot_id))
        if slot is not None:
            self.db.expire(slot)
