# backend/chargeslot/services/slots/generator.py
"""
Slot generation for stations.

Produces fixed-width slots between a station's opening and closing time for
each date of a rolling horizon. Every slot starts with
total_spots = available_spots = station.capacity.

Rows are keyed by (station_id, date, start_time) and upserted:
✓ new keys are inserted
✓ existing keys are re-activated and resized to the current capacity
✓ keys outside the current hours are deactivated (is_active = 0)
✗ rows are never deleted, so bookings always keep their slot
"""

import logging
from datetime import date, timedelta

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...models import Bookings, Stations, TimeSlots
from ..state_machine import ACTIVE_STATUS_VALUES
from ..timeutil import utcnow_str
from .config import SlotConfig, get_slot_config, minutes_to_time_str, validate_operating_hours
from .store import SLOT_AVAILABLE, SLOT_BOOKED, SlotStore

logger = logging.getLogger(__name__)


def build_day_slots(
    opening_time: str,
    closing_time: str,
    config: SlotConfig | None = None,
) -> list[tuple[str, str]]:
    """
    Slot boundaries for one day.

    A trailing partial slot is dropped: no slot ends after closing time.

    Returns:
        List of ("HH:MM" start, "HH:MM" end) pairs.
    """
    config = config or get_slot_config()
    open_min, close_min = validate_operating_hours(opening_time, closing_time)
    step = config.slot_minutes

    slots = []
    t = open_min
    while t + step <= close_min:
        slots.append((minutes_to_time_str(t), minutes_to_time_str(t + step)))
        t += step
    return slots


def horizon_dates(start_date: date, horizon_days: int) -> list[date]:
    return [start_date + timedelta(days=i) for i in range(horizon_days)]


class SlotGenerator:
    """Materializes the slot horizon of a station."""

    def __init__(self, db: Session, config: SlotConfig | None = None):
        self.db = db
        self.config = config or get_slot_config()
        self.store = SlotStore(db)

    def generate(
        self,
        station: Stations,
        horizon_days: int | None = None,
        start_date: date | None = None,
    ) -> list[TimeSlots]:
        """
        (Re)generate all slots of the horizon for a station.

        Existing rows in the horizon are brought in line with the station's
        current hours and capacity. Flushes, does not commit.

        Returns:
            Active slots of the horizon, ordered by date and start time.
        """
        horizon_days = self._horizon(horizon_days)
        start_date = start_date or date.today()
        day_slots = build_day_slots(station.opening_time, station.closing_time, self.config)
        dates = horizon_dates(start_date, horizon_days)
        first, last = dates[0].isoformat(), dates[-1].isoformat()

        existing = {
            (row.date, row.start_time): row
            for row in (
                self.db.query(TimeSlots)
                .filter(
                    TimeSlots.station_id == station.id,
                    TimeSlots.date >= first,
                    TimeSlots.date <= last,
                )
                .all()
            )
        }
        consumed = self._consumed_by_slot(station.id, first, last)

        now = utcnow_str()
        wanted = set()
        result = []
        inserted = updated = 0

        for dt in dates:
            date_str = dt.isoformat()
            for start, end in day_slots:
                key = (date_str, start)
                wanted.add(key)
                row = existing.get(key)

                if row is None:
                    row = TimeSlots(
                        station_id=station.id,
                        date=date_str,
                        start_time=start,
                        end_time=end,
                        total_spots=station.capacity,
                        available_spots=station.capacity,
                        status=SLOT_AVAILABLE,
                        is_active=1,
                    )
                    self.db.add(row)
                    inserted += 1
                else:
                    available = max(station.capacity - consumed.get(row.id, 0), 0)
                    row.end_time = end
                    row.total_spots = station.capacity
                    row.available_spots = available
                    row.status = SLOT_AVAILABLE if available > 0 else SLOT_BOOKED
                    row.is_active = 1
                    row.updated_at = now
                    updated += 1
                result.append(row)

        deactivated = 0
        for key, row in existing.items():
            if key not in wanted and row.is_active:
                row.is_active = 0
                row.updated_at = now
                deactivated += 1

        self.db.flush()

        logger.info(
            f"Slots generated for station={station.id}: {first}..{last}, "
            f"inserted={inserted}, updated={updated}, deactivated={deactivated}"
        )
        return result

    def fill_missing(
        self,
        station: Stations,
        horizon_days: int | None = None,
        start_date: date | None = None,
    ) -> int:
        """
        Insert slots only for horizon dates that have none yet.

        Days already materialized are left untouched, bookings included.

        Returns:
            Number of dates generated.
        """
        horizon_days = self._horizon(horizon_days)
        start_date = start_date or date.today()
        dates = horizon_dates(start_date, horizon_days)

        present = {
            row[0]
            for row in (
                self.db.query(TimeSlots.date)
                .filter(
                    TimeSlots.station_id == station.id,
                    TimeSlots.date >= dates[0].isoformat(),
                    TimeSlots.date <= dates[-1].isoformat(),
                )
                .distinct()
                .all()
            )
        }
        missing = [dt for dt in dates if dt.isoformat() not in present]
        if not missing:
            return 0

        day_slots = build_day_slots(station.opening_time, station.closing_time, self.config)
        for dt in missing:
            self._add_day(station, dt, day_slots)
        self.db.flush()

        logger.info(f"Slots filled for station={station.id}: {len(missing)} new dates")
        return len(missing)

    def ensure_day(
        self,
        station: Stations,
        dt: date,
        today: date | None = None,
    ) -> list[TimeSlots]:
        """
        Slots for one date, generated on first request.

        Dates in the past or beyond the horizon are never generated.
        """
        today = today or date.today()
        in_horizon = today <= dt < today + timedelta(days=self.config.horizon_days)

        if in_horizon and not self.store.has_day(station.id, dt):
            day_slots = build_day_slots(station.opening_time, station.closing_time, self.config)
            try:
                with self.db.begin_nested():
                    self._add_day(station, dt, day_slots)
                logger.info(f"Slots generated lazily for station={station.id} date={dt}")
            except IntegrityError:
                # Another request materialized the same day first
                logger.info(f"Slots for station={station.id} date={dt} already generated")

        return self.store.list_day(station.id, dt)

    def extend_horizon(self, start_date: date | None = None) -> int:
        """
        Top up the rolling horizon for every active station.

        Returns:
            Number of station-dates generated.
        """
        stations = self.db.query(Stations).filter(Stations.status == "active").all()
        total = 0
        for station in stations:
            total += self.fill_missing(station, start_date=start_date)
        return total

    # ── Helpers ──────────────────────────────────────────────────────────

    def _horizon(self, horizon_days: int | None) -> int:
        if horizon_days is None:
            return self.config.horizon_days
        if horizon_days < 1:
            raise ValueError(f"horizon_days must be positive, got {horizon_days}")
        return horizon_days

    def _add_day(self, station: Stations, dt: date, day_slots: list[tuple[str, str]]) -> None:
        date_str = dt.isoformat()
        for start, end in day_slots:
            self.db.add(TimeSlots(
                station_id=station.id,
                date=date_str,
                start_time=start,
                end_time=end,
                total_spots=station.capacity,
                available_spots=station.capacity,
                status=SLOT_AVAILABLE,
                is_active=1,
            ))

    def _consumed_by_slot(self, station_id: int, first: str, last: str) -> dict[int, int]:
        """Units of capacity held by active bookings, per slot id."""
        rows = (
            self.db.query(Bookings.time_slot_id, func.count(Bookings.id))
            .filter(
                Bookings.station_id == station_id,
                Bookings.date >= first,
                Bookings.date <= last,
                Bookings.status.in_(ACTIVE_STATUS_VALUES),
            )
            .group_by(Bookings.time_slot_id)
            .all()
        )
        return {slot_id: count for slot_id, count in rows}
