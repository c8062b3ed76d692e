# backend/chargeslot/services/stations.py
"""
Station lifecycle: creation, status changes, operating-parameter changes.

A station with bookings in {Confirmed, Checked-in} cannot be
- set to inactive or deleted
- given new hours or capacity (that would regenerate its slots)
All checks run before anything is written.
"""

import logging
from datetime import date
from typing import Any, Optional

from sqlalchemy import func
from sqlalchemy.orm import Query, Session

from ..errors import StationHasActiveBookingsError, StationNotFoundError, StationUnavailableError
from ..models import Bookings, Stations
from .events import emit_broadcast
from .slots.config import SlotConfig, normalize_time_str, validate_operating_hours
from .slots.generator import SlotGenerator
from .state_machine import ACTIVE_STATUS_VALUES, BookingStatus
from .timeutil import utcnow_str

logger = logging.getLogger(__name__)

STATION_STATUSES = ("active", "maintenance", "inactive", "deleted")
GATED_STATUSES = frozenset({"inactive", "deleted"})

OPERATING_FIELDS = ("opening_time", "closing_time", "capacity")
DETAIL_FIELDS = ("name", "description", "address", "latitude", "longitude", "rate_per_hour")


def station_lock_query(db: Session, station_id: int, shared: bool = False) -> Query:
    """
    Station row read under a row lock, with fresh attributes.

    Booking creation takes the shared lock (FOR SHARE), lifecycle changes the
    exclusive one (FOR UPDATE), so a status change and a new booking on the
    same station never interleave between check and write. SQLite renders no
    lock clause; its BEGIN IMMEDIATE transactions serialize writers instead.
    """
    return (
        db.query(Stations)
        .filter(Stations.id == station_id)
        .with_for_update(read=shared)
        .populate_existing()
    )


class StationLifecycleManager:
    """Administrative changes to stations and their slot horizon."""

    def __init__(self, db: Session, config: SlotConfig | None = None):
        self.db = db
        self.generator = SlotGenerator(db, config)

    # ── Queries ──────────────────────────────────────────────────────────

    def get(self, station_id: int, include_deleted: bool = False) -> Stations:
        station = self.db.get(Stations, station_id)
        if station is None or (station.status == "deleted" and not include_deleted):
            raise StationNotFoundError(f"Station {station_id} not found")
        return station

    def list(self, include_inactive: bool = False) -> list[Stations]:
        query = self.db.query(Stations)
        if include_inactive:
            query = query.filter(Stations.status != "deleted")
        else:
            query = query.filter(Stations.status == "active")
        return query.order_by(Stations.id).all()

    def active_booking_count(self, station_id: int) -> int:
        return (
            self.db.query(func.count(Bookings.id))
            .filter(
                Bookings.station_id == station_id,
                Bookings.status.in_(ACTIVE_STATUS_VALUES),
            )
            .scalar()
        )

    def stats(self, station_id: int) -> dict[str, Any]:
        """
        Booking counts of a station.

        utilization_rate is the percentage of all bookings that were completed.
        """
        station = self.get(station_id)
        counts = dict(
            self.db.query(Bookings.status, func.count(Bookings.id))
            .filter(Bookings.station_id == station.id)
            .group_by(Bookings.status)
            .all()
        )
        total = sum(counts.values())
        completed = counts.get(BookingStatus.COMPLETED.value, 0)
        return {
            "station_id": station.id,
            "total_bookings": total,
            "active_bookings": sum(counts.get(s, 0) for s in ACTIVE_STATUS_VALUES),
            "completed_bookings": completed,
            "utilization_rate": round(completed / total * 100, 2) if total else 0.0,
        }

    # ── Create ───────────────────────────────────────────────────────────

    def create_station(self, data: dict[str, Any], start_date: Optional[date] = None) -> Stations:
        """Create a station and materialize its slot horizon."""
        data = dict(data)
        validate_operating_hours(data["opening_time"], data["closing_time"])
        data["opening_time"] = normalize_time_str(data["opening_time"])
        data["closing_time"] = normalize_time_str(data["closing_time"])

        try:
            station = Stations(**data)
            self.db.add(station)
            self.db.flush()

            if station.status == "active":
                self.generator.generate(station, start_date=start_date)

            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(station)
        logger.info(f"Station created: station_id={station.id}, name={station.name}")
        return station

    # ── Update ───────────────────────────────────────────────────────────

    def set_status(self, station: Stations, new_status: str, start_date: Optional[date] = None) -> Stations:
        """Change lifecycle status; gated for inactive/deleted."""
        return self.update_station(station, {"status": new_status}, start_date=start_date)

    def update_operating_parameters(
        self,
        station: Stations,
        opening_time: Optional[str] = None,
        closing_time: Optional[str] = None,
        capacity: Optional[int] = None,
        start_date: Optional[date] = None,
    ) -> Stations:
        """Change hours and/or capacity and regenerate the slot horizon."""
        changes = {
            key: value
            for key, value in (
                ("opening_time", opening_time),
                ("closing_time", closing_time),
                ("capacity", capacity),
            )
            if value is not None
        }
        return self.update_station(station, changes, start_date=start_date)

    def update_station(
        self,
        station: Stations,
        changes: dict[str, Any],
        start_date: Optional[date] = None,
    ) -> Stations:
        """
        Apply an administrative update.

        Order:
        1. lock the station row, validate status and hours
        2. active-bookings gate (status → inactive/deleted, hours/capacity change)
        3. write fields, regenerate slots if operating parameters changed
        """
        try:
            station = station_lock_query(self.db, station.id).one()
            if station.status == "deleted":
                raise StationUnavailableError("Station has been deleted")

            new_status = changes.get("status")
            if new_status is not None and new_status not in STATION_STATUSES:
                raise StationUnavailableError(f"Unknown station status: {new_status}", status_code=400)

            operating = {
                key: changes[key]
                for key in OPERATING_FIELDS
                if changes.get(key) is not None
            }
            if "opening_time" in operating or "closing_time" in operating:
                opening = operating.get("opening_time", station.opening_time)
                closing = operating.get("closing_time", station.closing_time)
                validate_operating_hours(opening, closing)
                if "opening_time" in operating:
                    operating["opening_time"] = normalize_time_str(opening)
                if "closing_time" in operating:
                    operating["closing_time"] = normalize_time_str(closing)
            if "capacity" in operating and operating["capacity"] < 1:
                raise StationUnavailableError("Capacity must be at least 1", status_code=400)

            operating = {k: v for k, v in operating.items() if getattr(station, k) != v}
            status_changed = new_status is not None and new_status != station.status

            if (status_changed and new_status in GATED_STATUSES) or operating:
                active = self.active_booking_count(station.id)
                if active:
                    if status_changed and new_status in GATED_STATUSES:
                        action = f"set status to {new_status}"
                    else:
                        action = "change operating hours or capacity"
                    raise StationHasActiveBookingsError(
                        f"Cannot {action}: station has {active} active booking(s)"
                    )

            previous_status = station.status
            for field in DETAIL_FIELDS:
                if field in changes and changes[field] is not None:
                    setattr(station, field, changes[field])
            for field, value in operating.items():
                setattr(station, field, value)
            if status_changed:
                station.status = new_status
            station.updated_at = utcnow_str()
            self.db.flush()

            if operating:
                self.generator.generate(station, start_date=start_date)
            elif status_changed and new_status == "active":
                self.generator.fill_missing(station, start_date=start_date)

            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(station)

        if operating:
            logger.info(f"Station operating parameters changed: station_id={station.id}, {operating}")
        if status_changed:
            logger.info(f"Station status changed: station_id={station.id}, {previous_status} → {station.status}")
            emit_broadcast("station_status_changed", {
                "station_id": station.id,
                "status": station.status,
                "previous_status": previous_status,
            })
        return station

    def delete_station(self, station: Stations) -> Stations:
        """Soft delete: status becomes 'deleted', history is kept."""
        return self.set_status(station, "deleted")
