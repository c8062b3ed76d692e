# backend/chargeslot/services/reservations.py
"""
Reservation coordinator: creates and cancels bookings against slot capacity.

create_booking preconditions, checked in this order:
1. station exists and is active            → StationUnavailableError
2. slot exists, belongs to the station,
   is Available with free capacity          → SlotUnavailableError
3. no overlapping booking for the user      → OverlappingBookingError

The capacity decrement is SlotStore.try_reserve, a conditional UPDATE. If it
affects no row another request took the last spot in between, which is
reported exactly like precondition 2. Overlap check, decrement and insert run
in one transaction; any failure rolls all of it back.

Cancellation is the mirror image: Confirmed → Cancelled through the state
machine, then SlotStore.try_release in the same transaction.
"""

import logging
from datetime import date, datetime, time
from typing import Callable, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session, joinedload

from ..config import settings
from ..errors import (
    BookingNotFoundError,
    InvalidCancellationError,
    InvalidStateTransitionError,
    OverlappingBookingError,
    SlotUnavailableError,
    StationUnavailableError,
    UserNotFoundError,
)
from ..models import Bookings, Stations, TimeSlots, Users
from .events import booking_payload, emit_event
from .overlap import OverlapGuard
from .slots.config import time_str_to_minutes
from .slots.store import SLOT_AVAILABLE, SlotStore
from .stations import station_lock_query
from .state_machine import INITIAL_STATUS, BookingStatus, check_transition
from .timeutil import utcnow_str

logger = logging.getLogger(__name__)


def calculate_amounts(station: Stations, slot: TimeSlots, advance_percent: float) -> tuple[float, float]:
    """
    Price of a slot and the advance due at booking time.

    Returns:
        (total_amount, advance_amount)
    """
    hours = (time_str_to_minutes(slot.end_time) - time_str_to_minutes(slot.start_time)) / 60
    total = round((station.rate_per_hour or 0) * hours, 2)
    advance = round(total * advance_percent, 2)
    return total, advance


def slot_start(slot: TimeSlots) -> datetime:
    minutes = time_str_to_minutes(slot.start_time)
    return datetime.combine(date.fromisoformat(slot.date), time(minutes // 60, minutes % 60))


def slot_end_passed(slot: TimeSlots, now: datetime) -> bool:
    """Whether the slot's end (date + end_time) is at or before now."""
    end_str = now.time().strftime("%H:%M")
    today = now.date().isoformat()
    return slot.date < today or (slot.date == today and slot.end_time <= end_str)


class ReservationCoordinator:
    """Booking creation, cancellation and status changes."""

    def __init__(
        self,
        db: Session,
        advance_percent: float | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.db = db
        self.store = SlotStore(db)
        self.guard = OverlapGuard(db)
        self.advance_percent = settings.advance_percent if advance_percent is None else advance_percent
        self.clock = clock or datetime.now

    # ── Create ───────────────────────────────────────────────────────────

    def create_booking(
        self,
        user_id: int,
        station_id: int,
        time_slot_id: int,
        payment_id: Optional[str] = None,
    ) -> Bookings:
        """Reserve one spot of a slot for a user and record a Confirmed booking."""
        try:
            if self.db.get(Users, user_id) is None:
                raise UserNotFoundError(f"User {user_id} not found")

            # Step 1: station, share-locked against concurrent lifecycle changes
            station = station_lock_query(self.db, station_id, shared=True).one_or_none()
            if station is None:
                raise StationUnavailableError(f"Station {station_id} not found", status_code=404)
            if station.status != "active":
                raise StationUnavailableError(f"Station is not active (status: {station.status})")

            # Step 2: slot
            slot = self.store.get(time_slot_id)
            if slot is None or slot.station_id != station.id:
                raise SlotUnavailableError(
                    f"Time slot {time_slot_id} not found for station {station_id}",
                    status_code=404,
                )
            if not slot.is_active or slot.status != SLOT_AVAILABLE or slot.available_spots <= 0:
                raise SlotUnavailableError("No available spots for this time slot")
            if slot_start(slot) <= self.clock():
                raise SlotUnavailableError("Time slot has already started")

            # Step 3: overlap
            clash = self.guard.find_overlap(user_id, slot)
            if clash is not None:
                logger.warning(
                    f"Overlap rejected: user={user_id} slot={slot.id} clashes with booking={clash.id}"
                )
                raise OverlappingBookingError()

            # Step 4: take one spot atomically
            if not self.store.try_reserve(slot.id):
                logger.warning(f"Capacity race lost: user={user_id} slot={slot.id}")
                raise SlotUnavailableError("No available spots for this time slot")

            total_amount, advance_amount = calculate_amounts(station, slot, self.advance_percent)

            booking = Bookings(
                user_id=user_id,
                station_id=station.id,
                time_slot_id=slot.id,
                date=slot.date,
                status=INITIAL_STATUS.value,
                total_amount=total_amount,
                advance_amount=advance_amount,
                payment_status="Pending",
                payment_id=payment_id,
            )
            self.db.add(booking)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(booking)
        logger.info(
            f"Booking created: booking_id={booking.id}, user={user_id}, "
            f"station={station_id}, slot={slot.date} {slot.start_time}-{slot.end_time}"
        )
        emit_event("booking_created", booking_payload(booking))
        return booking

    # ── Cancel ───────────────────────────────────────────────────────────

    def cancel_booking(
        self,
        booking_id: int,
        requesting_user_id: int,
        reason: Optional[str] = None,
    ) -> Bookings:
        """Cancel a Confirmed booking and give its spot back to the slot."""
        try:
            booking = self.db.get(Bookings, booking_id)
            if booking is None:
                raise InvalidCancellationError(f"Booking {booking_id} not found", status_code=404)

            requester = self.db.get(Users, requesting_user_id)
            is_admin = requester is not None and requester.role == "admin"
            if booking.user_id != requesting_user_id and not is_admin:
                raise InvalidCancellationError(
                    "You do not have permission to cancel this booking",
                    status_code=403,
                )

            if booking.status != BookingStatus.CONFIRMED.value:
                raise InvalidCancellationError(
                    f"Cannot cancel booking in current status: {booking.status}. "
                    f"Only Confirmed bookings can be cancelled."
                )

            try:
                self._set_status(booking, BookingStatus.CANCELLED, cancel_reason=reason)
            except InvalidStateTransitionError as e:
                raise InvalidCancellationError(e.message) from None

            if not self.store.try_release(booking.time_slot_id):
                # Slot already at full capacity: nothing to give back
                logger.warning(
                    f"Release skipped: slot={booking.time_slot_id} already at total_spots "
                    f"(booking={booking.id})"
                )

            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(booking)
        logger.info(f"Booking cancelled: booking_id={booking.id}, by user={requesting_user_id}")
        emit_event("booking_cancelled", {
            **booking_payload(booking),
            "cancelled_by": requesting_user_id,
        })
        return booking

    # ── Other transitions ────────────────────────────────────────────────

    def change_status(self, booking_id: int, target: BookingStatus | str) -> Bookings:
        """
        Move a booking to Checked-in, Completed or No-show.

        Cancellation has its own entry point because it releases capacity.
        """
        try:
            booking = self.db.get(Bookings, booking_id)
            if booking is None:
                raise BookingNotFoundError(f"Booking {booking_id} not found")

            target = check_transition(booking.status, target)
            if target == BookingStatus.CANCELLED:
                raise InvalidStateTransitionError("Use the cancellation endpoint to cancel a booking")

            previous = booking.status
            self._set_status(booking, target)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(booking)
        logger.info(f"Booking status changed: booking_id={booking.id}, {previous} → {booking.status}")
        emit_event("booking_status_changed", {
            **booking_payload(booking),
            "previous_status": previous,
        })
        return booking

    def mark_no_shows(self, now: datetime | None = None) -> int:
        """
        Move Confirmed bookings whose slot has ended to No-show.

        Returns:
            Number of bookings changed.
        """
        now = now or self.clock()
        try:
            candidates = (
                self.db.query(Bookings)
                .join(TimeSlots, Bookings.time_slot_id == TimeSlots.id)
                .filter(
                    Bookings.status == BookingStatus.CONFIRMED.value,
                    TimeSlots.date <= now.date().isoformat(),
                )
                .options(joinedload(Bookings.time_slot))
                .all()
            )

            changed = []
            for booking in candidates:
                if not slot_end_passed(booking.time_slot, now):
                    continue
                try:
                    self._set_status(booking, BookingStatus.NO_SHOW)
                except InvalidStateTransitionError:
                    continue
                changed.append(booking)

            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        for booking in changed:
            logger.info(f"Booking marked no-show: booking_id={booking.id}")
            emit_event("booking_status_changed", {
                **booking_payload(booking),
                "previous_status": BookingStatus.CONFIRMED.value,
            })
        return len(changed)

    # ── Queries ──────────────────────────────────────────────────────────

    def get_booking(self, booking_id: int, requester: Users) -> Bookings:
        """Booking visible to its owner and to admins."""
        booking = self.db.get(Bookings, booking_id)
        if booking is None or (booking.user_id != requester.id and requester.role != "admin"):
            raise BookingNotFoundError(f"Booking {booking_id} not found")
        return booking

    def list_user_bookings(self, user_id: int) -> list[Bookings]:
        return (
            self.db.query(Bookings)
            .join(TimeSlots, Bookings.time_slot_id == TimeSlots.id)
            .filter(Bookings.user_id == user_id)
            .options(joinedload(Bookings.station), joinedload(Bookings.time_slot))
            .order_by(Bookings.date.desc(), TimeSlots.start_time.desc())
            .all()
        )

    def list_bookings(
        self,
        status: Optional[str] = None,
        station_id: Optional[int] = None,
    ) -> list[Bookings]:
        query = self.db.query(Bookings)
        if status is not None:
            query = query.filter(Bookings.status == status)
        if station_id is not None:
            query = query.filter(Bookings.station_id == station_id)
        return query.order_by(Bookings.date.desc(), Bookings.id.desc()).all()

    # ── Helpers ──────────────────────────────────────────────────────────

    def _set_status(self, booking: Bookings, target: BookingStatus, cancel_reason: Optional[str] = None) -> None:
        """
        Compare-and-set the booking status.

        The UPDATE only matches while the row still has the status that was
        validated, so two concurrent transitions cannot both succeed.
        """
        current = booking.status
        check_transition(current, target)

        values = {"status": target.value, "updated_at": utcnow_str()}
        if cancel_reason is not None:
            values["cancel_reason"] = cancel_reason

        result = self.db.execute(
            update(Bookings)
            .where(Bookings.id == booking.id, Bookings.status == current)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise InvalidStateTransitionError(
                f"Booking {booking.id} changed status concurrently"
            )
        self.db.expire(booking)
