import json
from datetime import date, datetime, timedelta

import pytest

from chargeslot.errors import (
    BookingNotFoundError,
    InvalidCancellationError,
    InvalidStateTransitionError,
    OverlappingBookingError,
    SlotUnavailableError,
    StationUnavailableError,
    UserNotFoundError,
)
from chargeslot.models import Bookings, TimeSlots
from chargeslot.services.no_show_checker import check_no_shows
from chargeslot.services.overlap import intervals_overlap
from chargeslot.services.reservations import ReservationCoordinator
from chargeslot.services.slots import SlotConfig
from chargeslot.services.state_machine import BookingStatus
from chargeslot.services.stations import StationLifecycleManager

START = date(2024, 6, 1)


def _events(redis_mock, queue="events:p2p"):
    return [
        json.loads(call.args[1])
        for call in redis_mock.rpush.call_args_list
        if call.args[0] == queue
    ]


# ── Create ───────────────────────────────────────────────────────────────────


def test_booking_takes_one_spot(db, coordinator, user, station, slot_at, redis_mock):
    slot = slot_at(station, "09:00")

    booking = coordinator.create_booking(user.id, station.id, slot.id, payment_id="pay_123")

    assert booking.status == "Confirmed"
    assert booking.date == "2024-06-01"
    assert booking.payment_status == "Pending"
    assert booking.payment_id == "pay_123"
    assert db.get(TimeSlots, slot.id).available_spots == 1

    created = _events(redis_mock)
    assert created[-1]["type"] == "booking_created"
    assert created[-1]["booking_id"] == booking.id
    assert created[-1]["slot"]["start_time"] == "09:00"


def test_booking_amounts(coordinator, user, station, slot_at):
    booking = coordinator.create_booking(user.id, station.id, slot_at(station, "09:00").id)

    assert booking.total_amount == 12.0
    assert booking.advance_amount == 1.2
    assert booking.remaining_amount == pytest.approx(10.8)


def test_capacity_is_never_exceeded(db, coordinator, make_user, station, slot_at):
    slot = slot_at(station, "09:00")
    drivers = [make_user(f"Driver {i}") for i in range(3)]

    coordinator.create_booking(drivers[0].id, station.id, slot.id)
    coordinator.create_booking(drivers[1].id, station.id, slot.id)
    with pytest.raises(SlotUnavailableError):
        coordinator.create_booking(drivers[2].id, station.id, slot.id)

    slot = db.get(TimeSlots, slot.id)
    assert slot.available_spots == 0
    assert slot.status == "Booked"
    assert db.query(Bookings).filter(Bookings.time_slot_id == slot.id).count() == 2


def test_missing_station(coordinator, user, station, slot_at):
    with pytest.raises(StationUnavailableError) as exc:
        coordinator.create_booking(user.id, 999, slot_at(station, "09:00").id)
    assert exc.value.status_code == 404


def test_station_not_active(db, coordinator, user, station, slot_at, slot_config):
    slot = slot_at(station, "09:00")
    StationLifecycleManager(db, slot_config).set_status(station, "maintenance", start_date=START)

    with pytest.raises(StationUnavailableError) as exc:
        coordinator.create_booking(user.id, station.id, slot.id)
    assert exc.value.status_code == 409


def test_slot_of_another_station(coordinator, user, make_station, slot_at):
    first = make_station(name="First")
    second = make_station(name="Second")

    with pytest.raises(SlotUnavailableError) as exc:
        coordinator.create_booking(user.id, first.id, slot_at(second, "09:00").id)
    assert exc.value.status_code == 404


def test_started_slot_cannot_be_booked(db, user, station, slot_at):
    coordinator = ReservationCoordinator(db, clock=lambda: datetime(2024, 6, 1, 9, 30))

    with pytest.raises(SlotUnavailableError):
        coordinator.create_booking(user.id, station.id, slot_at(station, "09:00").id)
    assert slot_at(station, "09:00").available_spots == 2


def test_unknown_user(coordinator, station, slot_at):
    with pytest.raises(UserNotFoundError):
        coordinator.create_booking(999, station.id, slot_at(station, "09:00").id)


# ── Overlap ──────────────────────────────────────────────────────────────────


def test_intervals_overlap():
    assert intervals_overlap("09:00", "10:00", "09:30", "10:30")
    assert intervals_overlap("09:00", "10:00", "09:00", "10:00")
    assert intervals_overlap("09:00", "11:00", "09:30", "10:00")
    assert not intervals_overlap("09:00", "10:00", "10:00", "11:00")
    assert not intervals_overlap("10:00", "11:00", "09:00", "10:00")


def test_same_time_at_another_station_is_rejected(db, coordinator, user, make_station, slot_at):
    first = make_station(name="First")
    second = make_station(name="Second")
    coordinator.create_booking(user.id, first.id, slot_at(first, "09:00").id)

    with pytest.raises(OverlappingBookingError):
        coordinator.create_booking(user.id, second.id, slot_at(second, "09:00").id)
    assert slot_at(second, "09:00").available_spots == 2


def test_partial_overlap_is_rejected(coordinator, user, make_station, slot_at):
    hourly = make_station(name="Hourly")
    half_hourly = make_station(name="Half-hourly", config=SlotConfig(slot_minutes=30))
    coordinator.create_booking(user.id, hourly.id, slot_at(hourly, "09:00").id)

    with pytest.raises(OverlappingBookingError):
        coordinator.create_booking(user.id, half_hourly.id, slot_at(half_hourly, "09:30").id)


def test_back_to_back_and_other_days_are_allowed(coordinator, user, station, slot_at):
    coordinator.create_booking(user.id, station.id, slot_at(station, "09:00").id)
    coordinator.create_booking(user.id, station.id, slot_at(station, "10:00").id)
    coordinator.create_booking(
        user.id, station.id, slot_at(station, "09:00", day=START + timedelta(days=1)).id
    )


def test_other_users_do_not_overlap(coordinator, user, other_user, station, slot_at):
    slot = slot_at(station, "09:00")
    coordinator.create_booking(user.id, station.id, slot.id)
    coordinator.create_booking(other_user.id, station.id, slot.id)


def test_cancelled_booking_frees_the_interval(coordinator, user, station, slot_at):
    slot = slot_at(station, "09:00")
    booking = coordinator.create_booking(user.id, station.id, slot.id)
    coordinator.cancel_booking(booking.id, user.id)

    rebooked = coordinator.create_booking(user.id, station.id, slot.id)
    assert rebooked.status == "Confirmed"


# ── Cancel ───────────────────────────────────────────────────────────────────


def test_cancel_returns_the_spot(db, coordinator, user, station, slot_at, redis_mock):
    slot = slot_at(station, "09:00")
    booking = coordinator.create_booking(user.id, station.id, slot.id)

    cancelled = coordinator.cancel_booking(booking.id, user.id, reason="Plans changed")

    assert cancelled.status == "Cancelled"
    assert cancelled.cancel_reason == "Plans changed"
    slot = db.get(TimeSlots, slot.id)
    assert slot.available_spots == 2
    assert slot.status == "Available"
    assert _events(redis_mock)[-1]["type"] == "booking_cancelled"


def test_cancel_reopens_a_full_slot(db, coordinator, user, other_user, station, slot_at):
    slot = slot_at(station, "09:00")
    booking = coordinator.create_booking(user.id, station.id, slot.id)
    coordinator.create_booking(other_user.id, station.id, slot.id)
    assert db.get(TimeSlots, slot.id).status == "Booked"

    coordinator.cancel_booking(booking.id, user.id)

    slot = db.get(TimeSlots, slot.id)
    assert slot.available_spots == 1
    assert slot.status == "Available"


def test_cancel_twice_is_rejected(db, coordinator, user, station, slot_at):
    slot = slot_at(station, "09:00")
    booking = coordinator.create_booking(user.id, station.id, slot.id)
    coordinator.cancel_booking(booking.id, user.id)

    with pytest.raises(InvalidCancellationError):
        coordinator.cancel_booking(booking.id, user.id)
    assert db.get(TimeSlots, slot.id).available_spots == 2


def test_only_owner_or_admin_can_cancel(coordinator, user, other_user, admin, station, slot_at):
    booking = coordinator.create_booking(user.id, station.id, slot_at(station, "09:00").id)

    with pytest.raises(InvalidCancellationError) as exc:
        coordinator.cancel_booking(booking.id, other_user.id)
    assert exc.value.status_code == 403

    assert coordinator.cancel_booking(booking.id, admin.id).status == "Cancelled"


def test_checked_in_booking_cannot_be_cancelled(db, coordinator, user, station, slot_at):
    slot = slot_at(station, "09:00")
    booking = coordinator.create_booking(user.id, station.id, slot.id)
    coordinator.change_status(booking.id, BookingStatus.CHECKED_IN)

    with pytest.raises(InvalidCancellationError):
        coordinator.cancel_booking(booking.id, user.id)
    assert db.get(TimeSlots, slot.id).available_spots == 1


def test_cancel_unknown_booking(coordinator, user):
    with pytest.raises(InvalidCancellationError) as exc:
        coordinator.cancel_booking(999, user.id)
    assert exc.value.status_code == 404


# ── Status changes ───────────────────────────────────────────────────────────


def test_check_in_then_complete(db, coordinator, user, station, slot_at, redis_mock):
    slot = slot_at(station, "09:00")
    booking = coordinator.create_booking(user.id, station.id, slot.id)

    assert coordinator.change_status(booking.id, "Checked-in").status == "Checked-in"
    assert coordinator.change_status(booking.id, BookingStatus.COMPLETED).status == "Completed"

    last = _events(redis_mock)[-1]
    assert last["type"] == "booking_status_changed"
    assert last["previous_status"] == "Checked-in"
    # Completion does not hand the spot back
    assert db.get(TimeSlots, slot.id).available_spots == 1


def test_skipping_check_in_is_rejected(coordinator, user, station, slot_at):
    booking = coordinator.create_booking(user.id, station.id, slot_at(station, "09:00").id)

    with pytest.raises(InvalidStateTransitionError):
        coordinator.change_status(booking.id, BookingStatus.COMPLETED)


def test_change_status_does_not_cancel(coordinator, user, station, slot_at):
    booking = coordinator.create_booking(user.id, station.id, slot_at(station, "09:00").id)

    with pytest.raises(InvalidStateTransitionError):
        coordinator.change_status(booking.id, BookingStatus.CANCELLED)


# ── No-show ──────────────────────────────────────────────────────────────────


def test_mark_no_shows_after_slot_end(db, coordinator, user, station, slot_at):
    slot = slot_at(station, "09:00")
    booking = coordinator.create_booking(user.id, station.id, slot.id)

    assert coordinator.mark_no_shows(now=datetime(2024, 6, 1, 9, 30)) == 0
    assert coordinator.mark_no_shows(now=datetime(2024, 6, 1, 10, 0)) == 1

    assert db.get(Bookings, booking.id).status == "No-show"
    assert db.get(TimeSlots, slot.id).available_spots == 1


def test_checked_in_bookings_are_not_no_shows(coordinator, user, station, slot_at):
    booking = coordinator.create_booking(user.id, station.id, slot_at(station, "09:00").id)
    coordinator.change_status(booking.id, BookingStatus.CHECKED_IN)

    assert coordinator.mark_no_shows(now=datetime(2024, 6, 2, 0, 0)) == 0


def test_no_show_event_carries_booking_summary(coordinator, user, station, slot_at, redis_mock):
    booking = coordinator.create_booking(user.id, station.id, slot_at(station, "09:00").id)

    coordinator.mark_no_shows(now=datetime(2024, 6, 1, 10, 0))

    event = _events(redis_mock)[-1]
    assert event["type"] == "booking_status_changed"
    assert event["booking_id"] == booking.id
    assert event["user_id"] == user.id
    assert event["status"] == "No-show"
    assert event["previous_status"] == "Confirmed"
    assert event["station"]["id"] == station.id
    assert event["slot"]["start_time"] == "09:00"


def test_check_no_shows_uses_its_own_session(db, coordinator, user, station, slot_at):
    booking = coordinator.create_booking(user.id, station.id, slot_at(station, "09:00").id)
    db.commit()

    changed = check_no_shows(now=datetime(2024, 6, 1, 18, 0), session_factory=lambda: db)

    assert changed == 1
    assert db.get(Bookings, booking.id).status == "No-show"


# ── Queries ──────────────────────────────────────────────────────────────────


def test_user_bookings_newest_first(coordinator, user, other_user, station, slot_at):
    early = coordinator.create_booking(user.id, station.id, slot_at(station, "09:00").id)
    late = coordinator.create_booking(user.id, station.id, slot_at(station, "14:00").id)
    next_day = coordinator.create_booking(
        user.id, station.id, slot_at(station, "08:00", day=START + timedelta(days=1)).id
    )
    coordinator.create_booking(other_user.id, station.id, slot_at(station, "09:00").id)

    ids = [b.id for b in coordinator.list_user_bookings(user.id)]

    assert ids == [next_day.id, late.id, early.id]


def test_booking_visible_to_owner_and_admin(coordinator, user, other_user, admin, station, slot_at):
    booking = coordinator.create_booking(user.id, station.id, slot_at(station, "09:00").id)

    assert coordinator.get_booking(booking.id, user).id == booking.id
    assert coordinator.get_booking(booking.id, admin).id == booking.id
    with pytest.raises(BookingNotFoundError):
        coordinator.get_booking(booking.id, other_user)


def test_list_bookings_filters(coordinator, user, other_user, station, slot_at):
    kept = coordinator.create_booking(user.id, station.id, slot_at(station, "09:00").id)
    dropped = coordinator.create_booking(other_user.id, station.id, slot_at(station, "10:00").id)
    coordinator.cancel_booking(dropped.id, other_user.id)

    confirmed = coordinator.list_bookings(status="Confirmed", station_id=station.id)

    assert [b.id for b in confirmed] == [kept.id]


# ── Properties ───────────────────────────────────────────────────────────────


def test_half_hour_shifted_slot_overlaps(coordinator, user, make_station, slot_at):
    on_the_hour = make_station(name="On the hour")
    on_the_half = make_station(name="On the half", opening_time="08:30", closing_time="20:30")
    coordinator.create_booking(user.id, on_the_hour.id, slot_at(on_the_hour, "09:00").id)

    shifted = slot_at(on_the_half, "09:30")
    assert shifted.end_time == "10:30"
    with pytest.raises(OverlappingBookingError):
        coordinator.create_booking(user.id, on_the_half.id, shifted.id)

    coordinator.create_booking(user.id, on_the_hour.id, slot_at(on_the_hour, "10:00").id)


def test_capacity_stays_in_bounds_across_interleaving(db, coordinator, make_user, make_station, slot_at):
    station = make_station(capacity=3)
    slot_id = slot_at(station, "09:00").id
    drivers = [make_user(f"Driver {i}") for i in range(5)]
    held = []

    def check():
        available = db.get(TimeSlots, slot_id).available_spots
        assert 0 <= available <= 3
        assert available == 3 - len(held)

    for step, driver in enumerate(drivers + drivers):
        if step % 3 == 2 and held:
            booking = held.pop(0)
            coordinator.cancel_booking(booking.id, booking.user_id)
        else:
            try:
                held.append(coordinator.create_booking(driver.id, station.id, slot_id))
            except (SlotUnavailableError, OverlappingBookingError):
                pass
        check()

    for booking in held:
        coordinator.cancel_booking(booking.id, booking.user_id)
    held.clear()
    check()


def test_list_bookings_station_zero_matches_nothing(coordinator, user, station, slot_at):
    coordinator.create_booking(user.id, station.id, slot_at(station, "09:00").id)

    assert coordinator.list_bookings(station_id=0) == []
    assert len(coordinator.list_bookings()) == 1
