# backend/chargeslot/routers/bookings.py
# PATCH = 405, DELETE = 405: bookings change only through status transitions

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from ..auth import get_current_user, require_admin
from ..database import get_db
from ..models import Users
from ..schemas.bookings import BookingCancel, BookingCreate, BookingDetail, BookingRead
from ..services.reservations import ReservationCoordinator
from ..services.state_machine import BookingStatus

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.post("/", response_model=BookingDetail, status_code=status.HTTP_201_CREATED)
def create_booking(
    data: BookingCreate,
    db: Session = Depends(get_db),
    user: Users = Depends(get_current_user),
):
    return ReservationCoordinator(db).create_booking(
        user_id=user.id,
        station_id=data.station_id,
        time_slot_id=data.time_slot_id,
        payment_id=data.payment_id,
    )


@router.get("/my-bookings", response_model=list[BookingDetail])
def my_bookings(
    db: Session = Depends(get_db),
    user: Users = Depends(get_current_user),
):
    return ReservationCoordinator(db).list_user_bookings(user.id)


@router.get("/", response_model=list[BookingRead])
def list_bookings(
    booking_status: Optional[BookingStatus] = Query(None, alias="status"),
    station_id: Optional[int] = None,
    db: Session = Depends(get_db),
    _: Users = Depends(require_admin),
):
    return ReservationCoordinator(db).list_bookings(
        status=booking_status.value if booking_status else None,
        station_id=station_id,
    )


@router.get("/{id}", response_model=BookingDetail)
def get_booking(
    id: int,
    db: Session = Depends(get_db),
    user: Users = Depends(get_current_user),
):
    return ReservationCoordinator(db).get_booking(id, user)


@router.post("/{id}/cancel", response_model=BookingDetail)
def cancel_booking(
    id: int,
    data: Optional[BookingCancel] = None,
    db: Session = Depends(get_db),
    user: Users = Depends(get_current_user),
):
    return ReservationCoordinator(db).cancel_booking(
        booking_id=id,
        requesting_user_id=user.id,
        reason=data.reason if data else None,
    )


@router.post("/{id}/check-in", response_model=BookingDetail)
def check_in_booking(
    id: int,
    db: Session = Depends(get_db),
    _: Users = Depends(require_admin),
):
    return ReservationCoordinator(db).change_status(id, BookingStatus.CHECKED_IN)


@router.post("/{id}/complete", response_model=BookingDetail)
def complete_booking(
    id: int,
    db: Session = Depends(get_db),
    _: Users = Depends(require_admin),
):
    return ReservationCoordinator(db).change_status(id, BookingStatus.COMPLETED)


@router.post("/{id}/no-show", response_model=BookingDetail)
def no_show_booking(
    id: int,
    db: Session = Depends(get_db),
    _: Users = Depends(require_admin),
):
    return ReservationCoordinator(db).change_status(id, BookingStatus.NO_SHOW)


@router.patch("/{id}")
def patch_not_allowed():
    raise HTTPException(
        status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
        detail="Method not allowed",
    )


@router.delete("/{id}")
def delete_not_allowed():
    raise HTTPException(
        status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
        detail="Method not allowed",
    )
