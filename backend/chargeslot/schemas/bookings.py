# backend/chargeslot/schemas/bookings.py

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

from .base import API_MODEL_CONFIG
from .slots import TimeSlotSummary
from .stations import StationSummary
from .users import UserSummary


class BookingCreate(BaseModel):
    station_id: int
    time_slot_id: int
    payment_id: Optional[str] = Field(None, description="Reference from the payment provider")

    model_config = API_MODEL_CONFIG


class BookingCancel(BaseModel):
    reason: Optional[str] = None

    model_config = API_MODEL_CONFIG


class BookingRead(BaseModel):
    id: int

    user_id: int
    station_id: int
    time_slot_id: int
    date: str

    status: str

    total_amount: float
    advance_amount: float
    remaining_amount: float
    payment_status: str
    payment_id: Optional[str] = None
    cancel_reason: Optional[str] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = API_MODEL_CONFIG


class BookingDetail(BookingRead):
    """Booking with station, slot and user summaries for display and notifications."""
    station: StationSummary
    time_slot: TimeSlotSummary
    user: UserSummary
