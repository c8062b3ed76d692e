# backend/chargeslot/schemas/slots.py
"""
Pydantic schemas for time slots.
"""

from datetime import date
from pydantic import BaseModel

from .base import API_MODEL_CONFIG


class TimeSlotRead(BaseModel):
    """A single slot as shown to users."""
    id: int
    start_time: str  # "HH:MM"
    end_time: str    # "HH:MM"
    available_spots: int
    total_spots: int
    status: str      # Available / Booked

    model_config = API_MODEL_CONFIG


class StationDaySlotsResponse(BaseModel):
    """Slots of one station for one date."""
    station_id: int
    station_name: str
    date: date
    slots: list[TimeSlotRead]

    model_config = API_MODEL_CONFIG


class TimeSlotSummary(BaseModel):
    """Slot fields denormalized into booking responses."""
    id: int
    date: str
    start_time: str
    end_time: str

    model_config = API_MODEL_CONFIG


class SlotGenerationResponse(BaseModel):
    """Result of an explicit horizon regeneration (admin)."""
    station_id: int
    generated_dates: int
    start_date: date
    horizon_days: int

    model_config = API_MODEL_CONFIG
