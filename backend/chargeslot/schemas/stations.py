# backend/chargeslot/schemas/stations.py

from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel, Field

from .base import API_MODEL_CONFIG

StationStatus = Literal["active", "maintenance", "inactive", "deleted"]


class StationCreate(BaseModel):
    name: str
    description: Optional[str] = None
    address: Optional[str] = None

    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)

    opening_time: str = "08:00"
    closing_time: str = "20:00"
    capacity: int = Field(1, ge=1, description="Number of connectors")
    rate_per_hour: float = Field(0, ge=0)

    status: Literal["active", "maintenance", "inactive"] = "active"

    model_config = API_MODEL_CONFIG


class StationUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    address: Optional[str] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    rate_per_hour: Optional[float] = Field(None, ge=0)

    # Routed through the lifecycle checks
    status: Optional[StationStatus] = None
    opening_time: Optional[str] = None
    closing_time: Optional[str] = None
    capacity: Optional[int] = Field(None, ge=1)

    model_config = API_MODEL_CONFIG


class StationRead(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    address: Optional[str] = None

    latitude: float
    longitude: float

    opening_time: str
    closing_time: str
    capacity: int
    rate_per_hour: float

    status: str

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = API_MODEL_CONFIG


class StationSummary(BaseModel):
    """Station fields denormalized into booking responses."""
    id: int
    name: str
    address: Optional[str] = None
    latitude: float
    longitude: float

    model_config = API_MODEL_CONFIG


class StationStats(BaseModel):
    """Booking counts of one station (admin)."""
    station_id: int
    total_bookings: int
    active_bookings: int     # Confirmed + Checked-in
    completed_bookings: int
    utilization_rate: float  # % of bookings completed

    model_config = API_MODEL_CONFIG
