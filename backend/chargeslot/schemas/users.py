# backend/chargeslot/schemas/users.py

from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel, Field

from .base import API_MODEL_CONFIG


class UserCreate(BaseModel):
    name: str
    email: Optional[str] = None
    role: Literal["user", "admin"] = "user"
    vehicle_model: Optional[str] = None
    battery_capacity_kwh: Optional[float] = Field(None, gt=0)

    model_config = API_MODEL_CONFIG


class UserRead(BaseModel):
    id: int
    name: str
    email: Optional[str] = None
    role: str
    vehicle_model: Optional[str] = None
    battery_capacity_kwh: Optional[float] = None
    created_at: Optional[datetime] = None

    model_config = API_MODEL_CONFIG


class UserSummary(BaseModel):
    """User fields denormalized into booking responses."""
    id: int
    name: str
    email: Optional[str] = None

    model_config = API_MODEL_CONFIG


class UserUpdate(BaseModel):
    """Profile fields a user may change."""
    name: Optional[str] = None
    email: Optional[str] = None
    vehicle_model: Optional[str] = None
    battery_capacity_kwh: Optional[float] = Field(None, gt=0)

    model_config = API_MODEL_CONFIG
