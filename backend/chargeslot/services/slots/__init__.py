# backend/chargeslot/services/slots/__init__.py
"""
Time slot module.

Generation: SlotGenerator materializes the horizon (upsert, never delete)
Capacity:   SlotStore.try_reserve / try_release (atomic conditional updates)
"""

from .config import SlotConfig, get_slot_config
from .generator import SlotGenerator, build_day_slots
from .store import SLOT_AVAILABLE, SLOT_BOOKED, SlotStore

__all__ = [
    "SlotConfig",
    "get_slot_config",
    "SlotGenerator",
    "build_day_slots",
    "SlotStore",
    "SLOT_AVAILABLE",
    "SLOT_BOOKED",
]
