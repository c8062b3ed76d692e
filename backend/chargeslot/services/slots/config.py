# backend/chargeslot/services/slots/config.py
"""
Slot grid configuration and time-of-day helpers.
"""

import re
from dataclasses import dataclass
from functools import lru_cache

from ...config import settings
from ...errors import InvalidOperatingHoursError

MINUTES_PER_DAY = 24 * 60

_TIME_24H = re.compile(r"^(\d{1,2}):(\d{2})$")
_TIME_12H = re.compile(r"^(\d{1,2}):(\d{2})\s*([AaPp][Mm])$")


@dataclass(frozen=True)
class SlotConfig:
    """
    Configuration for slot generation.

    Attributes:
        horizon_days: How many calendar dates ahead slots are materialized
        slot_minutes: Fixed slot width in minutes (15/30/60)
    """
    horizon_days: int = 30
    slot_minutes: int = 60

    def __post_init__(self):
        """Validate configuration."""
        if self.slot_minutes not in (15, 30, 60):
            raise ValueError(f"slot_minutes must be 15, 30, or 60, got {self.slot_minutes}")
        if self.horizon_days < 1:
            raise ValueError(f"horizon_days must be positive, got {self.horizon_days}")


@lru_cache
def get_slot_config() -> SlotConfig:
    """Get slot configuration (singleton, built from settings)."""
    return SlotConfig(
        horizon_days=settings.horizon_days,
        slot_minutes=settings.slot_minutes,
    )


def time_str_to_minutes(value: str) -> int:
    """
    Parse a wall-clock time into minutes since midnight.

    Accepts "HH:MM" (24h, "24:00" allowed as end of day) and "hh:MM AM/PM".
    Raises InvalidOperatingHoursError on anything else.
    """
    if not isinstance(value, str):
        raise InvalidOperatingHoursError(f"Invalid time of day: {value!r}")

    raw = value.strip()

    match = _TIME_12H.match(raw)
    if match:
        hour, minute, meridiem = int(match.group(1)), int(match.group(2)), match.group(3).upper()
        if not 1 <= hour <= 12 or minute > 59:
            raise InvalidOperatingHoursError(f"Invalid time of day: {value!r}")
        hour = hour % 12
        if meridiem == "PM":
            hour += 12
        return hour * 60 + minute

    match = _TIME_24H.match(raw)
    if match:
        hour, minute = int(match.group(1)), int(match.group(2))
        if minute > 59 or hour > 24 or (hour == 24 and minute != 0):
            raise InvalidOperatingHoursError(f"Invalid time of day: {value!r}")
        return hour * 60 + minute

    raise InvalidOperatingHoursError(f"Invalid time of day: {value!r}")


def minutes_to_time_str(minutes: int) -> str:
    """Convert minutes since midnight to "HH:MM"."""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def normalize_time_str(value: str) -> str:
    """Canonical "HH:MM" form of any accepted time-of-day string."""
    return minutes_to_time_str(time_str_to_minutes(value))


def validate_operating_hours(opening_time: str, closing_time: str) -> tuple[int, int]:
    """
    Parse and check an operating-hours window.

    Returns:
        (open_min, close_min), minutes since midnight
    """
    open_min = time_str_to_minutes(opening_time)
    close_min = time_str_to_minutes(closing_time)

    if open_min >= MINUTES_PER_DAY:
        raise InvalidOperatingHoursError(f"Opening time {opening_time!r} is past the end of the day")
    if open_min >= close_min:
        raise InvalidOperatingHoursError(
            f"Opening time {opening_time} must be before closing time {closing_time}"
        )
    return open_min, close_min
