"""
No-show checker.

Periodically moves Confirmed bookings whose slot has ended
(date + end_time <= now) to No-show, and emits booking_status_changed events.

Runs as an asyncio task in backend lifespan.
Uses the synchronous DB session (via asyncio.to_thread).
"""

import asyncio
import logging
from datetime import datetime

from ..config import settings
from ..database import SessionLocal
from .reservations import ReservationCoordinator

logger = logging.getLogger(__name__)


async def no_show_checker_loop(interval: int | None = None) -> None:
    """Periodic loop marking missed bookings as No-show."""
    if interval is None:
        interval = settings.no_show_check_interval
    logger.info("no_show_checker_loop started")

    try:
        while True:
            try:
                await asyncio.to_thread(check_no_shows)
            except asyncio.CancelledError:
                logger.info("no_show_checker_loop cancelled")
                raise
            except Exception:
                logger.exception("no_show_checker_loop error")

            await asyncio.sleep(interval)
    except asyncio.CancelledError:
        pass


def check_no_shows(now: datetime | None = None, session_factory=SessionLocal) -> int:
    """Mark missed bookings (synchronous). Returns the number changed."""
    db = session_factory()
    try:
        changed = ReservationCoordinator(db).mark_no_shows(now)
        if changed:
            logger.info(f"no-show checker: {changed} booking(s) marked No-show")
        return changed
    finally:
        db.close()
