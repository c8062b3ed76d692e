"""
backend/chargeslot/services/events.py

Event emitter: pushes events to Redis queues for notification consumers.

Two queues:
- events:p2p: instant delivery (booking notifications to one user)
- events:broadcast: throttled delivery (station-wide notices)

Emission happens after the database commit and never fails the request.
"""

import json
import time
import logging

from ..redis_client import redis_client

logger = logging.getLogger(__name__)

P2P_QUEUE = "events:p2p"
BROADCAST_QUEUE = "events:broadcast"


def _push(queue: str, event_type: str, payload: dict) -> None:
    event = {
        "type": event_type,
        **payload,
        "ts": int(time.time()),
    }
    try:
        redis_client.rpush(queue, json.dumps(event, default=str))
        logger.info(f"Event emitted: {event_type} → {queue}")
    except Exception as e:
        logger.error(f"Failed to emit event {event_type}: {e}")


def emit_event(event_type: str, payload: dict) -> None:
    """Emit a p2p event (instant delivery)."""
    _push(P2P_QUEUE, event_type, payload)


def emit_broadcast(event_type: str, payload: dict) -> None:
    """Emit a broadcast event (throttled delivery)."""
    _push(BROADCAST_QUEUE, event_type, payload)


def booking_payload(booking) -> dict:
    """Denormalized booking summary for notification consumers."""
    slot = booking.time_slot
    station = booking.station
    return {
        "booking_id": booking.id,
        "user_id": booking.user_id,
        "status": booking.status,
        "station": {"id": station.id, "name": station.name} if station else None,
        "slot": {
            "id": slot.id,
            "date": slot.date,
            "start_time": slot.start_time,
            "end_time": slot.end_time,
        } if slot else None,
    }
