"""
backend/slotbook/services/events.py

Event emitter: pushes appointment write events to a Redis queue.

Queue:
- events:p2p: consumed by notifiers and by any availability cache living
  outside the engine (which must drop its entries for the staff/date).

Without Redis configured events are only logged.
"""

import json
import time
import logging

from ..redis_client import redis_client

logger = logging.getLogger(__name__)

EVENTS_QUEUE = "events:p2p"


def emit_event(event_type: str, payload: dict) -> None:
    """
    Emit an event (instant delivery).

    Never raises: the appointment write has already been committed.
    """
    event = {
        "type": event_type,
        **payload,
        "ts": int(time.time()),
    }
    if redis_client is None:
        logger.debug(f"Event {event_type} not queued (no Redis): {payload}")
        return
    try:
        redis_client.rpush(EVENTS_QUEUE, json.dumps(event, default=str))
        logger.info(f"Event emitted: {event_type} → {EVENTS_QUEUE}")
    except Exception as e:
        logger.error(f"Failed to emit event {event_type}: {e}")
