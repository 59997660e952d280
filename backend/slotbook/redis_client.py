# backend/slotbook/redis_client.py
"""
Optional Redis connection.

Redis backs the per-staff-day reservation locks and the event queue when
``SLOTBOOK_REDIS_URL`` is set. Without it the engine runs single-process
with in-memory locks and no events.
"""

from redis import Redis

from .config import settings

redis_client: Redis | None = (
    Redis.from_url(settings.redis_url, decode_responses=True)
    if settings.redis_url
    else None
)
