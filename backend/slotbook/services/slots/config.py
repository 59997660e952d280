"""
Booking configuration for slots calculation.
"""

from dataclasses import dataclass
from functools import lru_cache

from ...config import settings

SLOT_MINUTES = 30
SLOTS_PER_DAY = (24 * 60) // SLOT_MINUTES  # 48


@dataclass(frozen=True)
class BookingConfig:
    """
    Configuration for booking/slots system.

    Attributes:
        min_advance_minutes: Minimum minutes between now and a bookable slot start
        lock_timeout_seconds: How long a reservation waits for its staff/day lock
    """
    min_advance_minutes: int = 0
    lock_timeout_seconds: float = 10.0

    def __post_init__(self):
        """Validate configuration."""
        if self.min_advance_minutes < 0:
            raise ValueError(f"min_advance_minutes must be >= 0, got {self.min_advance_minutes}")
        if self.lock_timeout_seconds <= 0:
            raise ValueError(f"lock_timeout_seconds must be > 0, got {self.lock_timeout_seconds}")

    @property
    def slot_minutes(self) -> int:
        return SLOT_MINUTES

    @property
    def slots_per_day(self) -> int:
        return SLOTS_PER_DAY


@lru_cache
def get_booking_config() -> BookingConfig:
    """Get booking configuration (singleton)."""
    return BookingConfig(
        min_advance_minutes=settings.min_advance_minutes,
        lock_timeout_seconds=settings.lock_timeout_seconds,
    )
