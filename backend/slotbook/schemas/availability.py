# backend/slotbook/schemas/availability.py
"""
Pydantic schemas for availability API.
"""

from datetime import date
from pydantic import BaseModel, Field


class SlotStateRead(BaseModel):
    """State of one candidate slot of the day."""
    slot_index: int
    start_time: str  # "HH:MM"
    end_time: str    # "HH:MM", "24:00" for the last slot
    capacity: int
    booked: int
    available: int
    past: bool = False
    blocked: bool = False

    model_config = {"from_attributes": True}


class SlotOccupancyRead(BaseModel):
    """Candidate slots of the day holding at least one booking."""
    occupied_count: int
    occupancy_percentage: float


class SlotRangeRead(BaseModel):
    """A reservable range [start_slot, end_slot)."""
    start_slot: int
    end_slot: int
    slots_used: int
    start_time: str
    end_time: str

    model_config = {"from_attributes": True}


class AvailabilityResponse(BaseModel):
    """Advisory availability for a staff member / service / day."""
    staff_id: int
    service_id: int
    date: date
    is_working: bool
    slots_needed: int = Field(description="Consecutive 30-minute slots the service occupies")
    all_slots: list[SlotStateRead]
    free_ranges: list[SlotRangeRead]
    occupancy: SlotOccupancyRead

    model_config = {"from_attributes": True}
