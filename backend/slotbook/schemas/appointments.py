# backend/slotbook/schemas/appointments.py

from datetime import date as date_type
from typing import Optional
from pydantic import BaseModel, Field


class ReservationCreate(BaseModel):
    staff_id: int
    service_id: int
    client_id: Optional[int] = None
    date: date_type
    start_slot: int = Field(description="First slot index (0-47)")


class RescheduleRequest(BaseModel):
    date: date_type
    start_slot: int = Field(description="First slot index (0-47)")


class ReservationRead(BaseModel):
    appointment_id: int
    staff_id: int
    service_id: int
    date: date_type
    start_slot: int
    end_slot: int
    slots_used: int
    start_time: str
    end_time: str
    status: str

    model_config = {"from_attributes": True}


class AppointmentRead(BaseModel):
    id: int

    staff_id: int
    service_id: int
    client_id: Optional[int] = None

    date: Optional[date_type] = None
    start_slot: Optional[int] = None
    end_slot: Optional[int] = None
    slots_used: Optional[int] = None
    status: str

    scheduled_for: Optional[str] = None
    duration_minutes: Optional[int] = None
    slot_details: Optional[dict] = None

    model_config = {"from_attributes": True}


class StatusChangeResponse(BaseModel):
    ok: bool = True
    appointment_id: int
    status: str
