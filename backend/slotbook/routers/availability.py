# backend/slotbook/routers/availability.py
"""
Availability API (advisory read).

GET /availability - slot states and free ranges for staff/service/day
"""

from datetime import date
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..database import get_db
from ..schemas.availability import AvailabilityResponse
from ..services.slots import compute_availability, get_booking_config
from ..services.slots.errors import SlotEngineError
from .errors import to_http_exception

router = APIRouter(prefix="/availability", tags=["availability"])


@router.get("", response_model=AvailabilityResponse)
def get_availability(
    staff_id: int,
    service_id: int,
    target_date: date = Query(..., alias="date"),
    db: Session = Depends(get_db),
):
    """Free ranges for a service with a staff member on a day. Always computed fresh."""
    try:
        result = compute_availability(
            db=db,
            staff_id=staff_id,
            service_id=service_id,
            target_date=target_date,
            config=get_booking_config(),
        )
    except SlotEngineError as e:
        raise to_http_exception(e)

    return AvailabilityResponse(**result)
