# backend/slotbook/routers/appointments.py
"""
Appointment reservation API.

POST  /appointments                    - reserve (re-validates at commit)
GET   /appointments/{id}
PATCH /appointments/{id}/cancel
PATCH /appointments/{id}/complete
POST  /appointments/{id}/reschedule
"""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..models import Appointments as DBAppointments
from ..schemas.appointments import (
    AppointmentRead,
    RescheduleRequest,
    ReservationCreate,
    ReservationRead,
    StatusChangeResponse,
)
from ..services.slots import cancel, complete, reschedule, reserve
from ..services.slots.errors import AppointmentNotFound, ConflictError, SlotEngineError
from .errors import to_http_exception

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/appointments", tags=["appointments"])


@router.post("", response_model=ReservationRead, status_code=status.HTTP_201_CREATED)
def create_reservation(
    data: ReservationCreate,
    db: Session = Depends(get_db),
):
    try:
        token = reserve(
            db,
            staff_id=data.staff_id,
            service_id=data.service_id,
            client_id=data.client_id,
            target_date=data.date,
            start_slot=data.start_slot,
        )
    except ConflictError as e:
        logger.info(
            f"Reservation conflict staff={data.staff_id} date={data.date} "
            f"start_slot={data.start_slot}: {e}"
        )
        raise to_http_exception(e)
    except SlotEngineError as e:
        raise to_http_exception(e)

    return ReservationRead(**token.to_dict())


@router.get("/{id}", response_model=AppointmentRead)
def get_appointment(id: int, db: Session = Depends(get_db)):
    obj = db.get(DBAppointments, id)
    if not obj:
        raise to_http_exception(AppointmentNotFound(id))
    return obj


@router.patch("/{id}/cancel", response_model=StatusChangeResponse)
def cancel_appointment(id: int, db: Session = Depends(get_db)):
    try:
        appointment = cancel(db, id)
    except SlotEngineError as e:
        raise to_http_exception(e)
    return StatusChangeResponse(appointment_id=appointment.id, status=appointment.status)


@router.patch("/{id}/complete", response_model=StatusChangeResponse)
def complete_appointment(id: int, db: Session = Depends(get_db)):
    try:
        appointment = complete(db, id)
    except SlotEngineError as e:
        raise to_http_exception(e)
    return StatusChangeResponse(appointment_id=appointment.id, status=appointment.status)


@router.post("/{id}/reschedule", response_model=ReservationRead)
def reschedule_appointment(
    id: int,
    data: RescheduleRequest,
    db: Session = Depends(get_db),
):
    try:
        token = reschedule(db, id, target_date=data.date, start_slot=data.start_slot)
    except SlotEngineError as e:
        raise to_http_exception(e)
    return ReservationRead(**token.to_dict())
