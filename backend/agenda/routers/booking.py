from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from datetime import date, datetime
from typing import List

from ..deps import get_db, get_now
from ..models.booking import BookingStatus
from ..schemas.booking import (
    AvailabilityOut,
    BookingCancelIn,
    BookingCreateIn,
    BookingOut,
    BookingRescheduleIn,
    SlotOut,
)
from ..services import bookings as svc
from ..services.slots import generate_slots, is_interval_available


router = APIRouter(tags=["booking"])

# -----------------------------------------------------------------------------
# SLOT / DISPONIBILITÀ
# -----------------------------------------------------------------------------
@router.get("/professionals/{professional_id}/slots", response_model=List[SlotOut])
def list_slots(
    professional_id: str,
    start: date,
    end: date,
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    # Slot è un dataclass: passando dallo schema si porta dietro duration_minutes
    return [SlotOut.model_validate(s) for s in generate_slots(db, professional_id, start, end, now)]


@router.get("/professionals/{professional_id}/availability", response_model=AvailabilityOut)
def check_availability(
    professional_id: str,
    start: datetime,
    end: datetime,
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    return AvailabilityOut(
        professional_id=professional_id,
        start=start,
        end=end,
        available=is_interval_available(db, professional_id, start, end, now),
    )

# -----------------------------------------------------------------------------
# TURNI: letture
# -----------------------------------------------------------------------------
@router.get("/professionals/{professional_id}/bookings", response_model=List[BookingOut])
def list_professional_bookings(
    professional_id: str,
    start: date,
    end: date,
    status: List[BookingStatus] | None = Query(None),
    db: Session = Depends(get_db),
):
    return svc.list_bookings(db, professional_id, start, end, statuses=status)


@router.get("/patients/{patient_id}/bookings", response_model=List[BookingOut])
def list_patient_bookings(
    patient_id: str,
    start: date | None = None,
    end: date | None = None,
    db: Session = Depends(get_db),
):
    return svc.list_patient_bookings(db, patient_id, start, end)


@router.get("/bookings/{booking_id}", response_model=BookingOut)
def get_booking(booking_id: int, db: Session = Depends(get_db)):
    return svc.get_booking(db, booking_id)

# -----------------------------------------------------------------------------
# TURNI: ciclo di vita
# -----------------------------------------------------------------------------
@router.post("/bookings", response_model=BookingOut, status_code=201)
def create_booking(
    payload: BookingCreateIn,
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    return svc.create_booking(
        db,
        professional_id=payload.professional_id,
        patient_id=payload.patient_id,
        start=payload.start,
        end=payload.end,
        now=now,
        initial_status=payload.status,
        reason=payload.reason,
        is_overbooking=payload.is_overbooking,
    )


@router.put("/bookings/{booking_id}", response_model=BookingOut)
def reschedule_booking(
    booking_id: int,
    payload: BookingRescheduleIn,
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    return svc.reschedule_booking(
        db, booking_id, now=now, start=payload.start, end=payload.end, reason=payload.reason
    )


@router.patch("/bookings/{booking_id}/confirm", response_model=BookingOut)
def confirm_booking(booking_id: int, db: Session = Depends(get_db)):
    return svc.confirm_booking(db, booking_id)


@router.patch("/bookings/{booking_id}/cancel", response_model=BookingOut)
def cancel_booking(booking_id: int, payload: BookingCancelIn, db: Session = Depends(get_db)):
    return svc.cancel_booking(db, booking_id, payload.cancelled_by, payload.reason)


@router.patch("/bookings/{booking_id}/complete", response_model=BookingOut)
def complete_booking(booking_id: int, db: Session = Depends(get_db)):
    return svc.complete_booking(db, booking_id)


@router.patch("/bookings/{booking_id}/no-show", response_model=BookingOut)
def mark_no_show(
    booking_id: int,
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    return svc.mark_no_show(db, booking_id, now)
