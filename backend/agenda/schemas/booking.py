from __future__ import annotations
from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional

from ..models.booking import BookingStatus
from ..models.slot import SlotState

# -----------------------------
# SLOT (generati, non salvati)
# -----------------------------

class SlotOut(BaseModel):
    professional_id: str
    start: datetime
    end: datetime
    state: SlotState
    past: bool
    booking_id: Optional[int] = None
    duration_minutes: int
    class Config:
        from_attributes = True  # pydantic v2


class AvailabilityOut(BaseModel):
    """Risposta al controllo di disponibilità di un intervallo."""
    professional_id: str
    start: datetime
    end: datetime
    available: bool

# -----------------------------
# BOOKING (turni)
# -----------------------------

class BookingCreateIn(BaseModel):
    professional_id: str = Field(..., min_length=1, max_length=64)
    patient_id: str = Field(..., min_length=1, max_length=64)
    start: datetime
    end: datetime
    # la recepción può crearlo già confermato
    status: BookingStatus = BookingStatus.PENDING
    reason: str = ""
    is_overbooking: bool = False


class BookingRescheduleIn(BaseModel):
    """Solo i campi inviati cambiano."""
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    reason: Optional[str] = None


class BookingCancelIn(BaseModel):
    cancelled_by: str = Field(..., min_length=1, max_length=64)
    reason: str = ""


class BookingOut(BaseModel):
    id: int
    professional_id: str
    patient_id: str
    start_at: datetime
    end_at: datetime
    status: BookingStatus
    is_overbooking: bool

    reason: Optional[str] = None
    cancelled_by: Optional[str] = None
    cancellation_reason: Optional[str] = None

    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
