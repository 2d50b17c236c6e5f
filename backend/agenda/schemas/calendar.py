from __future__ import annotations
from pydantic import BaseModel, Field
from datetime import date, datetime
from typing import Optional, List, Literal

from ..models.booking import BookingStatus


class BookingRefOut(BaseModel):
    booking_id: int
    patient_id: str
    patient_label: str
    status: BookingStatus
    start: datetime
    end: datetime
    is_overbooking: bool = False

# -----------------------------
# GIORNO
# -----------------------------

class DayRowOut(BaseModel):
    label: str
    start: datetime
    end: datetime
    past: bool
    has_slots: bool
    available_slots: int
    blocked: bool
    booking: Optional[BookingRefOut] = None


class DayViewOut(BaseModel):
    professional_id: str
    date: date
    rows: List[DayRowOut] = Field(default_factory=list)

# -----------------------------
# SETTIMANA
# -----------------------------

class WeekCellOut(BaseModel):
    kind: Literal["occupied", "empty"]
    past: bool
    blocked: bool = False
    booking_id: Optional[int] = None
    patient_label: Optional[str] = None
    status: Optional[BookingStatus] = None


class WeekColumnOut(BaseModel):
    date: date
    is_today: bool
    cells: List[Optional[WeekCellOut]] = Field(default_factory=list)


class WeekViewOut(BaseModel):
    professional_id: str
    week_start: date
    hours: List[str] = Field(default_factory=list)
    columns: List[WeekColumnOut] = Field(default_factory=list)

# -----------------------------
# MESE
# -----------------------------

class MonthPreviewOut(BaseModel):
    booking_id: int
    start: datetime
    label: str
    status: BookingStatus


class MonthCellOut(BaseModel):
    date: date
    in_month: bool
    is_today: bool
    booking_count: int
    available_slots: int
    previews: List[MonthPreviewOut] = Field(default_factory=list)
    more: int = 0


class MonthViewOut(BaseModel):
    professional_id: str
    month: date
    grid_start: date
    grid_end: date
    days: List[MonthCellOut] = Field(default_factory=list)
