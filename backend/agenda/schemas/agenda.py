from __future__ import annotations
from pydantic import BaseModel, Field
from datetime import date, datetime, time
from typing import Optional, List

DateType = date

# -----------------------------
# FASCE SETTIMANALI
# -----------------------------

class TemplateIn(BaseModel):
    professional_id: str = Field(..., min_length=1, max_length=64)
    day_of_week: int  # 0 = domenica ... 6 = sabato
    start_time: time
    end_time: time
    slot_duration_minutes: int = 30
    active: bool = True
    valid_from: Optional[date] = None
    valid_to: Optional[date] = None


class TemplateUpdateIn(BaseModel):
    """Solo i campi inviati vengono modificati."""
    day_of_week: Optional[int] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    slot_duration_minutes: Optional[int] = None
    active: Optional[bool] = None
    valid_from: Optional[date] = None
    valid_to: Optional[date] = None


class TemplateOut(BaseModel):
    id: int
    professional_id: str
    day_of_week: int
    start_time: time
    end_time: time
    slot_duration_minutes: int
    active: bool
    valid_from: Optional[date] = None
    valid_to: Optional[date] = None
    created_at: datetime
    class Config:
        from_attributes = True


class WeekScheduleEntry(BaseModel):
    day_of_week: int
    start_time: time
    end_time: time
    slot_duration_minutes: int = 30


class WeekScheduleIn(BaseModel):
    """Orario completo della settimana: si inviano solo i giorni lavorativi."""
    from_date: date
    entries: List[WeekScheduleEntry] = Field(default_factory=list)

# -----------------------------
# GIORNI PUNTUALI
# -----------------------------

class OverrideIn(BaseModel):
    professional_id: str = Field(..., min_length=1, max_length=64)
    date: date
    start_time: time
    end_time: time
    slot_duration_minutes: int = 30
    notes: Optional[str] = None


class OverrideUpdateIn(BaseModel):
    # il campo `date` con default oscurerebbe il tipo: si usa l'alias DateType
    date: Optional[DateType] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    slot_duration_minutes: Optional[int] = None
    notes: Optional[str] = None


class OverrideOut(BaseModel):
    id: int
    professional_id: str
    date: date
    start_time: time
    end_time: time
    slot_duration_minutes: int
    notes: Optional[str] = None
    created_at: datetime
    class Config:
        from_attributes = True

# -----------------------------
# BLOCCHI
# -----------------------------

class BlockIn(BaseModel):
    professional_id: str = Field(..., min_length=1, max_length=64)
    start_at: datetime
    end_at: datetime
    reason: Optional[str] = None


class BlockUpdateIn(BaseModel):
    start_at: Optional[datetime] = None
    end_at: Optional[datetime] = None
    reason: Optional[str] = None


class BlockOut(BaseModel):
    id: int
    professional_id: str
    start_at: datetime
    end_at: datetime
    reason: Optional[str] = None
    created_at: datetime
    class Config:
        from_attributes = True
