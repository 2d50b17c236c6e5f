from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from datetime import date, datetime

from ..deps import get_db, get_now, get_patient_directory
from ..schemas.calendar import DayViewOut, MonthViewOut, WeekViewOut
from ..services import calendar as cal
from ..services.patients import PatientDirectory
from ..services.slots import clinic_tz


router = APIRouter(prefix="/professionals/{professional_id}/calendar", tags=["calendar"])


def _today(now: datetime) -> date:
    return now.astimezone(clinic_tz()).date()


@router.get("/day", response_model=DayViewOut)
def day(
    professional_id: str,
    date: date | None = None,
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
    directory: PatientDirectory = Depends(get_patient_directory),
):
    return cal.day_view(db, professional_id, date or _today(now), now, directory)


@router.get("/week", response_model=WeekViewOut)
def week(
    professional_id: str,
    start: date | None = None,
    include_sunday: bool | None = None,
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
    directory: PatientDirectory = Depends(get_patient_directory),
):
    return cal.week_view(
        db, professional_id, start or _today(now), now, include_sunday, directory
    )


@router.get("/month", response_model=MonthViewOut)
def month(
    professional_id: str,
    anchor: date | None = None,
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
    directory: PatientDirectory = Depends(get_patient_directory),
):
    return cal.month_view(db, professional_id, anchor or _today(now), now, directory)
