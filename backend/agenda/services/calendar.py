"""
Viste calendario (giorno / settimana / mese) sopra gli slot generati.

Proiezioni pure: ogni vista carica una sola fotografia dell'agenda per il suo
intervallo e non scrive nulla, quindi si può ricalcolare a ogni navigazione.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

from ..config import settings
from ..models.booking import Booking, BookingStatus, ACTIVE_STATUSES
from ..models.slot import Slot, SlotState
from .patients import PatientDirectory, truncate_label
from .slots import AgendaSnapshot, clinic_tz, load_snapshot, overlaps, slots_from_snapshot

logger = logging.getLogger(__name__)


@dataclass
class BookingRef:
    booking_id: int
    patient_id: str
    patient_label: str
    status: BookingStatus
    start: datetime
    end: datetime
    is_overbooking: bool = False


@dataclass
class DayRow:
    label: str  # "HH:MM"
    start: datetime
    end: datetime
    past: bool
    has_slots: bool
    available_slots: int
    blocked: bool
    booking: BookingRef | None = None


@dataclass
class DayView:
    professional_id: str
    date: date
    rows: list[DayRow] = field(default_factory=list)


@dataclass
class WeekCell:
    kind: str  # "occupied" | "empty"
    past: bool
    blocked: bool = False
    booking_id: int | None = None
    patient_label: str | None = None
    status: BookingStatus | None = None


@dataclass
class WeekColumn:
    date: date
    is_today: bool
    cells: list[WeekCell | None] = field(default_factory=list)  # None = fuori orario


@dataclass
class WeekView:
    professional_id: str
    week_start: date
    hours: list[str] = field(default_factory=list)
    columns: list[WeekColumn] = field(default_factory=list)


@dataclass
class MonthPreview:
    booking_id: int
    start: datetime
    label: str
    status: BookingStatus


@dataclass
class MonthCell:
    date: date
    in_month: bool
    is_today: bool
    booking_count: int
    available_slots: int
    previews: list[MonthPreview] = field(default_factory=list)
    more: int = 0


@dataclass
class MonthView:
    professional_id: str
    month: date  # primo giorno del mese
    grid_start: date
    grid_end: date
    days: list[MonthCell] = field(default_factory=list)


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------
def monday_of(d: date) -> date:
    return d - timedelta(days=d.weekday())


def _display_hours() -> list[int]:
    return list(range(settings.DAY_VIEW_START_HOUR, settings.DAY_VIEW_END_HOUR))


def _hour_bounds(d: date, hour: int, tz: ZoneInfo) -> tuple[datetime, datetime]:
    start = datetime.combine(d, time(hour, 0), tzinfo=tz)
    return start.astimezone(timezone.utc), (start + timedelta(hours=1)).astimezone(timezone.utc)


def _local_date(dt: datetime, tz: ZoneInfo) -> date:
    return dt.astimezone(tz).date()


def _ref(b: Booking, directory: PatientDirectory) -> BookingRef:
    return BookingRef(
        booking_id=b.id,
        patient_id=b.patient_id,
        patient_label=directory.label(b.patient_id),
        status=b.status,
        start=b.start_at,
        end=b.end_at,
        is_overbooking=bool(b.is_overbooking),
    )


def _row_booking(row_slots: list[Slot], row_start: datetime, row_end: datetime, snap: AgendaSnapshot):
    """
    Un solo turno per riga: quello del primo sotto-slot occupato dell'ora;
    altrimenti il primo turno attivo che inizia nell'ora (es. sobreturno fuori agenda).
    """
    by_id = {b.id: b for b in snap.bookings}
    for s in row_slots:
        if s.state == SlotState.OCCUPIED and s.booking_id in by_id:
            return by_id[s.booking_id]
    for b in snap.bookings:
        if b.status in ACTIVE_STATUSES and row_start <= b.start_at < row_end:
            return b
    return None


def _rows_for_day(d: date, slots: list[Slot], snap: AgendaSnapshot, tz: ZoneInfo):
    """Genera (label, start, end, slot_della_riga, turno) per le ore visualizzate."""
    for hour in _display_hours():
        row_start, row_end = _hour_bounds(d, hour, tz)
        row_slots = [s for s in slots if overlaps(s.start, s.end, row_start, row_end)]
        yield f"{hour:02d}:00", row_start, row_end, row_slots, _row_booking(row_slots, row_start, row_end, snap)


# -----------------------------------------------------------------------------
# Viste
# -----------------------------------------------------------------------------
def build_day_view(
    snap: AgendaSnapshot, d: date, now: datetime, directory: PatientDirectory, tz: ZoneInfo | None = None
) -> DayView:
    tz = tz or clinic_tz()
    slots = slots_from_snapshot(snap, d, d, now, tz)
    view = DayView(professional_id=snap.professional_id, date=d)

    for label, row_start, row_end, row_slots, booking in _rows_for_day(d, slots, snap, tz):
        view.rows.append(
            DayRow(
                label=label,
                start=row_start,
                end=row_end,
                past=row_end <= now,
                has_slots=bool(row_slots),
                available_slots=sum(1 for s in row_slots if s.state == SlotState.AVAILABLE),
                blocked=bool(row_slots) and all(s.state == SlotState.BLOCKED for s in row_slots),
                booking=_ref(booking, directory) if booking is not None else None,
            )
        )
    return view


def day_view(
    db: Session, professional_id: str, d: date, now: datetime, directory: PatientDirectory | None = None
) -> DayView:
    tz = clinic_tz()
    snap = load_snapshot(db, professional_id, d, d, tz)
    return build_day_view(snap, d, now, directory or PatientDirectory(), tz)


def build_week_view(
    snap: AgendaSnapshot,
    week_start: date,
    now: datetime,
    directory: PatientDirectory,
    include_sunday: bool,
    tz: ZoneInfo | None = None,
) -> WeekView:
    tz = tz or clinic_tz()
    monday = monday_of(week_start)
    days = [monday + timedelta(days=i) for i in range(7 if include_sunday else 6)]
    slots = slots_from_snapshot(snap, days[0], days[-1], now, tz)
    today = _local_date(now, tz)

    view = WeekView(
        professional_id=snap.professional_id,
        week_start=monday,
        hours=[f"{h:02d}:00" for h in _display_hours()],
    )
    for d in days:
        day_slots = [s for s in slots if _local_date(s.start, tz) == d]
        column = WeekColumn(date=d, is_today=(d == today))
        for _label, row_start, row_end, row_slots, booking in _rows_for_day(d, day_slots, snap, tz):
            past = row_end <= now
            if booking is not None:
                column.cells.append(
                    WeekCell(
                        kind="occupied",
                        past=past,
                        booking_id=booking.id,
                        patient_label=truncate_label(
                            directory.label(booking.patient_id), settings.WEEK_LABEL_MAX_CHARS
                        ),
                        status=booking.status,
                    )
                )
            elif row_slots:
                column.cells.append(
                    WeekCell(
                        kind="empty",
                        past=past,
                        blocked=all(s.state == SlotState.BLOCKED for s in row_slots),
                    )
                )
            else:
                column.cells.append(None)
        view.columns.append(column)
    return view


def week_view(
    db: Session,
    professional_id: str,
    week_start: date,
    now: datetime,
    include_sunday: bool | None = None,
    directory: PatientDirectory | None = None,
) -> WeekView:
    if include_sunday is None:
        include_sunday = settings.WEEK_INCLUDE_SUNDAY
    tz = clinic_tz()
    monday = monday_of(week_start)
    last = monday + timedelta(days=6 if include_sunday else 5)
    snap = load_snapshot(db, professional_id, monday, last, tz)
    return build_week_view(snap, monday, now, directory or PatientDirectory(), include_sunday, tz)


def month_grid(anchor: date) -> tuple[date, date, date]:
    """(primo del mese, lunedì di inizio griglia, domenica di fine griglia)."""
    first = anchor.replace(day=1)
    next_first = (first + timedelta(days=32)).replace(day=1)
    last = next_first - timedelta(days=1)
    return first, monday_of(first), monday_of(last) + timedelta(days=6)


def build_month_view(
    snap: AgendaSnapshot, anchor: date, now: datetime, directory: PatientDirectory, tz: ZoneInfo | None = None
) -> MonthView:
    tz = tz or clinic_tz()
    first, grid_start, grid_end = month_grid(anchor)
    slots = slots_from_snapshot(snap, grid_start, grid_end, now, tz)
    today = _local_date(now, tz)
    limit = settings.MONTH_PREVIEW_LIMIT

    available_by_day: dict[date, int] = {}
    for s in slots:
        if s.state == SlotState.AVAILABLE:
            d = _local_date(s.start, tz)
            available_by_day[d] = available_by_day.get(d, 0) + 1

    bookings_by_day: dict[date, list[Booking]] = {}
    for b in sorted(snap.bookings, key=lambda b: (b.start_at, b.id)):
        if b.status == BookingStatus.CANCELLED:
            continue
        bookings_by_day.setdefault(_local_date(b.start_at, tz), []).append(b)

    view = MonthView(
        professional_id=snap.professional_id, month=first, grid_start=grid_start, grid_end=grid_end
    )
    d = grid_start
    while d <= grid_end:
        day_bookings = bookings_by_day.get(d, [])
        previews = [
            MonthPreview(
                booking_id=b.id, start=b.start_at, label=directory.label(b.patient_id), status=b.status
            )
            for b in day_bookings[:limit]
        ]
        view.days.append(
            MonthCell(
                date=d,
                in_month=(d.month == first.month and d.year == first.year),
                is_today=(d == today),
                booking_count=len(day_bookings),
                available_slots=available_by_day.get(d, 0),
                previews=previews,
                more=len(day_bookings) - len(previews),
            )
        )
        d += timedelta(days=1)
    logger.debug(
        "month_view %s %s: %d giorni, %d turni", snap.professional_id, first, len(view.days),
        sum(c.booking_count for c in view.days),
    )
    return view


def month_view(
    db: Session, professional_id: str, anchor: date, now: datetime, directory: PatientDirectory | None = None
) -> MonthView:
    tz = clinic_tz()
    _first, grid_start, grid_end = month_grid(anchor)
    snap = load_snapshot(db, professional_id, grid_start, grid_end, tz)
    return build_month_view(snap, anchor, now, directory or PatientDirectory(), tz)
