"""
Generazione slot di agenda

Combina:
- fasce settimanali (AvailabilityTemplate) o giorni puntuali (DayOverride)
- blocchi di indisponibilità (ExceptionBlock)
- turni esistenti (Booking)

in una sequenza ordinata di slot a durata fissa, ciascuno AVAILABLE / OCCUPIED /
BLOCKED / PAST. Funzione pura: stessa fotografia + stesso `now` => stesso risultato.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from typing import Iterable, Sequence
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

from ..config import settings
from ..core.errors import InvalidIntervalError, InvalidRangeError
from ..models.availability import AvailabilityTemplate, DayOverride
from ..models.block import ExceptionBlock
from ..models.booking import Booking, ACTIVE_STATUSES
from ..models.slot import Slot, SlotState

logger = logging.getLogger(__name__)


def clinic_tz() -> ZoneInfo:
    return ZoneInfo(settings.TIMEZONE)


def js_weekday(d: date) -> int:
    """0 = domenica ... 6 = sabato (Python: 0 = lunedì)."""
    return (d.weekday() + 1) % 7


def local_midnight(d: date, tz: ZoneInfo) -> datetime:
    return datetime.combine(d, time(0, 0), tzinfo=tz)


def day_bounds_utc(start: date, end: date, tz: ZoneInfo) -> tuple[datetime, datetime]:
    """Istanti [mezzanotte locale di start, mezzanotte locale del giorno dopo end)."""
    lo = local_midnight(start, tz).astimezone(timezone.utc)
    hi = local_midnight(end + timedelta(days=1), tz).astimezone(timezone.utc)
    return lo, hi


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    return a_start < b_end and b_start < a_end


def check_range(range_start: date, range_end: date) -> None:
    if range_start > range_end:
        raise InvalidRangeError(
            f"Intervallo non valido: {range_start.isoformat()} è dopo {range_end.isoformat()}"
        )


# -----------------------------------------------------------------------------
# Fotografia delle tabelle per un professionista e un intervallo di date
# -----------------------------------------------------------------------------
@dataclass
class AgendaSnapshot:
    professional_id: str
    templates: list = field(default_factory=list)
    overrides: list = field(default_factory=list)
    blocks: list = field(default_factory=list)
    bookings: list = field(default_factory=list)  # tutti gli stati


def load_snapshot(
    db: Session, professional_id: str, range_start: date, range_end: date, tz: ZoneInfo | None = None
) -> AgendaSnapshot:
    tz = tz or clinic_tz()
    check_range(range_start, range_end)
    lo, hi = day_bounds_utc(range_start, range_end, tz)

    templates = (
        db.query(AvailabilityTemplate)
        .filter(
            AvailabilityTemplate.professional_id == professional_id,
            AvailabilityTemplate.active == True,
        )
        .all()
    )
    overrides = (
        db.query(DayOverride)
        .filter(
            DayOverride.professional_id == professional_id,
            DayOverride.date >= range_start,
            DayOverride.date <= range_end,
        )
        .all()
    )
    blocks = (
        db.query(ExceptionBlock)
        .filter(
            ExceptionBlock.professional_id == professional_id,
            ExceptionBlock.start_at < hi,
            ExceptionBlock.end_at > lo,
        )
        .all()
    )
    bookings = (
        db.query(Booking)
        .filter(
            Booking.professional_id == professional_id,
            Booking.start_at < hi,
            Booking.end_at > lo,
        )
        .order_by(Booking.start_at.asc(), Booking.id.asc())
        .all()
    )
    return AgendaSnapshot(professional_id, templates, overrides, blocks, bookings)


# -----------------------------------------------------------------------------
# Finestre orarie di un giorno
# -----------------------------------------------------------------------------
def _creation_rank(row) -> tuple:
    created = getattr(row, "created_at", None) or datetime.min.replace(tzinfo=timezone.utc)
    return (created, row.id or 0)


def template_applies(t, d: date) -> bool:
    if not t.active or t.day_of_week != js_weekday(d):
        return False
    if t.valid_from and d < t.valid_from:
        return False
    if t.valid_to and d > t.valid_to:
        return False
    return True


def windows_for_date(templates: Iterable, overrides: Iterable, d: date) -> list:
    """
    Righe che definiscono l'orario del giorno `d`.
    Un giorno puntuale sostituisce interamente le fasce settimanali.
    """
    day_overrides = [o for o in overrides if o.date == d]
    if day_overrides:
        return day_overrides
    return [t for t in templates if template_applies(t, d)]


def _window_candidates(row, d: date, tz: ZoneInfo) -> list[tuple[datetime, datetime, tuple]]:
    start_dt = datetime.combine(d, row.start_time, tzinfo=tz)
    end_dt = datetime.combine(d, row.end_time, tzinfo=tz)
    step = timedelta(minutes=row.slot_duration_minutes)
    rank = _creation_rank(row)

    out = []
    cur = start_dt
    # l'ultimo slot parziale non si offre mai
    while cur + step <= end_dt:
        out.append((cur.astimezone(timezone.utc), (cur + step).astimezone(timezone.utc), rank))
        cur += step
    return out


def _resolve_conflicts(candidates: list[tuple[datetime, datetime, tuple]]) -> list[tuple[datetime, datetime]]:
    """
    Fasce sovrapposte nello stesso giorno: vince la fascia creata per ultima.
    Stesso inizio => un solo slot; qualunque sovrapposizione residua viene scartata.
    """
    accepted: list[tuple[datetime, datetime]] = []
    for start, end, _rank in sorted(candidates, key=lambda c: c[2], reverse=True):
        if any(overlaps(start, end, s, e) for s, e in accepted):
            continue
        accepted.append((start, end))
    accepted.sort(key=lambda c: c[0])
    return accepted


def _merge_intervals(intervals: list[tuple[datetime, datetime]]) -> list[tuple[datetime, datetime]]:
    """Unisce intervalli adiacenti o sovrapposti (unione dei blocchi)."""
    if not intervals:
        return []
    intervals = sorted(intervals, key=lambda x: x[0])
    merged = [intervals[0]]
    for start, end in intervals[1:]:
        last_start, last_end = merged[-1]
        if start <= last_end:
            if end > last_end:
                merged[-1] = (last_start, end)
        else:
            merged.append((start, end))
    return merged


# -----------------------------------------------------------------------------
# Algoritmo
# -----------------------------------------------------------------------------
def build_slots(
    professional_id: str,
    templates: Sequence,
    overrides: Sequence,
    blocks: Sequence,
    bookings: Sequence,
    range_start: date,
    range_end: date,
    now: datetime,
    tz: ZoneInfo | None = None,
) -> list[Slot]:
    check_range(range_start, range_end)
    tz = tz or clinic_tz()

    blocked = _merge_intervals(
        [(b.start_at, b.end_at) for b in blocks if b.professional_id == professional_id]
    )
    # il turno creato per primo vince in caso di sovrapposizioni (dato incoerente)
    active = sorted(
        (
            b
            for b in bookings
            if b.professional_id == professional_id and b.status in ACTIVE_STATUSES
        ),
        key=_creation_rank,
    )
    templates = [t for t in templates if t.professional_id == professional_id]
    overrides = [o for o in overrides if o.professional_id == professional_id]

    slots: list[Slot] = []
    d = range_start
    while d <= range_end:
        candidates = []
        for row in windows_for_date(templates, overrides, d):
            candidates.extend(_window_candidates(row, d, tz))

        for start, end in _resolve_conflicts(candidates):
            is_past = end <= now
            booking = next(
                (b for b in active if overlaps(start, end, b.start_at, b.end_at)), None
            )
            if booking is not None:
                state = SlotState.OCCUPIED
            elif any(overlaps(start, end, bs, be) for bs, be in blocked):
                state = SlotState.BLOCKED
            elif is_past:
                state = SlotState.PAST
            else:
                state = SlotState.AVAILABLE

            slots.append(
                Slot(
                    professional_id=professional_id,
                    start=start,
                    end=end,
                    state=state,
                    past=is_past,
                    booking_id=booking.id if booking is not None else None,
                )
            )
        d += timedelta(days=1)

    slots.sort(key=lambda s: s.start)
    return slots


def slots_from_snapshot(
    snap: AgendaSnapshot, range_start: date, range_end: date, now: datetime, tz: ZoneInfo | None = None
) -> list[Slot]:
    return build_slots(
        snap.professional_id,
        snap.templates,
        snap.overrides,
        snap.blocks,
        snap.bookings,
        range_start,
        range_end,
        now,
        tz,
    )


def generate_slots(
    db: Session, professional_id: str, range_start: date, range_end: date, now: datetime
) -> list[Slot]:
    """
    Slot del professionista per ogni data in [range_start, range_end].
    Professionista sconosciuto o senza agenda => lista vuota.
    """
    tz = clinic_tz()
    snap = load_snapshot(db, professional_id, range_start, range_end, tz)
    slots = slots_from_snapshot(snap, range_start, range_end, now, tz)
    logger.debug(
        "generate_slots %s %s..%s -> %d slot", professional_id, range_start, range_end, len(slots)
    )
    return slots


def is_interval_available(
    db: Session, professional_id: str, start: datetime, end: datetime, now: datetime
) -> bool:
    """
    True se [start, end) è interamente coperto da slot AVAILABLE contigui.
    Non solleva per intervalli fuori agenda: semplicemente non è disponibile.
    """
    if start.tzinfo is None or end.tzinfo is None:
        raise InvalidIntervalError("Inizio e fine devono avere il fuso orario")
    if start >= end:
        return False
    tz = clinic_tz()
    first = start.astimezone(tz).date()
    last = (end - timedelta(microseconds=1)).astimezone(tz).date()

    touching = [
        s
        for s in generate_slots(db, professional_id, first, last, now)
        if overlaps(s.start, s.end, start, end)
    ]
    if not touching or any(s.state != SlotState.AVAILABLE for s in touching):
        return False

    covered = start
    for s in touching:
        if s.start > covered:
            return False  # buco tra due slot
        covered = max(covered, s.end)
    return covered >= end
