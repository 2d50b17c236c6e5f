"""
Configurazione agenda: fasce settimanali, giorni puntuali, blocchi di indisponibilità.
"""
from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta
from typing import Iterable

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..core.errors import InvalidIntervalError, NotFoundError
from ..models.availability import AvailabilityTemplate, DayOverride
from ..models.block import ExceptionBlock
from .slots import check_range, clinic_tz, day_bounds_utc

logger = logging.getLogger(__name__)


def _fmt(t: time) -> str:
    return t.strftime("%H:%M")


def _validate_window(start_time: time, end_time: time, slot_duration_minutes: int) -> None:
    if start_time >= end_time:
        raise InvalidIntervalError(
            f"L'ora di inizio ({_fmt(start_time)}) deve essere prima della fine ({_fmt(end_time)})"
        )
    if slot_duration_minutes is None or slot_duration_minutes <= 0:
        raise InvalidIntervalError("La durata del turno deve essere positiva")


def _validate_template(t: AvailabilityTemplate) -> None:
    if t.day_of_week is None or not 0 <= t.day_of_week <= 6:
        raise InvalidIntervalError("Il giorno della settimana va da 0 (domenica) a 6 (sabato)")
    _validate_window(t.start_time, t.end_time, t.slot_duration_minutes)
    if t.valid_from and t.valid_to and t.valid_from > t.valid_to:
        raise InvalidIntervalError("Vigenza non valida: valid_from è dopo valid_to")


def _commit(db: Session, *rows) -> None:
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    for r in rows:
        db.refresh(r)


# -----------------------------------------------------------------------------
# FASCE SETTIMANALI
# -----------------------------------------------------------------------------
def get_template(db: Session, template_id: int) -> AvailabilityTemplate:
    t = db.get(AvailabilityTemplate, template_id)
    if not t:
        raise NotFoundError(f"Fascia oraria {template_id} non trovata")
    return t


def list_templates(
    db: Session,
    professional_id: str,
    active: bool | None = None,
    current_on: date | None = None,
) -> list[AvailabilityTemplate]:
    """`current_on`: solo le fasce vigenti in quella data (esclude lo storico)."""
    q = db.query(AvailabilityTemplate).filter(
        AvailabilityTemplate.professional_id == professional_id
    )
    if active is not None:
        q = q.filter(AvailabilityTemplate.active == active)
    if current_on is not None:
        q = q.filter(
            or_(AvailabilityTemplate.valid_from.is_(None), AvailabilityTemplate.valid_from <= current_on),
            or_(AvailabilityTemplate.valid_to.is_(None), AvailabilityTemplate.valid_to >= current_on),
        )
    return q.order_by(
        AvailabilityTemplate.day_of_week.asc(),
        AvailabilityTemplate.start_time.asc(),
        AvailabilityTemplate.id.asc(),
    ).all()


def create_template(
    db: Session,
    *,
    professional_id: str,
    day_of_week: int,
    start_time: time,
    end_time: time,
    slot_duration_minutes: int = 30,
    active: bool = True,
    valid_from: date | None = None,
    valid_to: date | None = None,
) -> AvailabilityTemplate:
    t = AvailabilityTemplate(
        professional_id=professional_id,
        day_of_week=day_of_week,
        start_time=start_time,
        end_time=end_time,
        slot_duration_minutes=slot_duration_minutes,
        active=active,
        valid_from=valid_from,
        valid_to=valid_to,
    )
    _validate_template(t)
    db.add(t)
    _commit(db, t)
    logger.info(
        "Fascia %s creata per %s: giorno %s %s-%s ogni %s min",
        t.id, professional_id, day_of_week, _fmt(start_time), _fmt(end_time), slot_duration_minutes,
    )
    return t


TEMPLATE_FIELDS = (
    "day_of_week",
    "start_time",
    "end_time",
    "slot_duration_minutes",
    "active",
    "valid_from",
    "valid_to",
)


# solo la vigenza può tornare a NULL
NULLABLE_TEMPLATE_FIELDS = ("valid_from", "valid_to")


def update_template(db: Session, template_id: int, changes: dict) -> AvailabilityTemplate:
    t = get_template(db, template_id)
    for key, value in changes.items():
        if key not in TEMPLATE_FIELDS:
            continue
        if value is None and key not in NULLABLE_TEMPLATE_FIELDS:
            continue
        setattr(t, key, value)
    try:
        _validate_template(t)
    except InvalidIntervalError:
        db.rollback()
        raise
    _commit(db, t)
    logger.info("Fascia %s aggiornata: %s", t.id, sorted(k for k in changes if k in TEMPLATE_FIELDS))
    return t


def set_template_active(db: Session, template_id: int, active: bool) -> AvailabilityTemplate:
    t = get_template(db, template_id)
    t.active = active
    _commit(db, t)
    logger.info("Fascia %s %s", t.id, "attivata" if active else "disattivata")
    return t


def deactivate_template(db: Session, template_id: int) -> AvailabilityTemplate:
    return set_template_active(db, template_id, False)


def activate_template(db: Session, template_id: int) -> AvailabilityTemplate:
    return set_template_active(db, template_id, True)


def replace_week_schedule(
    db: Session,
    professional_id: str,
    entries: Iterable[dict],
    from_date: date,
) -> list[AvailabilityTemplate]:
    """
    Salva gli orari della settimana a partire da `from_date`:
    - le fasce vigenti vengono chiuse il giorno prima (valid_to = from_date - 1);
    - quelle che sarebbero iniziate da from_date in poi vengono disattivate;
    - si creano le nuove fasce con valid_from = from_date.
    Si inviano solo i giorni in cui il professionista lavora.
    """
    new_rows = [
        AvailabilityTemplate(
            professional_id=professional_id,
            day_of_week=e["day_of_week"],
            start_time=e["start_time"],
            end_time=e["end_time"],
            slot_duration_minutes=e.get("slot_duration_minutes") or 30,
            active=True,
            valid_from=from_date,
            valid_to=None,
        )
        for e in entries
    ]
    for row in new_rows:
        _validate_template(row)

    current = (
        db.query(AvailabilityTemplate)
        .filter(
            AvailabilityTemplate.professional_id == professional_id,
            AvailabilityTemplate.active == True,
            or_(AvailabilityTemplate.valid_to.is_(None), AvailabilityTemplate.valid_to >= from_date),
        )
        .all()
    )
    closed = 0
    for t in current:
        if t.valid_from and t.valid_from >= from_date:
            t.active = False
        else:
            t.valid_to = from_date - timedelta(days=1)
        closed += 1

    db.add_all(new_rows)
    _commit(db, *new_rows)
    logger.info(
        "Orario settimanale di %s sostituito dal %s: %d fasce chiuse, %d create",
        professional_id, from_date.isoformat(), closed, len(new_rows),
    )
    return new_rows


# -----------------------------------------------------------------------------
# GIORNI PUNTUALI
# -----------------------------------------------------------------------------
def create_override(
    db: Session,
    *,
    professional_id: str,
    day: date,
    start_time: time,
    end_time: time,
    slot_duration_minutes: int = 30,
    notes: str | None = None,
) -> DayOverride:
    _validate_window(start_time, end_time, slot_duration_minutes)
    o = DayOverride(
        professional_id=professional_id,
        date=day,
        start_time=start_time,
        end_time=end_time,
        slot_duration_minutes=slot_duration_minutes,
        notes=notes,
    )
    db.add(o)
    _commit(db, o)
    logger.info("Giorno puntuale %s per %s il %s", o.id, professional_id, day.isoformat())
    return o


def get_override(db: Session, override_id: int) -> DayOverride:
    o = db.get(DayOverride, override_id)
    if not o:
        raise NotFoundError(f"Giorno puntuale {override_id} non trovato")
    return o


OVERRIDE_FIELDS = ("date", "start_time", "end_time", "slot_duration_minutes", "notes")


def update_override(db: Session, override_id: int, changes: dict) -> DayOverride:
    o = get_override(db, override_id)
    for key, value in changes.items():
        if key not in OVERRIDE_FIELDS:
            continue
        # le note si possono svuotare, il resto no
        if value is None and key != "notes":
            continue
        setattr(o, key, value)
    try:
        _validate_window(o.start_time, o.end_time, o.slot_duration_minutes)
    except InvalidIntervalError:
        db.rollback()
        raise
    _commit(db, o)
    logger.info("Giorno puntuale %s aggiornato (%s)", o.id, o.date.isoformat())
    return o


def delete_override(db: Session, override_id: int) -> None:
    o = get_override(db, override_id)
    db.delete(o)
    db.commit()
    logger.info("Giorno puntuale %s eliminato", override_id)


def list_overrides(
    db: Session, professional_id: str, date_from: date | None = None, date_to: date | None = None
) -> list[DayOverride]:
    q = db.query(DayOverride).filter(DayOverride.professional_id == professional_id)
    if date_from:
        q = q.filter(DayOverride.date >= date_from)
    if date_to:
        q = q.filter(DayOverride.date <= date_to)
    return q.order_by(DayOverride.date.asc(), DayOverride.start_time.asc()).all()


# -----------------------------------------------------------------------------
# BLOCCHI DI INDISPONIBILITÀ
# -----------------------------------------------------------------------------
def _validate_block(start_at: datetime, end_at: datetime) -> None:
    if start_at.tzinfo is None or end_at.tzinfo is None:
        raise InvalidIntervalError("Inizio e fine del blocco devono avere il fuso orario")
    if start_at >= end_at:
        raise InvalidIntervalError("L'inizio del blocco deve essere prima della fine")


def get_block(db: Session, block_id: int) -> ExceptionBlock:
    b = db.get(ExceptionBlock, block_id)
    if not b:
        raise NotFoundError(f"Blocco {block_id} non trovato")
    return b


def create_block(
    db: Session,
    *,
    professional_id: str,
    start_at: datetime,
    end_at: datetime,
    reason: str | None = None,
) -> ExceptionBlock:
    _validate_block(start_at, end_at)
    b = ExceptionBlock(
        professional_id=professional_id, start_at=start_at, end_at=end_at, reason=reason
    )
    db.add(b)
    _commit(db, b)
    logger.info(
        "Blocco %s per %s: %s -> %s", b.id, professional_id, start_at.isoformat(), end_at.isoformat()
    )
    return b


def update_block(db: Session, block_id: int, changes: dict) -> ExceptionBlock:
    b = get_block(db, block_id)
    start_at = changes.get("start_at") or b.start_at
    end_at = changes.get("end_at") or b.end_at
    _validate_block(start_at, end_at)
    b.start_at = start_at
    b.end_at = end_at
    if "reason" in changes:
        b.reason = changes["reason"]
    _commit(db, b)
    logger.info("Blocco %s aggiornato", b.id)
    return b


def delete_block(db: Session, block_id: int) -> None:
    b = get_block(db, block_id)
    db.delete(b)
    db.commit()
    logger.info("Blocco %s eliminato", block_id)


def list_blocks(
    db: Session, professional_id: str, date_from: date | None = None, date_to: date | None = None
) -> list[ExceptionBlock]:
    q = db.query(ExceptionBlock).filter(ExceptionBlock.professional_id == professional_id)
    tz = clinic_tz()
    if date_from and date_to:
        check_range(date_from, date_to)
    if date_from:
        q = q.filter(ExceptionBlock.end_at > day_bounds_utc(date_from, date_from, tz)[0])
    if date_to:
        q = q.filter(ExceptionBlock.start_at < day_bounds_utc(date_to, date_to, tz)[1])
    return q.order_by(ExceptionBlock.start_at.asc()).all()
