"""
Ciclo di vita dei turni.

PENDING ──confirm──> CONFIRMED ──complete──> COMPLETED
   │                    │ └────no-show (dopo la fine)──> NO_SHOW
   └──────cancel────────┴──cancel──> CANCELLED

Ogni scrittura passa da un lock per professionista: il controllo di
sovrapposizione e l'insert/commit avvengono sotto lo stesso lock.
"""
from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from datetime import date, datetime, timedelta

from sqlalchemy.orm import Session

from ..config import settings
from ..core.errors import (
    ConflictError,
    InvalidIntervalError,
    InvalidTransitionError,
    NotFoundError,
)
from ..models.booking import Booking, BookingStatus, ACTIVE_STATUSES
from .slots import check_range, clinic_tz, day_bounds_utc

logger = logging.getLogger(__name__)

INITIAL_STATUSES = (BookingStatus.PENDING, BookingStatus.CONFIRMED)

_locks: dict[str, threading.Lock] = {}
_locks_guard = threading.Lock()


@contextmanager
def professional_lock(professional_id: str):
    with _locks_guard:
        lock = _locks.setdefault(professional_id, threading.Lock())
    with lock:
        yield


# -----------------------------------------------------------------------------
# Letture
# -----------------------------------------------------------------------------
def get_booking(db: Session, booking_id: int) -> Booking:
    b = db.get(Booking, booking_id)
    if not b:
        raise NotFoundError(f"Turno {booking_id} non trovato")
    return b


def find_conflicts(
    db: Session,
    professional_id: str,
    start: datetime,
    end: datetime,
    exclude_id: int | None = None,
    include_overbookings: bool = True,
) -> list[Booking]:
    """Turni attivi (PENDING/CONFIRMED/COMPLETED) che si sovrappongono a [start, end)."""
    q = db.query(Booking).filter(
        Booking.professional_id == professional_id,
        Booking.status.in_(ACTIVE_STATUSES),
        Booking.start_at < end,
        Booking.end_at > start,
    )
    if exclude_id is not None:
        q = q.filter(Booking.id != exclude_id)
    if not include_overbookings:
        q = q.filter(Booking.is_overbooking == False)
    return q.order_by(Booking.start_at.asc(), Booking.id.asc()).all()


def list_bookings(
    db: Session,
    professional_id: str,
    range_start: date,
    range_end: date,
    statuses: list[BookingStatus] | None = None,
) -> list[Booking]:
    check_range(range_start, range_end)
    lo, hi = day_bounds_utc(range_start, range_end, clinic_tz())
    q = db.query(Booking).filter(
        Booking.professional_id == professional_id,
        Booking.start_at < hi,
        Booking.end_at > lo,
    )
    if statuses:
        q = q.filter(Booking.status.in_(statuses))
    return q.order_by(Booking.start_at.asc(), Booking.id.asc()).all()


def list_patient_bookings(
    db: Session,
    patient_id: str,
    range_start: date | None = None,
    range_end: date | None = None,
) -> list[Booking]:
    q = db.query(Booking).filter(Booking.patient_id == patient_id)
    tz = clinic_tz()
    if range_start and range_end:
        check_range(range_start, range_end)
    if range_start:
        q = q.filter(Booking.end_at > day_bounds_utc(range_start, range_start, tz)[0])
    if range_end:
        q = q.filter(Booking.start_at < day_bounds_utc(range_end, range_end, tz)[1])
    return q.order_by(Booking.start_at.asc(), Booking.id.asc()).all()


# -----------------------------------------------------------------------------
# Scritture
# -----------------------------------------------------------------------------
def _validate_interval(start: datetime, end: datetime, now: datetime) -> None:
    if start.tzinfo is None or end.tzinfo is None:
        raise InvalidIntervalError("Inizio e fine devono avere il fuso orario")
    if start >= end:
        raise InvalidIntervalError("L'inizio del turno deve essere prima della fine")
    grace = timedelta(minutes=settings.BOOKING_GRACE_MINUTES)
    if start < now - grace:
        raise InvalidIntervalError("Non si può creare un turno nel passato")


def _commit(db: Session, b: Booking) -> Booking:
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(b)
    return b


def create_booking(
    db: Session,
    *,
    professional_id: str,
    patient_id: str,
    start: datetime,
    end: datetime,
    now: datetime,
    initial_status: BookingStatus = BookingStatus.PENDING,
    reason: str = "",
    is_overbooking: bool = False,
) -> Booking:
    _validate_interval(start, end, now)
    if initial_status not in INITIAL_STATUSES:
        raise InvalidTransitionError(
            f"Un turno nasce PENDING o CONFIRMED, non {initial_status.value}"
        )

    with professional_lock(professional_id):
        if not is_overbooking:
            conflicts = find_conflicts(db, professional_id, start, end)
            if conflicts:
                logger.warning(
                    "Turno rifiutato per %s %s-%s: sovrapposto a %s",
                    professional_id,
                    start.isoformat(),
                    end.isoformat(),
                    [c.id for c in conflicts],
                )
                raise ConflictError(
                    f"Il professionista ha già {len(conflicts)} turno/i in questo orario"
                )

        b = Booking(
            professional_id=professional_id,
            patient_id=patient_id,
            start_at=start,
            end_at=end,
            status=initial_status,
            is_overbooking=is_overbooking,
            reason=reason or "",
        )
        db.add(b)
        _commit(db, b)

    logger.info(
        "Turno %s creato (%s) per %s, paziente %s%s",
        b.id,
        b.status.value,
        professional_id,
        patient_id,
        " [sobreturno]" if is_overbooking else "",
    )
    return b


def _require_status(b: Booking, allowed: tuple[BookingStatus, ...], action: str) -> None:
    if b.status not in allowed:
        logger.warning("Transizione %s rifiutata: turno %s è %s", action, b.id, b.status.value)
        raise InvalidTransitionError(
            f"Impossibile {action}: il turno {b.id} è {b.status.value}"
        )


def confirm_booking(db: Session, booking_id: int) -> Booking:
    b = get_booking(db, booking_id)
    with professional_lock(b.professional_id):
        db.refresh(b)
        _require_status(b, (BookingStatus.PENDING,), "confermare")

        if not b.is_overbooking:
            # i sobreturni sono stati messi sopra di proposito: non contano qui
            conflicts = find_conflicts(
                db, b.professional_id, b.start_at, b.end_at, exclude_id=b.id, include_overbookings=False
            )
            if conflicts:
                raise ConflictError(
                    f"Impossibile confermare: sovrapposto al turno {conflicts[0].id}"
                )

        b.status = BookingStatus.CONFIRMED
        _commit(db, b)

    logger.info("Turno %s confermato", b.id)
    return b


def reschedule_booking(
    db: Session,
    booking_id: int,
    *,
    now: datetime,
    start: datetime | None = None,
    end: datetime | None = None,
    reason: str | None = None,
) -> Booking:
    """Sposta un turno ancora aperto: stessi controlli della creazione, escluso se stesso."""
    b = get_booking(db, booking_id)
    with professional_lock(b.professional_id):
        db.refresh(b)
        _require_status(b, (BookingStatus.PENDING, BookingStatus.CONFIRMED), "riprogrammare")

        new_start = start or b.start_at
        new_end = end or b.end_at
        _validate_interval(new_start, new_end, now)

        if not b.is_overbooking:
            conflicts = find_conflicts(db, b.professional_id, new_start, new_end, exclude_id=b.id)
            if conflicts:
                logger.warning(
                    "Spostamento del turno %s rifiutato: sovrapposto a %s", b.id, [c.id for c in conflicts]
                )
                raise ConflictError(
                    f"Impossibile spostare: sovrapposto al turno {conflicts[0].id}"
                )

        old_start = b.start_at
        b.start_at = new_start
        b.end_at = new_end
        if reason is not None:
            b.reason = reason
        _commit(db, b)

    logger.info("Turno %s spostato: %s -> %s", b.id, old_start.isoformat(), b.start_at.isoformat())
    return b


def cancel_booking(db: Session, booking_id: int, cancelled_by: str, reason: str) -> Booking:
    b = get_booking(db, booking_id)
    with professional_lock(b.professional_id):
        db.refresh(b)
        _require_status(b, (BookingStatus.PENDING, BookingStatus.CONFIRMED), "cancellare")
        if not (reason or "").strip():
            raise InvalidTransitionError("La cancellazione richiede un motivo")

        b.status = BookingStatus.CANCELLED
        b.cancelled_by = cancelled_by
        b.cancellation_reason = reason.strip()
        _commit(db, b)

    logger.info("Turno %s cancellato da %s: %s", b.id, cancelled_by, b.cancellation_reason)
    return b


def complete_booking(db: Session, booking_id: int) -> Booking:
    b = get_booking(db, booking_id)
    with professional_lock(b.professional_id):
        db.refresh(b)
        # un turno PENDING va prima confermato
        _require_status(b, (BookingStatus.CONFIRMED,), "completare")
        b.status = BookingStatus.COMPLETED
        _commit(db, b)

    logger.info("Turno %s completato", b.id)
    return b


def mark_no_show(db: Session, booking_id: int, now: datetime) -> Booking:
    b = get_booking(db, booking_id)
    with professional_lock(b.professional_id):
        db.refresh(b)
        _require_status(b, (BookingStatus.CONFIRMED,), "segnare assente")
        if b.end_at > now:
            raise InvalidTransitionError(
                f"Il turno {b.id} non è ancora terminato: impossibile segnarlo assente"
            )
        b.status = BookingStatus.NO_SHOW
        _commit(db, b)

    logger.info("Turno %s segnato assente", b.id)
    return b
