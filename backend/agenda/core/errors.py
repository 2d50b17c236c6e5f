"""
Errori del dominio agenda/turni.
Le funzioni di servizio sollevano queste eccezioni; il layer HTTP le traduce
in risposte tramite ERROR_RULES, così i router restano sottili.
"""
from __future__ import annotations

from fastapi import Request, status
from fastapi.responses import JSONResponse


class SchedulingError(Exception):
    """Base di tutti gli errori di agenda."""

    kind = "scheduling_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidRangeError(SchedulingError):
    """Intervallo di interrogazione malformato (inizio dopo la fine)."""

    kind = "invalid_range"


class InvalidIntervalError(SchedulingError):
    """Intervallo di turno/agenda/blocco malformato."""

    kind = "invalid_interval"


class ConflictError(SchedulingError):
    """Sovrapposizione con un turno non cancellato."""

    kind = "conflict"


class InvalidTransitionError(SchedulingError):
    """Transizione di stato non permessa dalla macchina a stati del turno."""

    kind = "invalid_transition"


class NotFoundError(SchedulingError):
    kind = "not_found"


# ---------------------------------------------------------------------------
# (classe, status code). Prima corrispondenza vince: le sottoclassi prima.
# ---------------------------------------------------------------------------
ERROR_RULES: list[tuple[type[SchedulingError], int]] = [
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ConflictError, status.HTTP_409_CONFLICT),
    (InvalidTransitionError, status.HTTP_409_CONFLICT),
    (InvalidIntervalError, 422),  # Unprocessable Entity (costante rinominata in Starlette)
    (InvalidRangeError, status.HTTP_400_BAD_REQUEST),
]


def status_for(exc: SchedulingError) -> int:
    for cls, code in ERROR_RULES:
        if isinstance(exc, cls):
            return code
    return status.HTTP_400_BAD_REQUEST


async def scheduling_error_handler(request: Request, exc: SchedulingError) -> JSONResponse:
    return JSONResponse(
        status_code=status_for(exc),
        content={"detail": exc.message, "error": exc.kind},
    )
