from dataclasses import dataclass
from datetime import datetime
import enum


class SlotState(str, enum.Enum):
    """
    Stato di visualizzazione dello slot.
    Per sapere se uno slot è già terminato i client leggono il flag `past`:
    un turno passato resta OCCUPIED (o BLOCKED) con past=True, solo lo slot
    libero passa a PAST.
    """

    AVAILABLE = "AVAILABLE"  # prenotabile
    OCCUPIED = "OCCUPIED"    # turno attivo
    BLOCKED = "BLOCKED"      # dentro un blocco di indisponibilità
    PAST = "PAST"            # libero ma già terminato (solo informativo)


@dataclass(frozen=True)
class Slot:
    """Slot derivato: ricalcolato a ogni richiesta, mai salvato."""

    professional_id: str
    start: datetime
    end: datetime
    state: SlotState
    past: bool = False
    booking_id: int | None = None

    @property
    def duration_minutes(self) -> int:
        return int((self.end - self.start).total_seconds() // 60)
