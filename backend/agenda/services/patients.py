"""
Etichette pazienti dall'anagrafica della Clinic API.
L'agenda salva solo patient_id: nome e DNI arrivano da qui, solo per la visualizzazione.
"""
import logging

import requests

from ..config import settings

logger = logging.getLogger(__name__)


def _headers() -> dict:
    h = {"Accept": "application/json"}
    if settings.PATIENT_API_TOKEN:
        h["Authorization"] = f"Bearer {settings.PATIENT_API_TOKEN}"
    return h


def _label_from_payload(payload) -> str | None:
    # la Clinic API risponde {success, data: {...}}
    if not isinstance(payload, dict):
        return None
    data = payload.get("data") if isinstance(payload.get("data"), dict) else payload
    nombre = (data.get("nombre") or "").strip()
    apellido = (data.get("apellido") or "").strip()
    full = f"{nombre} {apellido}".strip()
    return full or None


class PatientDirectory:
    """
    Risolve patient_id -> etichetta leggibile.
    Senza PATIENT_API_URL (dev/test) o in caso di errore, l'etichetta è l'id stesso.
    Cache per istanza: un'istanza vive quanto una richiesta.
    """

    def __init__(self, base_url: str | None = None, timeout: float = 5.0):
        self.base_url = (base_url if base_url is not None else settings.PATIENT_API_URL or "").rstrip("/")
        self.timeout = timeout
        self._cache: dict[str, str] = {}

    def label(self, patient_id: str) -> str:
        if patient_id in self._cache:
            return self._cache[patient_id]
        label = self._fetch(patient_id) or patient_id
        self._cache[patient_id] = label
        return label

    def _fetch(self, patient_id: str) -> str | None:
        if not self.base_url:
            return None
        url = f"{self.base_url}/pacientes/{patient_id}"
        try:
            r = requests.get(url, headers=_headers(), timeout=self.timeout)
            if r.status_code >= 400:
                logger.warning("Anagrafica pazienti: %s %s per %s", r.status_code, r.reason, url)
                return None
            return _label_from_payload(r.json())
        except requests.Timeout:
            logger.warning("Anagrafica pazienti: timeout su %s", url)
            return None
        except (requests.RequestException, ValueError):
            logger.warning("Anagrafica pazienti non raggiungibile (%s)", url, exc_info=True)
            return None


def truncate_label(label: str, max_chars: int) -> str:
    if max_chars <= 0 or len(label) <= max_chars:
        return label
    if max_chars == 1:
        return "…"
    return label[: max_chars - 1].rstrip() + "…"
