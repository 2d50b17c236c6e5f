from datetime import datetime, timezone

from .database import get_db
from .services.patients import PatientDirectory

__all__ = ["get_db", "get_now", "get_patient_directory"]


def get_now() -> datetime:
    # unico punto in cui si legge l'orologio: i test lo sostituiscono
    return datetime.now(timezone.utc)


def get_patient_directory() -> PatientDirectory:
    return PatientDirectory()
