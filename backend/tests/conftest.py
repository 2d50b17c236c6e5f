"""Fixture condivise: database SQLite in memoria, orologio fisso, anagrafica finta."""

from datetime import date, datetime, time, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from agenda.database import Base
from agenda.deps import get_db, get_now, get_patient_directory
from agenda.main import app
from agenda.services.slots import clinic_tz

# lunedì 3 giugno 2024; il giorno prima alle 12:00 locali è il "now" di default
MONDAY = date(2024, 6, 3)


def local(d: date, hh: int, mm: int = 0) -> datetime:
    return datetime.combine(d, time(hh, mm), tzinfo=clinic_tz())


class Clock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class FakeDirectory:
    """Anagrafica in memoria: id sconosciuti restano id."""

    def __init__(self, labels: dict | None = None):
        self.labels = labels or {}

    def label(self, patient_id: str) -> str:
        return self.labels.get(patient_id, patient_id)


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def clock():
    return Clock(local(date(2024, 6, 2), 12).astimezone(timezone.utc))


@pytest.fixture
def directory():
    return FakeDirectory({"pat-1": "Lucía Fernández", "pat-2": "Juan Pérez"})


@pytest.fixture
def client(session_factory, clock, directory):
    """TestClient con DB, orologio e anagrafica sostituiti."""

    def override_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_now] = clock
    app.dependency_overrides[get_patient_directory] = lambda: directory
    yield TestClient(app)
    app.dependency_overrides.clear()
