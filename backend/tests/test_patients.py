"""Tests for the patient directory client."""

import pytest
import requests

from agenda.services import patients
from agenda.services.patients import PatientDirectory, truncate_label


class FakeResponse:
    def __init__(self, status_code=200, payload=None, reason="OK"):
        self.status_code = status_code
        self.reason = reason
        self._payload = payload

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


@pytest.fixture
def calls(monkeypatch):
    """Registra le GET e restituisce la risposta impostata in calls['response']."""
    state = {"urls": [], "response": FakeResponse(payload={"success": True, "data": {"nombre": "Ana", "apellido": "Gómez"}})}

    def fake_get(url, headers=None, timeout=None):
        state["urls"].append(url)
        if isinstance(state["response"], Exception):
            raise state["response"]
        return state["response"]

    monkeypatch.setattr(patients.requests, "get", fake_get)
    return state


class TestPatientDirectory:
    def test_without_url_the_label_is_the_id(self, calls):
        assert PatientDirectory(base_url="").label("pat-1") == "pat-1"
        assert calls["urls"] == []

    def test_label_from_clinic_api(self, calls):
        directory = PatientDirectory(base_url="http://clinic.local/api/")
        assert directory.label("42") == "Ana Gómez"
        assert calls["urls"] == ["http://clinic.local/api/pacientes/42"]

    def test_labels_are_cached(self, calls):
        directory = PatientDirectory(base_url="http://clinic.local/api")
        directory.label("42")
        directory.label("42")
        assert len(calls["urls"]) == 1

    def test_flat_payload(self, calls):
        calls["response"] = FakeResponse(payload={"nombre": "Ana", "apellido": ""})
        assert PatientDirectory(base_url="http://clinic.local").label("42") == "Ana"

    @pytest.mark.parametrize(
        "response",
        [
            FakeResponse(status_code=404, reason="Not Found"),
            FakeResponse(payload=ValueError("not json")),
            FakeResponse(payload=["unexpected"]),
            FakeResponse(payload={"data": {}}),
            requests.Timeout("slow"),
            requests.ConnectionError("down"),
        ],
    )
    def test_falls_back_to_id(self, calls, response):
        calls["response"] = response
        assert PatientDirectory(base_url="http://clinic.local").label("42") == "42"


class TestTruncateLabel:
    def test_short_labels_untouched(self):
        assert truncate_label("Ana Gómez", 18) == "Ana Gómez"

    def test_long_labels_end_with_ellipsis(self):
        assert truncate_label("Juan Carlos Pérez", 8) == "Juan Ca…"

    def test_trailing_space_is_dropped(self):
        assert truncate_label("Ana Gómez", 5) == "Ana…"
