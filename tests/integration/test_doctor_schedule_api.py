"""
Integration tests for the doctor-facing schedule API.
"""

import pytest
from datetime import date
from unittest.mock import patch
from fastapi.testclient import TestClient

from main import app
from tests.conftest import create_doctor_shift


@pytest.fixture
def client(db_session):
    """Create test client with database session override."""
    from core.database import get_db

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    yield TestClient(app)

    app.dependency_overrides.pop(get_db, None)


class TestDoctorScheduleEndpoint:

    def test_schedule_in_range(self, client: TestClient, db_session, morning_shift, afternoon_shift, doctor_a):
        create_doctor_shift(db_session, doctor_a, morning_shift, date(2024, 5, 1), date(2024, 5, 31))
        create_doctor_shift(db_session, doctor_a, afternoon_shift, date(2024, 5, 2), date(2024, 5, 2))

        response = client.get(
            f"/api/doctor-schedule/{doctor_a.id}",
            params={"start_date": "2024-05-02", "end_date": "2024-05-03"},
        )

        assert response.status_code == 200, response.text
        assert [(item["date"], item["shift_type"]) for item in response.json()] == [
            ("2024-05-02", "Morning"),
            ("2024-05-02", "Afternoon"),
            ("2024-05-03", "Morning"),
        ]
        assert response.json()[0]["doctor_name"] == "Alice Nguyen"

    def test_defaults_to_current_month(self, client: TestClient, db_session, morning_shift, doctor_a):
        create_doctor_shift(db_session, doctor_a, morning_shift, date(2024, 4, 28), date(2024, 5, 2))

        with patch("services.schedule_service.clinic_today", return_value=date(2024, 4, 10)):
            response = client.get(f"/api/doctor-schedule/{doctor_a.id}")

        assert response.status_code == 200, response.text
        assert [item["date"] for item in response.json()] == ["2024-04-28", "2024-04-29", "2024-04-30"]

    def test_invalid_doctor(self, client: TestClient, db_session):
        assert client.get("/api/doctor-schedule/0").status_code == 400
        assert client.get("/api/doctor-schedule/9999").status_code == 404

    def test_reversed_range(self, client: TestClient, doctor_a):
        response = client.get(
            f"/api/doctor-schedule/{doctor_a.id}",
            params={"start_date": "2024-05-10", "end_date": "2024-05-01"},
        )

        assert response.status_code == 400


class TestAllDoctorSchedulesEndpoint:

    def test_lists_every_doctor(self, client: TestClient, db_session, morning_shift, doctor_a, doctor_b):
        create_doctor_shift(db_session, doctor_a, morning_shift, date(2024, 5, 1), None)
        create_doctor_shift(db_session, doctor_b, morning_shift, date(2024, 5, 2), date(2024, 5, 2))

        response = client.get(
            "/api/manage-schedule/all-doctor-schedules",
            params={"start_date": "2024-05-01", "end_date": "2024-05-02"},
        )

        assert response.status_code == 200, response.text
        assert [(item["doctor_name"], item["date"]) for item in response.json()] == [
            ("Alice Nguyen", "2024-05-01"),
            ("Alice Nguyen", "2024-05-02"),
            ("Bao Tran", "2024-05-02"),
        ]
