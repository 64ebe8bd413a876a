"""
Integration tests for the notification API.
"""

import pytest
from datetime import datetime
from unittest.mock import patch
from fastapi.testclient import TestClient

from main import app
from core.constants import ROLE_DOCTOR, ROLE_RECEPTIONIST
from tests.conftest import create_appointment, create_doctor, create_patient, create_user


@pytest.fixture
def client(db_session):
    """Create test client with database session override."""
    from core.database import get_db

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    yield TestClient(app)

    app.dependency_overrides.pop(get_db, None)


@pytest.fixture
def staff(db_session):
    return [
        create_user(db_session, "Dr. Son", role_name=ROLE_DOCTOR),
        create_user(db_session, "Thu", role_name=ROLE_RECEPTIONIST),
    ]


class TestNotificationAPI:

    def test_send_and_read_flow(self, client: TestClient, staff):
        doctor_user, receptionist = staff

        sent = client.post("/api/notifications/send", json={
            "title": "  Team meeting ",
            "content": "Friday 4pm",
            "created_by": receptionist.id,
            "role_names": [ROLE_DOCTOR],
        })
        assert sent.status_code == 200, sent.text
        notification_id = sent.json()["notification_id"]

        unread = client.get(f"/api/notifications/unread-count/{doctor_user.id}")
        assert unread.json() == {"user_id": doctor_user.id, "unread_count": 1}

        listing = client.get(f"/api/notifications/user/{doctor_user.id}")
        assert listing.json()["items"][0]["title"] == "Team meeting"
        assert listing.json()["items"][0]["is_read"] is False

        read = client.put(f"/api/notifications/read/{doctor_user.id}/{notification_id}")
        assert read.status_code == 204
        assert client.get(f"/api/notifications/unread-count/{doctor_user.id}").json()["unread_count"] == 0

    def test_mark_unknown_notification(self, client: TestClient, staff):
        response = client.put(f"/api/notifications/read/{staff[0].id}/9999")

        assert response.status_code == 404

    def test_read_all(self, client: TestClient, staff):
        user_id = staff[0].id
        for title in ("A", "B"):
            client.post("/api/notifications/send", json={"title": title, "content": "x", "receiver_ids": [user_id]})

        response = client.put(f"/api/notifications/read-all/{user_id}")

        assert response.status_code == 204
        assert client.get(f"/api/notifications/unread-count/{user_id}").json()["unread_count"] == 0

    def test_send_validation(self, client: TestClient, staff):
        blank = client.post("/api/notifications/send", json={"title": "   ", "content": "x"})
        unknown = client.post("/api/notifications/send", json={"title": "Hi", "content": "x", "receiver_ids": [9999]})

        assert blank.status_code == 422
        assert unknown.status_code == 404

    def test_admin_listing(self, client: TestClient, staff):
        client.post("/api/notifications/send", json={
            "title": "All staff", "content": "x", "role_names": [ROLE_DOCTOR, ROLE_RECEPTIONIST], "is_global": True,
        })

        response = client.get("/api/notifications", params={"page_number": 1, "page_size": 5})

        assert response.status_code == 200
        item = response.json()["items"][0]
        assert item["receiver_count"] == 2
        assert item["is_global"] is True

    def test_send_reminder_now(self, client: TestClient, db_session):
        doctor = create_doctor(db_session, "Dr. Phuc")
        patient = create_patient(db_session, "Nga", email="nga@example.com")
        create_appointment(db_session, patient, doctor, datetime(2024, 3, 2, 9, 0))

        with patch("services.reminder_service.clinic_today", return_value=datetime(2024, 3, 1).date()), \
             patch("services.reminder_service.EmailService.send_email", return_value=True):
            response = client.post("/api/notifications/send-reminder")

        assert response.status_code == 200
        assert response.json()["sent_count"] == 1
