"""
Test configuration and shared fixtures for the Clinic Care test suite.

Uses an in-memory SQLite database with transaction-based isolation.
Each test gets a clean database state via automatic transaction rollback.
"""

import pathlib
from datetime import date, datetime, time
from decimal import Decimal
from typing import Generator, Optional
from unittest.mock import patch

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from core import config
from core.constants import (
    APPOINTMENT_CONFIRMED,
    DOCTOR_SHIFT_ACTIVE,
    PAYMENT_PENDING,
    ROLE_DOCTOR,
    ROLE_PATIENT,
)
from core.database import Base
# Import all models to ensure they're registered with SQLAlchemy before any relationships are resolved
from models import (
    Appointment,
    Doctor,
    DoctorShift,
    MedicalRecord,
    MedicalService,
    Patient,
    Payment,
    Role,
    Room,
    Service,
    Shift,
    User,
)
from utils import email_templates

EMAIL_TEMPLATE_DIR = str(pathlib.Path(__file__).resolve().parent.parent / "email_templates")


@pytest.fixture(scope="session")
def db_engine():
    """
    Create a database engine for the test session.

    SQLite's driver manages transactions on its own; it is switched to
    autocommit and BEGIN is emitted explicitly so savepoints work.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},  # TestClient runs endpoints in another thread
        poolclass=StaticPool,
        echo=False,
    )

    @event.listens_for(engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    Base.metadata.create_all(bind=engine)

    yield engine

    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(db_engine) -> Generator[Session, None, None]:
    """
    Provide a database session for a test with automatic rollback.

    Application code may call commit() and rollback(); these only release or
    roll back a savepoint inside the outer transaction, which is rolled back
    when the test finishes.
    """
    connection = db_engine.connect()
    transaction = connection.begin()

    session = Session(
        bind=connection,
        join_transaction_mode="create_savepoint",
        autoflush=False,
        expire_on_commit=False,
    )

    yield session

    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture(autouse=True)
def isolated_email_settings():
    """Keep email disabled and point templates at the repository's template folder."""
    with patch.object(config, "SMTP_HOST", ""), \
         patch.object(email_templates, "EMAIL_TEMPLATE_DIR", EMAIL_TEMPLATE_DIR):
        yield


# Helper functions for building test data
def create_role(db_session: Session, name: str) -> Role:
    role = db_session.query(Role).filter(Role.name == name).first()
    if role:
        return role
    role = Role(name=name)
    db_session.add(role)
    db_session.flush()
    return role


def create_user(
    db_session: Session,
    full_name: str,
    role_name: str = ROLE_PATIENT,
    email: Optional[str] = None,
    gender: Optional[str] = None,
    dob: Optional[date] = None,
) -> User:
    role = create_role(db_session, role_name)
    user = User(
        full_name=full_name,
        email=email,
        gender=gender,
        dob=dob,
        role_id=role.id,
        is_active=True,
    )
    db_session.add(user)
    db_session.flush()
    return user


def create_doctor(
    db_session: Session,
    full_name: str,
    specialty: str = "General Medicine",
    email: Optional[str] = None,
    room_name: Optional[str] = None,
) -> Doctor:
    """Create a doctor together with its user account (and optionally a room)."""
    user = create_user(db_session, full_name, role_name=ROLE_DOCTOR, email=email)
    room_id = None
    if room_name:
        room = Room(name=room_name)
        db_session.add(room)
        db_session.flush()
        room_id = room.id

    doctor = Doctor(user_id=user.id, specialty=specialty, experience_years=5, room_id=room_id)
    db_session.add(doctor)
    db_session.commit()
    return doctor


def create_patient(
    db_session: Session,
    full_name: str,
    email: Optional[str] = None,
    gender: Optional[str] = None,
    dob: Optional[date] = None,
) -> Patient:
    user = create_user(db_session, full_name, role_name=ROLE_PATIENT, email=email, gender=gender, dob=dob)
    patient = Patient(user_id=user.id)
    db_session.add(patient)
    db_session.commit()
    return patient


def create_shift(db_session: Session, shift_type: str, start: time, end: time) -> Shift:
    shift = Shift(shift_type=shift_type, start_time=start, end_time=end)
    db_session.add(shift)
    db_session.commit()
    return shift


def create_doctor_shift(
    db_session: Session,
    doctor: Doctor,
    shift: Shift,
    effective_from: date,
    effective_to: Optional[date],
    status: str = DOCTOR_SHIFT_ACTIVE,
) -> DoctorShift:
    row = DoctorShift(
        doctor_id=doctor.id,
        shift_id=shift.id,
        effective_from=effective_from,
        effective_to=effective_to,
        status=status,
    )
    db_session.add(row)
    db_session.commit()
    return row


def create_appointment(
    db_session: Session,
    patient: Patient,
    doctor: Doctor,
    appointment_date: datetime,
    status: str = APPOINTMENT_CONFIRMED,
) -> Appointment:
    appointment = Appointment(
        patient_id=patient.id,
        doctor_id=doctor.id,
        appointment_date=appointment_date,
        status=status,
    )
    db_session.add(appointment)
    db_session.commit()
    return appointment


def create_medical_record(db_session: Session, appointment: Appointment) -> MedicalRecord:
    record = MedicalRecord(appointment_id=appointment.id, diagnosis="Common cold")
    db_session.add(record)
    db_session.commit()
    return record


def add_service_to_record(
    db_session: Session,
    record: MedicalRecord,
    name: str,
    unit_price: int,
    quantity: int = 1,
    total_price: Optional[int] = None,
) -> MedicalService:
    service = Service(name=name, price=Decimal(unit_price))
    db_session.add(service)
    db_session.flush()

    line = MedicalService(
        record_id=record.id,
        service_id=service.id,
        quantity=quantity,
        unit_price=Decimal(unit_price),
        total_price=Decimal(total_price) if total_price is not None else None,
    )
    db_session.add(line)
    db_session.commit()
    return line


def create_payment(
    db_session: Session,
    record: MedicalRecord,
    order_code: int,
    amount: int = 200000,
    status: str = PAYMENT_PENDING,
    checkout_url: Optional[str] = "https://pay.payos.vn/web/existing",
    payment_date: Optional[datetime] = None,
) -> Payment:
    payment = Payment(
        record_id=record.id,
        amount=Decimal(amount),
        status=status,
        order_code=order_code,
        checkout_url=checkout_url,
        payment_date=payment_date,
        method="PayOS",
    )
    db_session.add(payment)
    db_session.commit()
    return payment


@pytest.fixture
def morning_shift(db_session) -> Shift:
    return create_shift(db_session, "Morning", time(7, 0), time(11, 30))


@pytest.fixture
def afternoon_shift(db_session) -> Shift:
    return create_shift(db_session, "Afternoon", time(13, 0), time(17, 0))


@pytest.fixture
def evening_shift(db_session) -> Shift:
    return create_shift(db_session, "Evening", time(18, 0), time(21, 0))


@pytest.fixture
def doctor_a(db_session) -> Doctor:
    return create_doctor(db_session, "Alice Nguyen", specialty="Cardiology", email="alice@clinic.test", room_name="Room 101")


@pytest.fixture
def doctor_b(db_session) -> Doctor:
    return create_doctor(db_session, "Bao Tran", specialty="Pediatrics", email="bao@clinic.test")
