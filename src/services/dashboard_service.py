"""
Dashboard service for read-only clinic statistics.

Provides the receptionist's daily clinic status and the manager's patient
statistics. Nothing here writes to the database.
"""

import logging
from collections import Counter
from datetime import date
from typing import List, Optional, Tuple

from fastapi import HTTPException, status
from pydantic import BaseModel
from sqlalchemy import func
from sqlalchemy.orm import Session

from core.constants import (
    APPOINTMENT_CANCELLED,
    APPOINTMENT_COMPLETED,
    APPOINTMENT_CONFIRMED,
    APPOINTMENT_PENDING,
)
from models import Appointment, Patient, User
from utils.datetime_utils import age_on, clinic_today, day_bounds

logger = logging.getLogger(__name__)

MALE_VALUES = ("male", "m", "nam")
FEMALE_VALUES = ("female", "f", "nữ", "nu")


class AppointmentCounters(BaseModel):
    total: int = 0
    pending: int = 0
    confirmed: int = 0
    completed: int = 0
    cancelled: int = 0


class ClinicStatus(BaseModel):
    date: date
    new_patients: int
    appointments: AppointmentCounters


class GenderCounters(BaseModel):
    male: int = 0
    female: int = 0
    other: int = 0


class AgeGroupCounters(BaseModel):
    age_0_17: int = 0
    age_18_35: int = 0
    age_36_55: int = 0
    age_56_plus: int = 0


class MonthlyCount(BaseModel):
    month: str  # YYYY-MM
    count: int


class PatientStatistics(BaseModel):
    total_patients: int
    by_gender: GenderCounters
    by_age_group: AgeGroupCounters
    monthly_appointments: List[MonthlyCount]


def default_statistics_range(to_date: Optional[date] = None) -> Tuple[date, date]:
    """Twelve calendar months ending with the month of to_date (today by default)."""
    end = to_date or clinic_today()
    month_index = end.year * 12 + (end.month - 1) - 11
    start = date(month_index // 12, month_index % 12 + 1, 1)
    return start, end


class DashboardService:
    """Service class for dashboard aggregations."""

    @staticmethod
    def get_clinic_status(db: Session, day: date) -> ClinicStatus:
        """
        Appointment counters for a day plus patients whose first ever appointment is that day.

        Args:
            db: Database session
            day: Calendar day in clinic time

        Returns:
            ClinicStatus for the day
        """
        start, end = day_bounds(day)

        rows = db.query(Appointment.status, func.count(Appointment.id)).filter(
            Appointment.appointment_date >= start,
            Appointment.appointment_date <= end,
        ).group_by(Appointment.status).all()
        by_status = {row_status: count for row_status, count in rows}

        counters = AppointmentCounters(
            total=sum(by_status.values()),
            pending=by_status.get(APPOINTMENT_PENDING, 0),
            confirmed=by_status.get(APPOINTMENT_CONFIRMED, 0),
            completed=by_status.get(APPOINTMENT_COMPLETED, 0),
            cancelled=by_status.get(APPOINTMENT_CANCELLED, 0),
        )

        first_visits = db.query(
            Appointment.patient_id,
            func.min(Appointment.appointment_date).label("first_date"),
        ).group_by(Appointment.patient_id).subquery()
        new_patients = db.query(func.count()).select_from(first_visits).filter(
            first_visits.c.first_date >= start,
            first_visits.c.first_date <= end,
        ).scalar() or 0

        return ClinicStatus(date=day, new_patients=new_patients, appointments=counters)

    @staticmethod
    def get_patient_statistics(
        db: Session, from_date: date, to_date: date, today: Optional[date] = None
    ) -> PatientStatistics:
        """
        Patient totals by gender and age group, and appointment counts per month.

        Genders other than male/female (including missing ones) count as other.
        Patients without a date of birth are left out of the age groups.
        Months without appointments are omitted.

        Raises:
            HTTPException: 400 if from_date is after to_date
        """
        if from_date > to_date:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="'from' must be on or before 'to'"
            )
        today = today or clinic_today()

        patients = db.query(User.gender, User.dob).join(Patient, Patient.user_id == User.id).all()

        genders = GenderCounters()
        ages = AgeGroupCounters()
        for gender, dob in patients:
            normalized = (gender or "").strip().lower()
            if normalized in MALE_VALUES:
                genders.male += 1
            elif normalized in FEMALE_VALUES:
                genders.female += 1
            else:
                genders.other += 1

            if dob is None:
                continue
            age = age_on(dob, today)
            if age <= 17:
                ages.age_0_17 += 1
            elif age <= 35:
                ages.age_18_35 += 1
            elif age <= 55:
                ages.age_36_55 += 1
            else:
                ages.age_56_plus += 1

        start, _ = day_bounds(from_date)
        _, end = day_bounds(to_date)
        appointment_dates = db.query(Appointment.appointment_date).filter(
            Appointment.appointment_date >= start,
            Appointment.appointment_date <= end,
        ).all()
        per_month = Counter(value.strftime("%Y-%m") for (value,) in appointment_dates)

        return PatientStatistics(
            total_patients=len(patients),
            by_gender=genders,
            by_age_group=ages,
            monthly_appointments=[
                MonthlyCount(month=month, count=count) for month, count in sorted(per_month.items())
            ],
        )
