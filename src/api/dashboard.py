# pyright: reportMissingTypeStubs=false
"""
Dashboard API endpoints.
"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from core.database import get_db
from services import DashboardService
from services.dashboard_service import ClinicStatus, PatientStatistics, default_statistics_range
from utils.datetime_utils import clinic_today

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/clinic-status", summary="Clinic status for a day", response_model=ClinicStatus)
async def get_clinic_status(
    day: Optional[date] = Query(None, alias="date", description="Defaults to today"),
    db: Session = Depends(get_db)
) -> ClinicStatus:
    """Appointment counters and new patients for a day."""
    return DashboardService.get_clinic_status(db, day or clinic_today())


@router.get("/patient-statistics", summary="Patient statistics", response_model=PatientStatistics)
async def get_patient_statistics(
    from_date: Optional[date] = Query(None, alias="from"),
    to_date: Optional[date] = Query(None, alias="to"),
    db: Session = Depends(get_db)
) -> PatientStatistics:
    """
    Patients by gender and age group, and appointments per month.

    Without a range, covers the twelve months up to today.
    """
    default_from, default_to = default_statistics_range(to_date)
    return DashboardService.get_patient_statistics(db, from_date or default_from, default_to)
