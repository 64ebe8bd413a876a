# pyright: reportMissingTypeStubs=false
"""
Doctor-facing schedule API endpoints.
"""

import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from core.database import get_db
from services import ScheduleService
from services.schedule_service import DoctorScheduleItem

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/{doctor_id}", summary="A doctor's active schedule", response_model=List[DoctorScheduleItem])
async def get_doctor_schedule(
    doctor_id: int,
    start_date: Optional[date] = Query(None, description="Defaults to the first day of the current month"),
    end_date: Optional[date] = Query(None, description="Defaults to the last day of the current month"),
    db: Session = Depends(get_db)
) -> List[DoctorScheduleItem]:
    """One entry per day and shift the doctor works in the range."""
    return ScheduleService.get_doctor_schedule_in_range(db, doctor_id, start_date, end_date)
