# pyright: reportMissingTypeStubs=false
"""
Work schedule management API endpoints.

Used by the clinic manager to assign doctors to shifts and by the front desk
to look up who works when.
"""

import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field, model_validator
from sqlalchemy.orm import Session

from core.constants import DEFAULT_PAGE_SIZE
from core.database import get_db
from services import ScheduleService
from services.schedule_service import (
    DailySummary,
    DailyWorkSchedule,
    DoctorInfo,
    DoctorScheduleItem,
    ScheduleCreateResult,
    ScheduleUpdateResult,
    ShiftDoctors,
    ShiftInfo,
    WorkScheduleEntry,
    WorkScheduleGroup,
)
from utils.pagination import PagedResult
from api.responses import ConflictCheckResponse, ShiftLimitResponse

logger = logging.getLogger(__name__)

router = APIRouter()


class CreateScheduleRequest(BaseModel):
    """Request model for creating schedules in bulk."""
    effective_from: date
    effective_to: Optional[date] = None
    shifts: List[ShiftDoctors] = Field(..., min_length=1)

    @model_validator(mode='after')
    def validate_range(self) -> 'CreateScheduleRequest':
        if self.effective_to is not None and self.effective_from > self.effective_to:
            raise ValueError("effective_from must be on or before effective_to")
        return self


class UpdateByDateRequest(BaseModel):
    """Request model for adding/removing doctors on a single date."""
    date: date
    shift_id: int = Field(..., gt=0)
    add_doctor_ids: List[int] = Field(default_factory=list)
    remove_doctor_ids: List[int] = Field(default_factory=list)


class UpdateByIdRequest(BaseModel):
    """
    Request model for editing one assignment. Omitted fields are left unchanged.

    Sending effective_to as null makes the assignment open-ended.
    """
    doctor_shift_id: int = Field(..., gt=0)
    doctor_id: Optional[int] = Field(None, gt=0)
    shift_id: Optional[int] = Field(None, gt=0)
    effective_from: Optional[date] = None
    effective_to: Optional[date] = None
    status: Optional[str] = None


class UpdateRangeRequest(BaseModel):
    """Request model for reconciling the doctors of a shift over an exact range."""
    shift_id: int = Field(..., gt=0)
    from_date: date
    to_date: Optional[date] = None
    new_to_date: Optional[date] = None
    add_doctor_ids: List[int] = Field(default_factory=list)
    remove_doctor_ids: List[int] = Field(default_factory=list)


@router.get("/shifts", summary="List shifts", response_model=List[ShiftInfo])
async def list_shifts(db: Session = Depends(get_db)) -> List[ShiftInfo]:
    """Get all shifts ordered by start time."""
    return ScheduleService.get_all_shifts(db)


@router.get("/doctors", summary="List or search doctors", response_model=List[DoctorInfo])
async def list_doctors(
    keyword: Optional[str] = Query(None, max_length=200, description="Filter by doctor name or specialty"),
    db: Session = Depends(get_db)
) -> List[DoctorInfo]:
    """Get all doctors, optionally filtered by keyword."""
    return ScheduleService.get_doctors(db, keyword)


@router.get("/check-conflict", summary="Check doctor availability", response_model=ConflictCheckResponse)
async def check_conflict(
    doctor_id: int = Query(..., gt=0),
    shift_id: int = Query(..., gt=0),
    from_date: date = Query(..., alias="from"),
    to_date: date = Query(..., alias="to"),
    db: Session = Depends(get_db)
) -> ConflictCheckResponse:
    """Check whether the doctor is free for the shift over the whole range."""
    conflict = ScheduleService.check_conflict(db, doctor_id, shift_id, from_date, to_date)
    return ConflictCheckResponse(
        is_available=not conflict,
        message="Doctor already has an overlapping schedule." if conflict else "Doctor is available in this period."
    )


@router.post("/create-schedule", summary="Create work schedules", response_model=ScheduleCreateResult)
async def create_schedule(
    request: CreateScheduleRequest,
    db: Session = Depends(get_db)
) -> ScheduleCreateResult:
    """
    Assign doctors to shifts for a date range.

    Conflicting assignments are skipped or reject the request depending on
    the configured conflict policy. Assigned doctors are notified.
    """
    return ScheduleService.create_schedule(
        db,
        effective_from=request.effective_from,
        effective_to=request.effective_to,
        shifts=request.shifts,
    )


@router.get("/schedules-by-range", summary="Daily schedule view", response_model=List[DailyWorkSchedule])
async def get_schedules_by_range(
    start: date = Query(...),
    end: date = Query(...),
    db: Session = Depends(get_db)
) -> List[DailyWorkSchedule]:
    """For each date in the range with work, the shifts and the doctors on them."""
    return ScheduleService.get_schedules_by_range(db, start, end)


@router.get(
    "/schedules-by-date",
    summary="Schedules grouped by start date",
    response_model=PagedResult[DailyWorkSchedule],
)
async def get_schedules_by_date(
    date_filter: Optional[date] = Query(None, alias="date"),
    page_number: int = Query(1),
    page_size: int = Query(DEFAULT_PAGE_SIZE),
    db: Session = Depends(get_db)
):
    return ScheduleService.get_schedules_by_date(db, date_filter, page_number, page_size)


@router.get("/schedules", summary="List schedules", response_model=PagedResult[WorkScheduleEntry])
async def list_schedules(
    page_number: int = Query(1),
    page_size: int = Query(DEFAULT_PAGE_SIZE),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    db: Session = Depends(get_db)
):
    """Page through individual assignments, optionally limited to those overlapping a range."""
    return ScheduleService.get_all_schedules(db, page_number, page_size, start_date, end_date)


@router.get(
    "/grouped-schedules",
    summary="Schedules grouped by date range and shift",
    response_model=PagedResult[WorkScheduleGroup],
)
async def list_grouped_schedules(
    page_number: int = Query(1),
    page_size: int = Query(DEFAULT_PAGE_SIZE),
    db: Session = Depends(get_db)
):
    if page_number <= 0 or page_size <= 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="page_number and page_size must be greater than 0"
        )
    return ScheduleService.get_grouped_schedules(db, page_number, page_size)


@router.get("/monthly-summary", summary="Monthly schedule summary", response_model=List[DailySummary])
async def get_monthly_summary(
    year: int = Query(...),
    month: int = Query(...),
    db: Session = Depends(get_db)
) -> List[DailySummary]:
    """Number of shifts and doctors working on each day of the month."""
    try:
        return ScheduleService.get_monthly_summary(db, year, month)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e)
        )


@router.put("/update-by-date", summary="Update schedule on one date", response_model=ScheduleUpdateResult)
async def update_by_date(
    request: UpdateByDateRequest,
    db: Session = Depends(get_db)
) -> ScheduleUpdateResult:
    return ScheduleService.update_work_schedule_by_date(
        db,
        day=request.date,
        shift_id=request.shift_id,
        add_doctor_ids=request.add_doctor_ids,
        remove_doctor_ids=request.remove_doctor_ids,
    )


@router.put("/update-by-id", summary="Update one assignment", response_model=WorkScheduleEntry)
async def update_by_id(
    request: UpdateByIdRequest,
    db: Session = Depends(get_db)
) -> WorkScheduleEntry:
    return ScheduleService.update_work_schedule_by_id(
        db,
        doctor_shift_id=request.doctor_shift_id,
        doctor_id=request.doctor_id,
        shift_id=request.shift_id,
        effective_from=request.effective_from,
        effective_to=request.effective_to,
        new_status=request.status,
        clear_effective_to="effective_to" in request.model_fields_set and request.effective_to is None,
    )


@router.put(
    "/update-doctor-shifts-range",
    summary="Update doctors of a shift over a date range",
    response_model=ScheduleUpdateResult,
)
async def update_doctor_shifts_range(
    request: UpdateRangeRequest,
    db: Session = Depends(get_db)
) -> ScheduleUpdateResult:
    """
    Add or remove doctors for the shift group covering exactly [from_date, to_date].

    Optionally moves the end of the group to new_to_date. Added and removed
    doctors are notified.
    """
    return ScheduleService.update_doctor_shifts_in_range(
        db,
        shift_id=request.shift_id,
        from_date=request.from_date,
        to_date=request.to_date,
        new_to_date=request.new_to_date,
        add_doctor_ids=request.add_doctor_ids,
        remove_doctor_ids=request.remove_doctor_ids,
    )


@router.get("/check-limit", summary="Check daily shift limit", response_model=ShiftLimitResponse)
async def check_limit(
    doctor_id: int = Query(..., gt=0),
    date_value: date = Query(..., alias="date"),
    db: Session = Depends(get_db)
) -> ShiftLimitResponse:
    return ShiftLimitResponse(
        doctor_id=doctor_id,
        can_add_shift=ScheduleService.check_doctor_shift_limit(db, doctor_id, date_value),
    )


@router.get("/check-limit-range", summary="Check daily shift limit over a range", response_model=ShiftLimitResponse)
async def check_limit_range(
    doctor_id: int = Query(..., gt=0),
    from_date: date = Query(..., alias="from"),
    to_date: date = Query(..., alias="to"),
    db: Session = Depends(get_db)
) -> ShiftLimitResponse:
    return ShiftLimitResponse(
        doctor_id=doctor_id,
        can_add_shift=ScheduleService.check_doctor_shift_limit_range(db, doctor_id, from_date, to_date),
    )


@router.get(
    "/doctors-without-schedule",
    summary="Doctors without a schedule in a range",
    response_model=List[DoctorInfo],
)
async def doctors_without_schedule(
    start_date: date = Query(...),
    end_date: date = Query(...),
    db: Session = Depends(get_db)
) -> List[DoctorInfo]:
    return ScheduleService.get_doctors_without_schedule(db, start_date, end_date)


@router.get(
    "/all-doctor-schedules",
    summary="Active schedules of all doctors in a range",
    response_model=List[DoctorScheduleItem],
)
async def all_doctor_schedules(
    start_date: date = Query(...),
    end_date: date = Query(...),
    db: Session = Depends(get_db)
) -> List[DoctorScheduleItem]:
    return ScheduleService.get_all_doctor_schedules_in_range(db, start_date, end_date)
