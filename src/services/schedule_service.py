"""
Work schedule service for managing doctor shift assignments.

This module contains the business logic behind the schedule management
screens: creating assignments in bulk, editing them by date, by id or by
range, and the read-side views (daily view, grouped lists, monthly summary,
per-day shift limits).

All writes go through has_conflict so that, for one doctor and one shift, two
assignments that are not cancelled never overlap.
"""

import logging
from collections import defaultdict
from datetime import date, time, timedelta
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from fastapi import HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from core import config
from core.constants import (
    DOCTOR_SHIFT_ACTIVE,
    DOCTOR_SHIFT_CANCELLED,
    DOCTOR_SHIFT_STATUSES,
    MAX_SHIFTS_PER_DOCTOR_PER_DAY,
    NOTIFICATION_TYPE_SCHEDULE,
    SCHEDULE_CONFLICT_POLICIES,
)
from models import Doctor, DoctorShift, Shift, User
from services.notification_service import NotificationService
from utils.datetime_utils import clinic_today, format_date, iter_dates, month_bounds
from utils.pagination import PagedResult, paginate, paginate_list
from utils.schedule_queries import filter_not_cancelled, filter_overlapping, has_conflict

logger = logging.getLogger(__name__)

NEW_SCHEDULE_TITLE = "New work schedule"
CHANGED_SCHEDULE_TITLE = "Work schedule changed"


class ShiftInfo(BaseModel):
    shift_id: int
    shift_type: str
    start_time: time
    end_time: time


class DoctorInfo(BaseModel):
    doctor_id: int
    user_id: int
    full_name: str
    specialty: str
    email: Optional[str] = None
    room_name: Optional[str] = None


class ShiftWithDoctors(ShiftInfo):
    doctors: List[DoctorInfo] = Field(default_factory=list)


class DailyWorkSchedule(BaseModel):
    """Shifts worked on one date, each with its doctors."""
    date: date
    shifts: List[ShiftWithDoctors]


class WorkScheduleGroup(BaseModel):
    """Assignments sharing the same date range, grouped by shift."""
    effective_from: date
    effective_to: Optional[date] = None
    shifts: List[ShiftWithDoctors]


class WorkScheduleEntry(BaseModel):
    """One assignment row with doctor and shift details."""
    doctor_shift_id: int
    doctor_id: int
    doctor_name: str
    specialty: str
    shift_id: int
    shift_type: str
    start_time: time
    end_time: time
    effective_from: date
    effective_to: Optional[date] = None
    status: str


class DoctorScheduleItem(BaseModel):
    """One shift a doctor works on one date."""
    doctor_id: int
    doctor_name: str
    specialty: str
    room_name: Optional[str] = None
    date: date
    shift_id: int
    shift_type: str
    start_time: time
    end_time: time
    status: str


class DailySummary(BaseModel):
    date: date
    shift_count: int
    doctor_count: int


class ShiftDoctors(BaseModel):
    """Doctors to assign to one shift."""
    shift_id: int
    doctor_ids: List[int] = Field(default_factory=list)


class SkippedAssignment(BaseModel):
    doctor_id: int
    shift_id: int
    reason: str


class ScheduleCreateResult(BaseModel):
    created_count: int
    skipped: List[SkippedAssignment] = Field(default_factory=list)


class ScheduleUpdateResult(BaseModel):
    """Outcome of an update that adds and removes doctors."""
    updated_count: int = 0
    added_doctor_ids: List[int] = Field(default_factory=list)
    removed_doctor_ids: List[int] = Field(default_factory=list)


def _shift_info(shift: Shift) -> ShiftInfo:
    return ShiftInfo(
        shift_id=shift.id,
        shift_type=shift.shift_type,
        start_time=shift.start_time,
        end_time=shift.end_time,
    )


def _doctor_info(doctor: Doctor) -> DoctorInfo:
    return DoctorInfo(
        doctor_id=doctor.id,
        user_id=doctor.user_id,
        full_name=doctor.user.full_name,
        specialty=doctor.specialty,
        email=doctor.user.email,
        room_name=doctor.room.name if doctor.room else None,
    )


def _entry(row: DoctorShift) -> WorkScheduleEntry:
    return WorkScheduleEntry(
        doctor_shift_id=row.id,
        doctor_id=row.doctor_id,
        doctor_name=row.doctor.user.full_name,
        specialty=row.doctor.specialty,
        shift_id=row.shift_id,
        shift_type=row.shift.shift_type,
        start_time=row.shift.start_time,
        end_time=row.shift.end_time,
        effective_from=row.effective_from,
        effective_to=row.effective_to,
        status=row.status,
    )


def _schedule_items(rows: Iterable[DoctorShift], start_date: date, end_date: date) -> List[DoctorScheduleItem]:
    """Expand assignments into one item per worked day, clipped to [start_date, end_date]."""
    items: List[DoctorScheduleItem] = []
    for row in rows:
        first = max(row.effective_from, start_date)
        last = end_date if row.effective_to is None else min(row.effective_to, end_date)
        for day in iter_dates(first, last):
            items.append(DoctorScheduleItem(
                doctor_id=row.doctor_id,
                doctor_name=row.doctor.user.full_name,
                specialty=row.doctor.specialty,
                room_name=row.doctor.room.name if row.doctor.room else None,
                date=day,
                shift_id=row.shift_id,
                shift_type=row.shift.shift_type,
                start_time=row.shift.start_time,
                end_time=row.shift.end_time,
                status=row.status,
            ))
    return items


def _group_by_shift(rows: Iterable[DoctorShift]) -> List[ShiftWithDoctors]:
    """Group assignments by shift, ordered by shift start time, doctors by name."""
    by_shift: Dict[int, List[DoctorShift]] = defaultdict(list)
    for row in rows:
        by_shift[row.shift_id].append(row)

    shifts: List[ShiftWithDoctors] = []
    for shift_rows in by_shift.values():
        shift = shift_rows[0].shift
        doctors = {row.doctor_id: row.doctor for row in shift_rows}
        shifts.append(ShiftWithDoctors(
            **_shift_info(shift).model_dump(),
            doctors=sorted(
                (_doctor_info(doctor) for doctor in doctors.values()),
                key=lambda d: (d.full_name, d.doctor_id),
            ),
        ))
    shifts.sort(key=lambda s: (s.start_time, s.shift_id))
    return shifts


class ScheduleService:
    """
    Service class for doctor work schedules.

    Contains business logic for schedule creation, edits and read-side views
    that is shared by the manage-schedule endpoints.
    """

    # ===== Lookups =====

    @staticmethod
    def _base_query(db: Session):
        """Non-cancelled assignments with doctor, user, room and shift loaded."""
        query = db.query(DoctorShift).options(
            joinedload(DoctorShift.doctor).joinedload(Doctor.user),
            joinedload(DoctorShift.doctor).joinedload(Doctor.room),
            joinedload(DoctorShift.shift),
        )
        return filter_not_cancelled(query)

    @staticmethod
    def _require_shift(db: Session, shift_id: int) -> Shift:
        shift = db.query(Shift).filter(Shift.id == shift_id).first()
        if not shift:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Shift {shift_id} not found"
            )
        return shift

    @staticmethod
    def _require_doctors(db: Session, doctor_ids: Iterable[int]) -> None:
        wanted = set(doctor_ids)
        if not wanted:
            return
        found = {doctor_id for (doctor_id,) in db.query(Doctor.id).filter(Doctor.id.in_(wanted)).all()}
        missing = sorted(wanted - found)
        if missing:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Doctors not found: {missing}"
            )

    @staticmethod
    def _validate_range(range_start: date, range_end: Optional[date]) -> None:
        if range_end is not None and range_start > range_end:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Start date must be on or before end date"
            )

    @staticmethod
    def get_user_ids_for_doctors(db: Session, doctor_ids: Iterable[int]) -> List[int]:
        """Map doctor profile ids to the user ids notifications are addressed to."""
        wanted = list(dict.fromkeys(doctor_ids))
        if not wanted:
            return []
        rows = db.query(Doctor.user_id).filter(Doctor.id.in_(wanted)).all()
        return list(dict.fromkeys(user_id for (user_id,) in rows))

    @staticmethod
    def _notify_doctors(db: Session, doctor_ids: Iterable[int], title: str, content: str) -> None:
        """
        Send a schedule notification to the given doctors.

        Runs after the schedule change is committed. A failure here is logged
        and never undoes the schedule change.
        """
        try:
            receivers = ScheduleService.get_user_ids_for_doctors(db, doctor_ids)
            if not receivers:
                return
            NotificationService.send_notification(
                db,
                title=title,
                content=content,
                type=NOTIFICATION_TYPE_SCHEDULE,
                created_by=None,
                receiver_ids=receivers,
            )
        except Exception as e:
            db.rollback()
            logger.exception(f"Failed to send '{title}' notification to doctors: {e}")

    @staticmethod
    def _range_text(effective_from: date, effective_to: Optional[date]) -> str:
        if effective_to is None:
            return f"from {format_date(effective_from)} until further notice"
        return f"from {format_date(effective_from)} to {format_date(effective_to)}"

    @staticmethod
    def get_all_shifts(db: Session) -> List[ShiftInfo]:
        """List all shifts ordered by start time."""
        shifts = db.query(Shift).order_by(Shift.start_time, Shift.id).all()
        return [_shift_info(shift) for shift in shifts]

    @staticmethod
    def get_doctors(db: Session, keyword: Optional[str] = None) -> List[DoctorInfo]:
        """
        List doctors, optionally filtered by a keyword.

        The keyword matches the doctor's name or specialty, case-insensitively.
        """
        query = db.query(Doctor).join(User, Doctor.user_id == User.id).options(
            joinedload(Doctor.user), joinedload(Doctor.room)
        )
        if keyword and keyword.strip():
            pattern = f"%{keyword.strip()}%"
            query = query.filter(or_(User.full_name.ilike(pattern), Doctor.specialty.ilike(pattern)))
        doctors = query.order_by(User.full_name, Doctor.id).all()
        return [_doctor_info(doctor) for doctor in doctors]

    @staticmethod
    def check_conflict(
        db: Session, doctor_id: int, shift_id: int, range_start: date, range_end: Optional[date]
    ) -> bool:
        """Check whether the doctor already works the shift somewhere in the range."""
        ScheduleService._validate_range(range_start, range_end)
        return has_conflict(db, doctor_id, shift_id, range_start, range_end)

    # ===== Writes =====

    @staticmethod
    def create_schedule(
        db: Session,
        effective_from: date,
        effective_to: Optional[date],
        shifts: Sequence[ShiftDoctors],
        conflict_policy: Optional[str] = None,
    ) -> ScheduleCreateResult:
        """
        Create one Active assignment per (shift, doctor) pair.

        Conflicting pairs are handled by the conflict policy: "skip" leaves them
        out and reports them, "reject" fails the whole batch with 409. All rows
        are written in one transaction. Afterwards every requested doctor is sent
        a "New work schedule" notification.

        Args:
            db: Database session
            effective_from: First day of the schedule
            effective_to: Last day of the schedule, None for open-ended
            shifts: Doctors to assign per shift
            conflict_policy: Overrides SCHEDULE_CONFLICT_POLICY

        Returns:
            ScheduleCreateResult with the created count and skipped pairs

        Raises:
            HTTPException: 400 for an invalid range or policy, 404 for unknown
                shifts or doctors, 409 on conflict under the reject policy
        """
        ScheduleService._validate_range(effective_from, effective_to)

        policy = (conflict_policy or config.SCHEDULE_CONFLICT_POLICY).strip().lower()
        if policy not in SCHEDULE_CONFLICT_POLICIES:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Unknown schedule conflict policy '{policy}'"
            )

        for entry in shifts:
            ScheduleService._require_shift(db, entry.shift_id)
        ScheduleService._require_doctors(db, (d for entry in shifts for d in entry.doctor_ids))

        created_count = 0
        skipped: List[SkippedAssignment] = []
        try:
            for entry in shifts:
                for doctor_id in dict.fromkeys(entry.doctor_ids):
                    if has_conflict(db, doctor_id, entry.shift_id, effective_from, effective_to):
                        if policy == "reject":
                            raise HTTPException(
                                status_code=status.HTTP_409_CONFLICT,
                                detail=f"Doctor {doctor_id} already works shift {entry.shift_id} in this period"
                            )
                        skipped.append(SkippedAssignment(
                            doctor_id=doctor_id,
                            shift_id=entry.shift_id,
                            reason="Doctor already has an overlapping assignment for this shift",
                        ))
                        continue

                    db.add(DoctorShift(
                        doctor_id=doctor_id,
                        shift_id=entry.shift_id,
                        effective_from=effective_from,
                        effective_to=effective_to,
                        status=DOCTOR_SHIFT_ACTIVE,
                    ))
                    # Flush so later pairs in the same batch see this row
                    db.flush()
                    created_count += 1
            db.commit()
        except IntegrityError as e:
            db.rollback()
            logger.warning(f"Schedule creation hit a uniqueness violation: {e}")
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="A doctor already has an assignment for this shift starting on that day"
            )
        except HTTPException:
            db.rollback()
            raise

        logger.info(
            f"Created {created_count} doctor shift(s) {effective_from}..{effective_to}, "
            f"skipped {len(skipped)} (policy={policy})"
        )

        doctor_ids = list(dict.fromkeys(d for entry in shifts for d in entry.doctor_ids))
        if doctor_ids:
            ScheduleService._notify_doctors(
                db,
                doctor_ids,
                NEW_SCHEDULE_TITLE,
                f"Your work schedule {ScheduleService._range_text(effective_from, effective_to)} "
                f"has been created. Please check your work schedule.",
            )

        return ScheduleCreateResult(created_count=created_count, skipped=skipped)

    @staticmethod
    def update_doctor_shifts_in_range(
        db: Session,
        shift_id: int,
        from_date: date,
        to_date: Optional[date],
        new_to_date: Optional[date] = None,
        add_doctor_ids: Sequence[int] = (),
        remove_doctor_ids: Sequence[int] = (),
    ) -> ScheduleUpdateResult:
        """
        Reconcile the doctors assigned to a shift over an exact date range.

        The group is every non-cancelled assignment of the shift whose range is
        exactly [from_date, to_date]. Removed doctors' rows are deleted, the
        remaining rows optionally move their end to new_to_date, and added
        doctors get a new row over the (possibly extended) range. Everything is
        one transaction.

        Raises:
            HTTPException: 400 if new_to_date is before from_date, 404 if the
                group, shift or an added doctor does not exist, 409 on conflict
        """
        if new_to_date is not None and new_to_date < from_date:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="New end date must be on or after the start date"
            )

        ScheduleService._require_shift(db, shift_id)

        query = db.query(DoctorShift).filter(
            DoctorShift.shift_id == shift_id,
            DoctorShift.effective_from == from_date,
        )
        if to_date is None:
            query = query.filter(DoctorShift.effective_to.is_(None))
        else:
            query = query.filter(DoctorShift.effective_to == to_date)
        existing = filter_not_cancelled(query).all()
        if not existing:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="No schedule found for this shift and date range"
            )

        add_ids = list(dict.fromkeys(add_doctor_ids))
        remove_ids = set(remove_doctor_ids)
        ScheduleService._require_doctors(db, add_ids)

        end_date = new_to_date if new_to_date is not None else to_date
        result = ScheduleUpdateResult()
        try:
            remaining: List[DoctorShift] = []
            for row in existing:
                if row.doctor_id in remove_ids:
                    db.delete(row)
                    result.removed_doctor_ids.append(row.doctor_id)
                else:
                    remaining.append(row)
            db.flush()

            if new_to_date is not None:
                for row in remaining:
                    if has_conflict(db, row.doctor_id, shift_id, from_date, new_to_date, exclude_id=row.id):
                        raise HTTPException(
                            status_code=status.HTTP_409_CONFLICT,
                            detail=f"Doctor {row.doctor_id} already works shift {shift_id} in the extended period"
                        )
                    row.effective_to = new_to_date
                    result.updated_count += 1
                db.flush()

            kept_doctor_ids = {row.doctor_id for row in remaining}
            for doctor_id in add_ids:
                if doctor_id in kept_doctor_ids:
                    continue
                if has_conflict(db, doctor_id, shift_id, from_date, end_date):
                    raise HTTPException(
                        status_code=status.HTTP_409_CONFLICT,
                        detail=f"Doctor {doctor_id} already works shift {shift_id} in this period"
                    )
                db.add(DoctorShift(
                    doctor_id=doctor_id,
                    shift_id=shift_id,
                    effective_from=from_date,
                    effective_to=end_date,
                    status=DOCTOR_SHIFT_ACTIVE,
                ))
                db.flush()
                result.added_doctor_ids.append(doctor_id)

            db.commit()
        except IntegrityError as e:
            db.rollback()
            logger.warning(f"Range update hit a uniqueness violation: {e}")
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="A doctor already has an assignment for this shift starting on that day"
            )
        except HTTPException:
            db.rollback()
            raise

        logger.info(
            f"Updated shift {shift_id} range {from_date}..{to_date}: "
            f"added={result.added_doctor_ids}, removed={result.removed_doctor_ids}, "
            f"new_to_date={new_to_date}"
        )

        range_text = ScheduleService._range_text(from_date, end_date)
        if result.added_doctor_ids:
            ScheduleService._notify_doctors(
                db,
                result.added_doctor_ids,
                NEW_SCHEDULE_TITLE,
                f"Your work schedule {range_text} has been created. Please check your work schedule.",
            )
        if result.removed_doctor_ids:
            ScheduleService._notify_doctors(
                db,
                result.removed_doctor_ids,
                CHANGED_SCHEDULE_TITLE,
                f"Your work schedule {ScheduleService._range_text(from_date, to_date)} has changed. "
                f"Please check your work schedule.",
            )

        return result

    @staticmethod
    def update_work_schedule_by_date(
        db: Session,
        day: date,
        shift_id: int,
        add_doctor_ids: Sequence[int] = (),
        remove_doctor_ids: Sequence[int] = (),
    ) -> ScheduleUpdateResult:
        """
        Add or remove doctors on a single date of a shift.

        Removing a doctor cancels the active assignment covering the date and
        re-creates the parts before and after it, so only that one day is taken
        out. Adding a doctor inserts a single-day assignment unless one already
        covers the date.

        Raises:
            HTTPException: 404 for an unknown shift or doctor, 409 on a
                uniqueness violation
        """
        ScheduleService._require_shift(db, shift_id)
        add_ids = list(dict.fromkeys(add_doctor_ids))
        remove_ids = list(dict.fromkeys(remove_doctor_ids))
        ScheduleService._require_doctors(db, add_ids + remove_ids)

        result = ScheduleUpdateResult()
        try:
            for doctor_id in remove_ids:
                covering = db.query(DoctorShift).filter(
                    DoctorShift.doctor_id == doctor_id,
                    DoctorShift.shift_id == shift_id,
                    DoctorShift.status == DOCTOR_SHIFT_ACTIVE,
                    DoctorShift.effective_from <= day,
                    or_(DoctorShift.effective_to.is_(None), DoctorShift.effective_to >= day),
                ).all()
                for row in covering:
                    row.status = DOCTOR_SHIFT_CANCELLED
                    # Cancel first so the split rows do not collide with it
                    db.flush()

                    if row.effective_from < day:
                        db.add(DoctorShift(
                            doctor_id=doctor_id,
                            shift_id=shift_id,
                            effective_from=row.effective_from,
                            effective_to=day - timedelta(days=1),
                            status=DOCTOR_SHIFT_ACTIVE,
                        ))
                    if row.effective_to is None or row.effective_to > day:
                        db.add(DoctorShift(
                            doctor_id=doctor_id,
                            shift_id=shift_id,
                            effective_from=day + timedelta(days=1),
                            effective_to=row.effective_to,
                            status=DOCTOR_SHIFT_ACTIVE,
                        ))
                    db.flush()
                    result.updated_count += 1
                if covering:
                    result.removed_doctor_ids.append(doctor_id)

            for doctor_id in add_ids:
                if has_conflict(db, doctor_id, shift_id, day, day):
                    continue
                db.add(DoctorShift(
                    doctor_id=doctor_id,
                    shift_id=shift_id,
                    effective_from=day,
                    effective_to=day,
                    status=DOCTOR_SHIFT_ACTIVE,
                ))
                db.flush()
                result.added_doctor_ids.append(doctor_id)

            db.commit()
        except IntegrityError as e:
            db.rollback()
            logger.warning(f"Update by date hit a uniqueness violation: {e}")
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="A doctor already has an assignment for this shift starting on that day"
            )
        except HTTPException:
            db.rollback()
            raise

        logger.info(
            f"Updated shift {shift_id} on {day}: added={result.added_doctor_ids}, "
            f"removed={result.removed_doctor_ids}"
        )
        return result

    @staticmethod
    def update_work_schedule_by_id(
        db: Session,
        doctor_shift_id: int,
        doctor_id: Optional[int] = None,
        shift_id: Optional[int] = None,
        effective_from: Optional[date] = None,
        effective_to: Optional[date] = None,
        new_status: Optional[str] = None,
        clear_effective_to: bool = False,
    ) -> WorkScheduleEntry:
        """
        Edit a single assignment. Fields left as None keep their current value.

        clear_effective_to makes the assignment open-ended; it cannot be
        combined with a new effective_to.

        Returns:
            The updated assignment

        Raises:
            HTTPException: 404 for an unknown assignment, doctor or shift, 400
                for an invalid range or status, 409 on conflict
        """
        row = db.query(DoctorShift).filter(DoctorShift.id == doctor_shift_id).first()
        if not row:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Work schedule {doctor_shift_id} not found"
            )

        if doctor_id is not None:
            ScheduleService._require_doctors(db, [doctor_id])
        if shift_id is not None:
            ScheduleService._require_shift(db, shift_id)
        if clear_effective_to and effective_to is not None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Cannot set and clear effective_to at the same time"
            )
        if new_status is not None and new_status not in DOCTOR_SHIFT_STATUSES:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Invalid status '{new_status}'"
            )

        target_doctor = doctor_id if doctor_id is not None else row.doctor_id
        target_shift = shift_id if shift_id is not None else row.shift_id
        target_from = effective_from if effective_from is not None else row.effective_from
        if clear_effective_to:
            target_to = None
        else:
            target_to = effective_to if effective_to is not None else row.effective_to
        target_status = new_status if new_status is not None else row.status

        ScheduleService._validate_range(target_from, target_to)

        placement_changed = (
            target_doctor != row.doctor_id
            or target_shift != row.shift_id
            or target_from != row.effective_from
            or target_to != row.effective_to
        )
        reactivated = row.status == DOCTOR_SHIFT_CANCELLED and target_status != DOCTOR_SHIFT_CANCELLED
        if (placement_changed or reactivated) and target_status != DOCTOR_SHIFT_CANCELLED:
            if has_conflict(db, target_doctor, target_shift, target_from, target_to, exclude_id=row.id):
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail=f"Doctor {target_doctor} already works shift {target_shift} in this period"
                )

        row.doctor_id = target_doctor
        row.shift_id = target_shift
        row.effective_from = target_from
        row.effective_to = target_to
        row.status = target_status
        try:
            db.commit()
        except IntegrityError as e:
            db.rollback()
            logger.warning(f"Update of work schedule {doctor_shift_id} hit a uniqueness violation: {e}")
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="A doctor already has an assignment for this shift starting on that day"
            )

        logger.info(f"Updated work schedule {doctor_shift_id}: {row}")

        db.refresh(row)
        return _entry(row)

    # ===== Read side =====

    @staticmethod
    def get_schedules_by_range(db: Session, start_date: date, end_date: date) -> List[DailyWorkSchedule]:
        """
        Daily view: for each date in the range that has work, the shifts and their doctors.

        Open-ended assignments apply through the end of the range.
        """
        ScheduleService._validate_range(start_date, end_date)
        rows = filter_overlapping(ScheduleService._base_query(db), start_date, end_date).all()

        days: List[DailyWorkSchedule] = []
        for day in iter_dates(start_date, end_date):
            covering = [row for row in rows if row.covers(day)]
            if covering:
                days.append(DailyWorkSchedule(date=day, shifts=_group_by_shift(covering)))
        return days

    @staticmethod
    def get_schedules_by_date(
        db: Session, day: Optional[date], page_number: int, page_size: int
    ) -> PagedResult[DailyWorkSchedule]:
        """
        Page through schedules grouped by start date, newest first.

        When day is given only assignments covering that day are included.
        """
        query = ScheduleService._base_query(db)
        if day is not None:
            query = filter_overlapping(query, day, day)

        by_start: Dict[date, List[DoctorShift]] = defaultdict(list)
        for row in query.all():
            by_start[row.effective_from].append(row)

        groups = [
            DailyWorkSchedule(date=start, shifts=_group_by_shift(rows))
            for start, rows in sorted(by_start.items(), key=lambda item: item[0], reverse=True)
        ]
        return paginate_list(groups, page_number, page_size)

    @staticmethod
    def get_all_schedules(
        db: Session,
        page_number: int,
        page_size: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> PagedResult[WorkScheduleEntry]:
        """Page through individual assignments, newest start date first."""
        query = ScheduleService._base_query(db)
        if start_date is not None:
            ScheduleService._validate_range(start_date, end_date)
            query = filter_overlapping(query, start_date, end_date)
        query = query.order_by(DoctorShift.effective_from.desc(), DoctorShift.id.desc())
        return paginate(query, page_number, page_size).map(_entry)

    @staticmethod
    def get_grouped_schedules(db: Session, page_number: int, page_size: int) -> PagedResult[WorkScheduleGroup]:
        """
        Page through assignments grouped by (effective_from, effective_to), then by shift.

        Groups are ordered by start date, newest first. Within a group the most
        recently created shift and doctor come first.
        """
        rows = ScheduleService._base_query(db).all()

        by_range: Dict[Tuple[date, Optional[date]], List[DoctorShift]] = defaultdict(list)
        for row in rows:
            by_range[(row.effective_from, row.effective_to)].append(row)

        groups: List[WorkScheduleGroup] = []
        for (effective_from, effective_to), range_rows in by_range.items():
            by_shift: Dict[int, List[DoctorShift]] = defaultdict(list)
            for row in range_rows:
                by_shift[row.shift_id].append(row)

            shifts: List[ShiftWithDoctors] = []
            ordered = sorted(by_shift.values(), key=lambda rs: max(r.id for r in rs), reverse=True)
            for shift_rows in ordered:
                shift_rows.sort(key=lambda r: r.id, reverse=True)
                shifts.append(ShiftWithDoctors(
                    **_shift_info(shift_rows[0].shift).model_dump(),
                    doctors=[_doctor_info(r.doctor) for r in shift_rows],
                ))
            groups.append(WorkScheduleGroup(
                effective_from=effective_from,
                effective_to=effective_to,
                shifts=shifts,
            ))

        groups.sort(key=lambda g: (g.effective_from, g.effective_to or date.max), reverse=True)
        return paginate_list(groups, page_number, page_size)

    @staticmethod
    def get_monthly_summary(db: Session, year: int, month: int) -> List[DailySummary]:
        """
        Count shifts and doctors working on each day of a month.

        Every day of the month is present, with zero counts for days without work.

        Raises:
            ValueError: If year or month is out of range
        """
        first_day, last_day = month_bounds(year, month)
        rows = filter_overlapping(
            filter_not_cancelled(db.query(DoctorShift)), first_day, last_day
        ).all()

        summary: List[DailySummary] = []
        for day in iter_dates(first_day, last_day):
            covering = [row for row in rows if row.covers(day)]
            summary.append(DailySummary(
                date=day,
                shift_count=len({row.shift_id for row in covering}),
                doctor_count=len({row.doctor_id for row in covering}),
            ))
        return summary

    @staticmethod
    def _shift_counts_by_day(db: Session, doctor_id: int, start_date: date, end_date: date) -> Dict[date, int]:
        rows = filter_overlapping(
            filter_not_cancelled(db.query(DoctorShift).filter(DoctorShift.doctor_id == doctor_id)),
            start_date,
            end_date,
        ).all()
        return {
            day: len({row.shift_id for row in rows if row.covers(day)})
            for day in iter_dates(start_date, end_date)
        }

    @staticmethod
    def check_doctor_shift_limit(db: Session, doctor_id: int, day: date) -> bool:
        """True if the doctor can take another shift on the day (fewer than the daily maximum)."""
        counts = ScheduleService._shift_counts_by_day(db, doctor_id, day, day)
        return counts[day] < MAX_SHIFTS_PER_DOCTOR_PER_DAY

    @staticmethod
    def check_doctor_shift_limit_range(db: Session, doctor_id: int, start_date: date, end_date: date) -> bool:
        """True if the doctor can take another shift on every day of the range."""
        ScheduleService._validate_range(start_date, end_date)
        counts = ScheduleService._shift_counts_by_day(db, doctor_id, start_date, end_date)
        return all(count < MAX_SHIFTS_PER_DOCTOR_PER_DAY for count in counts.values())

    @staticmethod
    def get_doctors_without_schedule(db: Session, start_date: date, end_date: date) -> List[DoctorInfo]:
        """List doctors with no assignment on any day of the range."""
        ScheduleService._validate_range(start_date, end_date)
        scheduled_ids = [
            doctor_id for (doctor_id,) in filter_overlapping(
                filter_not_cancelled(db.query(DoctorShift.doctor_id)), start_date, end_date
            ).distinct().all()
        ]

        doctors = db.query(Doctor).join(User, Doctor.user_id == User.id).options(
            joinedload(Doctor.user), joinedload(Doctor.room)
        ).filter(
            Doctor.id.notin_(scheduled_ids)
        ).order_by(User.full_name, Doctor.id).all()
        return [_doctor_info(doctor) for doctor in doctors]

    # ===== Doctor schedule =====

    @staticmethod
    def _active_rows_in_range(db: Session, start_date: date, end_date: date):
        query = db.query(DoctorShift).options(
            joinedload(DoctorShift.doctor).joinedload(Doctor.user),
            joinedload(DoctorShift.doctor).joinedload(Doctor.room),
            joinedload(DoctorShift.shift),
        ).filter(DoctorShift.status == DOCTOR_SHIFT_ACTIVE)
        return filter_overlapping(query, start_date, end_date)

    @staticmethod
    def get_doctor_schedule_in_range(
        db: Session,
        doctor_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> List[DoctorScheduleItem]:
        """
        A doctor's active shifts, one item per worked day, ordered by date and start time.

        When either date is missing the whole current month is used.

        Raises:
            HTTPException: 400 for a non-positive doctor id or an invalid range,
                404 for an unknown doctor
        """
        if doctor_id <= 0:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="doctor_id must be greater than 0"
            )
        ScheduleService._require_doctors(db, [doctor_id])

        if start_date is None or end_date is None:
            today = clinic_today()
            start_date, end_date = month_bounds(today.year, today.month)
        ScheduleService._validate_range(start_date, end_date)

        rows = ScheduleService._active_rows_in_range(db, start_date, end_date).filter(
            DoctorShift.doctor_id == doctor_id
        ).all()
        items = _schedule_items(rows, start_date, end_date)
        items.sort(key=lambda i: (i.date, i.start_time, i.shift_id))
        return items

    @staticmethod
    def get_all_doctor_schedules_in_range(db: Session, start_date: date, end_date: date) -> List[DoctorScheduleItem]:
        """Active shifts of every active doctor, ordered by doctor name, date and start time."""
        ScheduleService._validate_range(start_date, end_date)

        rows = ScheduleService._active_rows_in_range(db, start_date, end_date).join(
            Doctor, DoctorShift.doctor_id == Doctor.id
        ).join(
            User, Doctor.user_id == User.id
        ).filter(User.is_active.is_(True)).all()
        items = _schedule_items(rows, start_date, end_date)
        items.sort(key=lambda i: (i.doctor_name, i.doctor_id, i.date, i.start_time, i.shift_id))
        return items
