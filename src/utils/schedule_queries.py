"""
Reusable queries over doctor shift assignments.

Every place that asks "does this doctor already work this shift on these
days" goes through has_conflict so the overlap rule is applied consistently.
"""

from datetime import date
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session, Query

from core.constants import DOCTOR_SHIFT_CANCELLED
from models import DoctorShift


def filter_not_cancelled(query: Query[DoctorShift]) -> Query[DoctorShift]:
    """Restrict a DoctorShift query to rows that still count as scheduled."""
    return query.filter(DoctorShift.status != DOCTOR_SHIFT_CANCELLED)


def filter_overlapping(
    query: Query[DoctorShift],
    range_start: date,
    range_end: Optional[date],
) -> Query[DoctorShift]:
    """
    Keep assignments whose range shares at least one day with [range_start, range_end].

    A missing range_end means the proposed range is open-ended, and an
    assignment with no effective_to is open-ended too.
    """
    query = query.filter(
        or_(DoctorShift.effective_to.is_(None), DoctorShift.effective_to >= range_start)
    )
    if range_end is not None:
        query = query.filter(DoctorShift.effective_from <= range_end)
    return query


def has_conflict(
    db: Session,
    doctor_id: int,
    shift_id: int,
    range_start: date,
    range_end: Optional[date],
    exclude_id: Optional[int] = None,
) -> bool:
    """
    Check whether a doctor already holds the shift on any day of a range.

    Only assignments of the same doctor and the same shift count; cancelled
    assignments never conflict.

    Args:
        db: Database session
        doctor_id: Doctor ID
        shift_id: Shift ID
        range_start: First day of the proposed range
        range_end: Last day of the proposed range, or None for open-ended
        exclude_id: Assignment to ignore (the row being edited)

    Returns:
        True if an overlapping assignment exists

    Raises:
        ValueError: If range_start is after range_end
    """
    if range_end is not None and range_start > range_end:
        raise ValueError("Start date must be on or before end date")

    query = db.query(DoctorShift.id).filter(
        DoctorShift.doctor_id == doctor_id,
        DoctorShift.shift_id == shift_id,
    )
    query = filter_not_cancelled(query)
    query = filter_overlapping(query, range_start, range_end)
    if exclude_id is not None:
        query = query.filter(DoctorShift.id != exclude_id)

    return query.first() is not None
