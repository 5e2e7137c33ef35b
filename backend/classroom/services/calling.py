"""
Calling Service - "call on a student" operations.

random_call runs the selection pipeline (eligibility, fallback, uniform
pick) and records the pick. Two concurrent calls for the same owner can
read the same pool and pick the same student before either record lands;
that duplicate is accepted and not guarded against.
"""

import os
import time
from dataclasses import dataclass
from typing import Optional, Sequence

from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from classroom.errors import NotFound, StoreUnavailable
from classroom.models.call_history import CallHistory
from classroom.models.enums import CallMode
from classroom.models.student import Student
from classroom.services.history import record_call
from classroom.services.selection import (
    resolve_eligible, apply_fallback, pick_one, validate_owner
)
from classroom.logging_config import get_logger, log_with_context

logger = get_logger("selection")
db_logger = get_logger("db")

# ──────────────────────────────────────────────────────────────
# Configuration constants
# ──────────────────────────────────────────────────────────────
DEFAULT_AVOID_HOURS = int(os.getenv("CALL_AVOID_HOURS", "24"))


@dataclass
class CallResult:
    """What a random call returns to the caller."""
    student: Student
    total_available: int
    total_excluded: int
    avoid_reset_used: bool
    record: CallHistory


def random_call(db: Session, owner_id: str, avoid_hours: int = DEFAULT_AVOID_HOURS,
                exclude_ids: Optional[Sequence[str]] = None, rng=None) -> CallResult:
    """
    Pick one student at random for owner_id and record the call.

    Students called within the last avoid_hours hours are skipped unless
    that would leave nobody, in which case the window is ignored for this
    call and avoid_reset_used is True.

    Raises:
        InvalidArgument: bad owner_id or avoid_hours
        NoStudentsAvailable: no active (non-excluded) students exist
        StoreUnavailable: the database failed; nothing was written
    """
    start_time = time.time()

    resolved = resolve_eligible(db, owner_id, avoid_hours, exclude_ids)
    pool, reset_used = apply_fallback(resolved.eligible, resolved.base)
    student = pick_one(pool, rng)
    record = record_call(db, owner_id, student.id, CallMode.RANDOM)

    duration_ms = (time.time() - start_time) * 1000
    log_with_context(logger, "INFO",
        "Random call picked {} from {} candidates{}".format(
            student.name, len(pool), " (avoidance reset)" if reset_used else ""),
        context={"owner_id": owner_id, "student_id": student.id},
        extra_data={
            "duration_ms": round(duration_ms, 2),
            "avoid_hours": avoid_hours,
            "total_active": resolved.total_active,
            "excluded": resolved.excluded_count,
            "avoid_reset_used": reset_used,
        })

    return CallResult(
        student=student,
        total_available=len(pool),
        total_excluded=resolved.excluded_count,
        avoid_reset_used=reset_used,
        record=record,
    )


def manual_call(db: Session, owner_id: str, student_id: str) -> CallHistory:
    """Record that owner_id called on a specific active student."""
    validate_owner(owner_id)
    try:
        student = db.scalar(
            select(Student).where(
                Student.id == student_id,
                Student.owner_id == owner_id,
                Student.is_archived.is_(False),
            )
        )
    except SQLAlchemyError as e:
        db.rollback()
        log_with_context(db_logger, "ERROR", "Failed to load student: {}".format(e),
                         context={"owner_id": owner_id, "student_id": student_id})
        raise StoreUnavailable("Could not load student") from e
    if not student:
        raise NotFound("Student not found")
    return record_call(db, owner_id, student.id, CallMode.MANUAL)


def list_call_history(db: Session, owner_id: str, page: int = 1, limit: int = 50):
    """
    Owner's call records, newest first.

    Returns:
        Tuple of (records, total_count)
    """
    validate_owner(owner_id)
    try:
        total = db.scalar(
            select(func.count()).select_from(CallHistory).where(CallHistory.owner_id == owner_id)
        )
        records = list(db.scalars(
            select(CallHistory)
            .options(joinedload(CallHistory.student))
            .where(CallHistory.owner_id == owner_id)
            .order_by(CallHistory.called_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        ))
    except SQLAlchemyError as e:
        db.rollback()
        log_with_context(db_logger, "ERROR", "Failed to list call history: {}".format(e),
                         context={"owner_id": owner_id})
        raise StoreUnavailable("Could not load call history") from e
    return records, total
