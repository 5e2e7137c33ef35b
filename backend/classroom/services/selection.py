"""
Selection Service - picks students at random for calls and PK pairings.

Implements the selection pipeline:
1. Eligibility: the owner's active students minus manual exclusions,
   minus everyone called within the avoidance window
2. Fallback: when the window leaves nobody, drop it for this one pick
3. Selection: a uniform draw of one student, or of a distinct pair

Design Decision: the avoidance window is a soft preference. A call tool
has to produce a student whenever one exists, so an empty pool after
exclusion widens back to the whole roster and the caller is told via
reset_occurred rather than getting an error. Manual exclusions are a hard
constraint and are never widened.
"""

import random
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from classroom.database import utcnow
from classroom.errors import (
    InvalidArgument, NoStudentsAvailable, InsufficientCandidates, StoreUnavailable
)
from classroom.models.call_history import CallHistory
from classroom.models.student import Student
from classroom.logging_config import get_logger, log_with_context

logger = get_logger("selection")
db_logger = get_logger("db")


@dataclass
class Eligibility:
    """Outcome of resolve_eligible."""
    eligible: List[Student]
    base: List[Student]
    excluded_count: int = 0
    total_active: int = 0


def validate_owner(owner_id) -> str:
    if not isinstance(owner_id, str) or not owner_id.strip():
        raise InvalidArgument("owner_id must be a non-empty string")
    return owner_id


def validate_non_negative(name: str, value) -> int:
    """Reject anything that is not a plain int >= 0 (bools included)."""
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidArgument("{} must be an integer >= 0".format(name))
    return value


def avoidance_cutoff(now: datetime, avoid_hours: int) -> datetime:
    """
    Start of the avoidance window ending at now.

    A window reaching back past datetime.min covers every possible record,
    so it is clamped there instead of overflowing.
    """
    try:
        return now - timedelta(hours=avoid_hours)
    except OverflowError:
        return datetime.min


def load_active_students(db: Session, owner_id: str) -> List[Student]:
    """All non-archived students of an owner, oldest first."""
    try:
        return list(db.scalars(
            select(Student)
            .where(Student.owner_id == owner_id, Student.is_archived.is_(False))
            .order_by(Student.created_at, Student.id)
        ))
    except SQLAlchemyError as e:
        log_with_context(db_logger, "ERROR", "Failed to load students: {}".format(e),
                         context={"owner_id": owner_id})
        db.rollback()
        raise StoreUnavailable("Could not load students") from e


def load_recently_called_ids(db: Session, owner_id: str, cutoff) -> set:
    """Distinct student ids with a call record for owner_id after cutoff."""
    try:
        rows = db.scalars(
            select(CallHistory.student_id)
            .where(
                CallHistory.owner_id == owner_id,
                CallHistory.called_at > cutoff,
                CallHistory.student_id.isnot(None),
            )
            .distinct()
        )
        return set(rows)
    except SQLAlchemyError as e:
        log_with_context(db_logger, "ERROR", "Failed to load call history: {}".format(e),
                         context={"owner_id": owner_id})
        db.rollback()
        raise StoreUnavailable("Could not load call history") from e


def resolve_eligible(db: Session, owner_id: str, avoid_hours: int,
                     exclude_ids: Optional[Sequence[str]] = None,
                     now=None) -> Eligibility:
    """
    Compute the candidate pool for a random call.

    Args:
        db: Database session (read only)
        owner_id: Owner whose roster is used
        avoid_hours: Avoidance window in hours; 0 disables avoidance
        exclude_ids: Student ids that must never be picked on this call
        now: Reference time (naive UTC), defaults to the current time

    Returns:
        Eligibility with the eligible list, the fallback base (active minus
        manual exclusions), how many base students the window excluded and
        the number of active students.

    Raises:
        InvalidArgument: bad owner_id or avoid_hours
        NoStudentsAvailable: the owner has no active students at all
    """
    validate_owner(owner_id)
    validate_non_negative("avoid_hours", avoid_hours)

    active = load_active_students(db, owner_id)
    if not active:
        log_with_context(logger, "WARNING", "Owner has no active students",
                         context={"owner_id": owner_id})
        raise NoStudentsAvailable("No active students for this owner")

    manual = set(exclude_ids or [])
    base = [s for s in active if s.id not in manual]

    recent = set()
    if avoid_hours > 0:
        cutoff = avoidance_cutoff(now or utcnow(), avoid_hours)
        recent = load_recently_called_ids(db, owner_id, cutoff)

    eligible = [s for s in base if s.id not in recent]
    excluded_count = len(base) - len(eligible)

    log_with_context(logger, "DEBUG",
        "Resolved {} eligible of {} active students".format(len(eligible), len(active)),
        context={"owner_id": owner_id},
        extra_data={
            "avoid_hours": avoid_hours,
            "manual_excluded": len(active) - len(base),
            "window_excluded": excluded_count,
        })

    return Eligibility(
        eligible=eligible,
        base=base,
        excluded_count=excluded_count,
        total_active=len(active),
    )


def apply_fallback(eligible: List[Student], base: List[Student]):
    """
    Decide the final pool once the avoidance window has been applied.

    Returns:
        Tuple of (final_pool, reset_occurred)
    """
    if eligible:
        return eligible, False
    if base:
        return list(base), True
    raise NoStudentsAvailable("No students available to pick from")


def pick_one(pool: Sequence[Student], rng=None) -> Student:
    """Uniformly pick one student; each has probability 1/len(pool)."""
    if not pool:
        raise NoStudentsAvailable("Cannot pick from an empty pool")
    rng = rng or random
    return pool[rng.randrange(len(pool))]


def pick_pair(pool: Sequence[Student], rng=None):
    """
    Uniformly pick two distinct students.

    Runs the first two steps of a Fisher-Yates shuffle over a copy of the
    pool, so every unordered pair is equally likely.
    """
    candidates = []
    seen = set()
    for student in pool:
        if student.id not in seen:
            seen.add(student.id)
            candidates.append(student)

    if len(candidates) < 2:
        raise InsufficientCandidates(
            "At least 2 students are required, found {}".format(len(candidates)))

    rng = rng or random
    n = len(candidates)
    for i in range(2):
        j = rng.randrange(i, n)
        candidates[i], candidates[j] = candidates[j], candidates[i]

    return candidates[0], candidates[1]
