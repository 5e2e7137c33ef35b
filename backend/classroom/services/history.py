"""
History Service - persists the outcome of a selection.

Call records are single-row inserts. A PK session is written together
with both participant rows in one transaction: if any row fails, the
whole session is rolled back and nothing is persisted.
"""

import time
from typing import Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from classroom.database import utcnow
from classroom.errors import StoreUnavailable
from classroom.models.call_history import CallHistory
from classroom.models.enums import CallMode, PKMode, PKStatus
from classroom.models.pk_session import PKSession, PKParticipant
from classroom.logging_config import get_logger, log_with_context

logger = get_logger("db")


def record_call(db: Session, owner_id: str, student_id: str,
                mode: CallMode = CallMode.RANDOM) -> CallHistory:
    """
    Insert one immutable call record and commit it.

    Raises:
        StoreUnavailable: the insert or commit failed (rolled back)
    """
    record = CallHistory(
        owner_id=owner_id,
        student_id=student_id,
        mode=CallMode(mode).value,
        called_at=utcnow(),
    )
    try:
        db.add(record)
        db.commit()
        db.refresh(record)
    except SQLAlchemyError as e:
        db.rollback()
        log_with_context(logger, "ERROR", "Failed to record call: {}".format(e),
                         context={"owner_id": owner_id, "student_id": student_id})
        raise StoreUnavailable("Could not record call") from e

    log_with_context(logger, "INFO", "Call recorded ({})".format(record.mode),
                     context={"owner_id": owner_id, "student_id": student_id,
                              "call_id": record.id})
    return record


def record_pk_session(db: Session, owner_id: str, students: Sequence,
                      reward_points: int = 0, mode: PKMode = PKMode.RANDOM,
                      topic: Optional[str] = None,
                      duration: Optional[int] = None) -> PKSession:
    """
    Create a PK session with one participant row per student, atomically.

    Args:
        db: Database session
        owner_id: Owner starting the session
        students: The two selected students (only their ids are used)
        reward_points: Points the winner will receive
        mode: How the participants were chosen
        topic: Optional topic for the round
        duration: Optional planned duration in seconds

    Returns:
        The persisted PKSession with participants loaded

    Raises:
        StoreUnavailable: any insert failed; no rows are left behind
    """
    start_time = time.time()

    session = PKSession(
        owner_id=owner_id,
        mode=PKMode(mode).value,
        topic=topic,
        reward_points=reward_points,
        duration=duration,
        status=PKStatus.ONGOING.value,
        created_at=utcnow(),
    )
    session.participants = [PKParticipant(student_id=s.id) for s in students]

    try:
        db.add(session)
        db.commit()
        db.refresh(session)
    except SQLAlchemyError as e:
        db.rollback()
        log_with_context(logger, "ERROR", "Failed to create PK session: {}".format(e),
                         context={"owner_id": owner_id},
                         extra_data={"student_ids": [s.id for s in students]})
        raise StoreUnavailable("Could not create PK session") from e

    duration_ms = (time.time() - start_time) * 1000
    log_with_context(logger, "INFO", "PK session created with {} participants".format(
        len(session.participants)),
        context={"owner_id": owner_id, "session_id": session.id},
        extra_data={"duration_ms": round(duration_ms, 2), "mode": session.mode})
    return session
