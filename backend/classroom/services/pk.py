"""
PK Service - head-to-head sessions between two students.

Sessions are created ONGOING, either from two random active students or
from two students chosen by the teacher. Declaring a winner finishes the
session and, when the session carries reward points, credits the winner
and appends a PointRecord in the same transaction.

State machine:
    ONGOING -> FINISHED   (winner declared, or status set explicitly)
    ONGOING -> CANCELLED
FINISHED and CANCELLED are terminal.
"""

from typing import Optional, Sequence

from sqlalchemy import select, func, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from classroom.database import utcnow
from classroom.errors import (
    InvalidArgument, NotFound, Forbidden, InvalidTransition, StoreUnavailable
)
from classroom.models.enums import PKMode, PKStatus, PointRecordType
from classroom.models.pk_session import PKSession, PKParticipant
from classroom.models.point_record import PointRecord
from classroom.models.student import Student
from classroom.services.history import record_pk_session
from classroom.services.selection import (
    load_active_students, pick_pair, validate_owner, validate_non_negative
)
from classroom.logging_config import get_logger, log_with_context

logger = get_logger("pk")
db_logger = get_logger("db")

TERMINAL_STATUSES = {PKStatus.FINISHED.value, PKStatus.CANCELLED.value}


def _parse_enum(enum_cls, value, name):
    try:
        return enum_cls(value).value
    except ValueError:
        raise InvalidArgument("Unknown {}: {}".format(name, value)) from None


def _validate_session_args(owner_id, reward_points, duration):
    validate_owner(owner_id)
    validate_non_negative("reward_points", reward_points)
    if duration is not None:
        validate_non_negative("duration", duration)


def random_pair_pk(db: Session, owner_id: str, reward_points: int = 0,
                   topic: Optional[str] = None, duration: Optional[int] = None,
                   rng=None) -> PKSession:
    """
    Pair two distinct active students at random and open a PK session.

    Raises:
        InvalidArgument: bad owner_id, reward_points or duration
        InsufficientCandidates: fewer than 2 active students
        StoreUnavailable: the session could not be written (nothing persisted)
    """
    _validate_session_args(owner_id, reward_points, duration)

    students = load_active_students(db, owner_id)
    first, second = pick_pair(students, rng)

    session = record_pk_session(db, owner_id, [first, second],
                                reward_points=reward_points, mode=PKMode.RANDOM,
                                topic=topic, duration=duration)

    log_with_context(logger, "INFO",
        "Random PK: {} vs {}".format(first.name, second.name),
        context={"owner_id": owner_id, "session_id": session.id},
        extra_data={"pool_size": len(students), "reward_points": reward_points})
    return session


def _store_failure(db: Session, action: str, error: SQLAlchemyError, **context):
    db.rollback()
    log_with_context(db_logger, "ERROR", "Failed to {}: {}".format(action, error),
                     context=context)
    return StoreUnavailable("Could not {}".format(action))


def create_individual_pk(db: Session, owner_id: str, student_ids: Sequence[str],
                         reward_points: int = 0, topic: Optional[str] = None,
                         duration: Optional[int] = None) -> PKSession:
    """Open a PK session between two students picked by the owner."""
    _validate_session_args(owner_id, reward_points, duration)

    ids = list(student_ids or [])
    if len(ids) != 2 or ids[0] == ids[1]:
        raise InvalidArgument("Individual PK requires exactly 2 distinct students")

    try:
        students = list(db.scalars(
            select(Student).where(
                Student.id.in_(ids),
                Student.owner_id == owner_id,
                Student.is_archived.is_(False),
            )
        ))
    except SQLAlchemyError as e:
        raise _store_failure(db, "load students", e, owner_id=owner_id) from e
    if len(students) != 2:
        raise NotFound("Student not found or archived")

    by_id = {s.id: s for s in students}
    return record_pk_session(db, owner_id, [by_id[i] for i in ids],
                             reward_points=reward_points, mode=PKMode.INDIVIDUAL,
                             topic=topic, duration=duration)


def get_session(db: Session, owner_id: str, session_id: str) -> PKSession:
    """Load a session with participants, enforcing ownership."""
    validate_owner(owner_id)
    try:
        session = db.scalar(
            select(PKSession)
            .options(selectinload(PKSession.participants).joinedload(PKParticipant.student))
            .where(PKSession.id == session_id)
        )
    except SQLAlchemyError as e:
        raise _store_failure(db, "load PK session", e,
                             owner_id=owner_id, session_id=session_id) from e
    if not session:
        raise NotFound("PK session not found")
    if session.owner_id != owner_id:
        raise Forbidden("PK session belongs to another owner")
    return session


def list_sessions(db: Session, owner_id: str, mode: Optional[str] = None,
                  status: Optional[str] = None, page: int = 1, limit: int = 20):
    """
    Owner's sessions, newest first.

    Returns:
        Tuple of (sessions, total_count)
    """
    validate_owner(owner_id)
    filters = [PKSession.owner_id == owner_id]
    if mode:
        filters.append(PKSession.mode == _parse_enum(PKMode, mode, "mode"))
    if status:
        filters.append(PKSession.status == _parse_enum(PKStatus, status, "status"))

    try:
        total = db.scalar(select(func.count()).select_from(PKSession).where(*filters))
        sessions = list(db.scalars(
            select(PKSession)
            .options(selectinload(PKSession.participants).joinedload(PKParticipant.student))
            .where(*filters)
            .order_by(PKSession.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        ))
    except SQLAlchemyError as e:
        raise _store_failure(db, "list PK sessions", e, owner_id=owner_id) from e
    return sessions, total


def _award_winner(db: Session, session: PKSession, winner: PKParticipant):
    """Credit the winner's balance and append the matching ledger row."""
    credited = db.execute(
        update(Student)
        .where(Student.id == winner.student_id)
        .values(points=Student.points + session.reward_points)
        .execution_options(synchronize_session=False)
    )
    if credited.rowcount != 1:
        raise NotFound("Winning student no longer exists")
    reason = "PK win reward"
    if session.topic:
        reason = "{}: {}".format(reason, session.topic)
    db.add(PointRecord(
        owner_id=session.owner_id,
        student_id=winner.student_id,
        points=session.reward_points,
        type=PointRecordType.ADD.value,
        reason=reason,
        created_at=utcnow(),
    ))


def update_session(db: Session, owner_id: str, session_id: str,
                   winner_id: Optional[str] = None,
                   status: Optional[str] = None) -> PKSession:
    """
    Declare a winner and/or move a session to a new status.

    The status change is a conditional UPDATE on status = ONGOING, so of
    two concurrent requests only one finishes the session and pays out.

    Raises:
        NotFound / Forbidden: unknown session, or another owner's
        InvalidArgument: winner is not a participant, unknown status
        InvalidTransition: the session is already FINISHED or CANCELLED,
            or a winner is combined with CANCELLED
        StoreUnavailable: the database failed; nothing was written
    """
    session = get_session(db, owner_id, session_id)

    new_status = _parse_enum(PKStatus, status, "status") if status else None
    if winner_id is None and new_status is None:
        raise InvalidArgument("Nothing to update")
    if session.status in TERMINAL_STATUSES:
        raise InvalidTransition("PK session is already {}".format(session.status))
    if winner_id is not None and new_status == PKStatus.CANCELLED.value:
        raise InvalidTransition("A cancelled session cannot have a winner")

    winner = None
    if winner_id is not None:
        winner = next((p for p in session.participants if p.student_id == winner_id), None)
        if winner is None:
            raise InvalidArgument("Winner must be one of the participants")
        new_status = PKStatus.FINISHED.value

    values = {"status": new_status}
    if winner is not None:
        values["winner_id"] = winner_id
    if new_status == PKStatus.FINISHED.value:
        values["finished_at"] = utcnow()

    try:
        claimed = db.execute(
            update(PKSession)
            .where(PKSession.id == session.id, PKSession.status == PKStatus.ONGOING.value)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if claimed.rowcount != 1:
            raise InvalidTransition("PK session is no longer ONGOING")

        if winner is not None:
            for participant in session.participants:
                participant.is_winner = participant is winner
            if session.reward_points > 0:
                _award_winner(db, session, winner)

        db.commit()
    except SQLAlchemyError as e:
        raise _store_failure(db, "update PK session", e,
                             owner_id=owner_id, session_id=session_id) from e
    except (InvalidTransition, NotFound):
        db.rollback()
        raise

    log_with_context(logger, "INFO", "PK session now {}".format(new_status),
                     context={"owner_id": owner_id, "session_id": session_id,
                              "winner_id": winner_id})
    return get_session(db, owner_id, session_id)


def delete_session(db: Session, owner_id: str, session_id: str):
    """Delete a session; its participants go with it."""
    session = get_session(db, owner_id, session_id)
    try:
        db.delete(session)
        db.commit()
    except SQLAlchemyError as e:
        raise _store_failure(db, "delete PK session", e,
                             owner_id=owner_id, session_id=session_id) from e
    log_with_context(logger, "INFO", "PK session deleted",
                     context={"owner_id": owner_id, "session_id": session_id})
