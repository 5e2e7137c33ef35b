"""
Student roster API routes.

A minimal roster so the selection features can be used end-to-end:
create, list, archive and restore. Archived students are never selected.
"""

from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from classroom.database import get_db, utcnow
from classroom.errors import StoreUnavailable
from classroom.models.student import Student
from classroom.routes.deps import get_owner_id
from classroom.logging_config import get_logger, log_with_context

router = APIRouter()
logger = get_logger("http")
db_logger = get_logger("db")


# ── Pydantic schemas ─────────────────────────────────────────

class StudentCreate(BaseModel):
    """Schema for adding a student to the roster."""
    name: str = Field(..., min_length=1, description="Display name")
    student_no: Optional[str] = Field(None, description="External student number")
    avatar: Optional[str] = Field(None, description="Avatar image URL")
    points: int = Field(0, description="Starting point balance")


def serialize_student(student: Student) -> dict:
    """Serialize a Student ORM object to a dict for API response."""
    return {
        "id": student.id,
        "name": student.name,
        "student_no": student.student_no,
        "avatar": student.avatar,
        "points": student.points,
        "is_archived": student.is_archived,
    }


def _store_unavailable(db: Session, action: str, error: SQLAlchemyError, owner_id: str):
    db.rollback()
    log_with_context(db_logger, "ERROR", "Failed to {}: {}".format(action, error),
                     context={"owner_id": owner_id})
    return StoreUnavailable("Could not {}".format(action))


def _get_owned_student(db: Session, owner_id: str, student_id: str) -> Student:
    try:
        student = db.scalar(
            select(Student).where(Student.id == student_id, Student.owner_id == owner_id)
        )
    except SQLAlchemyError as e:
        raise _store_unavailable(db, "load student", e, owner_id) from e
    if not student:
        raise HTTPException(status_code=404, detail="Student not found")
    return student


def _set_archived(db: Session, owner_id: str, student_id: str, archived: bool) -> Student:
    student = _get_owned_student(db, owner_id, student_id)
    student.is_archived = archived
    try:
        db.commit()
    except SQLAlchemyError as e:
        raise _store_unavailable(db, "update student", e, owner_id) from e
    log_with_context(logger, "INFO",
                     "Student {}".format("archived" if archived else "restored"),
                     context={"owner_id": owner_id, "student_id": student_id})
    return student


@router.post("/api/students")
def create_student(request: StudentCreate, owner_id: str = Depends(get_owner_id),
                   db: Session = Depends(get_db)):
    """Add a student to the owner's roster."""
    student = Student(
        owner_id=owner_id,
        name=request.name.strip(),
        student_no=request.student_no,
        avatar=request.avatar,
        points=request.points,
        created_at=utcnow(),
    )
    try:
        db.add(student)
        db.commit()
        db.refresh(student)
    except SQLAlchemyError as e:
        raise _store_unavailable(db, "create student", e, owner_id) from e

    log_with_context(logger, "INFO", "Student created: {}".format(student.name),
                     context={"owner_id": owner_id, "student_id": student.id})
    return serialize_student(student)


@router.get("/api/students")
def list_students(
    include_archived: bool = Query(False, description="Include archived students"),
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db)
):
    """List the owner's students, oldest first."""
    query = select(Student).where(Student.owner_id == owner_id)
    if not include_archived:
        query = query.where(Student.is_archived.is_(False))
    try:
        students = db.scalars(query.order_by(Student.created_at, Student.id)).all()
    except SQLAlchemyError as e:
        raise _store_unavailable(db, "list students", e, owner_id) from e
    return {"data": [serialize_student(s) for s in students], "total": len(students)}


@router.post("/api/students/{student_id}/archive")
def archive_student(student_id: str, owner_id: str = Depends(get_owner_id),
                    db: Session = Depends(get_db)):
    """Archive a student; archived students drop out of every pool."""
    return serialize_student(_set_archived(db, owner_id, student_id, True))


@router.post("/api/students/{student_id}/restore")
def restore_student(student_id: str, owner_id: str = Depends(get_owner_id),
                    db: Session = Depends(get_db)):
    """Bring an archived student back onto the active roster."""
    return serialize_student(_set_archived(db, owner_id, student_id, False))
