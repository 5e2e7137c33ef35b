"""
Call API routes - random and manual "call on a student".

Provides endpoints for:
- Picking a random student with the avoidance window
- Recording a manual call
- Listing call history with pagination
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from classroom.database import get_db
from classroom.models.call_history import CallHistory
from classroom.routes.deps import get_owner_id
from classroom.routes.students import serialize_student
from classroom.services.calling import (
    DEFAULT_AVOID_HOURS, random_call, manual_call, list_call_history
)

router = APIRouter()


# ── Pydantic schemas ─────────────────────────────────────────

class RandomCallRequest(BaseModel):
    """Schema for a random call. Range checks happen in the service."""
    avoid_hours: int = Field(DEFAULT_AVOID_HOURS, description="Avoidance window in hours, 0 disables it")
    exclude_ids: List[str] = Field(default_factory=list, description="Students never picked on this call")


class ManualCallRequest(BaseModel):
    """Schema for recording a manual call."""
    student_id: str


def serialize_call(record: CallHistory) -> dict:
    """Serialize a CallHistory ORM object to a dict for API response."""
    return {
        "id": record.id,
        "mode": record.mode,
        "called_at": record.called_at.isoformat() if record.called_at else None,
        "student_id": record.student_id,
        "student": {
            "id": record.student.id,
            "name": record.student.name,
            "student_no": record.student.student_no,
            "avatar": record.student.avatar,
        } if record.student else None,
    }


@router.post("/api/call/random")
def call_random(request: Optional[RandomCallRequest] = None,
                owner_id: str = Depends(get_owner_id),
                db: Session = Depends(get_db)):
    """Pick a random student, skipping recently called ones when possible."""
    request = request or RandomCallRequest()
    result = random_call(db, owner_id, request.avoid_hours, request.exclude_ids)

    response = {
        "student": serialize_student(result.student),
        "total_available": result.total_available,
        "total_excluded": result.total_excluded,
        "avoid_reset_used": result.avoid_reset_used,
        "call_id": result.record.id,
    }
    if result.avoid_reset_used:
        response["message"] = (
            "Every student was called within the last {} hours; "
            "the avoidance window was reset for this call".format(request.avoid_hours)
        )
    return response


@router.post("/api/call/manual")
def call_manual(request: ManualCallRequest, owner_id: str = Depends(get_owner_id),
                db: Session = Depends(get_db)):
    """Record that a specific student was called on."""
    record = manual_call(db, owner_id, request.student_id)
    return serialize_call(record)


@router.get("/api/call/history")
def call_history(
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(50, ge=1, le=200, description="Results per page"),
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db)
):
    """List the owner's call history, newest first."""
    records, total = list_call_history(db, owner_id, page, limit)
    return {
        "data": [serialize_call(r) for r in records],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": (total + limit - 1) // limit
        }
    }
