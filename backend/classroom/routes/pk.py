"""
PK API routes - head-to-head sessions between two students.

Provides endpoints for:
- Creating a session (RANDOM pairing or INDIVIDUAL with two chosen students)
- Listing and viewing sessions
- Declaring a winner / cancelling (PATCH)
- Deleting a session
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from classroom.database import get_db
from classroom.models.enums import PKMode
from classroom.models.pk_session import PKSession
from classroom.routes.deps import get_owner_id
from classroom.routes.students import serialize_student
from classroom.services import pk as pk_service

router = APIRouter()


# ── Pydantic schemas ─────────────────────────────────────────

class PKSessionCreate(BaseModel):
    """Schema for creating a PK session. Range checks happen in the service."""
    mode: PKMode = Field(PKMode.RANDOM, description="RANDOM or INDIVIDUAL")
    reward_points: int = Field(0, description="Points granted to the winner")
    topic: Optional[str] = Field(None, description="Optional topic for the round")
    duration: Optional[int] = Field(None, description="Planned duration in seconds")
    student_ids: Optional[List[str]] = Field(None, description="The two students for INDIVIDUAL mode")


class PKSessionUpdate(BaseModel):
    """Schema for declaring a winner and/or changing status."""
    winner_id: Optional[str] = None
    status: Optional[str] = None


def serialize_session(session: PKSession) -> dict:
    """Serialize a PKSession ORM object to a dict for API response."""
    return {
        "id": session.id,
        "mode": session.mode,
        "topic": session.topic,
        "reward_points": session.reward_points,
        "duration": session.duration,
        "status": session.status,
        "winner_id": session.winner_id,
        "created_at": session.created_at.isoformat() if session.created_at else None,
        "finished_at": session.finished_at.isoformat() if session.finished_at else None,
        "participants": [
            {
                "id": p.id,
                "student_id": p.student_id,
                "is_winner": p.is_winner,
                "score": p.score,
                "student": serialize_student(p.student) if p.student else None,
            }
            for p in session.participants
        ],
    }


@router.post("/api/pk/sessions")
def create_session(request: PKSessionCreate, owner_id: str = Depends(get_owner_id),
                   db: Session = Depends(get_db)):
    """Create a PK session; RANDOM mode pairs two active students at random."""
    if request.mode == PKMode.RANDOM:
        session = pk_service.random_pair_pk(
            db, owner_id, request.reward_points, request.topic, request.duration)
        message = "Random PK session created"
    else:
        session = pk_service.create_individual_pk(
            db, owner_id, request.student_ids, request.reward_points,
            request.topic, request.duration)
        message = "PK session created"
    return {"session": serialize_session(session), "message": message}


@router.get("/api/pk/sessions")
def list_sessions(
    mode: Optional[str] = Query(None, description="Filter by mode"),
    status: Optional[str] = Query(None, description="Filter by status"),
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(20, ge=1, le=100, description="Results per page"),
    owner_id: str = Depends(get_owner_id),
    db: Session = Depends(get_db)
):
    """List the owner's PK sessions, newest first."""
    sessions, total = pk_service.list_sessions(db, owner_id, mode, status, page, limit)
    return {
        "data": [serialize_session(s) for s in sessions],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": (total + limit - 1) // limit
        }
    }


@router.get("/api/pk/sessions/{session_id}")
def get_session(session_id: str, owner_id: str = Depends(get_owner_id),
                db: Session = Depends(get_db)):
    """Get one PK session with its participants."""
    session = pk_service.get_session(db, owner_id, session_id)
    return {"session": serialize_session(session)}


@router.patch("/api/pk/sessions/{session_id}")
def update_session(session_id: str, request: PKSessionUpdate,
                   owner_id: str = Depends(get_owner_id),
                   db: Session = Depends(get_db)):
    """Declare the winner (finishing the session) or change its status."""
    session = pk_service.update_session(
        db, owner_id, session_id, winner_id=request.winner_id, status=request.status)
    return {"session": serialize_session(session), "message": "PK session updated"}


@router.delete("/api/pk/sessions/{session_id}")
def delete_session(session_id: str, owner_id: str = Depends(get_owner_id),
                   db: Session = Depends(get_db)):
    """Delete a PK session and its participants."""
    pk_service.delete_session(db, owner_id, session_id)
    return {"message": "PK session deleted"}
