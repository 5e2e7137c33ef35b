"""
PK models - head-to-head sessions between two students.

A PKSession is created together with its two PKParticipant rows in a
single transaction. Status moves ONGOING -> FINISHED (winner declared)
or ONGOING -> CANCELLED and never leaves a terminal state.
"""

import uuid
from sqlalchemy import Column, Text, DateTime, ForeignKey, Index, String, Integer, Boolean
from sqlalchemy.orm import relationship
from classroom.database import Base, utcnow
from classroom.models.enums import PKMode, PKStatus


class PKSession(Base):
    """SQLAlchemy model for the pk_sessions table."""
    __tablename__ = "pk_sessions"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()),
                doc="Unique PK session identifier")
    owner_id = Column(String(64), nullable=False,
                      doc="Owner who started the session")
    mode = Column(Text, nullable=False, default=PKMode.RANDOM.value,
                  doc="INDIVIDUAL | RANDOM")
    topic = Column(Text, nullable=True,
                   doc="Optional topic or question for the round")
    reward_points = Column(Integer, nullable=False, default=0,
                           doc="Points granted to the winner")
    duration = Column(Integer, nullable=True,
                      doc="Planned duration in seconds")
    status = Column(Text, nullable=False, default=PKStatus.ONGOING.value,
                    doc="ONGOING | FINISHED | CANCELLED")
    winner_id = Column(String(36), nullable=True,
                       doc="Student id of the declared winner")
    created_at = Column(DateTime, default=utcnow)
    finished_at = Column(DateTime, nullable=True)

    participants = relationship("PKParticipant", back_populates="session",
                                cascade="all, delete-orphan", passive_deletes=True)

    __table_args__ = (
        Index("ix_pk_sessions_owner_created_at", "owner_id", "created_at"),
    )

    def __repr__(self):
        return f"<PKSession(id={self.id}, mode='{self.mode}', status='{self.status}')>"


class PKParticipant(Base):
    """SQLAlchemy model for the pk_participants table."""
    __tablename__ = "pk_participants"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    session_id = Column(String(36), ForeignKey("pk_sessions.id", ondelete="CASCADE"), nullable=False)
    student_id = Column(String(36), ForeignKey("students.id"), nullable=False)
    is_winner = Column(Boolean, nullable=False, default=False)
    score = Column(Integer, nullable=False, default=0)

    session = relationship("PKSession", back_populates="participants")
    student = relationship("Student")

    __table_args__ = (
        Index("ix_pk_participants_session_id", "session_id"),
    )

    def __repr__(self):
        return f"<PKParticipant(session={self.session_id}, student={self.student_id}, winner={self.is_winner})>"
