"""
CallHistory model - one immutable row per student called on.

The table doubles as an audit trail and as the input to the avoidance
window: students with a row newer than the cutoff are skipped by random
calls. Rows are never updated or deleted by the service.
"""

import uuid
from sqlalchemy import Column, Text, DateTime, ForeignKey, Index, String
from sqlalchemy.orm import relationship
from classroom.database import Base, utcnow
from classroom.models.enums import CallMode


class CallHistory(Base):
    """SQLAlchemy model for the call_history table."""
    __tablename__ = "call_history"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()),
                doc="Unique call record identifier")
    owner_id = Column(String(64), nullable=False,
                      doc="Owner who made the call")
    student_id = Column(String(36), ForeignKey("students.id", ondelete="SET NULL"), nullable=True,
                        doc="Called student (NULL once the student is deleted)")
    mode = Column(Text, nullable=False, default=CallMode.RANDOM.value,
                  doc="RANDOM | MANUAL | GROUP")
    called_at = Column(DateTime, nullable=False, default=utcnow,
                       doc="When the call happened (naive UTC)")

    student = relationship("Student", back_populates="call_history")

    __table_args__ = (
        Index("ix_call_history_owner_called_at", "owner_id", "called_at"),
    )

    def __repr__(self):
        return f"<CallHistory(id={self.id}, student={self.student_id}, mode='{self.mode}')>"
