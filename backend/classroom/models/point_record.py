"""
PointRecord model - append-only ledger of point balance changes.
"""

import uuid
from sqlalchemy import Column, Text, DateTime, ForeignKey, Index, String, Integer
from classroom.database import Base, utcnow


class PointRecord(Base):
    """
    SQLAlchemy model for the point_records table.

    Written alongside every change to Student.points so the balance can be
    audited. Currently produced by PK winner rewards.
    """
    __tablename__ = "point_records"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    owner_id = Column(String(64), nullable=False)
    student_id = Column(String(36), ForeignKey("students.id", ondelete="CASCADE"), nullable=False)
    points = Column(Integer, nullable=False,
                    doc="Signed point delta")
    type = Column(Text, nullable=False,
                  doc="ADD | SUBTRACT | RESET")
    reason = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow)

    __table_args__ = (
        Index("ix_point_records_student_id", "student_id"),
    )

    def __repr__(self):
        return f"<PointRecord(student={self.student_id}, points={self.points}, type='{self.type}')>"
