"""
Student model - a person on an owner's roster who can be called on or paired.

Students are partitioned by owner_id: every query that touches students is
filtered by the requesting owner.
"""

import uuid
from sqlalchemy import Column, Text, DateTime, String, Integer, Boolean, Index
from sqlalchemy.orm import relationship
from classroom.database import Base, utcnow


class Student(Base):
    """
    SQLAlchemy model for the students table.

    Archived students stay in the table (their history is kept) but are
    never eligible for selection.
    """
    __tablename__ = "students"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()),
                doc="Unique student identifier")
    owner_id = Column(String(64), nullable=False,
                      doc="Teacher/user account that owns this student")
    name = Column(Text, nullable=False,
                  doc="Display name")
    student_no = Column(Text, nullable=True,
                        doc="External student number (school roll number)")
    avatar = Column(Text, nullable=True,
                    doc="Avatar image URL")
    points = Column(Integer, nullable=False, default=0,
                    doc="Current point balance")
    is_archived = Column(Boolean, nullable=False, default=False,
                         doc="Archived students are hidden and never selected")
    created_at = Column(DateTime, default=utcnow,
                        doc="Timestamp when student record was created")

    call_history = relationship("CallHistory", back_populates="student", passive_deletes=True)

    __table_args__ = (
        Index("ix_students_owner_archived", "owner_id", "is_archived"),
    )

    def __repr__(self):
        return f"<Student(id={self.id}, name='{self.name}', owner={self.owner_id})>"
