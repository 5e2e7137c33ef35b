from classroom.models.enums import CallMode, PKMode, PKStatus, PointRecordType
from classroom.models.student import Student
from classroom.models.call_history import CallHistory
from classroom.models.pk_session import PKSession, PKParticipant
from classroom.models.point_record import PointRecord

__all__ = [
    "CallMode", "PKMode", "PKStatus", "PointRecordType",
    "Student", "CallHistory", "PKSession", "PKParticipant", "PointRecord",
]
