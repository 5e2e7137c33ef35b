"""
Closed sets of tags stored in Text columns.

Columns hold the enum ``.value`` so the stored form is a plain string on
every backend.
"""

import enum


class CallMode(str, enum.Enum):
    """How a student was called on."""
    RANDOM = "RANDOM"
    MANUAL = "MANUAL"
    GROUP = "GROUP"


class PKMode(str, enum.Enum):
    """How the two PK participants were chosen."""
    INDIVIDUAL = "INDIVIDUAL"
    RANDOM = "RANDOM"


class PKStatus(str, enum.Enum):
    ONGOING = "ONGOING"
    FINISHED = "FINISHED"
    CANCELLED = "CANCELLED"


class PointRecordType(str, enum.Enum):
    ADD = "ADD"
    SUBTRACT = "SUBTRACT"
    RESET = "RESET"
