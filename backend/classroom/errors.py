"""
Domain errors raised by the classroom services.

Every error carries a stable machine-readable code and the HTTP status the
API layer answers with. Services raise these; main.py turns them into JSON
responses of the form {"detail": ..., "error": ...}.
"""


class ClassroomError(Exception):
    """Base class for all service-level failures."""
    code = "internal_error"
    status_code = 500

    def __init__(self, message: str = None):
        super().__init__(message or self.__class__.__doc__)
        self.message = message or self.__class__.__doc__


class InvalidArgument(ClassroomError):
    """Request arguments are invalid."""
    code = "invalid_argument"
    status_code = 400


class NotFound(ClassroomError):
    """Requested resource does not exist."""
    code = "not_found"
    status_code = 404


class NoStudentsAvailable(NotFound):
    """No active students are available."""
    code = "no_students_available"


class Forbidden(ClassroomError):
    """Resource belongs to another owner."""
    code = "forbidden"
    status_code = 403


class InsufficientCandidates(ClassroomError):
    """At least 2 students are required for a PK pairing."""
    code = "insufficient_candidates"
    status_code = 400


class InvalidTransition(ClassroomError):
    """PK session is not in a state that allows this change."""
    code = "invalid_transition"
    status_code = 409


class StoreUnavailable(ClassroomError):
    """The database could not complete the operation."""
    code = "store_unavailable"
    status_code = 503
