"""
Error taxonomy for the leave portal.

Services raise these exceptions at the point a problem is detected; the
exception handlers registered in main.py turn them into the standard
failure envelope with the matching HTTP status.
"""


class PortalError(Exception):
    """Base class for every expected, caller-facing failure."""
    status_code = 400
    kind = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"success": False, "error": self.kind, "message": self.message}


class ValidationError(PortalError):
    """Malformed or out-of-range input."""
    status_code = 400
    kind = "validation_error"


class InsufficientBalanceError(PortalError):
    """Requested leave days exceed the student's remaining balance."""
    status_code = 400
    kind = "insufficient_balance"


class UnauthenticatedError(PortalError):
    status_code = 401
    kind = "unauthenticated"


class ForbiddenError(PortalError):
    """Role or ownership mismatch."""
    status_code = 403
    kind = "forbidden"


class NotFoundError(PortalError):
    status_code = 404
    kind = "not_found"


class ConflictError(PortalError):
    """Duplicate test for a leave, or duplicate submission."""
    status_code = 409
    kind = "conflict"


class InvalidStateError(PortalError):
    """Operation not permitted in the current lifecycle state."""
    status_code = 409
    kind = "invalid_state"


class QuestionSourceError(PortalError):
    """The external question source failed or returned garbage."""
    status_code = 502
    kind = "question_source_error"
