"""
Domain errors.

Services raise these; the API layer turns them into a JSON body of the form
{"error": <message>, "code": <code>} with the matching HTTP status. The
remote order client maps the code back to the same class.
"""

from typing import Dict, Optional, Type


class OrderflowError(Exception):
    """Base class for all locally-detected, non-retried failures."""

    status_code: int = 500
    code: str = "INTERNAL_ERROR"
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code}


class UnauthorizedError(OrderflowError):
    status_code = 401
    code = "UNAUTHORIZED"
    default_message = "Unauthorized"


class ForbiddenError(OrderflowError):
    status_code = 403
    code = "FORBIDDEN"
    default_message = "Forbidden"


class NotFoundError(OrderflowError):
    status_code = 404
    code = "NOT_FOUND"
    default_message = "Not found"


class InvalidStateError(OrderflowError):
    """Transition not legal from the current status."""
    status_code = 409
    code = "INVALID_STATE"
    default_message = "Transition not allowed from the current status"


class ConflictError(OrderflowError):
    """A concurrent claim won the race."""
    status_code = 409
    code = "CONFLICT"
    default_message = "Order was claimed by another agent"


class ValidationFailedError(OrderflowError):
    status_code = 400
    code = "VALIDATION_FAILED"
    default_message = "Validation failed"


class OtpMismatchError(OrderflowError):
    status_code = 400
    code = "OTP_MISMATCH"
    default_message = "Invalid OTP"


class OtpAttemptsExceededError(OrderflowError):
    status_code = 429
    code = "OTP_ATTEMPTS_EXCEEDED"
    default_message = "Maximum OTP attempts exceeded for this order"


class StoreUnavailableError(OrderflowError):
    status_code = 503
    code = "SERVICE_UNAVAILABLE"
    default_message = "Storage backend unavailable"


ERRORS_BY_CODE: Dict[str, Type[OrderflowError]] = {
    cls.code: cls
    for cls in (
        OrderflowError,
        UnauthorizedError,
        ForbiddenError,
        NotFoundError,
        InvalidStateError,
        ConflictError,
        ValidationFailedError,
        OtpMismatchError,
        OtpAttemptsExceededError,
        StoreUnavailableError,
    )
}


def error_from_code(code: Optional[str], message: Optional[str] = None) -> OrderflowError:
    """Rebuild a domain error from its wire code."""
    error_cls = ERRORS_BY_CODE.get(code or "", OrderflowError)
    return error_cls(message)
