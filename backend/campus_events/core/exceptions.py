"""
Domain error taxonomy.

Services raise these instead of transport errors so the core stays callable
from any transport. The HTTP layer maps them to responses in main.py using
`status_code` and `code`; `message` is stable and safe to show to users.
"""

from typing import Optional


class DomainError(Exception):
    """Base class for expected, user-facing failures."""

    status_code: int = 400
    code: str = "domain_error"
    default_message: str = "Request could not be processed"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


class ValidationError(DomainError):
    status_code = 400
    code = "validation_error"
    default_message = "Invalid request"


class AuthError(DomainError):
    status_code = 401
    code = "auth_required"
    default_message = "Authentication required"


class ForbiddenError(DomainError):
    """Authenticated but not permitted. `reason` names a failed eligibility axis."""

    status_code = 403
    code = "forbidden"
    default_message = "Operation not permitted"

    def __init__(self, message: Optional[str] = None, reason: Optional[str] = None):
        super().__init__(message)
        self.reason = reason

    def to_dict(self) -> dict:
        data = super().to_dict()
        if self.reason:
            data["reason"] = self.reason
        return data


class NotFoundError(DomainError):
    status_code = 404
    code = "not_found"
    default_message = "Resource not found"


class ConflictError(DomainError):
    status_code = 409
    code = "conflict"
    default_message = "duplicate registration"


class CapacityExceededError(DomainError):
    status_code = 409
    code = "capacity_exceeded"
    default_message = "event is full"
