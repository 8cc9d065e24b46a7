"""
Role-based capability table.

Roles and operations are closed enumerations. Every authorization decision in
the services goes through `can()` / `require()` so the rule set lives here and
nowhere else. Ownership (is this principal the event's creator?) is checked by
the caller; the table only answers what a role may do.
"""

import enum
from dataclasses import dataclass
from typing import Optional

from campus_events.core.exceptions import AuthError, ForbiddenError


class Role(str, enum.Enum):
    STUDENT = "student"
    ORGANIZER = "organizer"
    REVIEWER = "reviewer"
    ADMIN = "admin"


class Operation(str, enum.Enum):
    EVENT_CREATE = "event:create"
    EVENT_EDIT_OWN = "event:edit_own"
    EVENT_EDIT_ANY = "event:edit_any"
    EVENT_REVIEW = "event:review"
    EVENT_VIEW_ALL = "event:view_all"
    REGISTRATION_CREATE = "registration:create"
    REGISTRATION_MANAGE_OWN = "registration:manage_own_event"
    REGISTRATION_MANAGE_ANY = "registration:manage_any"
    REGISTRATION_VIEW_ANY = "registration:view_any"


CAPABILITIES: dict[Role, frozenset[Operation]] = {
    Role.STUDENT: frozenset({
        Operation.REGISTRATION_CREATE,
    }),
    Role.ORGANIZER: frozenset({
        Operation.EVENT_CREATE,
        Operation.EVENT_EDIT_OWN,
        Operation.REGISTRATION_CREATE,
        Operation.REGISTRATION_MANAGE_OWN,
    }),
    Role.REVIEWER: frozenset({
        Operation.EVENT_REVIEW,
        Operation.EVENT_VIEW_ALL,
        Operation.REGISTRATION_CREATE,
    }),
    Role.ADMIN: frozenset({
        Operation.EVENT_EDIT_ANY,
        Operation.EVENT_VIEW_ALL,
        Operation.REGISTRATION_CREATE,
        Operation.REGISTRATION_MANAGE_ANY,
        Operation.REGISTRATION_VIEW_ANY,
    }),
}

FORBIDDEN_MESSAGES = {
    Operation.EVENT_CREATE: "only organizers can create events",
    Operation.EVENT_REVIEW: "only reviewers can review events",
    Operation.REGISTRATION_CREATE: "registration is not allowed for this account",
}


@dataclass(frozen=True)
class Principal:
    """Authenticated identity handed to every core operation."""

    id: int
    role: Role
    college: Optional[str] = None
    student_id: Optional[str] = None

    @classmethod
    def from_user(cls, user) -> "Principal":
        return cls(
            id=user.id,
            role=Role(user.role),
            college=user.college,
            student_id=user.student_id,
        )


def can(role: Role, operation: Operation) -> bool:
    return operation in CAPABILITIES.get(role, frozenset())


def require_principal(principal: Optional[Principal]) -> Principal:
    if principal is None:
        raise AuthError()
    return principal


def require(principal: Optional[Principal], operation: Operation) -> Principal:
    """Return the principal if its role holds `operation`, else raise."""
    principal = require_principal(principal)
    if not can(principal.role, operation):
        raise ForbiddenError(FORBIDDEN_MESSAGES.get(operation))
    return principal
