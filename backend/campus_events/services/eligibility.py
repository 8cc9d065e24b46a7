"""
Eligibility whitelist checks for event registration.

An event may restrict sign-ups to certain colleges and/or enrollment years
("grades"). An empty list leaves that axis unrestricted; both axes must pass.
"""

import re
from typing import NamedTuple, Optional

from campus_events.core.permissions import Principal
from campus_events.db.types import split_delimited

GRADE_PATTERN = re.compile(r"^([0-9]{4})")

REASON_COLLEGE = "college"
REASON_GRADE = "grade"

REASON_MESSAGES = {
    REASON_COLLEGE: "not eligible for this event (college restriction)",
    REASON_GRADE: "not eligible for this event (grade restriction)",
}


class Eligibility(NamedTuple):
    eligible: bool
    reason: Optional[str] = None

    @property
    def message(self) -> Optional[str]:
        return REASON_MESSAGES.get(self.reason)


def parse_list(value) -> list[str]:
    return split_delimited(value)


def grade_of(student_id: Optional[str]) -> Optional[str]:
    """Enrollment year taken from the leading four digits of a student id."""
    match = GRADE_PATTERN.match(str(student_id or ""))
    return match.group(1) if match else None


def check_eligibility(principal: Principal, event) -> Eligibility:
    allowed_colleges = parse_list(event.allowed_colleges)
    if allowed_colleges:
        college = (principal.college or "").strip()
        if not college or college not in allowed_colleges:
            return Eligibility(False, REASON_COLLEGE)

    allowed_grades = parse_list(event.allowed_grades)
    if allowed_grades:
        grade = grade_of(principal.student_id)
        if grade is None or grade not in allowed_grades:
            return Eligibility(False, REASON_GRADE)

    return Eligibility(True)


def is_eligible(principal: Principal, event) -> bool:
    return check_eligibility(principal, event).eligible
