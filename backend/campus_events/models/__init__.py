from campus_events.models.user import User
from campus_events.models.event import Event, EventStatus, ReviewStatus
from campus_events.models.registration import Registration, RegistrationStatus, ACTIVE_STATUSES

__all__ = [
    "User",
    "Event", "EventStatus", "ReviewStatus",
    "Registration", "RegistrationStatus", "ACTIVE_STATUSES",
]
